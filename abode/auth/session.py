"""
Session & Authentication

DESIGN DECISION: The logged-in user is an explicit Session object, not
module state. It is:
1. Created once at process start by Session.restore(), which re-fetches
   the user named in the persisted session identity
2. Changed only by AuthService.login / logout
3. Passed to whatever needs the current user

The persisted identity is just the username. If it no longer matches a
user (or the lookup fails) it is discarded and the session starts empty.
Passwords are opaque strings compared as given.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel

from abode.audit import AuditLogger
from abode.config import get_settings
from abode.models.audit import AuditEventBuilder
from abode.models.entities import User, UserDraft
from abode.services.storage import DuplicateUsernameError, StorageError, UserRepository
from abode.validation import DraftValidator, EntityValidationError


logger = structlog.get_logger("abode.auth")


# =============================================================================
# SESSION IDENTITY STORES
# =============================================================================

class SessionStoreInterface(ABC):
    """Holds the username of the logged-in user between process runs."""

    @abstractmethod
    def read(self) -> Optional[str]:
        pass

    @abstractmethod
    def write(self, username: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class InMemorySessionStore(SessionStoreInterface):
    def __init__(self, username: Optional[str] = None):
        self._username = username

    def read(self) -> Optional[str]:
        return self._username

    def write(self, username: str) -> None:
        self._username = username

    def clear(self) -> None:
        self._username = None


class FileSessionStore(SessionStoreInterface):
    """Session identity in a small text file (removed on logout)."""

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path else get_settings().session.session_file

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Optional[str]:
        try:
            username = self._path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return username or None

    def write(self, username: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(username, encoding="utf-8")

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)


# =============================================================================
# SESSION CONTEXT
# =============================================================================

class Session:
    """The current authentication state for this process."""

    def __init__(self, store: SessionStoreInterface):
        self._store = store
        self.current_user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    @property
    def username(self) -> Optional[str]:
        return self.current_user.username if self.current_user else None

    @classmethod
    async def restore(
        cls,
        store: SessionStoreInterface,
        users: UserRepository,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "Session":
        """
        Build the process session from the persisted identity.

        The user record is fetched again; a stale or unreadable identity is
        cleared instead of trusted.
        """
        session = cls(store)
        username = store.read()
        if not username:
            return session

        try:
            user = await users.get_by_username(username)
        except StorageError as e:
            logger.error("session_restore_failed", username=username, error=str(e))
            store.clear()
            if audit_logger:
                await audit_logger.log(AuditEventBuilder.session_dropped(username, str(e)))
            return session

        if user is None:
            logger.warning("session_user_missing", username=username)
            store.clear()
            if audit_logger:
                await audit_logger.log(
                    AuditEventBuilder.session_dropped(username, "user no longer exists")
                )
            return session

        session.current_user = user
        if audit_logger:
            await audit_logger.log(AuditEventBuilder.session_restored(user.id, user.username))
        return session

    def begin(self, user: User) -> None:
        self.current_user = user
        self._store.write(user.username)

    def end(self) -> None:
        self.current_user = None
        self._store.clear()


# =============================================================================
# AUTH SERVICE
# =============================================================================

class AuthResult(BaseModel):
    """Outcome of an auth action, with a message fit for the user."""

    success: bool
    message: Optional[str] = None
    user: Optional[User] = None


class AuthService:
    """Login, registration, logout and profile updates against the users collection."""

    def __init__(
        self,
        users: UserRepository,
        session: Session,
        audit_logger: Optional[AuditLogger] = None,
        min_password_length: Optional[int] = None,
    ):
        self._users = users
        self._session = session
        self._audit = audit_logger
        self._validator = DraftValidator()
        self._min_password_length = (
            min_password_length or get_settings().app.min_password_length
        )

    @property
    def session(self) -> Session:
        return self._session

    async def _log_error(self, action: str, error: Exception) -> None:
        if self._audit:
            await self._audit.log_error(
                error_type=f"{action}_failed",
                error_message=str(error),
                details={"username": self._session.username},
            )

    async def login(self, username: str, password: str) -> AuthResult:
        """Username is matched case-insensitively, the password exactly."""
        try:
            user = await self._users.get_by_username(username)
        except StorageError as e:
            logger.error("login_error", error=str(e))
            await self._log_error("login", e)
            return AuthResult(success=False, message="An error occurred during login.")

        if user is None or user.password != password:
            if self._audit:
                await self._audit.log(AuditEventBuilder.login_failed(username))
            return AuthResult(success=False, message="Invalid username or password.")

        self._session.begin(user)
        if self._audit:
            await self._audit.log(AuditEventBuilder.login_succeeded(user.id, user.username))
        return AuthResult(success=True, user=user)

    async def register(
        self,
        username: str,
        name: Optional[str],
        password: str,
    ) -> AuthResult:
        """Create a user. Does not log in."""
        try:
            user = self._validator.commit(
                UserDraft(username=username, name=name, password=password)
            )
        except EntityValidationError as e:
            return AuthResult(success=False, message=str(e))

        try:
            await self._users.add(user)
        except DuplicateUsernameError as e:
            if self._audit:
                await self._audit.log(AuditEventBuilder.registration_failed(username, str(e)))
            return AuthResult(success=False, message=str(e))
        except StorageError as e:
            logger.error("registration_error", error=str(e))
            await self._log_error("registration", e)
            return AuthResult(success=False, message="An error occurred during registration.")

        if self._audit:
            await self._audit.log(AuditEventBuilder.user_registered(user.id, user.username))
        return AuthResult(success=True, user=user)

    async def logout(self) -> None:
        username = self._session.username
        self._session.end()
        if self._audit:
            await self._audit.log(AuditEventBuilder.logout(username))

    async def update_profile(
        self,
        name: Optional[str] = None,
        current_password: Optional[str] = None,
        new_password: Optional[str] = None,
    ) -> AuthResult:
        """
        Change the display name and/or password of the logged-in user.

        A new password needs the correct current password. An empty name
        clears the display name.
        """
        user = self._session.current_user
        if user is None:
            return AuthResult(success=False, message="User not authenticated.")

        changes: dict = {}
        password_changed = False

        if new_password:
            if not current_password:
                return AuthResult(
                    success=False,
                    message="Current password is required to set a new password.",
                )
            if current_password != user.password:
                return AuthResult(success=False, message="Incorrect current password.")
            if len(new_password) < self._min_password_length:
                return AuthResult(
                    success=False,
                    message=(
                        f"New password must be at least {self._min_password_length} "
                        "characters long."
                    ),
                )
            changes["password"] = new_password
            password_changed = True

        if name is not None and name != user.name:
            changes["name"] = name.strip() or None

        updated = user.model_copy(update=changes)
        try:
            found = await self._users.update(updated)
        except StorageError as e:
            logger.error("profile_update_error", error=str(e))
            await self._log_error("profile_update", e)
            return AuthResult(
                success=False,
                message="An error occurred while updating user details.",
            )
        if not found:
            return AuthResult(success=False, message="User not found.")

        self._session.current_user = updated
        if self._audit:
            await self._audit.log(AuditEventBuilder.profile_updated(updated.id, password_changed))
        message = "Profile and password updated." if password_changed else "Profile updated."
        return AuthResult(success=True, message=message, user=updated)
