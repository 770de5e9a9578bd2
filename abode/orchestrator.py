"""
Main Orchestrator for Abode

This module ties the components together:
1. One collection store shared by every repository
2. The cascade coordinator guarding tenant and payment writes
3. Draft validation in front of every form submission
4. The session restored at startup

DESIGN DECISION: The orchestrator enforces the boundaries:
- No draft reaches storage without passing the validator
- No tenant or payment write skips the cascade coordinator
- Derived state is rebuilt from fresh snapshots on every status() call
"""

from typing import Optional

import structlog

from abode.audit import AuditLogger, configure_logging
from abode.auth import AuthService, FileSessionStore, Session, SessionStoreInterface
from abode.config import Settings, get_settings, validate_all_settings
from abode.models.entities import (
    Draft,
    PaymentDraft,
    PropertyDraft,
    StoredRecord,
    TenantDraft,
    TodoDraft,
    UserDraft,
)
from abode.seed import seed_if_empty
from abode.services.storage import (
    CollectionRepository,
    CollectionStoreInterface,
    PaymentRepository,
    PropertyRepository,
    SqliteCollectionStore,
    TenantRepository,
    TodoRepository,
    UserRepository,
)
from abode.status import StatusEngine
from abode.validation import CascadeCoordinator, DraftValidator


logger = structlog.get_logger("abode.orchestrator")


class AbodeApp:
    """
    The wired application.

    Call start() once before use: it seeds demo data when enabled and
    restores the session.
    """

    def __init__(
        self,
        store: CollectionStoreInterface,
        session_store: SessionStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        min_password_length: Optional[int] = None,
    ):
        self.store = store
        self.audit_logger = audit_logger or AuditLogger()
        self.coordinator = CascadeCoordinator(store, self.audit_logger)

        self.properties = PropertyRepository(store, self.audit_logger)
        self.tenants = TenantRepository(store, self.coordinator, self.audit_logger)
        self.payments = PaymentRepository(store, self.coordinator, self.audit_logger)
        self.todos = TodoRepository(store, self.audit_logger)
        self.users = UserRepository(store, self.audit_logger)

        self.validator = DraftValidator()
        self._session_store = session_store
        self._min_password_length = min_password_length
        self.session = Session(session_store)
        self.auth = self._auth_service()

        self._repositories: dict[type, CollectionRepository] = {
            PropertyDraft: self.properties,
            TenantDraft: self.tenants,
            PaymentDraft: self.payments,
            TodoDraft: self.todos,
            UserDraft: self.users,
        }

    def _auth_service(self) -> AuthService:
        return AuthService(
            self.users,
            self.session,
            self.audit_logger,
            min_password_length=self._min_password_length,
        )

    async def start(self, seed_demo_data: bool = False) -> "AbodeApp":
        if seed_demo_data:
            await seed_if_empty(self.store)
        self.session = await Session.restore(self._session_store, self.users, self.audit_logger)
        self.auth = self._auth_service()
        logger.info(
            "app_started",
            authenticated=self.session.is_authenticated,
            username=self.session.username,
        )
        return self

    async def status(self) -> StatusEngine:
        """A status engine over fresh snapshots of every collection."""
        return StatusEngine(
            properties=await self.properties.list(),
            tenants=await self.tenants.list(),
            payments=await self.payments.list(),
            todos=await self.todos.list(),
        )

    async def submit(self, draft: Draft) -> Optional[StoredRecord]:
        """
        Validate a form draft and write it.

        A draft without an id creates a record. A draft with an id edits
        that record: only the fields set on the draft change, the rest
        keep their stored values.

        Returns:
            The committed entity, or None if the edited record no longer exists

        Raises:
            EntityValidationError: The draft is incomplete or invalid
            IntegrityError: A cross-entity rule rejected the write
            StorageError: The store failed
        """
        repository = self._repositories[type(draft)]
        if draft.id is None:
            return await repository.add(self.validator.commit(draft))

        stored = await repository.get(draft.id)
        if stored is None:
            logger.warning("edit_target_missing", collection=repository.name, record_id=draft.id)
            return None

        merged = stored.model_dump()
        merged.update(draft.model_dump(exclude_unset=True))
        entity = self.validator.commit(type(draft).model_validate(merged))
        return entity if await repository.update(entity) else None

    async def close(self) -> None:
        await self.store.close()


def create_app_components(
    store: Optional[CollectionStoreInterface] = None,
    session_store: Optional[SessionStoreInterface] = None,
    settings: Optional[Settings] = None,
) -> AbodeApp:
    """
    Factory function to create all application components.

    Args:
        store: Collection store to use. Defaults to the SQLite store
               configured in settings.
        session_store: Session identity store. Defaults to the session file.
        settings: Settings to use instead of get_settings()

    Returns:
        An AbodeApp that still needs `await app.start()`
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging("DEBUG" if app_settings.debug_mode else app_settings.log_level)
    logger.info("app_configured", environment=app_settings.app_environment)

    return AbodeApp(
        store=store or SqliteCollectionStore(),
        session_store=session_store or FileSessionStore(),
        min_password_length=app_settings.min_password_length,
    )


async def open_app(
    store: Optional[CollectionStoreInterface] = None,
    session_store: Optional[SessionStoreInterface] = None,
    settings: Optional[Settings] = None,
) -> AbodeApp:
    """Create and start the application in one step."""
    settings = settings or get_settings()
    checks = validate_all_settings()
    for name, ok in checks.items():
        if ok is False:
            logger.warning("settings_invalid", group=name, error=checks.get(f"{name}_error"))
    app = create_app_components(store, session_store, settings)
    return await app.start(seed_demo_data=settings.app.seed_demo_data)
