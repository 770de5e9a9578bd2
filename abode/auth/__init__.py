"""Session and authentication package."""

from abode.auth.session import (
    AuthResult,
    AuthService,
    FileSessionStore,
    InMemorySessionStore,
    Session,
    SessionStoreInterface,
)

__all__ = [
    "AuthResult",
    "AuthService",
    "FileSessionStore",
    "InMemorySessionStore",
    "Session",
    "SessionStoreInterface",
]
