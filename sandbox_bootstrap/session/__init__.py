from sandbox_bootstrap.session.store import (
    FileManifest,
    InstallOutcome,
    Session,
    SessionStatus,
    SessionStore,
    get_store,
)

__all__ = [
    "FileManifest",
    "InstallOutcome",
    "Session",
    "SessionStatus",
    "SessionStore",
    "get_store",
]
