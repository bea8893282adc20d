"""Process-wide holder of the single active sandbox session.

The store is the only place session state is mutated. Every bootstrap stage
receives a reference to it (or to the session shell it hands out) instead of
reading ambient globals.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from sandbox_bootstrap.sandbox_backends.base import Environment

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    PROVISIONING = "provisioning"
    SCAFFOLD_WRITTEN = "scaffold_written"
    DEPENDENCIES_INSTALLING = "dependencies_installing"
    SERVER_STARTING = "server_starting"
    READY = "ready"
    FAILED = "failed"


class InstallOutcome(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"


class FileManifest:
    """Relative paths known to exist inside the current session."""

    def __init__(self, paths: Iterable[str] = ()) -> None:
        self._paths: set[str] = {self._normalize(p) for p in paths}

    @staticmethod
    def _normalize(path: str) -> str:
        return str(path or "").strip().lstrip("/")

    def reseed(self, paths: Iterable[str]) -> None:
        self._paths = {self._normalize(p) for p in paths}

    def clear(self) -> None:
        self._paths.clear()

    def add(self, path: str) -> None:
        self._paths.add(self._normalize(path))

    def discard(self, path: str) -> None:
        self._paths.discard(self._normalize(path))

    def is_new(self, path: str) -> bool:
        """True if writing `path` would create a file rather than update one."""
        return self._normalize(path) not in self._paths

    def snapshot(self) -> frozenset[str]:
        return frozenset(self._paths)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self._normalize(path) in self._paths

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._paths))

    def __len__(self) -> int:
        return len(self._paths)


@dataclass
class FileCache:
    sandbox_id: str | None = None
    files: dict[str, str] = field(default_factory=dict)
    last_sync: float = 0.0


@dataclass
class Session:
    session_id: str | None = None
    host: str | None = None
    status: SessionStatus = SessionStatus.PROVISIONING
    created_at: float = field(default_factory=time.time)
    expires_at: float | None = None
    install_outcome: InstallOutcome | None = None
    server_pid: int | None = None
    last_error: str | None = None
    environment: Environment | None = field(default=None, repr=False)
    file_cache: FileCache = field(default_factory=FileCache, repr=False)

    @property
    def url(self) -> str | None:
        return f"https://{self.host}" if self.host else None

    @property
    def serving(self) -> bool:
        return self.server_pid is not None

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "url": self.url,
            "status": self.status.value,
            "serving": self.serving,
            "serverPid": self.server_pid,
            "installOutcome": self.install_outcome.value if self.install_outcome else None,
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
            "lastError": self.last_error,
        }


class SessionStore:
    """Owns the current Session and its FileManifest.

    Lifecycle: created on first use, reset on `replace()`, cleared by `close()`
    on process shutdown.
    """

    def __init__(self, destroyer: Callable[[Environment], None] | None = None) -> None:
        self.destroyer = destroyer
        # Held for a whole bootstrap run; bootstraps are serialized per store.
        self.bootstrap_lock = threading.Lock()
        self._lock = threading.RLock()
        self._current: Session | None = None
        self._manifest = FileManifest()

    @property
    def manifest(self) -> FileManifest:
        return self._manifest

    def current(self) -> Session | None:
        with self._lock:
            return self._current

    def replace(self) -> Session:
        """Tear down the current session (best-effort) and install an empty shell.

        The provider teardown runs outside `_lock`; callers serialize on
        `bootstrap_lock`.
        """
        self.destroy_current()
        with self._lock:
            self._manifest.clear()
            shell = Session()
            self._current = shell
            return shell

    def destroy_current(self) -> bool:
        """Destroy the current session's environment. Never raises.

        Returns True if an environment existed and was destroyed cleanly.
        """
        with self._lock:
            session = self._current
            self._current = None
        if session is None or session.environment is None:
            return False
        if self.destroyer is None:
            logger.warning(
                "No destroyer bound; leaving environment %s to expire", session.environment.id
            )
            return False
        logger.info("Destroying previous sandbox %s", session.environment.id)
        try:
            self.destroyer(session.environment)
            return True
        except Exception:
            logger.error(
                "Failed to destroy sandbox %s; it will expire on its own",
                session.environment.id,
                exc_info=True,
            )
            return False

    def discard(self, session: Session) -> None:
        """Drop a failed session shell without touching its environment."""
        with self._lock:
            if self._current is session:
                self._current = None
                self._manifest.clear()

    def reseed_manifest(self, paths: Iterable[str]) -> None:
        with self._lock:
            self._manifest.reseed(paths)

    def close(self) -> None:
        self.destroy_current()
        with self._lock:
            self._manifest.clear()


_default_store: SessionStore | None = None
_default_store_lock = threading.Lock()


def get_store() -> SessionStore:
    global _default_store
    if _default_store is not None:
        return _default_store
    with _default_store_lock:
        if _default_store is None:
            _default_store = SessionStore()
        return _default_store


def reset_store() -> None:
    global _default_store
    with _default_store_lock:
        store = _default_store
        _default_store = None
    if store is not None:
        store.close()
