from __future__ import annotations

import logging
import time
import traceback
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sandbox_bootstrap.bootstrap.installer import DependencyInstaller
from sandbox_bootstrap.bootstrap.materializer import FileMaterializer
from sandbox_bootstrap.bootstrap.provisioner import EnvironmentProvisioner
from sandbox_bootstrap.bootstrap.readiness import ReadinessGate
from sandbox_bootstrap.bootstrap.supervisor import ProcessSupervisor
from sandbox_bootstrap.scaffold.vite_react import build_scaffold
from sandbox_bootstrap.session.store import FileCache, Session, SessionStatus

if TYPE_CHECKING:  # pragma: no cover
    import requests

    from sandbox_bootstrap.config import BootstrapConfig
    from sandbox_bootstrap.sandbox_backends.base import Environment, SandboxProvider
    from sandbox_bootstrap.session.store import SessionStore

logger = logging.getLogger(__name__)

READY_MESSAGE = "Sandbox created and Vite React app initialized"


@dataclass(frozen=True)
class BootstrapOutcome:
    ok: bool
    session: Session | None = None
    reason: str | None = None
    details: str | None = None

    @classmethod
    def ready(cls, session: Session) -> BootstrapOutcome:
        return cls(ok=True, session=session)

    @classmethod
    def failed(cls, reason: str, details: str | None = None) -> BootstrapOutcome:
        return cls(ok=False, reason=reason, details=details)

    def to_response(self) -> dict:
        if self.ok and self.session is not None:
            return {
                "success": True,
                "sessionId": self.session.session_id,
                "url": self.session.url,
                "message": READY_MESSAGE,
            }
        out: dict = {"error": self.reason or "Failed to create sandbox"}
        if self.details:
            out["details"] = self.details
        return out


class SandboxBootstrapper:
    """Runs the bootstrap protocol end to end.

    Stages run strictly in order:
      provision -> scaffold -> npm install -> dev server -> readiness

    Only provisioning and the scaffold write are fatal. Install and dev server
    exhaustion degrade the session; readiness problems are only logged.
    """

    def __init__(
        self,
        *,
        config: BootstrapConfig,
        provider: SandboxProvider,
        store: SessionStore,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[], float] | None = None,
        http: requests.Session | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.scaffold = build_scaffold(
            port=config.vite_port, allowed_host_suffix=config.allowed_host_suffix
        )

        self.provisioner = EnvironmentProvisioner(provider, port=config.vite_port)
        self.materializer = FileMaterializer(
            provider, app_dir=config.app_dir, files=self.scaffold
        )
        self.installer = DependencyInstaller(
            provider,
            app_dir=config.app_dir,
            max_retries=config.install_max_retries,
            timeout_s=config.install_timeout_s,
            base_delay_s=config.retry_base_delay_s,
            sleep=sleep,
            jitter=jitter,
        )
        self.supervisor = ProcessSupervisor(
            provider,
            app_dir=config.app_dir,
            max_retries=config.server_max_retries,
            probe_s=config.server_probe_s,
            stray_settle_s=config.stray_settle_s,
            base_delay_s=config.retry_base_delay_s,
            sleep=sleep,
            jitter=jitter,
        )
        self.readiness = ReadinessGate(
            provider,
            app_dir=config.app_dir,
            startup_wait_s=config.startup_wait_s,
            css_settle_s=config.css_settle_s,
            probe=config.preview_probe,
            http=http,
            sleep=sleep,
        )

        if self.store.destroyer is None:
            self.store.destroyer = self.provisioner.destroy

    def bootstrap(self) -> BootstrapOutcome:
        with self.store.bootstrap_lock:
            return self._bootstrap_locked()

    def kill(self) -> bool:
        with self.store.bootstrap_lock:
            killed = self.store.destroy_current()
            self.store.manifest.clear()
            return killed

    def _bootstrap_locked(self) -> BootstrapOutcome:
        session = self.store.replace()
        environment: Environment | None = None

        try:
            environment = self.provisioner.create(timeout_s=self.config.timeout_s)
            session.environment = environment
            session.session_id = environment.id
            session.host = environment.host
            session.created_at = time.time()
            session.expires_at = session.created_at + self.config.timeout_s

            paths = self.materializer.write_initial_scaffold(environment)
            session.status = SessionStatus.SCAFFOLD_WRITTEN
        except Exception as exc:
            logger.error("Sandbox bootstrap failed: %s", exc, exc_info=True)
            self._fail(session, environment, str(exc))
            return BootstrapOutcome.failed(
                str(exc) or "Failed to create sandbox", traceback.format_exc()
            )

        self.store.reseed_manifest(paths)

        session.status = SessionStatus.DEPENDENCIES_INSTALLING
        session.install_outcome = self.installer.install_dependencies(environment)
        if self.installer.last_outcome is not None and not self.installer.last_outcome.ok:
            session.last_error = self._last_detail(self.installer.last_outcome)

        session.status = SessionStatus.SERVER_STARTING
        session.server_pid = self.supervisor.start_dev_server(environment)
        if session.server_pid is None and self.supervisor.last_outcome is not None:
            session.last_error = self._last_detail(self.supervisor.last_outcome)

        self.readiness.await_ready(environment)

        if self.provisioner.extend(environment, timeout_s=self.config.timeout_s):
            session.expires_at = time.time() + self.config.timeout_s

        session.file_cache = FileCache(
            sandbox_id=session.session_id,
            files={f.path: f.content for f in self.scaffold},
            last_sync=time.time(),
        )
        session.status = SessionStatus.READY
        logger.info(
            "Sandbox %s ready at %s (install=%s, serving=%s)",
            session.session_id,
            session.url,
            session.install_outcome.value if session.install_outcome else None,
            session.serving,
        )
        return BootstrapOutcome.ready(session)

    def _fail(self, session: Session, environment: Environment | None, reason: str) -> None:
        session.status = SessionStatus.FAILED
        session.last_error = reason
        if environment is not None:
            try:
                self.provisioner.destroy(environment)
            except Exception:
                logger.error("Failed to close sandbox %s on error", environment.id, exc_info=True)
        self.store.discard(session)

    @staticmethod
    def _last_detail(outcome) -> str | None:
        return outcome.attempts[-1].detail if outcome.attempts else None
