from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from sandbox_bootstrap.bootstrap.errors import ProvisionError
from sandbox_bootstrap.sandbox_backends.base import Environment

if TYPE_CHECKING:  # pragma: no cover
    from sandbox_bootstrap.sandbox_backends.base import SandboxProvider

logger = logging.getLogger(__name__)


def _fallback_id() -> str:
    return str(int(time.time() * 1000))


class EnvironmentProvisioner:
    """Creates and destroys remote environments for the app's preview port.

    Creation is not retried here; the provider SDK already retries transport
    failures, and anything that surfaces is fatal for the bootstrap.
    """

    def __init__(self, provider: SandboxProvider, *, port: int) -> None:
        self.provider = provider
        self.port = int(port)

    def create(self, *, timeout_s: int) -> Environment:
        logger.info("Creating sandbox with %ds timeout", timeout_s)
        try:
            handle = self.provider.create(timeout_s=int(timeout_s))
        except Exception as exc:
            raise ProvisionError(f"Sandbox provider rejected creation: {exc}") from exc

        env_id = self.provider.environment_id(handle) or _fallback_id()
        try:
            host = self.provider.host(handle, self.port)
        except Exception as exc:
            # The environment exists but is unreachable; give it back.
            self._kill_quietly(handle, env_id)
            raise ProvisionError(f"Could not resolve host for sandbox {env_id}: {exc}") from exc

        logger.info("Sandbox created: %s (host %s)", env_id, host)
        return Environment(id=env_id, host=host, handle=handle)

    def destroy(self, environment: Environment) -> None:
        logger.info("Killing sandbox %s", environment.id)
        self.provider.kill(environment.handle)

    def extend(self, environment: Environment, *, timeout_s: int) -> bool:
        set_timeout = getattr(self.provider, "set_timeout", None)
        if not callable(set_timeout):
            return False
        try:
            set_timeout(environment.handle, int(timeout_s))
        except Exception:
            logger.warning("Failed to extend timeout of sandbox %s", environment.id, exc_info=True)
            return False
        logger.info("Set sandbox %s timeout to %ds", environment.id, timeout_s)
        return True

    def _kill_quietly(self, handle: object, env_id: str) -> None:
        try:
            self.provider.kill(handle)
        except Exception:
            logger.error("Failed to kill sandbox %s after host lookup failure", env_id, exc_info=True)
