from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from sandbox_bootstrap.bootstrap.errors import AttemptFailed
from sandbox_bootstrap.bootstrap.remote_scripts import npm_install_script, parse_result
from sandbox_bootstrap.bootstrap.retry import RetryOutcome, run_with_retry, truncate
from sandbox_bootstrap.session.store import InstallOutcome

if TYPE_CHECKING:  # pragma: no cover
    from sandbox_bootstrap.sandbox_backends.base import Environment, SandboxProvider

logger = logging.getLogger(__name__)

# Headroom for the remote call on top of the in-sandbox npm timeout.
_REMOTE_GRACE_S = 30


class DependencyInstaller:
    """Runs `npm install` with bounded retries.

    Exhausting the retries degrades the bootstrap instead of failing it: an
    unreachable registry must not strand an otherwise healthy sandbox.
    """

    def __init__(
        self,
        provider: SandboxProvider,
        *,
        app_dir: str,
        max_retries: int = 3,
        timeout_s: int = 120,
        base_delay_s: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[], float] | None = None,
    ) -> None:
        self.provider = provider
        self.app_dir = app_dir
        self.max_retries = max(1, int(max_retries))
        self.timeout_s = max(1, int(timeout_s))
        self.base_delay_s = base_delay_s
        self._sleep = sleep
        self._jitter = jitter
        self.last_outcome: RetryOutcome[bool] | None = None

    def install_dependencies(self, environment: Environment) -> InstallOutcome:
        script = npm_install_script(app_dir=self.app_dir, timeout_s=self.timeout_s)

        def _attempt(_attempt: int) -> bool:
            res = self.provider.run_code(
                environment.handle, script, timeout_s=self.timeout_s + _REMOTE_GRACE_S
            )
            if not res.ok:
                raise AttemptFailed(f"remote execution failed: {truncate(res.stderr)}")
            data = parse_result(res.stdout) or {}
            if data.get("timed_out"):
                raise AttemptFailed(f"npm install timed out after {self.timeout_s}s")
            code = data.get("exit_code")
            if code != 0:
                raise AttemptFailed(f"npm install exited with {code}: {truncate(data.get('stderr'))}")
            return True

        logger.info("Installing dependencies in %s", environment.id)
        outcome = run_with_retry(
            "npm install",
            _attempt,
            max_attempts=self.max_retries,
            base_delay_s=self.base_delay_s,
            sleep=self._sleep,
            jitter=self._jitter,
        )
        self.last_outcome = outcome
        if outcome.ok:
            return InstallOutcome.OK

        logger.warning(
            "npm install failed after %d attempts in %s; continuing degraded",
            len(outcome.attempts),
            environment.id,
        )
        return InstallOutcome.DEGRADED
