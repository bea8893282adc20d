from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from sandbox_bootstrap.bootstrap.errors import AttemptFailed
from sandbox_bootstrap.bootstrap.remote_scripts import (
    kill_stray_script,
    parse_result,
    start_dev_server_script,
)
from sandbox_bootstrap.bootstrap.retry import RetryOutcome, run_with_retry, truncate

if TYPE_CHECKING:  # pragma: no cover
    from sandbox_bootstrap.sandbox_backends.base import Environment, SandboxProvider

logger = logging.getLogger(__name__)

DEV_SERVER_CMD = ["npm", "run", "dev"]
DEV_SERVER_ENV = {
    "FORCE_COLOR": "0",
    "NODE_OPTIONS": "--max-old-space-size=2048",
}


class ProcessSupervisor:
    """Starts the Vite dev server detached and checks it survives startup."""

    def __init__(
        self,
        provider: SandboxProvider,
        *,
        app_dir: str,
        max_retries: int = 3,
        probe_s: float = 3.0,
        base_delay_s: float = 2.0,
        process_pattern: str = "vite",
        stray_settle_s: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[], float] | None = None,
    ) -> None:
        self.provider = provider
        self.app_dir = app_dir
        self.max_retries = max(1, int(max_retries))
        self.probe_s = max(0.0, float(probe_s))
        self.base_delay_s = base_delay_s
        self.process_pattern = process_pattern
        self.stray_settle_s = max(0.0, float(stray_settle_s))
        self._sleep = sleep
        self._jitter = jitter
        self.last_outcome: RetryOutcome[int] | None = None

    def kill_stray(self, environment: Environment) -> None:
        try:
            res = self.provider.run_code(
                environment.handle,
                kill_stray_script(pattern=self.process_pattern),
                timeout_s=30,
            )
        except Exception:
            logger.warning("Stray %s kill raised in %s", self.process_pattern, environment.id, exc_info=True)
            return
        if not res.ok:
            logger.warning(
                "Stray %s kill failed in %s: %s",
                self.process_pattern,
                environment.id,
                truncate(res.stderr),
            )
            return
        data = parse_result(res.stdout) or {}
        if data.get("exit_code") == 124:
            logger.warning("pkill timed out in %s, continuing", environment.id)

    def start_dev_server(self, environment: Environment) -> int | None:
        self.kill_stray(environment)
        # Let an exiting vite release the strict port.
        if self.stray_settle_s:
            self._sleep(self.stray_settle_s)

        script = start_dev_server_script(
            app_dir=self.app_dir,
            cmd=DEV_SERVER_CMD,
            env=DEV_SERVER_ENV,
            probe_s=self.probe_s,
        )

        def _attempt(_attempt: int) -> int:
            res = self.provider.run_code(
                environment.handle, script, timeout_s=self.probe_s + 30
            )
            if not res.ok:
                raise AttemptFailed(f"remote execution failed: {truncate(res.stderr)}")
            data = parse_result(res.stdout) or {}
            pid = data.get("pid")
            if isinstance(pid, int) and pid > 0:
                return pid
            raise AttemptFailed(
                f"dev server exited with {data.get('exit_code')}: {truncate(data.get('stderr'))}"
            )

        logger.info("Starting dev server in %s", environment.id)
        outcome = run_with_retry(
            "dev server start",
            _attempt,
            max_attempts=self.max_retries,
            base_delay_s=self.base_delay_s,
            sleep=self._sleep,
            jitter=self._jitter,
        )
        self.last_outcome = outcome
        if outcome.ok:
            logger.info("Dev server running in %s with pid %s", environment.id, outcome.value)
            return outcome.value

        logger.warning(
            "Dev server failed to start in %s after %d attempts; sandbox stays available",
            environment.id,
            len(outcome.attempts),
        )
        return None
