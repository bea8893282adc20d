from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

import requests

from sandbox_bootstrap.bootstrap.remote_scripts import parse_result, touch_script
from sandbox_bootstrap.bootstrap.retry import truncate
from sandbox_bootstrap.scaffold.vite_react import STYLESHEET_PATH

if TYPE_CHECKING:  # pragma: no cover
    from sandbox_bootstrap.sandbox_backends.base import Environment, SandboxProvider

logger = logging.getLogger(__name__)


class ReadinessGate:
    """Waits out the dev server's first compile and nudges the CSS pipeline.

    A freshly started Tailwind pass can miss utility classes; touching the
    stylesheet forces PostCSS to reprocess it. Everything here is advisory:
    failures are logged and never abort the bootstrap.
    """

    def __init__(
        self,
        provider: SandboxProvider,
        *,
        app_dir: str,
        startup_wait_s: float,
        css_settle_s: float = 3.0,
        stylesheet_path: str = STYLESHEET_PATH,
        probe: bool = True,
        http: requests.Session | None = None,
        probe_timeout_s: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.provider = provider
        self.app_dir = app_dir
        self.startup_wait_s = max(0.0, float(startup_wait_s))
        self.css_settle_s = max(0.0, float(css_settle_s))
        self.stylesheet_path = stylesheet_path
        self.probe = probe
        self._http = http
        self.probe_timeout_s = probe_timeout_s
        self._sleep = sleep

    def await_ready(self, environment: Environment) -> None:
        try:
            logger.info("Waiting %.1fs for dev server startup in %s", self.startup_wait_s, environment.id)
            self._sleep(self.startup_wait_s)
            self._nudge_stylesheet(environment)
        except Exception:
            logger.warning("Readiness nudge failed for %s", environment.id, exc_info=True)

        if self.probe:
            self.probe_preview(environment)

    def _nudge_stylesheet(self, environment: Environment) -> None:
        res = self.provider.run_code(
            environment.handle,
            touch_script(app_dir=self.app_dir, path=self.stylesheet_path),
            timeout_s=30,
        )
        if not res.ok:
            logger.warning("Failed to trigger CSS rebuild in %s: %s", environment.id, truncate(res.stderr))
            return
        data = parse_result(res.stdout) or {}
        if not data.get("touched"):
            logger.warning("%s not found in %s, skipping rebuild trigger", self.stylesheet_path, environment.id)
            return
        logger.info("Triggered CSS rebuild in %s", environment.id)
        self._sleep(self.css_settle_s)

    def probe_preview(self, environment: Environment) -> int | None:
        """GET the public URL once and return its status code (None on error)."""
        if self._http is not None:
            return self._probe_with(self._http, environment)
        with requests.Session() as http:
            return self._probe_with(http, environment)

    def _probe_with(self, http: requests.Session, environment: Environment) -> int | None:
        try:
            resp = http.get(environment.url, timeout=self.probe_timeout_s)
        except requests.RequestException:
            logger.warning("Preview probe for %s failed", environment.url, exc_info=True)
            return None
        status = int(resp.status_code)
        if status >= 400:
            logger.warning("Preview %s answered %d", environment.url, status)
        else:
            logger.info("Preview %s answered %d", environment.url, status)
        return status
