from __future__ import annotations

import os
from dataclasses import dataclass


def _env_str(name: str, default: str = "") -> str:
    return str(os.environ.get(name) or "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except Exception:
        return int(default)


def _env_float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return float(default)
    try:
        return float(raw)
    except Exception:
        return float(default)


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class BootstrapConfig:
    """Knobs for one sandbox bootstrap run.

    None of these carry business logic; they only size timeouts, retry limits
    and the shape of the scaffolded project.
    """

    api_key: str | None = None
    timeout_minutes: int = 30
    vite_port: int = 5173
    app_dir: str = "/home/user/app"
    allowed_host_suffix: str = ".e2b.app"

    # Dev server cold start (first compile + Tailwind pass).
    vite_startup_delay_ms: int = 7000
    startup_safety_factor: float = 1.5
    css_settle_s: float = 3.0

    install_max_retries: int = 3
    install_timeout_s: int = 120
    server_max_retries: int = 3
    server_probe_s: float = 3.0
    stray_settle_s: float = 1.0
    retry_base_delay_s: float = 2.0

    preview_probe: bool = True

    @property
    def timeout_s(self) -> int:
        return self.timeout_minutes * 60

    @property
    def startup_wait_s(self) -> float:
        return (self.vite_startup_delay_ms / 1000.0) * self.startup_safety_factor

    @classmethod
    def from_env(cls) -> BootstrapConfig:
        return cls(
            api_key=_env_str("E2B_API_KEY") or None,
            timeout_minutes=max(1, _env_int("SANDBOX_TIMEOUT_MINUTES", 30)),
            vite_port=_env_int("SANDBOX_VITE_PORT", 5173),
            app_dir=_env_str("SANDBOX_APP_DIR", "/home/user/app").rstrip("/")
            or "/home/user/app",
            allowed_host_suffix=_env_str("SANDBOX_ALLOWED_HOST_SUFFIX", ".e2b.app"),
            vite_startup_delay_ms=max(0, _env_int("SANDBOX_VITE_STARTUP_DELAY_MS", 7000)),
            startup_safety_factor=max(1.0, _env_float("SANDBOX_STARTUP_SAFETY_FACTOR", 1.5)),
            css_settle_s=max(0.0, _env_float("SANDBOX_CSS_SETTLE_S", 3.0)),
            install_max_retries=max(1, _env_int("SANDBOX_INSTALL_MAX_RETRIES", 3)),
            install_timeout_s=max(1, _env_int("SANDBOX_INSTALL_TIMEOUT_S", 120)),
            server_max_retries=max(1, _env_int("SANDBOX_SERVER_MAX_RETRIES", 3)),
            server_probe_s=max(0.0, _env_float("SANDBOX_SERVER_PROBE_S", 3.0)),
            stray_settle_s=max(0.0, _env_float("SANDBOX_STRAY_SETTLE_S", 1.0)),
            retry_base_delay_s=max(0.0, _env_float("SANDBOX_RETRY_BASE_DELAY_S", 2.0)),
            preview_probe=_env_bool("SANDBOX_PREVIEW_PROBE", True),
        )
