from sandbox_bootstrap.bootstrap.errors import (
    BootstrapError,
    ProvisionError,
    ScaffoldWriteError,
)
from sandbox_bootstrap.bootstrap.orchestrator import BootstrapOutcome, SandboxBootstrapper
from sandbox_bootstrap.bootstrap.retry import BootstrapAttempt, backoff_delay

__all__ = [
    "BootstrapAttempt",
    "BootstrapError",
    "BootstrapOutcome",
    "ProvisionError",
    "SandboxBootstrapper",
    "ScaffoldWriteError",
    "backoff_delay",
]
