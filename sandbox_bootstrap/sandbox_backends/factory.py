from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from sandbox_bootstrap.config import BootstrapConfig

    from .base import SandboxProvider


def get_provider(config: BootstrapConfig) -> SandboxProvider:
    from .e2b_backend import E2BSandboxProvider

    return E2BSandboxProvider(api_key=config.api_key)
