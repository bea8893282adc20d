from __future__ import annotations


class BootstrapError(RuntimeError):
    """A fatal bootstrap failure; the environment must be torn down."""


class ProvisionError(BootstrapError):
    """The provider refused or failed to create an environment."""


class ScaffoldWriteError(BootstrapError):
    """The initial project tree could not be written completely."""


class AttemptFailed(Exception):
    """One attempt of a retryable step failed; `str(exc)` is the diagnostic."""
