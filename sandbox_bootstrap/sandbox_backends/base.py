from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True)
class ExecutionResult:
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class Environment:
    """A live remote environment plus the provider handle used to drive it."""

    id: str
    host: str
    handle: Any = field(default=None, compare=False, repr=False)

    @property
    def url(self) -> str:
        return f"https://{self.host}"


class SandboxProvider(Protocol):
    """Abstract remote sandbox provider.

    Providers create isolated environments with an explicit expiry, execute
    Python source inside them and expose network ports on a public host.

    `handle` is whatever native object the provider SDK returns; callers only
    pass it back to the provider.

    Providers may additionally implement:
      - set_timeout(handle, timeout_s) -> None: extend the environment expiry
    """

    def create(self, *, timeout_s: int) -> Any: ...

    def environment_id(self, handle: Any) -> str | None: ...

    def host(self, handle: Any, port: int) -> str: ...

    def run_code(
        self, handle: Any, script: str, *, timeout_s: float | None = None
    ) -> ExecutionResult: ...

    def kill(self, handle: Any) -> None: ...
