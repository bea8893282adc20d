from __future__ import annotations

import logging
from typing import Any

from sandbox_bootstrap.sandbox_backends.base import ExecutionResult

logger = logging.getLogger(__name__)


def _join_logs(lines: Any) -> str:
    if not lines:
        return ""
    if isinstance(lines, str):
        return lines
    return "".join(str(line) for line in lines)


def _format_execution_error(error: Any) -> str:
    name = str(getattr(error, "name", "") or "Error")
    value = str(getattr(error, "value", "") or "")
    traceback = str(getattr(error, "traceback", "") or "")
    head = f"{name}: {value}" if value else name
    return f"{head}\n{traceback}" if traceback else head


def _is_timeout(exc: BaseException) -> bool:
    return "timeout" in type(exc).__name__.lower()


class E2BSandboxProvider:
    """SandboxProvider backed by E2B code-interpreter sandboxes."""

    name = "e2b"

    def __init__(self, *, api_key: str | None = None, template: str | None = None) -> None:
        from e2b_code_interpreter import Sandbox  # type: ignore

        self.api_key = api_key
        self.template = template
        self._sandbox_cls = Sandbox

    def create(self, *, timeout_s: int) -> Any:
        kwargs: dict[str, Any] = {"timeout": int(timeout_s)}
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.template:
            kwargs["template"] = self.template
        return self._sandbox_cls.create(**kwargs)

    def environment_id(self, handle: Any) -> str | None:
        sid = getattr(handle, "sandbox_id", None)
        return str(sid) if sid else None

    def host(self, handle: Any, port: int) -> str:
        return str(handle.get_host(int(port)))

    def run_code(
        self, handle: Any, script: str, *, timeout_s: float | None = None
    ) -> ExecutionResult:
        try:
            if timeout_s is None:
                execution = handle.run_code(script)
            else:
                execution = handle.run_code(script, timeout=float(timeout_s))
        except Exception as exc:
            logger.debug("run_code raised in sandbox %s", self.environment_id(handle), exc_info=True)
            return ExecutionResult(
                stdout="",
                stderr=f"{type(exc).__name__}: {exc}",
                exit_code=124 if _is_timeout(exc) else 1,
            )

        logs = getattr(execution, "logs", None)
        stdout = _join_logs(getattr(logs, "stdout", None))
        stderr = _join_logs(getattr(logs, "stderr", None))
        error = getattr(execution, "error", None)
        if error is not None:
            detail = _format_execution_error(error)
            stderr = f"{stderr}\n{detail}" if stderr else detail
            return ExecutionResult(stdout=stdout, stderr=stderr, exit_code=1)
        return ExecutionResult(stdout=stdout, stderr=stderr, exit_code=0)

    def kill(self, handle: Any) -> None:
        handle.kill()

    def set_timeout(self, handle: Any, timeout_s: int) -> None:
        handle.set_timeout(int(timeout_s))
