import ast
import json
import os
import re
import sys
from pathlib import Path

import pytest

# Ensure the repo root is on sys.path so tests can import the local package.
ROOT = str(Path(__file__).resolve().parents[1])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from sandbox_bootstrap.bootstrap.remote_scripts import RESULT_PREFIX  # noqa: E402
from sandbox_bootstrap.config import BootstrapConfig  # noqa: E402
from sandbox_bootstrap.sandbox_backends.base import ExecutionResult  # noqa: E402


def result_stdout(payload: dict) -> str:
    return f"some log line\n{RESULT_PREFIX}{json.dumps(payload)}\n"


class FakeHandle:
    def __init__(self, sandbox_id: str | None) -> None:
        self.sandbox_id = sandbox_id
        self.killed = False


class FakeProvider:
    """In-memory SandboxProvider; classifies scripts by what they run."""

    def __init__(self) -> None:
        self.created: list[FakeHandle] = []
        self.killed: list[str | None] = []
        self.calls: list[tuple[str, str | None]] = []
        self.timeouts: list[tuple[str | None, int]] = []
        self.create_error: Exception | None = None
        self.kill_error: Exception | None = None
        self.install_exit_codes: list[int] = []
        self.install_default_exit = 0
        self.server_pids: list[int | None] = []
        self.server_default_pid: int | None = 4242
        self.scaffold_result: ExecutionResult | None = None
        self.touch_error: Exception | None = None
        self._counter = 0

    def create(self, *, timeout_s: int) -> FakeHandle:
        self.calls.append(("create", None))
        if self.create_error is not None:
            raise self.create_error
        self._counter += 1
        handle = FakeHandle(f"sbx-{self._counter}")
        self.created.append(handle)
        return handle

    def environment_id(self, handle: FakeHandle) -> str | None:
        return handle.sandbox_id

    def host(self, handle: FakeHandle, port: int) -> str:
        return f"{port}-{handle.sandbox_id}.e2b.app"

    def kill(self, handle: FakeHandle) -> None:
        self.calls.append(("kill", handle.sandbox_id))
        if self.kill_error is not None:
            raise self.kill_error
        handle.killed = True
        self.killed.append(handle.sandbox_id)

    def set_timeout(self, handle: FakeHandle, timeout_s: int) -> None:
        self.timeouts.append((handle.sandbox_id, timeout_s))

    def run_code(self, handle: FakeHandle, script: str, *, timeout_s=None) -> ExecutionResult:
        kind = self._classify(script)
        self.calls.append((kind, handle.sandbox_id))
        if kind == "scaffold":
            if self.scaffold_result is not None:
                return self.scaffold_result
            m = re.search(r"PARAMS = json\.loads\((.*)\)\n", script)
            params = json.loads(ast.literal_eval(m.group(1)))
            written = [f["path"] for f in params["files"]]
            return ExecutionResult(result_stdout({"written": written}), "", 0)
        if kind == "install":
            code = self.install_exit_codes.pop(0) if self.install_exit_codes else self.install_default_exit
            return ExecutionResult(
                result_stdout({"exit_code": code, "stderr": "npm ERR!" if code else "", "timed_out": False}),
                "",
                0,
            )
        if kind == "kill_stray":
            return ExecutionResult(result_stdout({"exit_code": 1}), "", 0)
        if kind == "dev_server":
            pid = self.server_pids.pop(0) if self.server_pids else self.server_default_pid
            if pid is None:
                return ExecutionResult(
                    result_stdout({"pid": None, "exit_code": 1, "stderr": "Error: port in use"}), "", 0
                )
            return ExecutionResult(result_stdout({"pid": pid}), "", 0)
        if kind == "touch":
            if self.touch_error is not None:
                raise self.touch_error
            return ExecutionResult(result_stdout({"touched": True}), "", 0)
        return ExecutionResult("", "unknown script", 1)

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)

    @staticmethod
    def _classify(script: str) -> str:
        if "written = []" in script:
            return "scaffold"
        if '["npm", "install"]' in script:
            return "install"
        if '"pkill"' in script:
            return "kill_stray"
        if "start_new_session=True" in script:
            return "dev_server"
        if "os.utime" in script:
            return "touch"
        return "unknown"


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fast_config() -> BootstrapConfig:
    return BootstrapConfig(
        api_key="test-key",
        timeout_minutes=15,
        preview_probe=False,
    )


@pytest.fixture(autouse=True)
def _clear_sandbox_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep a developer's local .env from leaking into config tests.
    for name in [n for n in os.environ if n == "E2B_API_KEY" or n.startswith("SANDBOX_")]:
        monkeypatch.delenv(name, raising=False)
