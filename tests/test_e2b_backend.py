from __future__ import annotations

from types import SimpleNamespace

from sandbox_bootstrap.sandbox_backends.e2b_backend import E2BSandboxProvider


class _FakeSandbox:
    created_kwargs: dict | None = None

    def __init__(self, sandbox_id: str | None = "e2b-abc") -> None:
        self.sandbox_id = sandbox_id
        self.killed = False
        self.timeout = None
        self.next_execution = SimpleNamespace(
            logs=SimpleNamespace(stdout=["hello\n"], stderr=[]), error=None
        )
        self.run_kwargs: dict | None = None

    @classmethod
    def create(cls, **kwargs):
        cls.created_kwargs = kwargs
        return cls()

    def get_host(self, port: int) -> str:
        return f"{port}-{self.sandbox_id}.e2b.app"

    def run_code(self, code: str, **kwargs):
        self.run_kwargs = kwargs
        if isinstance(self.next_execution, Exception):
            raise self.next_execution
        return self.next_execution

    def kill(self) -> None:
        self.killed = True

    def set_timeout(self, timeout: int) -> None:
        self.timeout = timeout


def _provider(api_key: str | None = "k") -> E2BSandboxProvider:
    # Bypass the SDK import in __init__.
    p = E2BSandboxProvider.__new__(E2BSandboxProvider)
    p.api_key = api_key
    p.template = None
    p._sandbox_cls = _FakeSandbox
    return p


def test_create_passes_timeout_and_key() -> None:
    sbx = _provider().create(timeout_s=1800)
    assert isinstance(sbx, _FakeSandbox)
    assert _FakeSandbox.created_kwargs == {"timeout": 1800, "api_key": "k"}


def test_create_without_key_relies_on_environment() -> None:
    _provider(api_key=None).create(timeout_s=60)
    assert _FakeSandbox.created_kwargs == {"timeout": 60}


def test_id_and_host() -> None:
    p = _provider()
    sbx = _FakeSandbox()
    assert p.environment_id(sbx) == "e2b-abc"
    assert p.environment_id(_FakeSandbox(sandbox_id=None)) is None
    assert p.host(sbx, 5173) == "5173-e2b-abc.e2b.app"


def test_run_code_maps_logs() -> None:
    sbx = _FakeSandbox()
    res = _provider().run_code(sbx, "print('hello')", timeout_s=30)
    assert res.ok
    assert res.stdout == "hello\n"
    assert sbx.run_kwargs == {"timeout": 30.0}


def test_run_code_maps_execution_error() -> None:
    sbx = _FakeSandbox()
    sbx.next_execution = SimpleNamespace(
        logs=SimpleNamespace(stdout=[], stderr=["warn\n"]),
        error=SimpleNamespace(name="OSError", value="disk full", traceback="Traceback ..."),
    )
    res = _provider().run_code(sbx, "x")
    assert res.exit_code == 1
    assert "warn" in res.stderr
    assert "OSError: disk full" in res.stderr
    assert sbx.run_kwargs == {}


def test_run_code_maps_sdk_exceptions() -> None:
    class TimeoutException(Exception):
        pass

    sbx = _FakeSandbox()
    sbx.next_execution = TimeoutException("took too long")
    res = _provider().run_code(sbx, "x", timeout_s=1)
    assert res.exit_code == 124
    assert "took too long" in res.stderr

    sbx.next_execution = ConnectionError("reset")
    assert _provider().run_code(sbx, "x").exit_code == 1


def test_kill_and_set_timeout_delegate() -> None:
    p = _provider()
    sbx = _FakeSandbox()
    p.set_timeout(sbx, 900)
    p.kill(sbx)
    assert sbx.timeout == 900
    assert sbx.killed is True
