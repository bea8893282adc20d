from __future__ import annotations

import pytest

pytest.importorskip("dotenv")
pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from sandbox_bootstrap.bootstrap.orchestrator import SandboxBootstrapper
from sandbox_bootstrap.runtimes import http_server
from sandbox_bootstrap.session import store as store_mod


@pytest.fixture
def client(monkeypatch, fast_config, fake_provider):
    store_mod.reset_store()
    bootstrapper = SandboxBootstrapper(
        config=fast_config,
        provider=fake_provider,
        store=store_mod.get_store(),
        sleep=lambda _s: None,
        jitter=lambda: 0.0,
    )
    monkeypatch.setattr(http_server, "_bootstrapper", bootstrapper)
    yield TestClient(http_server.app)
    store_mod.reset_store()


def test_healthz(client) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}


def test_create_sandbox_success_payload(client) -> None:
    res = client.post("/api/create-ai-sandbox")
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["sessionId"] == "sbx-1"
    assert body["url"] == "https://5173-sbx-1.e2b.app"
    assert body["message"]
    assert len(store_mod.get_store().manifest) == 8


def test_create_sandbox_failure_is_500(client, fake_provider) -> None:
    fake_provider.create_error = RuntimeError("unauthorized")
    res = client.post("/api/create-ai-sandbox")
    assert res.status_code == 500
    body = res.json()
    assert "unauthorized" in body["error"]
    assert "details" in body


def test_status_reflects_session(client) -> None:
    assert client.get("/api/sandbox-status").json()["active"] is False

    client.post("/api/create-ai-sandbox")
    body = client.get("/api/sandbox-status").json()
    assert body["active"] is True
    assert body["healthy"] is True
    assert body["sessionId"] == "sbx-1"
    assert body["status"] == "ready"
    assert body["installOutcome"] == "ok"
    assert body["fileCount"] == 8
    assert body["serverPid"] == 4242
    assert body["createdAt"] <= body["expiresAt"]


def test_kill_sandbox(client, fake_provider) -> None:
    assert client.post("/api/kill-sandbox").json() == {"success": True, "sandboxKilled": False}

    client.post("/api/create-ai-sandbox")
    assert client.post("/api/kill-sandbox").json() == {"success": True, "sandboxKilled": True}
    assert fake_provider.killed == ["sbx-1"]
    assert client.get("/api/sandbox-status").json()["active"] is False


def test_unconfigured_provider_is_500(monkeypatch) -> None:
    def _boom():
        raise ImportError("e2b_code_interpreter is not installed")

    monkeypatch.setattr(http_server, "_bootstrapper", None)
    monkeypatch.setattr(http_server, "_get_bootstrapper", _boom)
    res = TestClient(http_server.app).post("/api/create-ai-sandbox")
    assert res.status_code == 500
    assert "not configured" in res.json()["error"]
