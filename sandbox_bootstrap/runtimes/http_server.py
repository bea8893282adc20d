from __future__ import annotations

import asyncio
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from sandbox_bootstrap.bootstrap.orchestrator import SandboxBootstrapper
from sandbox_bootstrap.config import BootstrapConfig
from sandbox_bootstrap.sandbox_backends.factory import get_provider
from sandbox_bootstrap.session.store import get_store

# Load local env after imports to keep linting (E402) happy.
load_dotenv()

app = FastAPI(title="Sandbox Bootstrap", version="1.0.0")
logger = logging.getLogger(__name__)

_bootstrapper: SandboxBootstrapper | None = None


class SandboxStatusResponse(BaseModel):
    active: bool
    healthy: bool
    sessionId: str | None = None
    url: str | None = None
    status: str | None = None
    serving: bool = False
    serverPid: int | None = None
    installOutcome: str | None = None
    fileCount: int = 0
    createdAt: float | None = None
    expiresAt: float | None = None
    lastError: str | None = None


class KillSandboxResponse(BaseModel):
    success: bool
    sandboxKilled: bool


def _get_bootstrapper() -> SandboxBootstrapper:
    global _bootstrapper
    if _bootstrapper is None:
        config = BootstrapConfig.from_env()
        _bootstrapper = SandboxBootstrapper(
            config=config,
            provider=get_provider(config),
            store=get_store(),
        )
    return _bootstrapper


@app.get("/healthz")
async def healthz() -> dict:
    return {"status": "ok"}


@app.post("/api/create-ai-sandbox")
async def api_create_ai_sandbox() -> JSONResponse:
    try:
        bootstrapper = _get_bootstrapper()
    except Exception as e:
        logger.exception("Sandbox provider is not configured")
        return JSONResponse({"error": f"Sandbox provider is not configured: {e}"}, status_code=500)

    outcome = await asyncio.to_thread(bootstrapper.bootstrap)
    if not outcome.ok:
        return JSONResponse(outcome.to_response(), status_code=500)
    return JSONResponse(outcome.to_response())


@app.get("/api/sandbox-status", response_model=SandboxStatusResponse)
async def api_sandbox_status() -> SandboxStatusResponse:
    store = get_store()
    session = store.current()
    if session is None or session.session_id is None:
        return SandboxStatusResponse(active=False, healthy=False)
    return SandboxStatusResponse(
        active=True,
        healthy=session.serving,
        fileCount=len(store.manifest),
        **session.to_dict(),
    )


@app.post("/api/kill-sandbox", response_model=KillSandboxResponse)
async def api_kill_sandbox() -> KillSandboxResponse:
    if get_store().current() is None:
        return KillSandboxResponse(success=True, sandboxKilled=False)
    killed = await asyncio.to_thread(_get_bootstrapper().kill)
    return KillSandboxResponse(success=True, sandboxKilled=killed)


@app.on_event("shutdown")
async def _on_shutdown() -> None:
    await asyncio.to_thread(get_store().close)
