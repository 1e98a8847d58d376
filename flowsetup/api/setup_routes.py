"""API routes for the setup dashboard.

Endpoints:
  GET  /setup                   — dashboard shell (also /setup/, /setup/index, /setup/index.html)
  GET  /setup/compiletime.json  — compile-time health entries, 503 on error
  GET  /setup/runtime.json      — runtime health entries, 503 on error
  GET  /setup/main.js           — dashboard script (also /setup/main_js)
  GET  /setup/main.css          — dashboard styles (also /setup/main_css)
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse, Response

from flowsetup.core.phases import COMPILETIME, RUNTIME, run_phase, web_environment
from flowsetup.health.errors import ConfigurationError

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent.parent / "static"

setup_router = APIRouter(prefix="/setup", tags=["setup"])


def _health_response(request: Request, phase: str) -> Response:
    bootstrap = request.app.state.bootstrap
    environment = web_environment(
        bootstrap,
        request_uri=str(request.url),
        headers=dict(request.headers),
        remote_addr=request.client.host if request.client else None,
    )
    try:
        collection = run_phase(
            bootstrap,
            phase,
            environment,
            configuration=getattr(request.app.state, "healthcheck_configuration", None),
            registry=getattr(request.app.state, "healthcheck_registry", None),
        )
    except ConfigurationError:
        logger.exception("Invalid %s healthcheck configuration", phase)
        raise HTTPException(status_code=500, detail="Invalid healthcheck configuration") from None

    return Response(
        content=collection.to_json(),
        status_code=503 if collection.has_error() else 200,
        media_type="application/json",
    )


# ── Health endpoints ─────────────────────────────────────────────────────────


@setup_router.get("/compiletime.json")
def compiletime_health(request: Request) -> Response:
    return _health_response(request, COMPILETIME)


@setup_router.get("/runtime.json")
def runtime_health(request: Request) -> Response:
    return _health_response(request, RUNTIME)


# ── Dashboard assets ─────────────────────────────────────────────────────────


@setup_router.get("")
@setup_router.get("/")
@setup_router.get("/index")
@setup_router.get("/index.html")
def dashboard() -> FileResponse:
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html; charset=utf-8")


# `main_js` / `main_css` avoid web servers serving the files straight from disk
@setup_router.get("/main.js")
@setup_router.get("/main_js")
def dashboard_script() -> FileResponse:
    return FileResponse(STATIC_DIR / "main.js", media_type="application/javascript; charset=utf-8")


@setup_router.get("/main.css")
@setup_router.get("/main_css")
def dashboard_styles() -> FileResponse:
    return FileResponse(STATIC_DIR / "main.css", media_type="text/css; charset=utf-8")
