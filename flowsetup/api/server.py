"""FastAPI server for the setup dashboard."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from flowsetup import __version__
from flowsetup.api.setup_routes import setup_router
from flowsetup.config import Settings, settings as default_settings
from flowsetup.core.bootstrap import Bootstrap

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log the context the dashboard runs in.

    Check configuration is reloaded per request, so edits to
    healthchecks.yaml show up on the next dashboard refresh.
    """
    bootstrap = app.state.bootstrap
    logger.info(
        "Setup dashboard ready — context=%s root=%s",
        bootstrap.context, bootstrap.settings.flow_root,
    )
    if bootstrap.context.is_production:
        logger.warning("Running in Production context: technical details are hidden from /setup")
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(
        title="Flow Setup",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.bootstrap = Bootstrap.from_settings(settings or default_settings)

    app.include_router(setup_router)

    @app.get("/", include_in_schema=False)
    async def root() -> RedirectResponse:
        return RedirectResponse(url="/setup")

    return app


app = create_app()
