"""FastAPI application serving cached readings and metrics."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from thermo_pulse import __version__
from thermo_pulse.context import AppContext

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan.

    NOTE: Data sources, pollers and the cache are managed by AppContext, NOT
    here. The context is created and started by the CLI before the web app
    starts; this function only logs.
    """
    context: AppContext = app.state.context
    if not context.is_started:
        logger.warning("AppContext provided but not started - no data will be fetched")
    else:
        logger.info(f"Serving {len(context.cache.list_sources())} source(s)")

    yield

    logger.info("Web application shutting down...")


def create_app(context: AppContext) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        context: Application context with cache, metrics and pollers

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Thermo Pulse",
        description="Thermostat and weather readings with a Prometheus exporter",
        version=__version__,
        lifespan=lifespan,
    )

    # Handlers reach the context through request.app.state
    app.state.context = context

    from thermo_pulse.web.routes import router

    app.include_router(router)

    logger.info("FastAPI application created")
    return app
