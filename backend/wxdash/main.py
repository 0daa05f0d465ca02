"""FastAPI application wiring: config, archive source, background tasks and routers."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from logging.config import dictConfig

from fastapi import FastAPI

from .archive import ArchiveSource, create_archive_router, create_archive_source
from .celestial import CelestialService, create_celestial_router
from .config import AppConfig, load_config
from .live import UpdateBroker, create_stream_router
from .noaa import ReportStore, create_noaa_router

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,  # keep uvicorn's loggers
        "formatters": {
            "plain": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "plain"},
        },
        "loggers": {
            "": {"handlers": ["console"], "level": level},
            "uvicorn": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.error": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.access": {"handlers": ["console"], "level": level, "propagate": False},
        },
    })


def create_app(config: AppConfig | None = None, source: ArchiveSource | None = None) -> FastAPI:
    """Build the application.

    Without arguments the config is loaded from $WXDASH_CONFIG (or
    ``config.yaml``) and the archive source is built from it. Startup fails
    with ArchiveError if the archive cannot be reached.
    """
    if config is None:
        config = load_config()
    if source is None:
        source = create_archive_source(config)

    broker = UpdateBroker(
        source,
        poll_interval=config.server.sse_poll_seconds,
        queue_size=config.server.sse_queue_size,
    )
    celestial = CelestialService.from_config(config.location)
    reports = ReportStore(source, config.location)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        source.ping()
        logger.info("Connected to archive database")
        await broker.start()
        await celestial.start()
        try:
            yield
        finally:
            await celestial.stop()
            await broker.stop()
            source.close()
            logger.info("Shutdown complete")

    app = FastAPI(title="Weather Dashboard API", lifespan=lifespan)
    app.state.config = config
    app.state.source = source
    app.state.broker = broker
    app.state.celestial = celestial
    app.state.reports = reports

    app.include_router(create_archive_router(source, config))
    app.include_router(create_celestial_router(celestial))
    app.include_router(create_noaa_router(reports, config.location.timezone))
    app.include_router(create_stream_router(broker, keepalive=config.server.sse_keepalive_seconds))
    return app


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    app_config = load_config()
    logger.info(
        "Starting weather dashboard on :%d (SSE poll %ds, client poll %ds)",
        app_config.server.port,
        app_config.server.sse_poll_seconds,
        app_config.server.client_poll_seconds,
    )
    uvicorn.run(create_app(app_config), host="0.0.0.0", port=app_config.server.port, log_config=None)
