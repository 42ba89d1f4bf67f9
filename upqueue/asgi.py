"""ASGI entry point for uvicorn.

Usage:
    uvicorn upqueue.asgi:app --host 0.0.0.0 --port 8080
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from upqueue import __version__
from upqueue.config import UploadConfig
from upqueue.logging_filters import configure_logging, install_uvicorn_access_log_filters
from upqueue.main import Application, register_common_routes
from upqueue.services import OwnerRegistry


def create_app(
    config: UploadConfig | None = None,
    registry: OwnerRegistry | None = None,
) -> FastAPI:
    """Create the FastAPI app; components are built in the lifespan.

    Args:
        config: Configuration; loaded from config.json/secrets.yml/env if omitted.
        registry: Pre-built owner registry with hooks attached. Built from
            ``config.owner_kinds`` if omitted. ``config.allowed_actors``
            applies either way.
    """

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
        cfg = config or UploadConfig.from_files()
        configure_logging(cfg.log_level)
        install_uvicorn_access_log_filters()

        application = Application(cfg, registry)
        await application.setup()
        routes = application.include_routers(fastapi_app)
        fastapi_app.state.application = application

        yield

        Application.remove_routers(fastapi_app, routes)
        await application.shutdown()

    fastapi_app = FastAPI(
        title="upqueue",
        description="Direct-to-S3 upload tickets and ingestion queue",
        version=__version__,
        lifespan=lifespan,
    )
    register_common_routes(fastapi_app)
    return fastapi_app


app = create_app()
