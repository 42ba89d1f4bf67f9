"""Application entry point and bootstrap.

Wires configuration, database, store, services and routers together.
"""

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from upqueue.config import UploadConfig
from upqueue.dao import QueueEntryDAO
from upqueue.database import Database
from upqueue.logging_filters import configure_logging, install_uvicorn_access_log_filters
from upqueue.observability.error_log_file import setup_error_log_file
from upqueue.routers import create_upload_router
from upqueue.services import (
    CompletionRecorder,
    CredentialSigner,
    IngestionHookDispatcher,
    OwnerRegistry,
    StorageLocations,
    TicketIssuer,
)

logger = logging.getLogger(__name__)


class Application:
    """Main application container.

    Holds every component and its lifecycle. The owner registry is built
    from configuration; host code may attach ingestion hooks and authorizers
    to it (``app.registry.attach(...)``) before serving requests. A non-empty
    ``config.allowed_actors`` is applied to whichever registry is used.
    """

    def __init__(self, config: UploadConfig, registry: OwnerRegistry | None = None) -> None:
        self.config = config
        self.registry = registry or OwnerRegistry.from_config(config.owner_kinds)
        # A host-built registry still answers to the configured allow-list
        if config.allowed_actors:
            self.registry.set_allowed_actors(config.allowed_actors)

        self.database: Database | None = None
        self.store: QueueEntryDAO | None = None

        self.signer: CredentialSigner | None = None
        self.locations: StorageLocations | None = None
        self.ticket_issuer: TicketIssuer | None = None
        self.dispatcher: IngestionHookDispatcher | None = None
        self.completion_recorder: CompletionRecorder | None = None

    async def setup(self) -> None:
        """Initialize all application components with dependency injection."""
        logger.info("Setting up application components...")
        setup_error_log_file(self.config)

        self.database = Database(self.config.database_url)
        if self.config.auto_create_tables:
            await self.database.init_db()
            logger.info("Database initialized (auto_create_tables=true)")
        else:
            logger.info(
                "Database initialized (auto_create_tables=false; relying on Alembic migrations)"
            )
        self.store = QueueEntryDAO(self.database)

        credentials = self.config.storage_credentials()
        self.signer = CredentialSigner(
            credentials,
            ttl_seconds=self.config.ticket_ttl_seconds,
            read_ttl_seconds=self.config.private_url_ttl_seconds,
        )
        self.locations = StorageLocations(
            credentials,
            key_prefix=self.config.s3_key_prefix,
            public_base_url=self.config.s3_public_base_url,
        )
        self.ticket_issuer = TicketIssuer(self.signer, self.locations, self.registry)
        self.dispatcher = IngestionHookDispatcher(self.registry)
        self.completion_recorder = CompletionRecorder(
            self.store, self.locations, self.registry, self.dispatcher
        )
        logger.info("Services initialized")

    def include_routers(self, fastapi_app: FastAPI) -> list:
        """Mount the upload routes; returns the routes added so they can be unmounted."""
        mounted = len(fastapi_app.router.routes)
        fastapi_app.include_router(
            create_upload_router(self.ticket_issuer, self.completion_recorder)
        )
        return fastapi_app.router.routes[mounted:]

    @staticmethod
    def remove_routers(fastapi_app: FastAPI, routes: list) -> None:
        """Unmount routes bound to a shut-down Application."""
        fastapi_app.router.routes[:] = [r for r in fastapi_app.router.routes if r not in routes]
        fastapi_app.openapi_schema = None

    async def shutdown(self) -> None:
        """Release database connections."""
        logger.info("Shutting down application...")
        if self.database is not None:
            await self.database.close()
            self.database = None


async def handle_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies with the same ``message`` shape as upload errors."""
    problems = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"message": "Invalid request: " + "; ".join(problems)},
    )


def register_common_routes(fastapi_app: FastAPI) -> None:
    """Health check and error handlers shared by every entrypoint."""
    fastapi_app.add_exception_handler(RequestValidationError, handle_validation_errors)

    @fastapi_app.get("/health")
    async def health_check():
        return {"status": "healthy"}


def main() -> None:
    """Run the API server with uvicorn."""
    config = UploadConfig.from_files()
    configure_logging(config.log_level)
    install_uvicorn_access_log_filters()
    uvicorn.run("upqueue.asgi:app", host=config.api_host, port=config.api_port)


if __name__ == "__main__":
    main()
