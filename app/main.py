import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api import health, ingest
from app.config import Settings, get_settings, log_environment_status
from app.core.database import Database
from app.core.errors import DatabaseInitError
from app.core.middleware import BodySizeLimitMiddleware, RequestLoggingMiddleware
from app.services.credential_store import CredentialStore
from app.services.ingestion_service import IngestionService
from app.services.pop_writer import PopWriter

logging.basicConfig(
    stream=sys.stdout,
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("pops.main")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application. Storage is opened on startup and closed on shutdown."""
    settings = settings or get_settings()
    logging.getLogger("pops").setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=== Starting Real-Time Pop Service ===")
        log_environment_status(settings)

        database = Database.from_settings(settings)
        try:
            await database.init_schema()
        except DatabaseInitError:
            logger.critical("Schema initialization failed, refusing to start.")
            await database.dispose()
            raise

        app.state.database = database
        app.state.ingestion_service = IngestionService(
            CredentialStore(database), PopWriter(database)
        )

        yield

        logger.info("Shutting down Real-Time Pop Service, closing database pool.")
        await database.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Receives proof-of-play batches from display players and stores them per tenant.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)

    app.include_router(health.router)
    app.include_router(ingest.router)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled Server Error routing request '{request.method} {request.url}': {exc}"
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    return app


app = create_app()
