"""
This module contains the main FastAPI application for the VehiQuest service.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .db import close_db, create_db, create_db_and_tables, ping
from .errors import register_error_handlers
from .ledger import AvailabilityLedger
from .routers import ROUTERS
from .worker import configure_celery

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(api_app: FastAPI):
    """
    Asynchronous context manager for the lifespan of the FastAPI application.
    It creates the database and tables on startup and releases connections on shutdown.

    Args:
        api_app (FastAPI): The FastAPI application instance.
    """
    await create_db_and_tables(api_app.state.db)
    logger.info("VehiQuest is driving")
    yield
    await close_db(api_app.state.db)


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Builds the application with its own store handle and ledger.

    Args:
        settings (Settings): Configuration to use, loaded from the environment when omitted.

    Returns:
        FastAPI: The configured application.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    api_app = FastAPI(title="VehiQuest API", lifespan=lifespan)
    api_app.state.settings = settings
    api_app.state.db = create_db(settings.database_url)
    api_app.state.ledger = AvailabilityLedger(threshold=settings.sold_out_threshold)
    configure_celery(settings)

    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(api_app)
    for router in ROUTERS:
        api_app.include_router(router)

    @api_app.get("/")
    async def root():
        """
        Root endpoint for the API.
        """
        return {"message": "Hello from VehiQuest Server.."}

    @api_app.get("/health")
    async def health(request: Request):
        """
        Reports whether the record store answers.
        """
        response = {"backend": "ok", "database": "ok"}
        try:
            await ping(request.app.state.db)
        except Exception as exc:
            logger.warning(f"Store ping failed: {exc}")
            response["database"] = "unavailable"
        return response

    return api_app


app = create_app()
