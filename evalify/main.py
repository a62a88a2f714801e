#!/usr/bin/env python3
"""
Evalify Quiz Attempt Service
Main application entry point
"""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .config import get_settings
from .backend.app import create_app
from .backend.database.connection import init_database, close_database_connections
from .backend.database.documents import init_document_store, close_document_store
from .backend.dependencies import init_redis_client, cleanup_dependencies
from .backend.utils.helpers import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events"""

    # Startup
    logger.info("🚀 Starting Evalify quiz attempt service...")

    await init_database()
    await init_redis_client()
    await init_document_store()

    logger.info("🎉 Application startup complete!")

    yield

    # Shutdown
    logger.info("🛑 Shutting down application...")
    await cleanup_dependencies()
    await close_document_store()
    await close_database_connections()
    logger.info("✅ Application shutdown complete")


def create_main_app() -> FastAPI:
    """Create the outer application and mount the backend API under /api"""

    settings = get_settings()

    main_app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan
    )

    main_app.mount("/api", create_app())

    return main_app


def main():
    """Main entry point"""
    setup_logging()

    settings = get_settings()
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")

    try:
        uvicorn.run(
            "evalify.main:app_instance",
            host=settings.HOST,
            port=settings.PORT,
            workers=settings.WORKERS,
            reload=settings.DEBUG,
            log_level="info" if settings.DEBUG else "warning",
            access_log=settings.DEBUG
        )
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except Exception as e:
        logger.error(f"Application failed to start: {e}")
        sys.exit(1)


# Create app instance for uvicorn
app_instance = create_main_app()

if __name__ == "__main__":
    main()
