"""
Main application entry point for the LMS assessment service.

This module builds the FastAPI application, wiring the assessment services
over the configured database and registering the shared middleware and
exception handlers.

Usage:
    - Direct: python -m lms_backend.main
    - ASGI server: uvicorn lms_backend.main:app
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lms_backend import __version__
from lms_backend.assessments.controller import router as assessment_router
from lms_backend.assessments.services import AssessmentServices, create_sql_services
from lms_backend.common.error_handling import register_exception_handlers
from lms_backend.common.logger import APP_LOGGER_NAME, app_logger, configure_logger
from lms_backend.config import Settings, settings as default_settings
from lms_backend.database.init_db import close_database, get_session_factory, initialize_database

logger = app_logger.getChild("main")


def create_app(app_settings: Optional[Settings] = None, services: Optional[AssessmentServices] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        app_settings: Settings to use; defaults to the module-level settings
        services: Prebuilt services. When given, no database is initialized.

    Returns:
        Configured FastAPI application
    """
    app_settings = app_settings or default_settings
    configure_logger(
        name=APP_LOGGER_NAME,
        level=app_settings.LOG_LEVEL,
        use_json=app_settings.LOG_JSON,
        log_file=app_settings.LOG_FILE,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_database = services is None
        try:
            if owns_database:
                await initialize_database(
                    database_url=app_settings.DATABASE_URL,
                    echo=app_settings.SQL_ECHO,
                    pool_size=app_settings.DB_POOL_SIZE,
                    max_overflow=app_settings.DB_MAX_OVERFLOW,
                    pool_timeout=app_settings.DB_POOL_TIMEOUT,
                    create_tables=app_settings.CREATE_SCHEMA,
                )
                app.state.services = create_sql_services(
                    get_session_factory(),
                    start_max_retries=app_settings.START_ATTEMPT_MAX_RETRIES,
                    max_page_limit=app_settings.ADMIN_ATTEMPTS_PAGE_LIMIT,
                )
            else:
                app.state.services = services
            logger.info("Application startup complete")
        except Exception as e:
            logger.error(f"Failed to initialize application: {e}")
            raise

        yield

        await app.state.services.publisher.drain()
        if owns_database:
            await close_database()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        description="Course assessment attempts, grading and completion",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(assessment_router, prefix=app_settings.API_PREFIX, tags=["assessments"])

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    logger.info(f"Application initialized with {len(app.routes)} routes")
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload_enabled = os.environ.get("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

    uvicorn.run(
        "lms_backend.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level="info"
    )
