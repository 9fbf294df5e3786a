"""
RFP Intake - FastAPI Application

API server for RFP management, vendor proposal intake from the shared
mailbox, and proposal analysis.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from config.settings import Settings, settings
from config.logging_config import setup_logging, get_logger
from database.connection import configure, init_db, close_db
from api.routes import emails, rfps, vendor_responses
from api.middleware.error_handler import setup_error_handlers
from api.middleware.logging import LoggingMiddleware
from api.middleware.rate_limit import setup_rate_limiting
from workers.components import build_components

logger = get_logger("api")

API_VERSION = "1.0.0"


def create_app(app_settings: Optional[Settings] = None, **component_overrides) -> FastAPI:
    """
    Build the application for one Settings value.

    `component_overrides` are passed to `build_components` (reasoner,
    mailbox_factory, smtp_factory, queue_factory) so tests can swap the
    external services.
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifecycle management."""
        logger.info("Starting RFP Intake API...")
        logger.info(f"Environment: {app_settings.api_env}")
        logger.info(f"LLM Provider: {app_settings.llm_provider.value}")
        if not app_settings.analysis_configured:
            logger.warning("No LLM API key configured; analysis is unavailable")
        if not app_settings.mailbox_configured:
            logger.warning("No IMAP credentials configured; inbox sync is unavailable")

        session_factory = configure(app_settings)
        await init_db()

        components = build_components(app_settings, session_factory, **component_overrides)
        app.state.components = components
        await components.analysis_queue.start()

        yield

        await components.analysis_queue.stop()
        await close_db()
        logger.info("Shutting down RFP Intake API...")

    app = FastAPI(
        title="RFP Intake API",
        description="Vendor proposal intake, analysis and comparison for RFPs",
        version=API_VERSION,
        lifespan=lifespan
    )
    app.state.settings = app_settings

    # Set up error handlers (before middleware)
    setup_error_handlers(app, app_settings.api_env)

    # Set up rate limiting
    setup_rate_limiting(app, enabled=app_settings.rate_limit_enabled)

    # Add logging middleware
    app.add_middleware(LoggingMiddleware)

    # Configure CORS (should be last middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # API Routes
    # ========================================================================

    app.include_router(rfps.router, prefix="/api")
    app.include_router(vendor_responses.router, prefix="/api")
    app.include_router(emails.router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "RFP Intake API",
            "version": API_VERSION,
            "status": "running",
            "environment": app_settings.api_env,
            "llm_provider": app_settings.llm_provider.value,
            "model": app_settings.default_model,
            "docs": "/docs"
        }

    @app.get("/health")
    async def health(request: Request):
        """Health check endpoint."""
        components = request.app.state.components
        return {
            "status": "healthy",
            "environment": app_settings.api_env,
            "analysis_available": components.orchestrator.available,
            "mailbox_configured": app_settings.mailbox_configured,
            "notifications_configured": components.notifier.configured
        }

    return app


setup_logging(log_level="INFO", log_to_file=False)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
