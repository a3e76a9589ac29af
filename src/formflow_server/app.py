"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads form schemas and builds the answer recorder
  - CORS middleware
  - Global exception handlers (ValueError → 404/409/400)
  - API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``formflow-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from formflow.storage import FormStore
from formflow_db.engine import dispose_engine, get_engine

from formflow_server.config import ServerSettings, load_settings
from formflow_server.errors import (
    generic_error_handler,
    key_error_handler,
    value_error_handler,
)
from formflow_server.recorder import AnswerRecorder
from formflow_server.routes import register_routes
from formflow_server.webhooks import WebhookSender

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build shared resources at startup, release them on shutdown.

    Startup:
      1. Load form schemas from ``forms_dir`` (if configured)
      2. Build the webhook sender and ``AnswerRecorder``
      3. Stash the recorder on ``app.state`` for dependency injection

    Shutdown:
      1. Close the webhook client
      2. Dispose the database engine's connection pool
    """
    settings: ServerSettings = app.state.settings

    forms: FormStore | None = None
    if settings.forms_dir:
        forms = FormStore(settings.forms_dir)
        forms.load()

    webhooks = WebhookSender(timeout=settings.webhook_timeout)
    app.state.recorder = AnswerRecorder(
        forms, webhooks, default_webhook_url=settings.default_webhook_url,
    )

    yield

    await webhooks.aclose()
    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Formflow API Server",
        description="Remote persistence for form sessions",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — verifies DB connectivity."""
        try:
            engine = get_engine()
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "ok"}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": str(exc)}

    register_routes(app)

    return app


# Module-level ASGI export (uvicorn formflow_server.app:app)
app = create_app()


def cli() -> None:
    """Console-script entry point: ``formflow-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "formflow_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
