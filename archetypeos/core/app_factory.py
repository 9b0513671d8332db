"""Application factory helpers to keep archetypeos/main.py lightweight."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.trustedhost import TrustedHostMiddleware

from archetypeos.api.router import api_router
from archetypeos.core.config import settings
from archetypeos.core.database import get_db
from archetypeos.core.error_handlers import create_error_response, register_exception_handlers
from archetypeos.core.logging_config import setup_logging
from archetypeos.core.middleware import LoggingMiddleware
from archetypeos.core.monitoring import setup_monitoring

logger = logging.getLogger(__name__)


def _configure_app(app: FastAPI) -> None:
    allowed_hosts = getattr(settings, "allowed_hosts", None) or ["*"]
    if not (len(allowed_hosts) == 1 and allowed_hosts[0] == "*"):
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)

    # Logs all requests and responses with timing
    app.add_middleware(LoggingMiddleware)

    origins = settings.cors_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)


def _register_routes(app: FastAPI) -> None:
    # Liveness: is the process serving requests?
    @app.get("/livez", tags=["Health"])
    def livez():
        return {"status": "ok"}

    # Readiness: can we reach the database?
    @app.get("/readyz", tags=["Health"])
    def readyz(db: Session = Depends(get_db)):
        try:
            db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Readiness check failed (Database): {e}")
            return create_error_response(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                error_code="service_unavailable",
                message="Database unavailable",
                details={"database": "disconnected"},
                path="/readyz",
            )
        return {"status": "ready", "details": {"database": "connected"}}


def _lifespan_factory():
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.app_name} ({settings.environment})")
        yield
        logger.info(f"Stopping {settings.app_name}")

    return lifespan


def create_app() -> FastAPI:
    """
    Application Factory to create and configure the FastAPI application.
    Integrates logging, error handling, monitoring and middleware.
    """
    setup_logging(
        log_level=getattr(settings, "log_level", "INFO"),
        log_dir=getattr(settings, "log_dir", "logs"),
        app_name="archetypeos",
        max_bytes=10 * 1024 * 1024,  # 10 MB
        backup_count=5,
        use_json=getattr(settings, "use_json_logs", False),
        use_colors=True,
    )

    app = FastAPI(
        title=settings.app_name,
        description="Learning progression engine: courses, assessments, grading and certificates",
        version="1.0.0",
        lifespan=_lifespan_factory(),
        default_response_class=ORJSONResponse,
    )
    app.state.environment = settings.environment

    _configure_app(app)
    _register_routes(app)
    register_exception_handlers(app)
    setup_monitoring(app)

    logger.info("Application startup complete")
    return app


__all__ = ["create_app"]
