"""FastAPI Application Entry Point"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from esign.infrastructure.config import get_settings
from esign.infrastructure.logging_config import configure_logging
from esign.presentation.api.routes import (
    contact_routes,
    envelope_routes,
    health_routes,
    outbox_routes,
)
from esign.presentation.middleware.error_handler import error_handlers
from esign.presentation.middleware.logging import LoggingMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """アプリケーションのライフサイクル管理"""
    settings = get_settings()
    logger.info(
        "application_starting",
        service=settings.service_name,
        environment=settings.environment,
    )
    yield
    logger.info("application_shutting_down")


def create_app() -> FastAPI:
    """FastAPI アプリケーションを作成"""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="E-Signature Platform API",
        description="Envelope, party and consent management for electronic signatures",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )
    app.add_middleware(LoggingMiddleware)

    # Error Handlers
    for exception_class, handler in error_handlers.items():
        app.add_exception_handler(exception_class, handler)

    # Routes
    app.include_router(health_routes.router, tags=["Health"])
    app.include_router(envelope_routes.router, prefix="/api/v1/envelopes", tags=["Envelopes"])
    app.include_router(contact_routes.router, prefix="/api/v1/contacts", tags=["Contacts"])
    app.include_router(outbox_routes.router, prefix="/api/v1/outbox", tags=["Outbox"])

    return app


app = create_app()
