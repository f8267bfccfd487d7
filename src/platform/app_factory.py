"""
Shared FastAPI App Factory

Provides common app setup for production and test environments.
"""

from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Any, Optional
import re

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src.platform.config.core_setting import settings
from src.platform.exception.exception_handlers import register_exception_handlers
from src.platform.logging.loguru_io_config import tenant_id_var
from src.platform.observability.tracing import TracingConfig
from src.service.booking.driving_adapter.http_controller.availability_controller import (
    router as availability_router,
)
from src.service.booking.driving_adapter.http_controller.booking_controller import (
    router as booking_router,
)
from src.service.booking.driving_adapter.http_controller.guest_verification_controller import (
    router as guest_verification_router,
)


TENANT_PREFIX = '/api/tenants/{tenant_id}'
TENANT_PATH = re.compile(r'^/api/tenants/(\d+)(?:/|$)')


def create_app(
    *,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[Any]],
    title_suffix: str = '',
    description: str = 'Multi-tenant slot booking engine',
    service_name: Optional[str] = None,
) -> FastAPI:
    """
    Create a configured FastAPI application.

    Args:
        lifespan: Async context manager for app lifespan (startup/shutdown)
        title_suffix: Optional suffix for app title (e.g., " (Test)")
        description: App description
        service_name: Service name for tracing, defaults to SERVICE_NAME

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=f'{settings.PROJECT_NAME}{title_suffix}',
        description=description,
        version=settings.VERSION,
        lifespan=lifespan,
    )

    # Auto-instrument FastAPI (must be done before mounting routes)
    tracing_config = TracingConfig(service_name=service_name)
    tracing_config.instrument_fastapi(app=app)

    app.add_middleware(
        CORSMiddleware,  # type: ignore
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.middleware('http')
    async def tag_tenant(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        # Log lines emitted while serving a tenant route carry its id
        match = TENANT_PATH.match(request.url.path)
        token = tenant_id_var.set(match.group(1) if match else '-')
        try:
            return await call_next(request)
        finally:
            tenant_id_var.reset(token)

    register_exception_handlers(app)

    # Every booking route is scoped to one tenant
    app.include_router(availability_router, prefix=TENANT_PREFIX, tags=['availability'])
    app.include_router(booking_router, prefix=TENANT_PREFIX, tags=['booking'])
    app.include_router(
        guest_verification_router, prefix=TENANT_PREFIX, tags=['guest-verification']
    )

    _register_common_endpoints(app)

    return app


def _register_common_endpoints(app: FastAPI) -> None:
    """Register health and metrics endpoints."""

    @app.get('/health')
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration."""
        return {'status': 'healthy', 'service': settings.PROJECT_NAME}

    @app.get('/metrics')
    async def get_metrics() -> PlainTextResponse:
        """Prometheus metrics endpoint."""
        return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
