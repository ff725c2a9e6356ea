"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from woodart.api.middleware.error_handler import error_handler_middleware, request_validation_exception_handler
from woodart.api.middleware.latency_logging import latency_logging_with_stats_middleware
from woodart.api.middleware.request_size import request_size_limit_middleware
from woodart.api.routes import (
    bank_slips,
    cart,
    custom_orders,
    delivery,
    designs,
    events,
    financial,
    health,
    orders,
    stock,
)
from woodart.core.config import get_settings
from woodart.core.events import init_event_broadcaster, shutdown_event_broadcaster

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    # Startup
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    await init_event_broadcaster()
    logger.info("Event broadcaster initialized")

    yield
    # Shutdown
    await shutdown_event_broadcaster()
    logger.info("Event broadcaster shutdown")
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Wood Art API",
        description="Wood-art marketplace backend: orders, payments, delivery and live stock",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add error handler middleware (outermost - catches all errors)
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    # Add latency logging middleware (tracks request timing)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_with_stats_middleware)

    # Add request size limit middleware (rejects oversized requests early)
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_size_limit_middleware)

    # Mount health routes at root level (no prefix)
    app.include_router(health.router)

    api_router = APIRouter(prefix="/api")

    # Marketplace orders and payouts
    api_router.include_router(orders.router)
    api_router.include_router(financial.router)
    api_router.include_router(bank_slips.router)
    api_router.include_router(delivery.router)

    # Custom orders
    api_router.include_router(custom_orders.router)

    # Catalogue, cart and live updates
    api_router.include_router(designs.router)
    api_router.include_router(cart.router)
    api_router.include_router(events.router)

    # Raw material inventory
    api_router.include_router(stock.router)

    app.include_router(api_router)

    return app


# Create application instance
app = create_app()


def main() -> None:
    """Run the API server with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "woodart.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
