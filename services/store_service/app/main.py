"""FastAPI application for the Store Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.errors import register_exception_handlers
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from services.store_service.connections import ConnectionRegistry
from services.store_service.routers import (
    addresses_router,
    cart_router,
    catalog_router,
    categories_router,
    checkout_router,
    notifications_router,
    orders_router,
    payments_router,
    reviews_router,
    search_router,
    wishlist_router,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.connections = ConnectionRegistry()
    logger.info("Store service started")
    try:
        yield
    finally:
        await app.state.connections.close()
        logger.info("Store service stopped")


def create_app() -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    settings = get_settings()
    app = FastAPI(
        title="Store Service",
        version="0.1.0",
        description="E-commerce service - catalog, categories, search, reviews, wishlist, cart, checkout, payments, orders, notifications.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list({settings.FRONTEND_URL, *settings.CORS_ORIGINS}),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Structured logging + request tracing
    add_observability_middleware(app)

    # {"success": false, "message": ...} for every error
    register_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    app.include_router(catalog_router, prefix="/api")
    app.include_router(categories_router, prefix="/api")
    app.include_router(search_router, prefix="/api")
    app.include_router(reviews_router, prefix="/api")
    app.include_router(wishlist_router, prefix="/api")
    app.include_router(cart_router, prefix="/api")
    app.include_router(addresses_router, prefix="/api")
    app.include_router(checkout_router, prefix="/api")
    app.include_router(payments_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")
    app.include_router(notifications_router, prefix="/api")

    return app


app = create_app()
