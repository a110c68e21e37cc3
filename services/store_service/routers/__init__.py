"""Store service routers package."""

from services.store_service.routers.addresses import router as addresses_router
from services.store_service.routers.cart import router as cart_router
from services.store_service.routers.catalog import router as catalog_router
from services.store_service.routers.categories import router as categories_router
from services.store_service.routers.checkout import router as checkout_router
from services.store_service.routers.notifications import (
    router as notifications_router,
)
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.payments import router as payments_router
from services.store_service.routers.reviews import router as reviews_router
from services.store_service.routers.search import router as search_router
from services.store_service.routers.wishlist import router as wishlist_router

__all__ = [
    "addresses_router",
    "cart_router",
    "catalog_router",
    "categories_router",
    "checkout_router",
    "notifications_router",
    "orders_router",
    "payments_router",
    "reviews_router",
    "search_router",
    "wishlist_router",
]
