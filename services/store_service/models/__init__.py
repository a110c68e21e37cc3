"""Store Service models package."""

from services.store_service.models.catalog import Category, Product
from services.store_service.models.commerce import (
    Address,
    Cart,
    CartItem,
    Coupon,
    Order,
    OrderItem,
    OrderStatusHistory,
)
from services.store_service.models.enums import (
    CANCELLABLE_STATUSES,
    PAYABLE_STATUSES,
    AddressType,
    DiscountType,
    NotificationPriority,
    NotificationType,
    OrderPaymentStatus,
    OrderStatus,
    PaymentGatewayName,
    PaymentMethod,
    PaymentStatus,
    ReviewStatus,
)
from services.store_service.models.notifications import Notification
from services.store_service.models.payments import Payment
from services.store_service.models.reviews import Review, ReviewHelpfulVote
from services.store_service.models.wishlist import Wishlist, WishlistItem

__all__ = [
    "Address",
    "AddressType",
    "CANCELLABLE_STATUSES",
    "Cart",
    "CartItem",
    "Category",
    "Coupon",
    "DiscountType",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "Order",
    "OrderItem",
    "OrderPaymentStatus",
    "OrderStatus",
    "OrderStatusHistory",
    "PAYABLE_STATUSES",
    "Payment",
    "PaymentGatewayName",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
    "Review",
    "ReviewHelpfulVote",
    "ReviewStatus",
    "Wishlist",
    "WishlistItem",
]
