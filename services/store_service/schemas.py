"""Pydantic schemas for store service.

Responses are camelCase on the wire and wrapped in ``{success, message?, ...}``.
Money is held as ``Decimal`` and rendered as a JSON number.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel
from services.store_service.models import (
    AddressType,
    NotificationPriority,
    NotificationType,
    OrderPaymentStatus,
    OrderStatus,
    PaymentGatewayName,
    PaymentMethod,
    PaymentStatus,
    ReviewStatus,
)

Money = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class MessageResponse(APIModel):
    success: bool = True
    message: str


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductImage(APIModel):
    url: str
    alt: Optional[str] = None


class CategorySummary(APIModel):
    id: uuid.UUID
    name: str
    slug: str


class ProductResponse(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    short_description: Optional[str] = None
    brand: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    category: Optional[CategorySummary] = None
    sku: Optional[str] = None
    price: Money
    discount_price: Optional[Money] = None
    final_price: Money
    stock: int
    images: list[ProductImage] = []
    average_rating: float = 0.0
    num_reviews: int = 0
    rating_distribution: dict[str, int] = {}
    seller_id: Optional[str] = None
    is_active: bool
    created_at: datetime


class ProductEnvelope(APIModel):
    success: bool = True
    product: ProductResponse


class ProductListResponse(APIModel):
    success: bool = True
    products: list[ProductResponse]
    total: int
    total_pages: int
    current_page: int


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemCreate(APIModel):
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)


class CartItemUpdate(APIModel):
    quantity: int = Field(..., ge=1)


class CartProductSummary(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    price: Money
    discount_price: Optional[Money] = None
    stock: int
    images: list[ProductImage] = []
    is_active: bool


class CartItemResponse(APIModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product: Optional[CartProductSummary] = None
    quantity: int
    price: Money
    final_price: Money


class CartResponse(APIModel):
    id: Optional[uuid.UUID] = None
    items: list[CartItemResponse] = []
    total_items: int = 0
    total_price: Money = Decimal("0")
    total_discount: Money = Decimal("0")
    final_price: Money = Decimal("0")


class CartEnvelope(APIModel):
    success: bool = True
    message: Optional[str] = None
    cart: CartResponse


# ============================================================================
# ADDRESS SCHEMAS
# ============================================================================


class AddressBase(APIModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., pattern=r"^\d{10}$")
    pincode: str = Field(..., pattern=r"^\d{6}$")
    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field("India", max_length=100)
    is_default: bool = False
    address_type: AddressType = AddressType.HOME


class AddressCreate(AddressBase):
    pass


class AddressUpdate(APIModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, pattern=r"^\d{10}$")
    pincode: Optional[str] = Field(None, pattern=r"^\d{6}$")
    address_line1: Optional[str] = Field(None, min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    is_default: Optional[bool] = None
    address_type: Optional[AddressType] = None


class AddressResponse(AddressBase):
    id: uuid.UUID
    created_at: datetime


class AddressEnvelope(APIModel):
    success: bool = True
    message: Optional[str] = None
    address: AddressResponse


class AddressListResponse(APIModel):
    success: bool = True
    count: int
    addresses: list[AddressResponse]


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class PricingSummary(APIModel):
    items_price: Money
    discount_amount: Money = Decimal("0")
    tax_price: Money
    shipping_price: Money
    total_price: Money


class CheckoutLine(APIModel):
    product_id: uuid.UUID
    name: str
    price: Money
    quantity: int
    image: str = ""


class CheckoutDetails(APIModel):
    items: list[CheckoutLine]
    addresses: list[AddressResponse]
    pricing: PricingSummary


class CheckoutDetailsResponse(APIModel):
    success: bool = True
    checkout: CheckoutDetails


class ValidateCouponRequest(APIModel):
    code: str = Field(..., min_length=1, max_length=50)
    items_price: Decimal = Field(..., ge=0)


class CouponSummary(APIModel):
    code: str
    discount_amount: Money
    description: Optional[str] = None


class CouponValidationResponse(APIModel):
    success: bool = True
    message: str
    coupon: CouponSummary


class CalculateRequest(APIModel):
    coupon_code: Optional[str] = Field(None, max_length=50)


class OrderSummary(PricingSummary):
    applied_coupon: Optional[str] = None


class CalculateResponse(APIModel):
    success: bool = True
    summary: OrderSummary


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class ShippingAddressSnapshot(APIModel):
    full_name: str
    phone: str
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    state: str
    pincode: str
    country: str = "India"


class OrderItemResponse(APIModel):
    id: uuid.UUID
    product_id: uuid.UUID
    name: str
    price: Money
    quantity: int
    images: list[ProductImage] = []


class StatusHistoryEntry(APIModel):
    status: str
    note: Optional[str] = None
    created_at: datetime


class OrderResponse(APIModel):
    id: uuid.UUID
    order_number: str
    user_id: str
    shipping_address: ShippingAddressSnapshot
    payment_method: PaymentMethod
    items: list[OrderItemResponse]
    items_price: Money
    discount_amount: Money
    tax_price: Money
    shipping_price: Money
    total_price: Money
    coupon_code: Optional[str] = None
    order_status: OrderStatus
    payment_status: OrderPaymentStatus
    tracking_number: Optional[str] = None
    estimated_delivery_date: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    status_history: list[StatusHistoryEntry] = []
    created_at: datetime
    updated_at: datetime


class OrderEnvelope(APIModel):
    success: bool = True
    message: Optional[str] = None
    order: OrderResponse


class OrderListResponse(APIModel):
    success: bool = True
    count: int
    orders: list[OrderResponse]


class CancelOrderRequest(APIModel):
    reason: Optional[str] = Field(None, max_length=500)


class OrderTracking(APIModel):
    order_number: str
    current_status: OrderStatus
    tracking_number: Optional[str] = None
    estimated_delivery: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    history: list[StatusHistoryEntry]


class TrackingResponse(APIModel):
    success: bool = True
    tracking: OrderTracking


class Invoice(APIModel):
    order_number: str
    order_date: datetime
    items: list[OrderItemResponse]
    subtotal: Money
    tax: Money
    shipping: Money
    discount: Money
    total: Money
    shipping_address: ShippingAddressSnapshot
    payment_method: PaymentMethod
    payment_status: OrderPaymentStatus


class InvoiceResponse(APIModel):
    success: bool = True
    message: Optional[str] = None
    invoice: Invoice


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================


class CreateOrderRequest(APIModel):
    # Optional here so missing fields get the checkout message, not a 422
    address_id: Optional[uuid.UUID] = None
    payment_method: Optional[str] = None
    coupon_code: Optional[str] = Field(None, max_length=50)


class GatewayOrderDescriptor(APIModel):
    """What the client needs to open the gateway checkout."""

    id: str
    amount: int
    currency: str
    key: str


class OrderCreatedResponse(APIModel):
    success: bool = True
    message: str
    order: OrderResponse
    payment_method: Optional[PaymentMethod] = None
    razorpay_order: Optional[GatewayOrderDescriptor] = None


class VerifyPaymentRequest(BaseModel):
    """Gateway checkout callback; field names are fixed by the gateway SDK."""

    model_config = ConfigDict(populate_by_name=True)

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    order_id: Optional[uuid.UUID] = Field(None, alias="orderId")


class PaymentErrorDetail(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: Optional[str] = None
    description: Optional[str] = None
    reason: Optional[str] = None


class PaymentFailedRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    error: Optional[PaymentErrorDetail] = None


class PaymentResponse(APIModel):
    id: uuid.UUID
    order_id: uuid.UUID
    payment_method: PaymentMethod
    payment_gateway: PaymentGatewayName
    amount: Money
    currency: str
    status: PaymentStatus
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    transaction_id: Optional[str] = None
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime


class PaymentVerifiedResponse(APIModel):
    success: bool = True
    message: str
    order: OrderResponse
    payment: PaymentResponse


# ============================================================================
# NOTIFICATION SCHEMAS
# ============================================================================


class NotificationResponse(APIModel):
    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    related_order_id: Optional[uuid.UUID] = None
    is_read: bool
    sent_via: dict[str, Any] = {}
    created_at: datetime


class NotificationListResponse(APIModel):
    success: bool = True
    notifications: list[NotificationResponse]
    unread_count: int
    total: int
    total_pages: int
    current_page: int


class UnreadCountResponse(APIModel):
    success: bool = True
    unread_count: int


class ClearNotificationsResponse(APIModel):
    success: bool = True
    message: str
    deleted_count: int


# ============================================================================
# CATEGORY SCHEMAS
# ============================================================================


class CategoryResponse(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    parent: Optional[CategorySummary] = None
    level: int
    sort_order: int
    is_active: bool
    is_featured: bool
    created_at: datetime


class CategoryListResponse(APIModel):
    success: bool = True
    count: int
    total: int
    page: int
    total_pages: int
    categories: list[CategoryResponse]


class CategoryTreeNode(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    icon: Optional[str] = None
    level: int
    sort_order: int
    is_featured: bool
    subcategories: list["CategoryTreeNode"] = []


class CategoryTreeResponse(APIModel):
    success: bool = True
    tree: list[CategoryTreeNode]


class CategoryDetail(CategoryResponse):
    subcategories: list[CategorySummary] = []
    path: str


class CategoryEnvelope(APIModel):
    success: bool = True
    category: CategoryDetail


class CategoryProductsPage(APIModel):
    count: int
    total: int
    page: int
    total_pages: int
    data: list[ProductResponse]


class CategoryProductsResponse(APIModel):
    success: bool = True
    category: CategoryResponse
    products: CategoryProductsPage


# ============================================================================
# REVIEW SCHEMAS
# ============================================================================


class ReviewCreate(APIModel):
    product_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=100)
    comment: str = Field(..., min_length=1, max_length=1000)
    images: list[ProductImage] = []


class ReviewUpdate(APIModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, max_length=100)
    comment: Optional[str] = Field(None, min_length=1, max_length=1000)
    images: Optional[list[ProductImage]] = None


class ReviewReplyCreate(APIModel):
    message: str = Field(..., min_length=1, max_length=1000)


class ReviewStatusUpdate(APIModel):
    status: ReviewStatus


class ReviewProductSummary(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    price: Money
    images: list[ProductImage] = []


class ReviewResponse(APIModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product: Optional[ReviewProductSummary] = None
    user_id: str
    user_name: Optional[str] = None
    rating: int
    title: Optional[str] = None
    comment: str
    images: list[ProductImage] = []
    helpful_count: int
    verified: bool
    status: ReviewStatus
    response_message: Optional[str] = None
    responded_by: Optional[str] = None
    responded_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ReviewEnvelope(APIModel):
    success: bool = True
    message: Optional[str] = None
    review: ReviewResponse


class RatingBucket(APIModel):
    rating: int
    count: int


class ProductReviewsResponse(APIModel):
    success: bool = True
    count: int
    total: int
    page: int
    total_pages: int
    rating_summary: list[RatingBucket]
    reviews: list[ReviewResponse]


class ReviewListResponse(APIModel):
    success: bool = True
    count: int
    total: int
    page: int
    total_pages: int
    reviews: list[ReviewResponse]
    # Admin listing only: review count per status
    stats: Optional[dict[str, int]] = None


class HelpfulResponse(APIModel):
    success: bool = True
    message: str
    helpful_count: int


# ============================================================================
# WISHLIST SCHEMAS
# ============================================================================


class WishlistProductRequest(APIModel):
    # Optional here so a missing id gets the wishlist message, not a generic one
    product_id: Optional[uuid.UUID] = None


class WishlistItemResponse(APIModel):
    """A wishlist entry flattened onto its product."""

    id: uuid.UUID
    slug: str
    name: str
    price: Money
    discount_price: Optional[Money] = None
    final_price: Money
    images: list[ProductImage] = []
    stock: int
    is_active: bool
    average_rating: float = 0.0
    num_reviews: int = 0
    added_at: datetime


class WishlistResponse(APIModel):
    success: bool = True
    message: Optional[str] = None
    total_items: int
    wishlist_items: list[WishlistItemResponse]


class WishlistToggleResponse(WishlistResponse):
    is_added: bool


class WishlistCheckResponse(APIModel):
    success: bool = True
    in_wishlist: bool


# ============================================================================
# SEARCH SCHEMAS
# ============================================================================


class SearchResponse(APIModel):
    success: bool = True
    count: int
    total: int
    total_pages: int
    current_page: int
    products: list[ProductResponse]


class AutocompleteResponse(APIModel):
    success: bool = True
    suggestions: list[str]


class PriceRange(APIModel):
    min_price: Money
    max_price: Money


class CategoryOption(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    icon: Optional[str] = None


class SearchFilters(APIModel):
    brands: list[str]
    price_range: PriceRange
    categories: list[CategoryOption]
    ratings: list[int] = [5, 4, 3, 2, 1]


class FilterOptionsResponse(APIModel):
    success: bool = True
    filters: SearchFilters
