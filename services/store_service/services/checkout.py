"""Checkout flow: cart to order, payment branches, verification, cancellation.

Order state machine:
    pending -> confirmed        (cash on delivery, or verified online payment)
    pending -> payment_failed   (gateway reported failure)
    payment_failed -> confirmed (verified retry on the same gateway order)
    pending/confirmed -> cancelled (final)

Notifications and emails run after the primary commit and never fail the
operation that triggered them.
"""

import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.store_service.gateway import GatewayOrder, PaymentGateway
from services.store_service.models import (
    CANCELLABLE_STATUSES,
    PAYABLE_STATUSES,
    Address,
    Cart,
    CartItem,
    Coupon,
    NotificationPriority,
    NotificationType,
    Order,
    OrderItem,
    OrderPaymentStatus,
    OrderStatus,
    OrderStatusHistory,
    Payment,
    PaymentGatewayName,
    PaymentMethod,
    PaymentStatus,
)
from services.store_service.pricing import (
    PricingBreakdown,
    compute_pricing,
    coupon_discount,
    coupon_rejection,
)
from services.store_service.services.inventory import (
    decrement_stock,
    decrement_stock_with_floor,
    ensure_stock,
)
from services.store_service.services.notifications import NotificationDispatcher
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


@dataclass
class CheckoutLine:
    product_id: uuid.UUID
    name: str
    price: Decimal
    quantity: int
    images: list = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return self.price * self.quantity


# ============================================================================
# LOOKUPS
# ============================================================================


async def load_cart(db: AsyncSession, user_id: str) -> Optional[Cart]:
    result = await db.execute(
        select(Cart)
        .where(Cart.user_id == user_id)
        .options(selectinload(Cart.items).selectinload(CartItem.product))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def delete_cart(db: AsyncSession, user_id: str) -> None:
    """Delete the user's cart and its items (not committed)."""
    cart_ids = select(Cart.id).where(Cart.user_id == user_id)
    await db.execute(
        delete(CartItem)
        .where(CartItem.cart_id.in_(cart_ids))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Cart)
        .where(Cart.user_id == user_id)
        .execution_options(synchronize_session=False)
    )


async def load_order(
    db: AsyncSession, order_id: uuid.UUID, user_id: Optional[str] = None
) -> Optional[Order]:
    """Fetch an order with items and history, refreshing any cached copy."""
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items), selectinload(Order.status_history))
        .execution_options(populate_existing=True)
    )
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_user_order(db: AsyncSession, order_id: uuid.UUID, user_id: str) -> Order:
    order = await load_order(db, order_id, user_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Order not found"
        )
    return order


async def find_active_coupon(db: AsyncSession, code: Optional[str]) -> Optional[Coupon]:
    """Active, unexpired coupon by code (case-insensitive input)."""
    if not code or not code.strip():
        return None
    result = await db.execute(
        select(Coupon).where(
            Coupon.code == code.strip().upper(),
            Coupon.is_active.is_(True),
            Coupon.valid_until >= utc_now(),
        )
    )
    return result.scalar_one_or_none()


def resolve_payment_method(value: Optional[str]) -> PaymentMethod:
    try:
        return PaymentMethod((value or "").lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payment method"
        )


def checkout_lines(cart: Cart) -> list[CheckoutLine]:
    """Lines priced at the product's live price; lines whose product is gone are skipped."""
    lines = []
    for item in cart.items:
        product = item.product
        if product is None:
            continue
        lines.append(
            CheckoutLine(
                product_id=product.id,
                name=product.name,
                price=product.price,
                quantity=item.quantity,
                images=list(product.images or []),
            )
        )
    return lines


def items_total(lines: list[CheckoutLine]) -> Decimal:
    return sum((line.total for line in lines), Decimal("0"))


async def price_with_coupon(
    db: AsyncSession, items_price: Decimal, coupon_code: Optional[str]
) -> tuple[PricingBreakdown, Optional[Coupon]]:
    """Price the order, applying the coupon only when it is eligible.

    An unknown or ineligible coupon is ignored rather than rejected.
    """
    coupon = await find_active_coupon(db, coupon_code)
    if coupon is not None and coupon_rejection(coupon, items_price) is None:
        return compute_pricing(items_price, coupon_discount(coupon, items_price)), coupon
    return compute_pricing(items_price), None


def _add_history(db: AsyncSession, order: Order, order_status: str, note: str) -> None:
    db.add(OrderStatusHistory(order_id=order.id, status=order_status, note=note))


def _money(value: Decimal, currency: str) -> str:
    return f"{currency} {value:.2f}"


# ============================================================================
# ORDER CREATION
# ============================================================================


async def _build_order(
    db: AsyncSession,
    user: AuthUser,
    address_id: Optional[uuid.UUID],
    payment_method: Optional[str],
    coupon_code: Optional[str],
) -> tuple[Order, list[CheckoutLine]]:
    """Validate the checkout and stage a pending order in the session."""
    if not address_id or not payment_method:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please provide address and payment method",
        )
    method = resolve_payment_method(payment_method)

    cart = await load_cart(db, user.user_id)
    if not cart or not cart.items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Cart is empty"
        )

    address = await db.scalar(
        select(Address).where(Address.id == address_id, Address.user_id == user.user_id)
    )
    if not address:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Address not found"
        )

    for item in cart.items:
        if item.product is not None:
            ensure_stock(item.product, item.quantity)

    lines = checkout_lines(cart)
    if not lines:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Cart is empty"
        )

    pricing, coupon = await price_with_coupon(db, items_total(lines), coupon_code)
    if coupon is not None:
        # Optimistic read-modify-write; concurrent redemptions may overshoot the limit
        coupon.used_count += 1

    settings = get_settings()
    order = Order(
        id=uuid.uuid4(),
        order_number=Order.generate_order_number(),
        user_id=user.user_id,
        shipping_address=address.snapshot(),
        payment_method=method,
        items_price=pricing.items_price,
        discount_amount=pricing.discount_amount,
        tax_price=pricing.tax_price,
        shipping_price=pricing.shipping_price,
        total_price=pricing.total_price,
        coupon_code=coupon.code if coupon else None,
        order_status=OrderStatus.PENDING,
        payment_status=OrderPaymentStatus.PENDING,
        estimated_delivery_date=utc_now()
        + timedelta(days=settings.ESTIMATED_DELIVERY_DAYS),
    )
    db.add(order)
    for line in lines:
        db.add(
            OrderItem(
                order_id=order.id,
                product_id=line.product_id,
                name=line.name,
                price=line.price,
                quantity=line.quantity,
                images=line.images,
            )
        )
    _add_history(db, order, OrderStatus.PENDING.value, "Order placed")
    return order, lines


async def _confirm_cod_order(
    db: AsyncSession,
    user: AuthUser,
    dispatcher: NotificationDispatcher,
    order: Order,
    lines: list[CheckoutLine],
) -> Order:
    """Confirm a staged cash-on-delivery order.

    The order, payment row, stock decrements and cart removal commit together;
    if any line can no longer be covered nothing is written.
    """
    order.order_status = OrderStatus.CONFIRMED
    _add_history(
        db, order, OrderStatus.CONFIRMED.value, "Order confirmed - Cash on Delivery"
    )
    db.add(
        Payment(
            order_id=order.id,
            user_id=user.user_id,
            payment_method=PaymentMethod.COD,
            payment_gateway=PaymentGatewayName.COD,
            amount=order.total_price,
            currency=get_settings().CURRENCY,
            status=PaymentStatus.PENDING,
        )
    )
    await db.flush()

    for line in lines:
        if not await decrement_stock(db, line.product_id, line.quantity):
            await db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient stock for {line.name}",
            )

    await delete_cart(db, user.user_id)
    await db.commit()
    order_id, order_number = order.id, order.order_number
    logger.info(
        "COD order placed",
        extra={
            "extra_fields": {
                "order_number": order_number,
                "user_id": user.user_id,
                "total": str(order.total_price),
            }
        },
    )

    await dispatcher.notify_best_effort(
        db,
        user.user_id,
        type=NotificationType.ORDER,
        title="Order Confirmed",
        message=f"Your order #{order_number} has been confirmed",
        related_order_id=order_id,
    )
    return await load_order(db, order_id)


async def _start_online_payment(
    db: AsyncSession,
    user: AuthUser,
    gateway: PaymentGateway,
    order: Order,
) -> tuple[Order, GatewayOrder]:
    """Commit the staged order and open the gateway order the client pays against.

    The order is committed before the gateway is called; a gateway error
    propagates and leaves the pending order without a payment row.
    """
    await db.commit()

    remote = await gateway.create_remote_order(order.total_price, order.order_number)

    db.add(
        Payment(
            order_id=order.id,
            user_id=user.user_id,
            payment_method=order.payment_method,
            payment_gateway=PaymentGatewayName.RAZORPAY,
            amount=order.total_price,
            currency=remote.currency,
            razorpay_order_id=remote.id,
            status=PaymentStatus.PENDING,
        )
    )
    await db.commit()
    logger.info(
        "Online order awaiting payment",
        extra={
            "extra_fields": {
                "order_number": order.order_number,
                "gateway_order_id": remote.id,
                "amount_minor": remote.amount,
            }
        },
    )
    return await load_order(db, order.id), remote


@dataclass
class PlacedOrder:
    order: Order
    gateway_order: Optional[GatewayOrder] = None


async def place_order(
    db: AsyncSession,
    user: AuthUser,
    gateway: PaymentGateway,
    dispatcher: NotificationDispatcher,
    *,
    address_id: Optional[uuid.UUID],
    payment_method: Optional[str],
    coupon_code: Optional[str] = None,
) -> PlacedOrder:
    """Turn the user's cart into an order and branch on the payment method.

    Cash on delivery is confirmed within the request. Online methods leave the
    order pending and return the gateway order to pay against.
    """
    order, lines = await _build_order(
        db, user, address_id, payment_method, coupon_code
    )
    if order.payment_method.is_online:
        order, remote = await _start_online_payment(db, user, gateway, order)
        return PlacedOrder(order=order, gateway_order=remote)

    order = await _confirm_cod_order(db, user, dispatcher, order, lines)
    return PlacedOrder(order=order)


# ============================================================================
# PAYMENT VERIFICATION
# ============================================================================


async def confirm_online_payment(
    db: AsyncSession,
    user: AuthUser,
    gateway: PaymentGateway,
    dispatcher: NotificationDispatcher,
    *,
    razorpay_order_id: str,
    razorpay_payment_id: str,
    razorpay_signature: str,
    order_id: Optional[uuid.UUID] = None,
) -> tuple[Order, Payment, bool]:
    """Confirm an order once the gateway signature checks out.

    Returns ``(order, payment, newly_confirmed)``; replaying a verified payment
    returns the order unchanged with ``newly_confirmed=False``.
    """
    if not gateway.verify_signature(
        razorpay_order_id, razorpay_payment_id, razorpay_signature
    ):
        logger.warning(
            "Payment signature mismatch",
            extra={
                "extra_fields": {
                    "gateway_order_id": razorpay_order_id,
                    "user_id": user.user_id,
                }
            },
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payment verification failed",
        )

    payment = await db.scalar(
        select(Payment).where(
            Payment.razorpay_order_id == razorpay_order_id,
            Payment.user_id == user.user_id,
        )
    )
    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Payment record not found"
        )
    if order_id is not None and payment.order_id != order_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payment does not belong to this order",
        )

    order = await load_order(db, payment.order_id)
    if payment.status == PaymentStatus.COMPLETED:
        return order, payment, False
    if order.order_status not in PAYABLE_STATUSES:
        logger.warning(
            "Payment verified for order no longer awaiting payment",
            extra={
                "extra_fields": {
                    "order_number": order.order_number,
                    "order_status": order.order_status.value,
                    "payment_id": razorpay_payment_id,
                }
            },
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order cannot be confirmed",
        )

    now = utc_now()
    payment.status = PaymentStatus.COMPLETED
    payment.razorpay_payment_id = razorpay_payment_id
    payment.razorpay_signature = razorpay_signature
    payment.transaction_id = razorpay_payment_id
    payment.failure_reason = None
    payment.paid_at = now

    order.payment_status = OrderPaymentStatus.COMPLETED
    order.order_status = OrderStatus.CONFIRMED
    order.updated_at = now
    _add_history(
        db, order, OrderStatus.CONFIRMED.value, "Payment successful - Order confirmed"
    )

    # Payment is captured, so stock can only be clipped, not refused
    for item in order.items:
        await decrement_stock_with_floor(db, item.product_id, item.quantity)

    await delete_cart(db, user.user_id)
    await db.commit()
    order_id, order_number = order.id, order.order_number
    payment_pk, amount, currency = payment.id, payment.amount, payment.currency
    logger.info(
        "Payment verified",
        extra={
            "extra_fields": {
                "order_number": order_number,
                "payment_id": razorpay_payment_id,
            }
        },
    )

    await dispatcher.notify_best_effort(
        db,
        user.user_id,
        type=NotificationType.PAYMENT,
        title="Payment Successful",
        message=f"Payment of {_money(amount, currency)} completed successfully",
        related_order_id=order_id,
    )
    await dispatcher.notify_best_effort(
        db,
        user.user_id,
        type=NotificationType.ORDER,
        title="Order Confirmed",
        message=f"Your order #{order_number} has been confirmed",
        related_order_id=order_id,
    )

    order = await load_order(db, order_id)
    payment = await db.get(Payment, payment_pk, populate_existing=True)
    return order, payment, True


async def record_payment_failure(
    db: AsyncSession,
    user: AuthUser,
    dispatcher: NotificationDispatcher,
    *,
    razorpay_order_id: str,
    reason: Optional[str] = None,
) -> Optional[Order]:
    """Mark a pending online payment and its order as failed.

    Unknown or already completed payments are left alone, and so are orders
    that are no longer awaiting payment. Only a ``pending`` order moves to
    ``payment_failed``; a failed retry just updates the payment row.
    """
    payment = await db.scalar(
        select(Payment).where(
            Payment.razorpay_order_id == razorpay_order_id,
            Payment.user_id == user.user_id,
        )
    )
    if payment is None:
        logger.info(
            "Failure reported for unknown gateway order %s", razorpay_order_id
        )
        return None
    if payment.status == PaymentStatus.COMPLETED:
        logger.warning(
            "Ignoring failure report for completed payment %s", razorpay_order_id
        )
        return None

    order = await load_order(db, payment.order_id)
    if order is None or order.order_status not in PAYABLE_STATUSES:
        logger.warning(
            "Ignoring failure report for order no longer awaiting payment %s",
            razorpay_order_id,
        )
        return None

    payment.status = PaymentStatus.FAILED
    payment.failure_reason = reason or "Payment failed"
    if order.order_status != OrderStatus.PENDING:
        await db.commit()
        return await load_order(db, order.id)

    order.payment_status = OrderPaymentStatus.FAILED
    order.order_status = OrderStatus.PAYMENT_FAILED
    order.updated_at = utc_now()
    _add_history(db, order, OrderStatus.PAYMENT_FAILED.value, "Payment failed")
    await db.commit()

    order_id = order.id
    await dispatcher.notify_best_effort(
        db,
        user.user_id,
        type=NotificationType.PAYMENT,
        title="Payment Failed",
        message="Your payment could not be processed. Please try again.",
        related_order_id=order_id,
        priority=NotificationPriority.HIGH,
    )
    return await load_order(db, order_id)


# ============================================================================
# CANCELLATION
# ============================================================================


async def cancel_order(
    db: AsyncSession,
    user: AuthUser,
    dispatcher: NotificationDispatcher,
    order_id: uuid.UUID,
    reason: Optional[str] = None,
) -> Order:
    """Cancel a pending or confirmed order. Stock is not restored."""
    order = await get_user_order(db, order_id, user.user_id)
    if order.order_status not in CANCELLABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order cannot be cancelled at this stage",
        )

    now = utc_now()
    order.order_status = OrderStatus.CANCELLED
    order.cancelled_at = now
    order.updated_at = now
    _add_history(
        db, order, OrderStatus.CANCELLED.value, reason or "Cancelled by customer"
    )
    await db.commit()
    order_number = order.order_number

    await dispatcher.notify_best_effort(
        db,
        user.user_id,
        type=NotificationType.ORDER,
        title="Order Cancelled",
        message=f"Your order #{order_number} has been cancelled",
        related_order_id=order_id,
    )
    return await load_order(db, order_id)
