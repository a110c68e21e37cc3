"""Store payment router: order creation, gateway verification, failures."""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from libs.auth.dependencies import require_buyer
from libs.auth.models import AuthUser
from libs.common.emails.client import EmailClient, get_email_client
from libs.db.session import get_async_db
from services.store_service.gateway import PaymentGateway, get_payment_gateway
from services.store_service.schemas import (
    CreateOrderRequest,
    GatewayOrderDescriptor,
    MessageResponse,
    OrderCreatedResponse,
    OrderResponse,
    PaymentFailedRequest,
    PaymentResponse,
    PaymentVerifiedResponse,
    VerifyPaymentRequest,
)
from services.store_service.services.checkout import (
    confirm_online_payment,
    place_order,
    record_payment_failure,
)
from services.store_service.services.notifications import (
    NotificationDispatcher,
    get_notification_dispatcher,
    schedule_order_confirmation_email,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["payments"])


@router.post(
    "/payment/create-order",
    response_model=OrderCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    payload: CreateOrderRequest,
    background_tasks: BackgroundTasks,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    email_client: EmailClient = Depends(get_email_client),
):
    """Place an order from the cart.

    Cash on delivery confirms immediately. Online methods return the gateway
    order the client must pay before calling ``/payment/verify``.
    """
    placed = await place_order(
        db,
        current_user,
        gateway,
        dispatcher,
        address_id=payload.address_id,
        payment_method=payload.payment_method,
        coupon_code=payload.coupon_code,
    )
    order = placed.order

    if placed.gateway_order is not None:
        remote = placed.gateway_order
        return OrderCreatedResponse(
            message="Order created, proceed with payment",
            order=OrderResponse.model_validate(order),
            razorpay_order=GatewayOrderDescriptor(
                id=remote.id,
                amount=remote.amount,
                currency=remote.currency,
                key=gateway.key_id,
            ),
        )

    schedule_order_confirmation_email(background_tasks, email_client, current_user, order)
    return OrderCreatedResponse(
        message="Order placed successfully",
        order=OrderResponse.model_validate(order),
        payment_method=order.payment_method,
    )


@router.post("/payment/verify", response_model=PaymentVerifiedResponse)
async def verify_payment(
    payload: VerifyPaymentRequest,
    background_tasks: BackgroundTasks,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    email_client: EmailClient = Depends(get_email_client),
):
    """Verify the gateway signature and confirm the order."""
    order, payment, newly_confirmed = await confirm_online_payment(
        db,
        current_user,
        gateway,
        dispatcher,
        razorpay_order_id=payload.razorpay_order_id,
        razorpay_payment_id=payload.razorpay_payment_id,
        razorpay_signature=payload.razorpay_signature,
        order_id=payload.order_id,
    )
    if newly_confirmed:
        schedule_order_confirmation_email(
            background_tasks, email_client, current_user, order
        )

    return PaymentVerifiedResponse(
        message="Payment verified and order confirmed",
        order=OrderResponse.model_validate(order),
        payment=PaymentResponse.model_validate(payment),
    )


@router.post("/payment/failed", response_model=MessageResponse)
async def payment_failed(
    payload: PaymentFailedRequest,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Record a failed gateway payment reported by the client."""
    await record_payment_failure(
        db,
        current_user,
        dispatcher,
        razorpay_order_id=payload.razorpay_order_id,
        reason=payload.error.description if payload.error else None,
    )
    return MessageResponse(message="Payment failure recorded")
