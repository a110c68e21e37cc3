"""Store orders router: order history, cancellation, tracking, invoices."""

import uuid
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from libs.auth.dependencies import require_buyer
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Order, OrderStatus
from services.store_service.schemas import (
    CancelOrderRequest,
    Invoice,
    InvoiceResponse,
    OrderEnvelope,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    OrderTracking,
    StatusHistoryEntry,
    TrackingResponse,
)
from services.store_service.services.checkout import cancel_order, get_user_order
from services.store_service.services.notifications import (
    NotificationDispatcher,
    get_notification_dispatcher,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["orders"])


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """List the user's orders, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == current_user.user_id)
        .options(selectinload(Order.items), selectinload(Order.status_history))
        .order_by(Order.created_at.desc())
    )
    orders = result.scalars().all()
    return OrderListResponse(
        count=len(orders),
        orders=[OrderResponse.model_validate(o) for o in orders],
    )


@router.get("/orders/{order_id}", response_model=OrderEnvelope)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    order = await get_user_order(db, order_id, current_user.user_id)
    return OrderEnvelope(order=OrderResponse.model_validate(order))


@router.put("/orders/{order_id}/cancel", response_model=OrderEnvelope)
async def cancel_user_order(
    order_id: uuid.UUID,
    payload: Optional[CancelOrderRequest] = Body(None),
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Cancel an order that has not started processing."""
    order = await cancel_order(
        db,
        current_user,
        dispatcher,
        order_id,
        reason=payload.reason if payload else None,
    )
    return OrderEnvelope(
        message="Order cancelled successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get("/orders/{order_id}/track", response_model=TrackingResponse)
async def track_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    order = await get_user_order(db, order_id, current_user.user_id)
    return TrackingResponse(
        tracking=OrderTracking(
            order_number=order.order_number,
            current_status=order.order_status,
            tracking_number=order.tracking_number,
            estimated_delivery=order.estimated_delivery_date,
            delivered_at=order.delivered_at,
            history=[
                StatusHistoryEntry.model_validate(h) for h in order.status_history
            ],
        )
    )


@router.get("/orders/{order_id}/invoice", response_model=InvoiceResponse)
async def get_invoice(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Invoice data for a delivered order."""
    order = await get_user_order(db, order_id, current_user.user_id)
    if order.order_status != OrderStatus.DELIVERED:
        raise HTTPException(
            status_code=400, detail="Invoice is only available for delivered orders"
        )

    return InvoiceResponse(
        invoice=Invoice(
            order_number=order.order_number,
            order_date=order.created_at,
            items=[OrderItemResponse.model_validate(i) for i in order.items],
            subtotal=order.items_price,
            tax=order.tax_price,
            shipping=order.shipping_price,
            discount=order.discount_amount,
            total=order.total_price,
            shipping_address=order.shipping_address,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
        )
    )
