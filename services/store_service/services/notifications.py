"""In-app notifications, live push, and best-effort side effects."""

import uuid
from typing import Any, Awaitable, Callable, Optional

from fastapi import BackgroundTasks, Depends
from libs.auth.models import AuthUser
from libs.common.emails.client import EmailClient
from libs.common.logging import get_logger
from services.store_service.connections import (
    ConnectionRegistry,
    get_connection_registry,
)
from services.store_service.models import (
    Notification,
    NotificationPriority,
    NotificationType,
    Order,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def run_best_effort(
    label: str,
    func: Callable[..., Awaitable[Any]],
    *args,
    session: Optional[AsyncSession] = None,
    **kwargs,
) -> Any:
    """Await ``func(*args, **kwargs)``, logging and discarding any failure.

    When ``session`` is given it is rolled back after a failure so the caller
    can keep using it. Returns the side effect's result, or None on failure.
    """
    try:
        return await func(*args, **kwargs)
    except Exception:
        logger.exception(
            "%s failed (non-critical)",
            label,
            extra={"extra_fields": {"side_effect": label}},
        )
        if session is not None:
            await session.rollback()
        return None


class NotificationDispatcher:
    """Persists notifications and pushes them to connected clients."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def notify(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        type: NotificationType,
        title: str,
        message: str,
        related_order_id: Optional[uuid.UUID] = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_order_id=related_order_id,
            priority=priority,
            sent_via={"in_app": True, "push": False},
        )
        db.add(notification)
        await db.commit()

        if self.registry.is_connected(user_id):
            delivered = await self.registry.send_to_user(
                user_id,
                {
                    "id": str(notification.id),
                    "type": notification.type.value,
                    "title": notification.title,
                    "message": notification.message,
                    "timestamp": notification.created_at.isoformat(),
                },
            )
            if delivered:
                notification.sent_via = {"in_app": True, "push": True}
                await db.commit()

        return notification

    async def notify_best_effort(
        self,
        db: AsyncSession,
        user_id: str,
        *,
        type: NotificationType,
        title: str,
        message: str,
        related_order_id: Optional[uuid.UUID] = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
    ) -> Optional[Notification]:
        """``notify`` that logs failures and rolls the session back instead of raising.

        A rollback expires loaded instances, so callers pass plain values and
        reload what they need afterwards.
        """
        return await run_best_effort(
            f"'{title}' notification for user {user_id}",
            self.notify,
            db,
            user_id,
            type=type,
            title=title,
            message=message,
            related_order_id=related_order_id,
            priority=priority,
            session=db,
        )


def get_notification_dispatcher(
    registry: ConnectionRegistry = Depends(get_connection_registry),
) -> NotificationDispatcher:
    return NotificationDispatcher(registry)


# ============================================================================
# ORDER EMAILS
# ============================================================================


def order_email_data(user: AuthUser, order: Order) -> dict:
    """Template data for the order confirmation email."""
    return {
        "customer_name": user.name or user.email,
        "order_number": order.order_number,
        "items": [
            {
                "name": item.name,
                "quantity": item.quantity,
                "price": str(item.price),
            }
            for item in order.items
        ],
        "items_price": str(order.items_price),
        "discount_amount": str(order.discount_amount),
        "tax_price": str(order.tax_price),
        "shipping_price": str(order.shipping_price),
        "total_price": str(order.total_price),
        "payment_method": order.payment_method.value,
        "shipping_address": dict(order.shipping_address),
        "estimated_delivery_date": (
            order.estimated_delivery_date.isoformat()
            if order.estimated_delivery_date
            else None
        ),
    }


def schedule_order_confirmation_email(
    background_tasks: BackgroundTasks,
    email_client: EmailClient,
    user: AuthUser,
    order: Order,
) -> None:
    """Queue the confirmation email to run after the response is sent."""
    if not user.email:
        logger.info(
            "No email on token for user %s, skipping confirmation for %s",
            user.user_id,
            order.order_number,
        )
        return

    background_tasks.add_task(
        run_best_effort,
        f"Order confirmation email for {order.order_number}",
        email_client.send_template,
        template_type="order_confirmation",
        to_email=str(user.email),
        template_data=order_email_data(user, order),
    )
