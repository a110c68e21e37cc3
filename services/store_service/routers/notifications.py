"""Store notifications router: inbox endpoints and the live push socket."""

import math
import uuid
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from jose import JWTError
from libs.auth.dependencies import decode_access_token, require_buyer
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from pydantic import ValidationError
from services.store_service.connections import (
    ConnectionRegistry,
    get_websocket_registry,
)
from services.store_service.models import Notification
from services.store_service.schemas import (
    ClearNotificationsResponse,
    MessageResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(tags=["notifications"])


async def count_unread(db: AsyncSession, user_id: str) -> int:
    return (
        await db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id, Notification.is_read.is_(False)
            )
        )
        or 0
    )


async def get_user_notification(
    db: AsyncSession, notification_id: uuid.UUID, user_id: str
) -> Notification:
    notification = await db.scalar(
        select(Notification).where(
            Notification.id == notification_id, Notification.user_id == user_id
        )
    )
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False, alias="unreadOnly"),
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """List notifications, newest first."""
    filters = [Notification.user_id == current_user.user_id]
    if unread_only:
        filters.append(Notification.is_read.is_(False))

    total = await db.scalar(select(func.count(Notification.id)).where(*filters)) or 0
    result = await db.execute(
        select(Notification)
        .where(*filters)
        .order_by(Notification.created_at.desc(), Notification.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    notifications = result.scalars().all()

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=await count_unread(db, current_user.user_id),
        total=total,
        total_pages=math.ceil(total / limit),
        current_page=page,
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    return UnreadCountResponse(
        unread_count=await count_unread(db, current_user.user_id)
    )


@router.put("/notifications/read-all", response_model=MessageResponse)
async def mark_all_as_read(
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    await db.execute(
        update(Notification)
        .where(
            Notification.user_id == current_user.user_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return MessageResponse(message="All notifications marked as read")


@router.put("/notifications/{notification_id}/read", response_model=MessageResponse)
async def mark_as_read(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    notification = await get_user_notification(
        db, notification_id, current_user.user_id
    )
    notification.is_read = True
    await db.commit()
    return MessageResponse(message="Notification marked as read")


@router.delete("/notifications/clear-all", response_model=ClearNotificationsResponse)
async def clear_all_notifications(
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        delete(Notification)
        .where(Notification.user_id == current_user.user_id)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return ClearNotificationsResponse(
        message="All notifications cleared", deleted_count=result.rowcount
    )


@router.delete("/notifications/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    notification = await get_user_notification(
        db, notification_id, current_user.user_id
    )
    await db.delete(notification)
    await db.commit()
    return MessageResponse(message="Notification deleted")


# ============================================================================
# LIVE PUSH
# ============================================================================


@router.websocket("/notifications/ws")
async def notifications_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    registry: ConnectionRegistry = Depends(get_websocket_registry),
):
    """Push channel for new notifications, authenticated with ``?token=``."""
    try:
        user = decode_access_token(token) if token else None
    except (JWTError, ValidationError):
        user = None
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    try:
        await registry.connect(user.user_id, websocket)
    except RuntimeError:
        await websocket.close(code=status.WS_1001_GOING_AWAY)
        return

    try:
        await websocket.send_json({"type": "connected", "userId": user.user_id})
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.debug("Push socket closed by client for user %s", user.user_id)
    finally:
        await registry.disconnect(user.user_id, websocket)
