"""In-app notification model."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import (
    NotificationPriority,
    NotificationType,
    enum_values,
)
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Notification(Base):
    """Notifications shown in the user's inbox and pushed to live sockets."""

    __tablename__ = "store_notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[NotificationType] = mapped_column(
        SAEnum(
            NotificationType,
            values_callable=enum_values,
            name="store_notification_type_enum",
        ),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[NotificationPriority] = mapped_column(
        SAEnum(
            NotificationPriority,
            values_callable=enum_values,
            name="store_notification_priority_enum",
        ),
        default=NotificationPriority.MEDIUM,
        nullable=False,
    )

    related_order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("store_orders.id", ondelete="SET NULL"), nullable=True
    )

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # {"in_app": true, "push": false}
    sent_via: Mapped[dict] = mapped_column(
        JSONType, default=lambda: {"in_app": True, "push": False}, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        Index("ix_store_notifications_user_read", "user_id", "is_read"),
    )

    def __repr__(self):
        return f"<Notification {self.type} {self.title!r}>"
