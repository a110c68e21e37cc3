"""Product review models."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import ReviewStatus, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Review(Base):
    """A customer's review of a product (one per user per product)."""

    __tablename__ = "store_reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_products.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    # Display name from the token at write time
    user_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    # [{"url": "...", "alt": "..."}]
    images: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    helpful_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # True when the author has a delivered order containing the product
    verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[ReviewStatus] = mapped_column(
        SAEnum(
            ReviewStatus,
            values_callable=enum_values,
            name="store_review_status_enum",
        ),
        default=ReviewStatus.APPROVED,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Seller or admin reply
    response_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    responded_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint("product_id", "user_id", name="unique_product_reviewer"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="review_rating_range"),
        Index("ix_store_reviews_product_created", "product_id", "created_at"),
    )

    # Relationships
    product = relationship("Product")
    helpful_votes = relationship(
        "ReviewHelpfulVote", back_populates="review", cascade="all, delete-orphan"
    )

    def mark_helpful(self, user_id: str) -> bool:
        """Record a helpful vote; returns False when ``user_id`` already voted."""
        if any(vote.user_id == user_id for vote in self.helpful_votes):
            return False
        self.helpful_votes.append(ReviewHelpfulVote(user_id=user_id))
        self.helpful_count = len(self.helpful_votes)
        return True

    def unmark_helpful(self, user_id: str) -> None:
        self.helpful_votes = [
            vote for vote in self.helpful_votes if vote.user_id != user_id
        ]
        self.helpful_count = len(self.helpful_votes)

    def __repr__(self):
        return f"<Review {self.rating}* product={self.product_id}>"


class ReviewHelpfulVote(Base):
    """One user's "helpful" mark on a review."""

    __tablename__ = "store_review_helpful_votes"

    review_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_reviews.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    review = relationship("Review", back_populates="helpful_votes")
