"""Review bookkeeping: loading, verified-purchase checks and product rating totals."""

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from fastapi import HTTPException, status
from libs.common.logging import get_logger
from services.store_service.models import (
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Review,
    ReviewStatus,
)
from services.store_service.models.catalog import empty_rating_distribution
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def review_query():
    """Select reviews with everything the response needs loaded."""
    return select(Review).options(
        selectinload(Review.product), selectinload(Review.helpful_votes)
    )


async def load_review(db: AsyncSession, review_id: uuid.UUID) -> Optional[Review]:
    result = await db.execute(
        review_query()
        .where(Review.id == review_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_review_or_404(db: AsyncSession, review_id: uuid.UUID) -> Review:
    review = await load_review(db, review_id)
    if not review:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Review not found"
        )
    return review


async def has_delivered_purchase(
    db: AsyncSession, user_id: str, product_id: uuid.UUID
) -> bool:
    """Whether ``user_id`` has a delivered order containing ``product_id``."""
    found = await db.scalar(
        select(OrderItem.id)
        .join(Order, Order.id == OrderItem.order_id)
        .where(
            Order.user_id == user_id,
            Order.order_status == OrderStatus.DELIVERED,
            OrderItem.product_id == product_id,
        )
        .limit(1)
    )
    return found is not None


async def recalculate_product_rating(db: AsyncSession, product_id: uuid.UUID) -> None:
    """Rewrite the product's rating summary from its approved, active reviews.

    Pending review changes are flushed first; the caller commits.
    """
    await db.flush()
    result = await db.execute(
        select(Review.rating, func.count(Review.id))
        .where(
            Review.product_id == product_id,
            Review.status == ReviewStatus.APPROVED,
            Review.is_active.is_(True),
        )
        .group_by(Review.rating)
    )
    distribution = empty_rating_distribution()
    for rating, count in result.all():
        distribution[str(rating)] = count

    total = sum(distribution.values())
    average = Decimal("0")
    if total:
        stars = sum(int(rating) * count for rating, count in distribution.items())
        average = (Decimal(stars) / Decimal(total)).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )

    product = await db.get(Product, product_id)
    if product is None:
        logger.warning("Product %s no longer exists, rating not updated", product_id)
        return
    product.average_rating = float(average)
    product.num_reviews = total
    product.rating_distribution = distribution
