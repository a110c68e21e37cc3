"""Store reviews router: product reviews, helpful votes, seller replies, moderation."""

import math
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import get_current_user, require_admin, require_seller
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import Product, Review, ReviewStatus
from services.store_service.schemas import (
    HelpfulResponse,
    MessageResponse,
    ProductReviewsResponse,
    RatingBucket,
    ReviewCreate,
    ReviewEnvelope,
    ReviewListResponse,
    ReviewReplyCreate,
    ReviewResponse,
    ReviewStatusUpdate,
    ReviewUpdate,
)
from services.store_service.services.reviews import (
    get_review_or_404,
    has_delivered_purchase,
    load_review,
    recalculate_product_rating,
    review_query,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(tags=["reviews"])

SORT_ORDERS = {
    "newest": (Review.created_at.desc(),),
    "oldest": (Review.created_at.asc(),),
    "helpful": (Review.helpful_count.desc(), Review.created_at.desc()),
    "rating_high": (Review.rating.desc(), Review.created_at.desc()),
    "rating_low": (Review.rating.asc(), Review.created_at.desc()),
}


def _visible(product_id: uuid.UUID) -> list:
    return [
        Review.product_id == product_id,
        Review.status == ReviewStatus.APPROVED,
        Review.is_active.is_(True),
    ]


def _ensure_author(review: Review, user: AuthUser, action: str) -> None:
    if review.user_id != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to {action} this review",
        )


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================


@router.get("/reviews/product/{product_id}", response_model=ProductReviewsResponse)
async def list_product_reviews(
    product_id: uuid.UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    rating: Optional[int] = Query(None, ge=1, le=5),
    verified: bool = False,
    sort: Literal["newest", "oldest", "helpful", "rating_high", "rating_low"] = "newest",
    db: AsyncSession = Depends(get_async_db),
):
    """Approved reviews of a product with a per-star summary."""
    filters = _visible(product_id)
    if rating is not None:
        filters.append(Review.rating == rating)
    if verified:
        filters.append(Review.verified.is_(True))

    total = await db.scalar(select(func.count(Review.id)).where(*filters)) or 0
    result = await db.execute(
        review_query()
        .where(*filters)
        .order_by(*SORT_ORDERS[sort], Review.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    reviews = result.scalars().all()

    # Summary covers every visible review, regardless of the list filters
    summary = await db.execute(
        select(Review.rating, func.count(Review.id))
        .where(*_visible(product_id))
        .group_by(Review.rating)
        .order_by(Review.rating.desc())
    )

    return ProductReviewsResponse(
        count=len(reviews),
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
        rating_summary=[
            RatingBucket(rating=stars, count=count) for stars, count in summary.all()
        ],
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
    )


@router.get("/reviews/my/reviews", response_model=ReviewListResponse)
async def list_my_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """The current user's reviews, newest first, in any status."""
    condition = Review.user_id == current_user.user_id
    total = await db.scalar(select(func.count(Review.id)).where(condition)) or 0
    result = await db.execute(
        review_query()
        .where(condition)
        .order_by(Review.created_at.desc(), Review.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    reviews = result.scalars().all()

    return ReviewListResponse(
        count=len(reviews),
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
    )


@router.get("/reviews/admin/all", response_model=ReviewListResponse)
async def list_all_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    review_status: Optional[ReviewStatus] = Query(None, alias="status"),
    rating: Optional[int] = Query(None, ge=1, le=5),
    _: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Every review, for moderation, with a count per status."""
    filters = []
    if review_status is not None:
        filters.append(Review.status == review_status)
    if rating is not None:
        filters.append(Review.rating == rating)

    total = await db.scalar(select(func.count(Review.id)).where(*filters)) or 0
    result = await db.execute(
        review_query()
        .where(*filters)
        .order_by(Review.created_at.desc(), Review.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    reviews = result.scalars().all()

    stats = await db.execute(
        select(Review.status, func.count(Review.id)).group_by(Review.status)
    )

    return ReviewListResponse(
        count=len(reviews),
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        stats={
            (s.value if isinstance(s, ReviewStatus) else s): count
            for s, count in stats.all()
        },
    )


@router.get("/reviews/{review_id}", response_model=ReviewEnvelope)
async def get_review(
    review_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    review = await get_review_or_404(db, review_id)
    return ReviewEnvelope(review=ReviewResponse.model_validate(review))


# ============================================================================
# AUTHOR ENDPOINTS
# ============================================================================


@router.post(
    "/reviews", response_model=ReviewEnvelope, status_code=status.HTTP_201_CREATED
)
async def create_review(
    review_in: ReviewCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Review a product; each user reviews a product once."""
    product = await db.scalar(
        select(Product).where(
            Product.id == review_in.product_id, Product.is_active.is_(True)
        )
    )
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    existing = await db.scalar(
        select(Review.id).where(
            Review.product_id == product.id, Review.user_id == current_user.user_id
        )
    )
    if existing:
        raise HTTPException(
            status_code=400, detail="You have already reviewed this product"
        )

    review = Review(
        id=uuid.uuid4(),
        product_id=product.id,
        user_id=current_user.user_id,
        user_name=current_user.name,
        rating=review_in.rating,
        title=review_in.title,
        comment=review_in.comment,
        images=[image.model_dump() for image in review_in.images],
        verified=await has_delivered_purchase(db, current_user.user_id, product.id),
    )
    db.add(review)
    await recalculate_product_rating(db, product.id)
    await db.commit()
    logger.info(
        "Review created",
        extra={
            "extra_fields": {
                "review_id": str(review.id),
                "product_id": str(product.id),
                "rating": review.rating,
            }
        },
    )

    review = await load_review(db, review.id)
    return ReviewEnvelope(
        message="Review created successfully",
        review=ReviewResponse.model_validate(review),
    )


@router.put("/reviews/{review_id}", response_model=ReviewEnvelope)
async def update_review(
    review_id: uuid.UUID,
    review_in: ReviewUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Edit your own review."""
    review = await get_review_or_404(db, review_id)
    _ensure_author(review, current_user, "update")

    update_data = review_in.model_dump(exclude_unset=True, exclude_none=True)
    if "images" in update_data:
        update_data["images"] = [image.model_dump() for image in review_in.images]
    for field, value in update_data.items():
        setattr(review, field, value)
    review.updated_at = utc_now()

    if "rating" in update_data:
        await recalculate_product_rating(db, review.product_id)
    await db.commit()

    review = await load_review(db, review_id)
    return ReviewEnvelope(
        message="Review updated successfully",
        review=ReviewResponse.model_validate(review),
    )


@router.delete("/reviews/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete your own review (admins may delete any)."""
    review = await get_review_or_404(db, review_id)
    if not current_user.is_admin:
        _ensure_author(review, current_user, "delete")

    product_id = review.product_id
    await db.delete(review)
    await recalculate_product_rating(db, product_id)
    await db.commit()
    return MessageResponse(message="Review deleted successfully")


# ============================================================================
# HELPFUL VOTES
# ============================================================================


@router.post("/reviews/{review_id}/helpful", response_model=HelpfulResponse)
async def mark_review_helpful(
    review_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    review = await get_review_or_404(db, review_id)
    if not review.mark_helpful(current_user.user_id):
        raise HTTPException(
            status_code=400,
            detail="You have already marked this review as helpful",
        )
    await db.commit()
    return HelpfulResponse(
        message="Review marked as helpful", helpful_count=review.helpful_count
    )


@router.delete("/reviews/{review_id}/helpful", response_model=HelpfulResponse)
async def unmark_review_helpful(
    review_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    review = await get_review_or_404(db, review_id)
    review.unmark_helpful(current_user.user_id)
    await db.commit()
    return HelpfulResponse(
        message="Review unmarked as helpful", helpful_count=review.helpful_count
    )


# ============================================================================
# SELLER / ADMIN ENDPOINTS
# ============================================================================


@router.post("/reviews/{review_id}/response", response_model=ReviewEnvelope)
async def respond_to_review(
    review_id: uuid.UUID,
    reply_in: ReviewReplyCreate,
    current_user: AuthUser = Depends(require_seller),
    db: AsyncSession = Depends(get_async_db),
):
    """Reply to a review of one of your products (admins may reply to any)."""
    review = await get_review_or_404(db, review_id)
    seller_id = review.product.seller_id if review.product else None
    if not current_user.is_admin and seller_id != current_user.user_id:
        raise HTTPException(
            status_code=403, detail="Not authorized to respond to this review"
        )

    review.response_message = reply_in.message
    review.responded_by = current_user.user_id
    review.responded_at = utc_now()
    await db.commit()

    review = await load_review(db, review_id)
    return ReviewEnvelope(
        message="Response added successfully",
        review=ReviewResponse.model_validate(review),
    )


@router.patch("/reviews/{review_id}/status", response_model=ReviewEnvelope)
async def update_review_status(
    review_id: uuid.UUID,
    status_in: ReviewStatusUpdate,
    _: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve or reject a review; only approved reviews count toward ratings."""
    review = await get_review_or_404(db, review_id)
    review.status = status_in.status
    await recalculate_product_rating(db, review.product_id)
    await db.commit()

    review = await load_review(db, review_id)
    return ReviewEnvelope(
        message="Review status updated",
        review=ReviewResponse.model_validate(review),
    )
