"""Stock checks and decrements.

There is no reservation: stock is checked when the order is placed and
decremented when it is confirmed. Each decrement is a single UPDATE so two
confirmations racing for the last unit cannot both succeed or push stock
below zero.
"""

import uuid

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.store_service.models import Product
from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def ensure_stock(product: Product, quantity: int) -> None:
    """Reject the checkout when ``product`` cannot cover ``quantity``."""
    if product.stock < quantity:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Insufficient stock for {product.name}",
        )


async def decrement_stock(
    db: AsyncSession, product_id: uuid.UUID, quantity: int
) -> bool:
    """Atomically take ``quantity`` units if at least that many remain.

    Returns False (and changes nothing) when stock is short.
    """
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def decrement_stock_with_floor(
    db: AsyncSession, product_id: uuid.UUID, quantity: int
) -> None:
    """Atomically take ``quantity`` units, stopping at zero.

    Used once a payment is captured and the order can no longer be refused.
    """
    current = await db.scalar(select(Product.stock).where(Product.id == product_id))
    if current is None:
        logger.warning("Product %s no longer exists, stock not decremented", product_id)
        return

    await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock=case(
                (Product.stock >= quantity, Product.stock - quantity),
                else_=0,
            ),
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    if current < quantity:
        logger.warning(
            "Stock for product %s clipped at zero (had %d, sold %d)",
            product_id,
            current,
            quantity,
        )
