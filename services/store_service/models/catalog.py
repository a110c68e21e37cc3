"""Store catalog models: categories and products."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship


def empty_rating_distribution() -> dict:
    return {str(stars): 0 for stars in range(5, 0, -1)}


class Category(Base):
    """Product categories, nested through ``parent_id`` (level 0 is top level)."""

    __tablename__ = "store_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Subcategory support
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("store_categories.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")
    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category {self.name}>"


class Product(Base):
    """Products available in the store."""

    __tablename__ = "store_products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Basic info
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    short_description: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("store_categories.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    sku: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)

    # Pricing
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )  # Sale price shown in the cart, must be below price

    # Stock is decremented when an order is confirmed, never reserved
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # [{"url": "...", "alt": "..."}]
    images: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    # Rating summary over approved reviews, rewritten whenever one changes
    average_rating: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    num_reviews: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # {"5": 0, "4": 0, "3": 0, "2": 0, "1": 0}
    rating_distribution: Mapped[dict] = mapped_column(
        JSONType, default=empty_rating_distribution, nullable=False
    )

    seller_id: Mapped[Optional[str]] = mapped_column(String(255), index=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="product_positive_stock"),
        CheckConstraint("price >= 0", name="product_positive_price"),
    )

    # Relationships
    category = relationship("Category", back_populates="products")

    @property
    def final_price(self) -> Decimal:
        """Price the customer pays in the cart (sale price when set)."""
        if self.discount_price is not None and self.discount_price < self.price:
            return self.discount_price
        return self.price

    @property
    def primary_image_url(self) -> Optional[str]:
        if self.images:
            return self.images[0].get("url")
        return None

    def __repr__(self):
        return f"<Product {self.name}>"
