"""add_categories_reviews_wishlists

Revision ID: 8b41d6e0c2a7
Revises: 3f9c2a7d1b64
Create Date: 2026-10-18 14:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '8b41d6e0c2a7'
down_revision: Union[str, Sequence[str], None] = '3f9c2a7d1b64'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


REVIEW_STATUS = ('pending', 'approved', 'rejected')


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema - Categories, product ratings, reviews and wishlists."""
    bind = op.get_bind()
    postgresql.ENUM(*REVIEW_STATUS, name='store_review_status_enum').create(
        bind, checkfirst=True
    )

    # Categories
    op.create_table(
        'store_categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('icon', sa.String(100), nullable=True),
        sa.Column('parent_id', sa.Uuid(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_featured', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['parent_id'], ['store_categories.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.UniqueConstraint('slug'),
    )
    op.create_index(
        'ix_store_categories_parent_id', 'store_categories', ['parent_id']
    )

    # Products move from a free-text category to the categories table
    op.drop_index('ix_store_products_category', table_name='store_products')
    op.drop_column('store_products', 'category')
    op.add_column('store_products', sa.Column('category_id', sa.Uuid(), nullable=True))
    op.create_foreign_key(
        'store_products_category_id_fkey',
        'store_products',
        'store_categories',
        ['category_id'],
        ['id'],
        ondelete='SET NULL',
    )
    op.create_index('ix_store_products_category_id', 'store_products', ['category_id'])
    op.add_column(
        'store_products',
        sa.Column('average_rating', sa.Float(), nullable=False, server_default='0'),
    )
    op.add_column(
        'store_products',
        sa.Column('num_reviews', sa.Integer(), nullable=False, server_default='0'),
    )
    op.add_column(
        'store_products',
        sa.Column(
            'rating_distribution',
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text(
                '\'{"5": 0, "4": 0, "3": 0, "2": 0, "1": 0}\'::jsonb'
            ),
        ),
    )

    # Reviews
    op.create_table(
        'store_reviews',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('user_name', sa.String(255), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(100), nullable=True),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('images', postgresql.JSONB(), nullable=False),
        sa.Column('helpful_count', sa.Integer(), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column(
            'status',
            postgresql.ENUM(
                *REVIEW_STATUS, name='store_review_status_enum', create_type=False
            ),
            nullable=False,
        ),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('response_message', sa.Text(), nullable=True),
        sa.Column('responded_by', sa.String(255), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['product_id'], ['store_products.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'user_id', name='unique_product_reviewer'),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='review_rating_range'),
    )
    op.create_index('ix_store_reviews_user_id', 'store_reviews', ['user_id'])
    op.create_index(
        'ix_store_reviews_product_created', 'store_reviews', ['product_id', 'created_at']
    )
    op.create_table(
        'store_review_helpful_votes',
        sa.Column('review_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['review_id'], ['store_reviews.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('review_id', 'user_id'),
    )

    # Wishlists
    op.create_table(
        'store_wishlists',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_table(
        'store_wishlist_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('wishlist_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ['wishlist_id'], ['store_wishlists.id'], ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['product_id'], ['store_products.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('wishlist_id', 'product_id', name='unique_wishlist_product'),
    )


def downgrade() -> None:
    """Downgrade schema - Back to free-text product categories."""
    op.drop_table('store_wishlist_items')
    op.drop_table('store_wishlists')
    op.drop_table('store_review_helpful_votes')
    op.drop_index('ix_store_reviews_product_created', table_name='store_reviews')
    op.drop_index('ix_store_reviews_user_id', table_name='store_reviews')
    op.drop_table('store_reviews')

    op.drop_column('store_products', 'rating_distribution')
    op.drop_column('store_products', 'num_reviews')
    op.drop_column('store_products', 'average_rating')
    op.drop_index('ix_store_products_category_id', table_name='store_products')
    op.drop_constraint(
        'store_products_category_id_fkey', 'store_products', type_='foreignkey'
    )
    op.drop_column('store_products', 'category_id')
    op.add_column(
        'store_products', sa.Column('category', sa.String(100), nullable=True)
    )
    op.create_index('ix_store_products_category', 'store_products', ['category'])

    op.drop_index('ix_store_categories_parent_id', table_name='store_categories')
    op.drop_table('store_categories')

    postgresql.ENUM(name='store_review_status_enum').drop(op.get_bind(), checkfirst=True)
