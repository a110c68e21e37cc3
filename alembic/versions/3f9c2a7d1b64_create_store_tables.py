"""create_store_tables

Revision ID: 3f9c2a7d1b64
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1b64'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUMS = {
    'store_address_type_enum': ('home', 'work', 'other'),
    'store_discount_type_enum': ('percentage', 'fixed'),
    'store_payment_method_enum': ('cod', 'online', 'card', 'upi', 'netbanking', 'wallet'),
    'store_payment_gateway_enum': ('razorpay', 'cod'),
    'store_order_status_enum': (
        'pending', 'confirmed', 'processing', 'shipped', 'delivered',
        'cancelled', 'payment_failed',
    ),
    'store_order_payment_status_enum': ('pending', 'completed', 'failed'),
    'store_payment_status_enum': ('pending', 'processing', 'completed', 'failed', 'refunded'),
    'store_notification_type_enum': ('order', 'payment', 'promotion', 'system'),
    'store_notification_priority_enum': ('low', 'medium', 'high'),
}


def _enum(name: str) -> postgresql.ENUM:
    # Types are created once up front; several tables share the payment method enum
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable)


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema - Create store tables."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # Products
    op.create_table(
        'store_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('short_description', sa.String(300), nullable=True),
        sa.Column('brand', sa.String(100), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('sku', sa.String(100), nullable=True),
        _money('price'),
        _money('discount_price', nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('images', postgresql.JSONB(), nullable=False),
        sa.Column('seller_id', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
        sa.UniqueConstraint('sku'),
        sa.CheckConstraint('stock >= 0', name='product_positive_stock'),
        sa.CheckConstraint('price >= 0', name='product_positive_price'),
    )
    op.create_index('ix_store_products_category', 'store_products', ['category'])
    op.create_index('ix_store_products_seller_id', 'store_products', ['seller_id'])

    # Carts
    op.create_table(
        'store_carts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('total_items', sa.Integer(), nullable=False),
        _money('total_price'),
        _money('total_discount'),
        _money('final_price'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_table(
        'store_cart_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cart_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        _money('price'),
        _money('final_price'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['cart_id'], ['store_carts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['store_products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cart_id', 'product_id', name='unique_cart_product'),
        sa.CheckConstraint('quantity > 0', name='cart_item_positive_quantity'),
    )

    # Addresses
    op.create_table(
        'store_addresses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('pincode', sa.String(10), nullable=False),
        sa.Column('address_line1', sa.String(255), nullable=False),
        sa.Column('address_line2', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('state', sa.String(100), nullable=False),
        sa.Column('country', sa.String(100), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('address_type', _enum('store_address_type_enum'), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_addresses_user_id', 'store_addresses', ['user_id'])

    # Coupons
    op.create_table(
        'store_coupons',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('discount_type', _enum('store_discount_type_enum'), nullable=False),
        _money('discount_value'),
        _money('max_discount_amount', nullable=True),
        _money('min_purchase_amount'),
        sa.Column('usage_limit', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False),
        sa.Column('valid_from', sa.DateTime(timezone=True), nullable=True),
        sa.Column('valid_until', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_store_coupons_code', 'store_coupons', ['code'], unique=True)

    # Orders
    op.create_table(
        'store_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(20), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('shipping_address', postgresql.JSONB(), nullable=False),
        sa.Column('payment_method', _enum('store_payment_method_enum'), nullable=False),
        _money('items_price'),
        _money('discount_amount'),
        _money('tax_price'),
        _money('shipping_price'),
        _money('total_price'),
        sa.Column('coupon_code', sa.String(50), nullable=True),
        sa.Column('order_status', _enum('store_order_status_enum'), nullable=False),
        sa.Column(
            'payment_status', _enum('store_order_payment_status_enum'), nullable=False
        ),
        sa.Column('tracking_number', sa.String(100), nullable=True),
        sa.Column('estimated_delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_store_orders_order_number', 'store_orders', ['order_number'], unique=True
    )
    op.create_index('ix_store_orders_user_id', 'store_orders', ['user_id'])
    op.create_index(
        'ix_store_orders_user_created', 'store_orders', ['user_id', 'created_at']
    )

    op.create_table(
        'store_order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        _money('price'),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('images', postgresql.JSONB(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'store_order_status_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    # Payments
    op.create_table(
        'store_payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('payment_method', _enum('store_payment_method_enum'), nullable=False),
        sa.Column(
            'payment_gateway', _enum('store_payment_gateway_enum'), nullable=False
        ),
        _money('amount'),
        sa.Column('currency', sa.String(8), nullable=False),
        sa.Column('status', _enum('store_payment_status_enum'), nullable=False),
        sa.Column('razorpay_order_id', sa.String(100), nullable=True),
        sa.Column('razorpay_payment_id', sa.String(100), nullable=True),
        sa.Column('razorpay_signature', sa.String(256), nullable=True),
        sa.Column('transaction_id', sa.String(100), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['store_orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id'),
    )
    op.create_index('ix_store_payments_user_id', 'store_payments', ['user_id'])
    op.create_index(
        'ix_store_payments_razorpay_order_id',
        'store_payments',
        ['razorpay_order_id'],
        unique=True,
    )

    # Notifications
    op.create_table(
        'store_notifications',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('type', _enum('store_notification_type_enum'), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('priority', _enum('store_notification_priority_enum'), nullable=False),
        sa.Column('related_order_id', sa.Uuid(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('sent_via', postgresql.JSONB(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ['related_order_id'], ['store_orders.id'], ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_store_notifications_user_read', 'store_notifications', ['user_id', 'is_read']
    )


def downgrade() -> None:
    """Downgrade schema - Drop store tables."""
    op.drop_index('ix_store_notifications_user_read', table_name='store_notifications')
    op.drop_table('store_notifications')
    op.drop_index('ix_store_payments_razorpay_order_id', table_name='store_payments')
    op.drop_index('ix_store_payments_user_id', table_name='store_payments')
    op.drop_table('store_payments')
    op.drop_table('store_order_status_history')
    op.drop_table('store_order_items')
    op.drop_index('ix_store_orders_user_created', table_name='store_orders')
    op.drop_index('ix_store_orders_user_id', table_name='store_orders')
    op.drop_index('ix_store_orders_order_number', table_name='store_orders')
    op.drop_table('store_orders')
    op.drop_index('ix_store_coupons_code', table_name='store_coupons')
    op.drop_table('store_coupons')
    op.drop_index('ix_store_addresses_user_id', table_name='store_addresses')
    op.drop_table('store_addresses')
    op.drop_table('store_cart_items')
    op.drop_table('store_carts')
    op.drop_index('ix_store_products_seller_id', table_name='store_products')
    op.drop_index('ix_store_products_category', table_name='store_products')
    op.drop_table('store_products')

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
