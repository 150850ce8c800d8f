"""Initial checkout and order tables

Revision ID: 3f1c9a2b7d10
Revises:
Create Date: 2026-10-19 10:12:41.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# Revision identifiers used by Alembic
revision: str = '3f1c9a2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('image', sa.String(), nullable=True),
        sa.Column('farmer_id', sa.String(), nullable=True),
        sa.Column('farmer_email', sa.String(), nullable=True),
        sa.Column('farmer_name', sa.String(), nullable=True),
        sa.Column('owner_id', sa.String(), nullable=True),
        sa.CheckConstraint('price >= 0'),
        sa.CheckConstraint('quantity >= 0'),
    )
    op.create_index('ix_products_id', 'products', ['id'])
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_farmer_id', 'products', ['farmer_id'])
    op.create_index('ix_products_farmer_email', 'products', ['farmer_email'])

    op.create_table(
        'cart_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_key', sa.String(), nullable=False),
        sa.Column('product_id', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint('quantity >= 1'),
        sa.UniqueConstraint('user_key', 'product_id', name='uq_cartline_user_product'),
    )
    op.create_index('ix_cart_lines_id', 'cart_lines', ['id'])
    op.create_index('ix_cart_lines_user_key', 'cart_lines', ['user_key'])

    op.create_table(
        'checkout_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_key', sa.String(), nullable=False),
        sa.Column('kind', sa.Enum('PENDING', 'RECEIPT', name='sessionkind'), nullable=False),
        sa.Column('invoice_no', sa.String(), nullable=True),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint('user_key', 'kind', name='uq_checkout_session_user_kind'),
    )
    op.create_index('ix_checkout_sessions_id', 'checkout_sessions', ['id'])
    op.create_index('ix_checkout_sessions_user_key', 'checkout_sessions', ['user_key'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('buyer_id', sa.String(), nullable=False),
        sa.Column('order_date', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('order_status', sa.String(), nullable=False),
        sa.Column('total_amount', sa.Float(), nullable=False),
        sa.Column('invoice_no', sa.String(), nullable=True),
        sa.Column('farmer_key', sa.String(), nullable=True),
        sa.UniqueConstraint('buyer_id', 'invoice_no', 'farmer_key', name='uq_order_invoice_farmer'),
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'])
    op.create_index('ix_orders_invoice_no', 'orders', ['invoice_no'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('product_id', sa.String(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('farmer_id', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_at_purchase', sa.Float(), nullable=False),
    )
    op.create_index('ix_order_items_id', 'order_items', ['id'])
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_farmer_id', 'order_items', ['farmer_id'])

    op.create_table(
        'logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ts', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=True),
        sa.Column('resource', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
    )
    op.create_index('ix_logs_id', 'logs', ['id'])
    op.create_index('ix_logs_ts', 'logs', ['ts'])
    op.create_index('ix_logs_action', 'logs', ['action'])
    op.create_index('ix_logs_resource', 'logs', ['resource'])
    op.create_index('ix_logs_status', 'logs', ['status'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('logs')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('checkout_sessions')
    op.drop_table('cart_lines')
    op.drop_table('products')
    op.drop_table('users')
