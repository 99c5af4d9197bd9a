"""Portfolio tables (inventory, listings, expenses)

Revision ID: 20261017_portfolio
Revises: 20261017_market_data
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '20261017_portfolio'
down_revision = '20261017_market_data'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('sku', sa.String(50), nullable=False),
        sa.Column('brand', sa.String(100), nullable=True),
        sa.Column('model', sa.String(255), nullable=True),
        sa.Column('size', sa.String(20), nullable=True),
        sa.Column('size_system', sa.String(10), nullable=True),
        sa.Column('category', sa.String(30), nullable=True),
        sa.Column('gender', sa.String(10), nullable=True),
        sa.Column('purchase_price', sa.Float(), nullable=False),
        sa.Column('tax', sa.Float(), nullable=False, server_default='0'),
        sa.Column('shipping', sa.Float(), nullable=False, server_default='0'),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('currency_code', sa.String(3), nullable=False, server_default='GBP'),
        sa.Column('status', sa.String(20), nullable=False, server_default='in_stock'),
        sa.Column('sold_price', sa.Float(), nullable=True),
        sa.Column('sold_date', sa.Date(), nullable=True),
        sa.Column('sale_fees', sa.Float(), nullable=True),
        sa.Column('shipping_out', sa.Float(), nullable=True),
        sa.Column('sold_platform', sa.String(30), nullable=True),
        sa.Column('stockx_product_id', sa.String(100), nullable=True),
        sa.Column('alias_catalog_id', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_items_user_id', 'inventory_items', ['user_id'])
    op.create_index('ix_inventory_items_sku', 'inventory_items', ['sku'])
    op.create_index('ix_inventory_items_status', 'inventory_items', ['status'])

    op.create_table(
        'listings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('platform', sa.String(20), nullable=False),
        sa.Column('external_listing_id', sa.String(100), nullable=True),
        sa.Column('ask_price', sa.Float(), nullable=False),
        sa.Column('currency_code', sa.String(3), nullable=False, server_default='GBP'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_listings_user_id', 'listings', ['user_id'])
    op.create_index('ix_listings_inventory_item_id', 'listings', ['inventory_item_id'])

    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('category', sa.String(30), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('currency_code', sa.String(3), nullable=False, server_default='GBP'),
        sa.Column('incurred_on', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_expenses_user_id', 'expenses', ['user_id'])
    op.create_index('ix_expenses_incurred_on', 'expenses', ['incurred_on'])


def downgrade():
    op.drop_table('expenses')
    op.drop_table('listings')
    op.drop_table('inventory_items')
