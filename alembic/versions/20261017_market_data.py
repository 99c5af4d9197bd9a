"""Market data tables (raw snapshots, master market data, latest)

Revision ID: 20261017_market_data
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '20261017_market_data'
down_revision = None
branch_labels = None
depends_on = None

KEY_COLUMNS = ['provider', 'sku', 'size_key', 'currency_code', 'region_code', 'is_flex', 'is_consigned']


def _market_columns():
    return [
        sa.Column('provider', sa.String(20), nullable=False),
        sa.Column('provider_source', sa.String(50), nullable=False),
        sa.Column('provider_product_id', sa.String(100), nullable=True),
        sa.Column('provider_variant_id', sa.String(100), nullable=True),
        sa.Column('sku', sa.String(50), nullable=False),
        sa.Column('size_key', sa.String(20), nullable=False),
        sa.Column('size_numeric', sa.Float(), nullable=True),
        sa.Column('size_system', sa.String(10), nullable=True),
        sa.Column('currency_code', sa.String(3), nullable=False),
        sa.Column('region_code', sa.String(10), nullable=False, server_default='global'),
        sa.Column('is_flex', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_consigned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('lowest_ask', sa.Float(), nullable=True),
        sa.Column('highest_bid', sa.Float(), nullable=True),
        sa.Column('last_sale_price', sa.Float(), nullable=True),
        sa.Column('sell_faster_price', sa.Float(), nullable=True),
        sa.Column('earn_more_price', sa.Float(), nullable=True),
        sa.Column('global_indicator_price', sa.Float(), nullable=True),
        sa.Column('ask_count', sa.Integer(), nullable=True),
        sa.Column('bid_count', sa.Integer(), nullable=True),
        sa.Column('sales_last_72h', sa.Integer(), nullable=True),
        sa.Column('sales_last_30d', sa.Integer(), nullable=True),
        sa.Column('total_sales_volume', sa.Integer(), nullable=True),
        sa.Column('snapshot_at', sa.DateTime(), nullable=False),
        sa.Column('ingested_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    # Journal brut des appels fournisseurs
    op.create_table(
        'market_raw_snapshots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('provider', sa.String(20), nullable=False),
        sa.Column('endpoint', sa.String(100), nullable=False),
        sa.Column('provider_product_id', sa.String(100), nullable=True),
        sa.Column('sku', sa.String(50), nullable=True),
        sa.Column('region_code', sa.String(10), nullable=True),
        sa.Column('currency_code', sa.String(3), nullable=True),
        sa.Column('request_params', sa.JSON(), nullable=True),
        sa.Column('http_status', sa.Integer(), nullable=True),
        sa.Column('raw_payload', sa.JSON(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('request_duration_ms', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_market_raw_snapshots_provider', 'market_raw_snapshots', ['provider'])
    op.create_index('ix_market_raw_snapshots_provider_product_id', 'market_raw_snapshots', ['provider_product_id'])
    op.create_index('ix_market_raw_snapshots_sku', 'market_raw_snapshots', ['sku'])
    op.create_index('ix_market_raw_snapshots_requested_at', 'market_raw_snapshots', ['requested_at'])

    # Données marché normalisées
    op.create_table(
        'master_market_data',
        sa.Column('id', sa.Integer(), nullable=False),
        *_market_columns(),
        sa.Column('raw_snapshot_id', sa.Integer(), nullable=True),
        sa.Column('raw_response_excerpt', sa.String(500), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['raw_snapshot_id'], ['market_raw_snapshots.id'], ondelete='SET NULL'),
        sa.UniqueConstraint(*KEY_COLUMNS, 'snapshot_at', name='uq_master_market_data_snapshot'),
    )
    op.create_index('ix_master_market_data_sku', 'master_market_data', ['sku'])
    op.create_index('ix_master_market_data_raw_snapshot_id', 'master_market_data', ['raw_snapshot_id'])
    op.create_index('ix_master_market_data_latest', 'master_market_data', ['sku', 'provider', 'snapshot_at'])

    # Dernier prix par clé (rafraîchi à la demande)
    op.create_table(
        'master_market_latest',
        sa.Column('market_data_id', sa.Integer(), autoincrement=False, nullable=False),
        *_market_columns(),
        sa.Column('raw_snapshot_id', sa.Integer(), nullable=True),
        sa.Column('refreshed_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('market_data_id'),
        sa.UniqueConstraint(*KEY_COLUMNS, name='uq_master_market_latest_key'),
    )
    op.create_index('ix_master_market_latest_sku', 'master_market_latest', ['sku'])


def downgrade():
    op.drop_index('ix_master_market_latest_sku', table_name='master_market_latest')
    op.drop_table('master_market_latest')
    op.drop_index('ix_master_market_data_latest', table_name='master_market_data')
    op.drop_index('ix_master_market_data_raw_snapshot_id', table_name='master_market_data')
    op.drop_index('ix_master_market_data_sku', table_name='master_market_data')
    op.drop_table('master_market_data')
    op.drop_index('ix_market_raw_snapshots_requested_at', table_name='market_raw_snapshots')
    op.drop_index('ix_market_raw_snapshots_sku', table_name='market_raw_snapshots')
    op.drop_index('ix_market_raw_snapshots_provider_product_id', table_name='market_raw_snapshots')
    op.drop_index('ix_market_raw_snapshots_provider', table_name='market_raw_snapshots')
    op.drop_table('market_raw_snapshots')
