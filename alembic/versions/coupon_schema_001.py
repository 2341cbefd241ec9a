"""coupon redirect schema

Revision ID: coupon_schema_001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'coupon_schema_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

commission_type = sa.Enum('PERCENT', 'FIXED', name='commission_type')
click_status = sa.Enum('CLICK', 'CONVERSION', name='click_status')
payment_status = sa.Enum('HOLD', 'RELEASE', name='payment_status')


def upgrade() -> None:
    # --- Affiliates ---
    op.create_table('affiliates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    # --- Campaigns ---
    op.create_table('campaigns',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('start_on', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_on', sa.DateTime(timezone=True), nullable=False),
        sa.Column('commission_type', commission_type, nullable=False),
        sa.Column('commission_value', sa.Numeric(10, 2), nullable=False),
        sa.Column('is_approved', sa.Boolean(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_campaigns_window', 'campaigns', ['start_on', 'end_on'])

    # --- Affiliate links ---
    op.create_table('affiliate_links',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('coupon', sa.String(length=64), nullable=False),
        sa.Column('affiliate_id', sa.Uuid(), nullable=False),
        sa.Column('campaign_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['affiliate_id'], ['affiliates.id']),
        sa.ForeignKeyConstraint(['campaign_id'], ['campaigns.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_affiliate_links_coupon'), 'affiliate_links', ['coupon'], unique=True)
    op.create_index(op.f('ix_affiliate_links_affiliate_id'), 'affiliate_links', ['affiliate_id'])
    op.create_index(op.f('ix_affiliate_links_campaign_id'), 'affiliate_links', ['campaign_id'])

    # --- Click events (append-only) ---
    op.create_table('click_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('country', sa.String(length=16), nullable=False),
        sa.Column('affiliate_id', sa.Uuid(), nullable=False),
        sa.Column('campaign_id', sa.Uuid(), nullable=False),
        sa.Column('link_id', sa.Uuid(), nullable=False),
        sa.Column('status', click_status, nullable=False),
        sa.Column('payment', payment_status, nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['link_id'], ['affiliate_links.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_click_events_affiliate_created', 'click_events', ['affiliate_id', 'created_at'])
    op.create_index('ix_click_events_campaign_created', 'click_events', ['campaign_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_click_events_campaign_created', table_name='click_events')
    op.drop_index('ix_click_events_affiliate_created', table_name='click_events')
    op.drop_table('click_events')

    op.drop_index(op.f('ix_affiliate_links_campaign_id'), table_name='affiliate_links')
    op.drop_index(op.f('ix_affiliate_links_affiliate_id'), table_name='affiliate_links')
    op.drop_index(op.f('ix_affiliate_links_coupon'), table_name='affiliate_links')
    op.drop_table('affiliate_links')

    op.drop_index('ix_campaigns_window', table_name='campaigns')
    op.drop_table('campaigns')
    op.drop_table('affiliates')

    payment_status.drop(op.get_bind(), checkfirst=True)
    click_status.drop(op.get_bind(), checkfirst=True)
    commission_type.drop(op.get_bind(), checkfirst=True)
