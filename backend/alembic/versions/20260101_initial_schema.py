"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-01-01

Creates users, auctions, bids and the auction_likes association table.
Auction status is derived from start_time/end_time and has no column.

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_banned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('profile_picture_url', sa.String(500), nullable=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'auctions',
        sa.Column('auction_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('images', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('starting_bid', sa.Numeric(12, 2), nullable=False),
        sa.Column('current_bid', sa.Numeric(12, 2), nullable=False),
        sa.Column(
            'highest_bidder_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.user_id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('bid_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column(
            'seller_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.user_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('documents', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('location', sa.String(200), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('end_time > start_time', name='chk_auction_time'),
        sa.CheckConstraint('starting_bid > 0', name='chk_auction_starting_bid_positive'),
        sa.CheckConstraint('current_bid >= starting_bid', name='chk_auction_current_bid'),
        sa.CheckConstraint('bid_count >= 0', name='chk_auction_bid_count'),
        sa.CheckConstraint('views >= 0', name='chk_auction_views'),
    )
    op.create_index('idx_auctions_seller', 'auctions', ['seller_id'])
    op.create_index('idx_auctions_category', 'auctions', ['category'])
    op.create_index('idx_auctions_time', 'auctions', ['start_time', 'end_time'])
    op.create_index('idx_auctions_end_time', 'auctions', ['end_time'])

    op.create_table(
        'bids',
        sa.Column('bid_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'auction_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('auctions.auction_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'bidder_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.user_id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('amount > 0', name='chk_bid_amount_positive'),
    )
    op.create_index('idx_bids_auction', 'bids', ['auction_id'])
    op.create_index('idx_bids_bidder', 'bids', ['bidder_id'])
    op.create_index('idx_bids_auction_created', 'bids', ['auction_id', 'created_at'])

    op.create_table(
        'auction_likes',
        sa.Column(
            'auction_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('auctions.auction_id', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column(
            'user_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('users.user_id', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('idx_auction_likes_user', 'auction_likes', ['user_id'])


def downgrade() -> None:
    op.drop_index('idx_auction_likes_user', table_name='auction_likes')
    op.drop_table('auction_likes')

    op.drop_index('idx_bids_auction_created', table_name='bids')
    op.drop_index('idx_bids_bidder', table_name='bids')
    op.drop_index('idx_bids_auction', table_name='bids')
    op.drop_table('bids')

    op.drop_index('idx_auctions_end_time', table_name='auctions')
    op.drop_index('idx_auctions_time', table_name='auctions')
    op.drop_index('idx_auctions_category', table_name='auctions')
    op.drop_index('idx_auctions_seller', table_name='auctions')
    op.drop_table('auctions')

    op.drop_index('idx_users_email', table_name='users')
    op.drop_table('users')
