"""Initial NoteVault schema

Revision ID: 20260301_initial
Revises:
Create Date: 2026-03-01

Tables:
- university, category: catalog reference data
- user, user_session: accounts and login sessions
- note: listings
- payment_order, transaction, purchase: checkout, sales ledger, access grants
- seller_wallet: seller balances (pending escrow + available)
- notification, message, review, wishlist_item
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '20260301_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def _money(name: str, nullable: bool = False, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable, **kwargs)


def upgrade() -> None:
    # === REFERENCE DATA ===
    op.create_table('university',
        *_base_columns(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('short_name', sa.String(50), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_university'),
        sa.UniqueConstraint('name', name='uq_university_name'),
    )
    op.create_table('category',
        *_base_columns(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('icon', sa.String(50), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_category'),
    )
    op.create_index('ix_category_slug', 'category', ['slug'], unique=True)

    # === ACCOUNTS ===
    op.create_table('user',
        *_base_columns(),
        sa.Column('email', sa.String(255), nullable=False, comment='Stored lower-cased and trimmed'),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('degree', sa.String(100), nullable=True),
        sa.Column('university_id', sa.UUID(), nullable=True),
        sa.Column('college_name', sa.String(255), nullable=True),
        sa.Column('current_semester', sa.Integer(), nullable=True),
        sa.Column('profile_picture_url', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('referral_code', sa.String(20), nullable=True),
        sa.Column('preferred_language', sa.String(10), nullable=False, server_default='en'),
        sa.Column('is_seller', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('failed_login_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lockout_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reset_token_hash', sa.String(64), nullable=True),
        sa.Column('reset_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['university_id'], ['university.id'], name='fk_user_university_id_university', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_user'),
        sa.UniqueConstraint('referral_code', name='uq_user_referral_code'),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)
    op.create_index('ix_user_reset_token_hash', 'user', ['reset_token_hash'], unique=False)

    op.create_table('user_session',
        *_base_columns(),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('ip', sa.String(64), nullable=True),
        sa.Column('last_seen', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='false'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name='fk_user_session_user_id_user', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_user_session'),
    )
    op.create_index('ix_user_session_user_id', 'user_session', ['user_id'], unique=False)

    # === NOTES ===
    op.create_table('note',
        *_base_columns(),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        sa.Column('category_id', sa.UUID(), nullable=True),
        sa.Column('university_id', sa.UUID(), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('degree', sa.String(100), nullable=False, server_default='Other'),
        sa.Column('specialization', sa.String(255), nullable=True),
        sa.Column('college_name', sa.String(255), nullable=True),
        sa.Column('semester', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('language', sa.String(20), nullable=False, server_default='english'),
        sa.Column('tags', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('cover_image', sa.Text(), nullable=True),
        sa.Column('preview_pages', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('table_of_contents', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('file_url', sa.Text(), nullable=False, comment='Object storage key'),
        sa.Column('file_type', sa.String(20), nullable=False, server_default='pdf'),
        sa.Column('file_size_bytes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_pages', sa.Integer(), nullable=False, server_default='0'),
        _money('price_inr'),
        sa.Column('commission_percentage', sa.Float(), nullable=False, server_default='15'),
        _money('commission_amount_inr', server_default='0'),
        _money('seller_earning_inr', server_default='0'),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('download_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('purchase_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('average_rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_reviews', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_approved', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_flagged', sa.Boolean(), nullable=False, server_default='false'),
        sa.ForeignKeyConstraint(['seller_id'], ['user.id'], name='fk_note_seller_id_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['category_id'], ['category.id'], name='fk_note_category_id_category', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['university_id'], ['university.id'], name='fk_note_university_id_university', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_note'),
    )
    op.create_index('ix_note_seller_id', 'note', ['seller_id'], unique=False)
    op.create_index('ix_note_category_id', 'note', ['category_id'], unique=False)
    op.create_index('ix_note_university_id', 'note', ['university_id'], unique=False)
    op.create_index('idx_note_catalog', 'note', ['is_active', 'is_approved', 'is_deleted', 'created_at'], unique=False)

    # === PAYMENTS ===
    op.create_table('payment_order',
        *_base_columns(),
        sa.Column('buyer_id', sa.UUID(), nullable=False),
        sa.Column('idempotency_key', sa.String(64), nullable=False),
        sa.Column('gateway_order_id', sa.String(100), nullable=False),
        _money('total_amount_inr'),
        _money('discount_amount_inr', server_default='0'),
        _money('final_amount_inr'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('note_ids', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.ForeignKeyConstraint(['buyer_id'], ['user.id'], name='fk_payment_order_buyer_id_user', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_payment_order'),
        sa.UniqueConstraint('idempotency_key', name='uq_payment_order_idempotency_key'),
    )
    op.create_index('ix_payment_order_buyer_id', 'payment_order', ['buyer_id'], unique=False)
    op.create_index('ix_payment_order_gateway_order_id', 'payment_order', ['gateway_order_id'], unique=True)

    op.create_table('transaction',
        *_base_columns(),
        sa.Column('transaction_id', sa.String(50), nullable=False, comment='Human readable reference (TXN_...)'),
        sa.Column('buyer_id', sa.UUID(), nullable=False),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        sa.Column('note_id', sa.UUID(), nullable=False),
        sa.Column('payment_order_id', sa.UUID(), nullable=True),
        _money('amount_inr', comment='List price'),
        _money('commission_inr'),
        _money('seller_earning_inr'),
        _money('final_amount_inr', comment='Price after discount'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('payment_method', sa.String(30), nullable=False, server_default='razorpay'),
        sa.Column('gateway_order_id', sa.String(100), nullable=False),
        sa.Column('gateway_payment_id', sa.String(100), nullable=True),
        sa.Column('gateway_signature', sa.String(255), nullable=True),
        sa.Column('escrow_release_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('escrow_released', sa.Boolean(), nullable=False, server_default='false'),
        sa.ForeignKeyConstraint(['buyer_id'], ['user.id'], name='fk_transaction_buyer_id_user', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['seller_id'], ['user.id'], name='fk_transaction_seller_id_user', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['note_id'], ['note.id'], name='fk_transaction_note_id_note', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['payment_order_id'], ['payment_order.id'], name='fk_transaction_payment_order_id_payment_order', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_transaction'),
        sa.UniqueConstraint('transaction_id', name='uq_transaction_transaction_id'),
    )
    op.create_index('ix_transaction_buyer_id', 'transaction', ['buyer_id'], unique=False)
    op.create_index('ix_transaction_seller_id', 'transaction', ['seller_id'], unique=False)
    op.create_index('ix_transaction_note_id', 'transaction', ['note_id'], unique=False)
    op.create_index('ix_transaction_payment_order_id', 'transaction', ['payment_order_id'], unique=False)
    op.create_index('ix_transaction_status', 'transaction', ['status'], unique=False)
    op.create_index('ix_transaction_gateway_order_id', 'transaction', ['gateway_order_id'], unique=False)
    op.create_index('idx_transaction_escrow', 'transaction', ['status', 'escrow_released', 'escrow_release_at'], unique=False)

    op.create_table('purchase',
        *_base_columns(),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('note_id', sa.UUID(), nullable=False),
        sa.Column('transaction_id', sa.UUID(), nullable=True),
        sa.Column('download_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name='fk_purchase_user_id_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['note_id'], ['note.id'], name='fk_purchase_note_id_note', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['transaction_id'], ['transaction.id'], name='fk_purchase_transaction_id_transaction', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_purchase'),
        sa.UniqueConstraint('user_id', 'note_id', name='uq_purchase_user_id_note_id'),
    )
    op.create_index('ix_purchase_user_id', 'purchase', ['user_id'], unique=False)
    op.create_index('ix_purchase_note_id', 'purchase', ['note_id'], unique=False)

    # === WALLET ===
    op.create_table('seller_wallet',
        *_base_columns(),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        _money('available_balance_inr', server_default='0'),
        _money('pending_balance_inr', server_default='0'),
        _money('total_earned_inr', server_default='0'),
        _money('total_withdrawn_inr', server_default='0'),
        _money('minimum_withdrawal_amount', server_default='100'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['seller_id'], ['user.id'], name='fk_seller_wallet_seller_id_user', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_seller_wallet'),
        sa.UniqueConstraint('seller_id', name='uq_seller_wallet_seller_id'),
    )

    # === COMMUNICATION ===
    op.create_table('notification',
        *_base_columns(),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='INFO'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name='fk_notification_user_id_user', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_notification'),
    )
    op.create_index('ix_notification_user_id', 'notification', ['user_id'], unique=False)
    op.create_index('idx_notification_user_read', 'notification', ['user_id', 'is_read', 'created_at'], unique=False)

    op.create_table('message',
        *_base_columns(),
        sa.Column('sender_id', sa.UUID(), nullable=False),
        sa.Column('receiver_id', sa.UUID(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='false'),
        sa.ForeignKeyConstraint(['sender_id'], ['user.id'], name='fk_message_sender_id_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['user.id'], name='fk_message_receiver_id_user', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_message'),
    )
    op.create_index('ix_message_sender_id', 'message', ['sender_id'], unique=False)
    op.create_index('ix_message_receiver_id', 'message', ['receiver_id'], unique=False)
    op.create_index('idx_message_pair', 'message', ['sender_id', 'receiver_id', 'created_at'], unique=False)

    # === REVIEWS & WISHLIST ===
    op.create_table('review',
        *_base_columns(),
        sa.Column('note_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('transaction_id', sa.UUID(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('is_verified_purchase', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_approved', sa.Boolean(), nullable=False, server_default='true'),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_review_rating_range'),
        sa.ForeignKeyConstraint(['note_id'], ['note.id'], name='fk_review_note_id_note', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name='fk_review_user_id_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['transaction_id'], ['transaction.id'], name='fk_review_transaction_id_transaction', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_review'),
        sa.UniqueConstraint('note_id', 'user_id', name='uq_review_note_id_user_id'),
    )
    op.create_index('ix_review_note_id', 'review', ['note_id'], unique=False)
    op.create_index('ix_review_user_id', 'review', ['user_id'], unique=False)

    op.create_table('wishlist_item',
        *_base_columns(),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('note_id', sa.UUID(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name='fk_wishlist_item_user_id_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['note_id'], ['note.id'], name='fk_wishlist_item_note_id_note', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_wishlist_item'),
        sa.UniqueConstraint('user_id', 'note_id', name='uq_wishlist_item_user_id_note_id'),
    )
    op.create_index('ix_wishlist_item_user_id', 'wishlist_item', ['user_id'], unique=False)


def downgrade() -> None:
    for table in (
        'wishlist_item',
        'review',
        'message',
        'notification',
        'seller_wallet',
        'purchase',
        'transaction',
        'payment_order',
        'note',
        'user_session',
        'user',
        'category',
        'university',
    ):
        op.drop_table(table)
