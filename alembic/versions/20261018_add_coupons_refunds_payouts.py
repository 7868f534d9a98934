"""Add coupons, refunds and payout requests

Revision ID: 20261018_money_flows
Revises: 20260301_initial
Create Date: 2026-10-18

Tables:
- coupon, coupon_usage: checkout discount codes
- refund: buyer refund requests
- payout_request: seller withdrawals awaiting settlement

Columns:
- payment_order.coupon_discount_inr / coupon_id / coupon_code
- transaction.coupon_discount_inr
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '20261018_money_flows'
down_revision: Union[str, None] = '20260301_initial'
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

    # === COUPONS ===
    op.create_table('coupon',
        *_base_columns(),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        _money('value', comment='Rupees (FLAT) or percent'),
        _money('min_order_value', nullable=True),
        _money('max_discount_amount', nullable=True),
        sa.Column('scope', sa.String(20), nullable=False, server_default='GLOBAL'),
        sa.Column('scope_ids', postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default='[]'),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('usage_limit_global', sa.Integer(), nullable=True),
        sa.Column('usage_limit_per_user', sa.Integer(), nullable=True),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.PrimaryKeyConstraint('id', name='pk_coupon'),
    )
    op.create_index('ix_coupon_code', 'coupon', ['code'], unique=True)

    op.create_table('coupon_usage',
        *_base_columns(),
        sa.Column('coupon_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('payment_order_id', sa.UUID(), nullable=True),
        _money('discount_amount_inr'),
        sa.ForeignKeyConstraint(['coupon_id'], ['coupon.id'], name='fk_coupon_usage_coupon_id_coupon', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name='fk_coupon_usage_user_id_user', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['payment_order_id'], ['payment_order.id'], name='fk_coupon_usage_payment_order_id_payment_order', ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name='pk_coupon_usage'),
    )
    op.create_index('ix_coupon_usage_coupon_id', 'coupon_usage', ['coupon_id'], unique=False)
    op.create_index('ix_coupon_usage_user_id', 'coupon_usage', ['user_id'], unique=False)

    # === PAYMENTS ===
    op.add_column('payment_order', _money('coupon_discount_inr', server_default='0'))
    op.add_column('payment_order', sa.Column('coupon_id', sa.UUID(), nullable=True))
    op.add_column('payment_order', sa.Column('coupon_code', sa.String(20), nullable=True))
    op.create_foreign_key(
        'fk_payment_order_coupon_id_coupon', 'payment_order', 'coupon',
        ['coupon_id'], ['id'], ondelete='SET NULL',
    )
    op.add_column('transaction', _money('coupon_discount_inr', server_default='0'))

    # === REFUNDS ===
    op.create_table('refund',
        *_base_columns(),
        sa.Column('refund_reference', sa.String(50), nullable=False),
        sa.Column('transaction_id', sa.UUID(), nullable=False),
        sa.Column('buyer_id', sa.UUID(), nullable=False),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        sa.Column('note_id', sa.UUID(), nullable=False),
        _money('amount_inr'),
        sa.Column('reason', sa.String(30), nullable=False),
        sa.Column('reason_details', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('gateway_refund_id', sa.String(100), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['transaction_id'], ['transaction.id'], name='fk_refund_transaction_id_transaction', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['buyer_id'], ['user.id'], name='fk_refund_buyer_id_user', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['seller_id'], ['user.id'], name='fk_refund_seller_id_user', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['note_id'], ['note.id'], name='fk_refund_note_id_note', ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id', name='pk_refund'),
        sa.UniqueConstraint('refund_reference', name='uq_refund_refund_reference'),
        sa.UniqueConstraint('transaction_id', name='uq_refund_transaction_id'),
    )
    op.create_index('ix_refund_buyer_id', 'refund', ['buyer_id'], unique=False)
    op.create_index('ix_refund_seller_id', 'refund', ['seller_id'], unique=False)
    op.create_index('ix_refund_status', 'refund', ['status'], unique=False)

    # === WALLET ===
    op.create_table('payout_request',
        *_base_columns(),
        sa.Column('seller_id', sa.UUID(), nullable=False),
        _money('amount_inr'),
        sa.Column('bank_details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['seller_id'], ['user.id'], name='fk_payout_request_seller_id_user', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_payout_request'),
    )
    op.create_index('ix_payout_request_seller_id', 'payout_request', ['seller_id'], unique=False)
    op.create_index('ix_payout_request_status', 'payout_request', ['status'], unique=False)


def downgrade() -> None:
    op.drop_table('payout_request')
    op.drop_table('refund')
    op.drop_column('transaction', 'coupon_discount_inr')
    op.drop_constraint('fk_payment_order_coupon_id_coupon', 'payment_order', type_='foreignkey')
    op.drop_column('payment_order', 'coupon_code')
    op.drop_column('payment_order', 'coupon_id')
    op.drop_column('payment_order', 'coupon_discount_inr')
    op.drop_table('coupon_usage')
    op.drop_table('coupon')
