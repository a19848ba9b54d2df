"""Create referral commission ledger tables.

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261017_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, referrals, master_profiles and bonuses."""

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='client', comment='client / master / admin'),
        sa.Column('referral_code', sa.String(20), nullable=True),
        sa.Column('referrer_id', sa.Integer(), nullable=True, comment='Direct referrer'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_referral_code', 'users', ['referral_code'], unique=True)
    op.create_index('ix_users_referrer_id', 'users', ['referrer_id'])

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_id', sa.Integer(), nullable=False),
        sa.Column('total_earned', sa.DECIMAL(12, 2), nullable=False, server_default='0', comment='Commissions credited via this edge'),
        sa.Column('orders_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('referrer_id', 'referred_id', name='uq_referrals_referrer_referred'),
        sa.CheckConstraint('referrer_id <> referred_id', name='check_referral_not_self'),
        sa.CheckConstraint('total_earned >= 0', name='check_referral_total_earned_non_negative')
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_referred_id', 'referrals', ['referred_id'])

    op.create_table(
        'master_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('specialization', sa.String(255), nullable=True),
        sa.Column('experience', sa.Integer(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('rating', sa.DECIMAL(3, 2), nullable=False, server_default='0'),
        sa.Column('reviews_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('referrals_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_earnings', sa.DECIMAL(12, 2), nullable=False, server_default='0', comment='Lifetime paid commissions'),
        sa.Column('total_commissions', sa.DECIMAL(12, 2), nullable=False, server_default='0', comment='Lifetime accrued commissions'),
        sa.Column('available_balance', sa.DECIMAL(12, 2), nullable=False, server_default='0', comment='total_commissions - withdrawn_amount'),
        sa.Column('withdrawn_amount', sa.DECIMAL(12, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('available_balance >= 0', name='check_master_available_balance_non_negative'),
        sa.CheckConstraint('total_commissions >= 0', name='check_master_total_commissions_non_negative'),
        sa.CheckConstraint('total_earnings >= 0', name='check_master_total_earnings_non_negative'),
        sa.CheckConstraint('withdrawn_amount >= 0', name='check_master_withdrawn_amount_non_negative')
    )
    op.create_index('ix_master_profiles_user_id', 'master_profiles', ['user_id'], unique=True)

    op.create_table(
        'bonuses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('amount', sa.DECIMAL(12, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('order_id', sa.String(64), nullable=True, comment='External order reference'),
        sa.Column('referral_id', sa.Integer(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=True, comment='Chain level 1-3'),
        sa.Column('commission_rate', sa.DECIMAL(5, 4), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referral_id'], ['referrals.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'user_id', 'level', name='uq_bonuses_order_user_level'),
        sa.CheckConstraint('amount > 0', name='check_bonus_amount_positive')
    )
    op.create_index('ix_bonuses_user_id', 'bonuses', ['user_id'])
    op.create_index('ix_bonuses_type', 'bonuses', ['type'])
    op.create_index('ix_bonuses_status', 'bonuses', ['status'])
    op.create_index('ix_bonuses_order_id', 'bonuses', ['order_id'])
    op.create_index('idx_bonuses_user_status', 'bonuses', ['user_id', 'status'])
    op.create_index('idx_bonuses_user_created', 'bonuses', ['user_id', 'created_at'])


def downgrade() -> None:
    """Drop referral commission ledger tables."""

    op.drop_table('bonuses')
    op.drop_table('master_profiles')
    op.drop_table('referrals')
    op.drop_table('users')
