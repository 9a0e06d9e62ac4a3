"""Subscription billing schema

Revision ID: 4c1e2a9b7d30
Revises:
Create Date: 2026-10-19 09:12:44.108213

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4c1e2a9b7d30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# tables this revision creates carry this comment, so downgrade leaves pre-existing ones alone
CREATED_MARKER = 'created by alembic 4c1e2a9b7d30'

UUID = postgresql.UUID(as_uuid=False)


def _inspector():
    return sa.inspect(op.get_bind())


def _has_table(name: str) -> bool:
    return _inspector().has_table(name)


def _columns(table: str) -> set:
    return {c['name'] for c in _inspector().get_columns(table)}


def _indexes(table: str) -> set:
    return {i['name'] for i in _inspector().get_indexes(table)}


def _unique_constraints(table: str) -> set:
    return {u['name'] for u in _inspector().get_unique_constraints(table)}


def _created_here(table: str) -> bool:
    if not _has_table(table):
        return False
    return (_inspector().get_table_comment(table) or {}).get('text') == CREATED_MARKER


def upgrade() -> None:
    """Upgrade schema."""
    # profiles and plans usually exist already on a supabase project
    if not _has_table('profiles'):
        op.create_table('profiles',
        sa.Column('id', UUID, server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        comment=CREATED_MARKER,
        )
        op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=False)

    if not _has_table('subscription_plans'):
        op.create_table('subscription_plans',
        sa.Column('id', UUID, server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('job_limit', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('features', postgresql.ARRAY(sa.Text()), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        comment=CREATED_MARKER,
        )

    if not _has_table('user_subscriptions'):
        op.create_table('user_subscriptions',
        sa.Column('id', UUID, server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('user_id', UUID, nullable=False),
        sa.Column('plan_id', UUID, nullable=False),
        sa.Column('status', sa.String(length=16), server_default='active', nullable=False),
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('razorpay_order_id', sa.String(length=64), nullable=True),
        sa.Column('razorpay_payment_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['plan_id'], ['subscription_plans.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('razorpay_payment_id', name='uq_user_subscriptions_razorpay_payment_id'),
        comment=CREATED_MARKER,
        )
    else:
        # table from the earlier client-side setup, add the payment columns in place
        existing = _columns('user_subscriptions')
        if 'razorpay_order_id' not in existing:
            op.add_column('user_subscriptions', sa.Column('razorpay_order_id', sa.String(length=64), nullable=True))
        if 'razorpay_payment_id' not in existing:
            op.add_column('user_subscriptions', sa.Column('razorpay_payment_id', sa.String(length=64), nullable=True))
        if 'uq_user_subscriptions_razorpay_payment_id' not in _unique_constraints('user_subscriptions'):
            op.create_unique_constraint(
                'uq_user_subscriptions_razorpay_payment_id', 'user_subscriptions', ['razorpay_payment_id']
            )
        # older rows may hold several active subscriptions per user, keep the newest
        op.execute(sa.text("""
            UPDATE user_subscriptions SET status = 'cancelled', updated_at = now()
            WHERE status = 'active' AND id NOT IN (
                SELECT DISTINCT ON (user_id) id FROM user_subscriptions
                WHERE status = 'active'
                ORDER BY user_id, created_at DESC
            )
        """))

    indexes = _indexes('user_subscriptions')
    if 'ix_user_subscriptions_user_id' not in indexes:
        op.create_index(op.f('ix_user_subscriptions_user_id'), 'user_subscriptions', ['user_id'], unique=False)
    # at most one active subscription per user
    if 'uq_user_subscriptions_one_active' not in indexes:
        op.create_index(
            'uq_user_subscriptions_one_active',
            'user_subscriptions',
            ['user_id'],
            unique=True,
            postgresql_where=sa.text("status = 'active'"),
        )


def downgrade() -> None:
    """Downgrade schema."""
    if _created_here('user_subscriptions'):
        op.drop_table('user_subscriptions')
    elif _has_table('user_subscriptions'):
        indexes = _indexes('user_subscriptions')
        if 'uq_user_subscriptions_one_active' in indexes:
            op.drop_index('uq_user_subscriptions_one_active', table_name='user_subscriptions')
        if 'ix_user_subscriptions_user_id' in indexes:
            op.drop_index(op.f('ix_user_subscriptions_user_id'), table_name='user_subscriptions')
        if 'uq_user_subscriptions_razorpay_payment_id' in _unique_constraints('user_subscriptions'):
            op.drop_constraint('uq_user_subscriptions_razorpay_payment_id', 'user_subscriptions', type_='unique')
        existing = _columns('user_subscriptions')
        for column in ('razorpay_payment_id', 'razorpay_order_id'):
            if column in existing:
                op.drop_column('user_subscriptions', column)

    if _created_here('subscription_plans'):
        op.drop_table('subscription_plans')
    if _created_here('profiles'):
        op.drop_index(op.f('ix_profiles_email'), table_name='profiles')
        op.drop_table('profiles')
