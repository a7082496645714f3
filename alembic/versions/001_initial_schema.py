"""Create users and payments tables.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('flat_number', sa.String(10), nullable=False),
        sa.Column('wing', sa.String(5), nullable=True),
        sa.Column('floor', sa.Integer(), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='resident'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('flat_number', 'wing', name='uq_users_flat_wing'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(),
                  sa.ForeignKey('users.id', ondelete='RESTRICT'),
                  nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('description', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('payment_method', sa.String(20), nullable=True),
        sa.Column('transaction_id', sa.String(255), nullable=True, unique=True),
        sa.Column('gateway_order_id', sa.String(255), nullable=True, unique=True),
        sa.Column('gateway_payment_id', sa.String(255), nullable=True),
        sa.Column('gateway_signature', sa.String(255), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('paid_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('late_fee', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('receipt_url', sa.String(500), nullable=True),
        sa.Column('receipt_object_id', sa.String(255), nullable=True),
        sa.Column('billing_period', sa.String(7), nullable=True),
        sa.Column('billing_year', sa.Integer(), nullable=True),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('pending', 'completed', 'failed')", name='ck_payments_status'),
        sa.CheckConstraint('amount > 0', name='ck_payments_amount_positive'),
    )
    op.create_index('ix_payments_user_created', 'payments', ['user_id', 'created_at'])
    op.create_index('ix_payments_status', 'payments', ['status'])
    op.create_index('ix_payments_category', 'payments', ['category'])
    op.create_index('ix_payments_period', 'payments', ['billing_period', 'billing_year'])


def downgrade() -> None:
    op.drop_index('ix_payments_period', table_name='payments')
    op.drop_index('ix_payments_category', table_name='payments')
    op.drop_index('ix_payments_status', table_name='payments')
    op.drop_index('ix_payments_user_created', table_name='payments')
    op.drop_table('payments')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
