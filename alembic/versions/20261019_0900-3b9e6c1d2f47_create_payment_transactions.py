"""create_payment_transactions

Revision ID: 3b9e6c1d2f47
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3b9e6c1d2f47'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # bookings / store_orders / events / event_registrations 由各自模块迁移维护
    op.create_table(
        'payment_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.String(length=100), nullable=False, comment='对外订单号，不可变'),
        sa.Column('user_id', sa.Integer(), nullable=False, comment='用户ID'),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False, comment='支付金额'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='INR', comment='货币代码 ISO-4217'),
        sa.Column('payment_type', sa.String(length=32), nullable=False, comment='支付用途: booking/donation/store_order/event_registration'),
        sa.Column('reference_id', sa.Integer(), nullable=False, comment='关联对象ID'),
        sa.Column('reference_type', sa.String(length=32), nullable=False, comment='关联对象类型: booking/temple/store_order/event'),
        sa.Column('description', sa.Text(), nullable=True, comment='描述'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending', comment='支付状态'),
        sa.Column('transaction_id', sa.String(length=200), nullable=True, comment='网关交易ID'),
        sa.Column('gateway_response', sa.JSON(), nullable=True, comment='网关原始回调载荷（含 refund_reason）'),
        sa.Column('fulfilled_at', sa.DateTime(timezone=True), nullable=True, comment='履约副作用完成时间'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.PrimaryKeyConstraint('id', name='pk_payment_transactions'),
        comment='支付交易表，订单号唯一且记录永不物理删除'
    )

    op.create_index('ix_payment_transactions_id', 'payment_transactions', ['id'], unique=False)
    op.create_index('ix_payment_transactions_order_id', 'payment_transactions', ['order_id'], unique=True)
    op.create_index('ix_payment_transactions_user_id', 'payment_transactions', ['user_id'], unique=False)
    op.create_index('ix_payment_transactions_payment_type', 'payment_transactions', ['payment_type'], unique=False)
    op.create_index('ix_payment_transactions_status', 'payment_transactions', ['status'], unique=False)
    op.create_index('ix_payment_transactions_transaction_id', 'payment_transactions', ['transaction_id'], unique=False)
    op.create_index('ix_payment_transactions_created_at', 'payment_transactions', ['created_at'], unique=False)
    op.create_index('ix_payment_transactions_user_status', 'payment_transactions', ['user_id', 'status'], unique=False)
    # 补偿任务按 status + fulfilled_at IS NULL 扫描
    op.create_index('ix_payment_transactions_status_fulfilled', 'payment_transactions', ['status', 'fulfilled_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_payment_transactions_status_fulfilled', table_name='payment_transactions')
    op.drop_index('ix_payment_transactions_user_status', table_name='payment_transactions')
    op.drop_index('ix_payment_transactions_created_at', table_name='payment_transactions')
    op.drop_index('ix_payment_transactions_transaction_id', table_name='payment_transactions')
    op.drop_index('ix_payment_transactions_status', table_name='payment_transactions')
    op.drop_index('ix_payment_transactions_payment_type', table_name='payment_transactions')
    op.drop_index('ix_payment_transactions_user_id', table_name='payment_transactions')
    op.drop_index('ix_payment_transactions_order_id', table_name='payment_transactions')
    op.drop_index('ix_payment_transactions_id', table_name='payment_transactions')
    op.drop_table('payment_transactions')
