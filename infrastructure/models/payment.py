"""
支付交易数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Text, JSON, Index
)

from .base import Base, utcnow


class PaymentTransactionModel(Base):
    """
    支付交易数据库模型

    这是数据库表的映射，不包含业务逻辑
    所有业务规则都在 domain.payment.entity.PaymentTransaction 中
    """
    __tablename__ = "payment_transactions"

    # 主键
    id = Column(Integer, primary_key=True, index=True)

    # 订单信息
    order_id = Column(String(100), unique=True, index=True, nullable=False, comment="对外订单号，不可变")
    user_id = Column(Integer, nullable=False, index=True, comment="用户ID")

    # 金额信息（使用 Numeric 存储精确金额）
    amount = Column(Numeric(precision=15, scale=2), nullable=False, comment="支付金额")
    currency = Column(String(3), nullable=False, default="INR", comment="货币代码 ISO-4217")

    # 用途与关联对象
    payment_type = Column(
        String(32),
        nullable=False,
        index=True,
        comment="支付用途: booking/donation/store_order/event_registration"
    )
    reference_id = Column(Integer, nullable=False, comment="关联对象ID")
    reference_type = Column(String(32), nullable=False, comment="关联对象类型: booking/temple/store_order/event")
    description = Column(Text, nullable=True, comment="描述")

    # 状态
    status = Column(
        String(32),
        nullable=False,
        default="pending",
        index=True,
        comment="支付状态: pending/processing/completed/failed/cancelled/refunded/refund_requested"
    )

    # 网关信息
    transaction_id = Column(String(200), nullable=True, index=True, comment="网关交易ID")
    gateway_response = Column(JSON, nullable=True, comment="网关原始回调载荷（含 refund_reason）")

    # 时间戳
    fulfilled_at = Column(DateTime(timezone=True), nullable=True, comment="履约副作用完成时间")
    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="更新时间"
    )

    # 索引
    __table_args__ = (
        Index("ix_payment_transactions_user_status", "user_id", "status"),
        Index("ix_payment_transactions_status_fulfilled", "status", "fulfilled_at"),
    )

    def __repr__(self):
        return (
            f"<PaymentTransactionModel(id={self.id}, order_id='{self.order_id}', "
            f"payment_type='{self.payment_type}', amount={self.amount}, status='{self.status}')>"
        )
