"""
支付领域实体 - 支付交易聚合根
"""
from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import DomainValidationException
from domain.payment.exceptions import IllegalStatusTransitionException


class PaymentType(str, Enum):
    """支付用途，决定完成后的副作用与退款策略"""
    BOOKING = "booking"
    DONATION = "donation"
    STORE_ORDER = "store_order"
    EVENT_REGISTRATION = "event_registration"


class ReferenceType(str, Enum):
    """支付所指向的业务对象类型"""
    BOOKING = "booking"
    TEMPLE = "temple"
    STORE_ORDER = "store_order"
    EVENT = "event"


class PaymentStatus(str, Enum):
    """支付状态枚举"""
    PENDING = "pending"                    # 待支付
    PROCESSING = "processing"              # 处理中
    COMPLETED = "completed"                # 支付成功
    FAILED = "failed"                      # 支付失败
    CANCELLED = "cancelled"                # 已取消
    REFUNDED = "refunded"                  # 已退款
    REFUND_REQUESTED = "refund_requested"  # 用户已申请退款


# 与 Numeric(15,2) 列一致：最多13位整数、2位小数
AMOUNT_QUANTUM = Decimal("0.01")
MAX_AMOUNT = Decimal(10) ** 13

# 网关回调允许写入的状态；refund_requested 只能由退款申请流程产生
WEBHOOK_STATUSES = frozenset({
    PaymentStatus.PENDING,
    PaymentStatus.PROCESSING,
    PaymentStatus.COMPLETED,
    PaymentStatus.FAILED,
    PaymentStatus.CANCELLED,
    PaymentStatus.REFUNDED,
})

# 状态机：当前状态 -> 允许的目标状态（同状态重放总是允许）
ALLOWED_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({
        PaymentStatus.PROCESSING,
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
    }),
    PaymentStatus.PROCESSING: frozenset({
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
    }),
    PaymentStatus.FAILED: frozenset({
        PaymentStatus.PROCESSING,
        PaymentStatus.COMPLETED,
    }),
    PaymentStatus.COMPLETED: frozenset({
        PaymentStatus.REFUND_REQUESTED,
        PaymentStatus.REFUNDED,
    }),
    PaymentStatus.REFUND_REQUESTED: frozenset({
        PaymentStatus.REFUNDED,
        PaymentStatus.COMPLETED,
    }),
    PaymentStatus.CANCELLED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

_ORDER_TOKEN_ALPHABET = string.digits + string.ascii_lowercase
_ORDER_TOKEN_LENGTH = 9


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise DomainValidationException(
            f"Invalid {field_name.replace('_', ' ')}: {value}",
            field=field_name,
            details={"allowed": [m.value for m in enum_cls]},
        )


def parse_payment_type(value: Any) -> PaymentType:
    return _parse_enum(PaymentType, value, "payment_type")


def parse_reference_type(value: Any) -> ReferenceType:
    return _parse_enum(ReferenceType, value, "reference_type")


def parse_payment_status(value: Any) -> PaymentStatus:
    return _parse_enum(PaymentStatus, value, "status")


def generate_order_id(now: Optional[datetime] = None) -> str:
    """Build an external order id: ``ORDER_<epoch-ms>_<base36 token>``.

    Uniqueness rests on the millisecond timestamp plus a 9 character random
    token; it is not a cryptographic guarantee. The unique index on
    ``order_id`` is the backstop.
    """
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    token = "".join(secrets.choice(_ORDER_TOKEN_ALPHABET) for _ in range(_ORDER_TOKEN_LENGTH))
    return f"ORDER_{millis}_{token}"


@dataclass
class PaymentTransaction:
    """
    支付交易聚合根 - 管理订单支付生命周期

    业务规则：
    1. order_id 创建后不可变且全局唯一
    2. 金额必须大于0，货币为3位字母代码
    3. 状态转换遵循 ALLOWED_TRANSITIONS，任何终态都不能回到 pending
    4. 只有 completed 的交易可以申请退款
    5. 交易记录永不物理删除
    """

    id: Optional[int]
    order_id: str
    user_id: int
    amount: Decimal
    currency: str
    payment_type: PaymentType
    reference_id: int
    reference_type: ReferenceType
    status: PaymentStatus = PaymentStatus.PENDING
    description: Optional[str] = None
    transaction_id: Optional[str] = None
    gateway_response: dict = field(default_factory=dict)

    # 副作用（预订确认等）成功落库的时间；completed 但为空表示待补偿
    fulfilled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """初始化后验证"""
        self.payment_type = parse_payment_type(self.payment_type)
        self.reference_type = parse_reference_type(self.reference_type)
        self.status = parse_payment_status(self.status)
        self._validate_amount()
        self._validate_currency()
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)
        self.fulfilled_at = _ensure_utc(self.fulfilled_at)
        if self.gateway_response is None:
            self.gateway_response = {}

    def _validate_amount(self) -> None:
        try:
            amount = Decimal(str(self.amount)) if self.amount is not None else None
        except InvalidOperation:
            amount = None
        # NaN/Infinity 不参与比较，需先排除
        if amount is None or not amount.is_finite() or amount <= 0:
            raise DomainValidationException(
                f"Amount must be greater than 0: {self.amount}",
                field="amount",
            )
        if amount >= MAX_AMOUNT:
            raise DomainValidationException(
                f"Amount exceeds the maximum of {MAX_AMOUNT - AMOUNT_QUANTUM}: {self.amount}",
                field="amount",
            )
        if amount != amount.quantize(AMOUNT_QUANTUM):
            raise DomainValidationException(
                f"Amount must have at most 2 decimal places: {self.amount}",
                field="amount",
            )
        self.amount = amount.quantize(AMOUNT_QUANTUM)

    def _validate_currency(self) -> None:
        if not self.currency or len(self.currency) != 3 or not self.currency.isalpha():
            raise DomainValidationException(
                f"Invalid currency code: {self.currency}",
                field="currency",
            )
        self.currency = self.currency.upper()

    def can_transition_to(self, new_status: PaymentStatus, *, enforce: bool = True) -> bool:
        if new_status == self.status:
            return True
        if new_status == PaymentStatus.PENDING and self.status != PaymentStatus.PENDING:
            return False
        if not enforce:
            return True
        return new_status in ALLOWED_TRANSITIONS[self.status]

    def apply_status(
        self,
        new_status: PaymentStatus,
        *,
        transaction_id: Optional[str] = None,
        gateway_response: Optional[dict] = None,
        enforce: bool = True,
        now: Optional[datetime] = None,
    ) -> PaymentStatus:
        """
        写入网关回调的新状态，返回之前的状态

        调用方需先确认 new_status 属于 WEBHOOK_STATUSES；
        transaction_id / gateway_response 仅在提供时覆盖。
        """
        if not self.can_transition_to(new_status, enforce=enforce):
            raise IllegalStatusTransitionException(self.order_id, self.status, new_status)
        previous = self.status
        self.status = new_status
        if transaction_id is not None:
            self.transaction_id = transaction_id
        if gateway_response is not None:
            self.gateway_response = dict(gateway_response)
        self.updated_at = now or datetime.now(timezone.utc)
        return previous

    def request_refund(self, reason: Optional[str], *, now: Optional[datetime] = None) -> None:
        """completed -> refund_requested，并把原因记入 gateway_response.refund_reason"""
        if self.status != PaymentStatus.COMPLETED:
            raise DomainValidationException(
                f"Cannot request refund for payment in status {self.status.value}",
                field="status",
            )
        response = dict(self.gateway_response or {})
        response["refund_reason"] = reason
        self.gateway_response = response
        self.status = PaymentStatus.REFUND_REQUESTED
        self.updated_at = now or datetime.now(timezone.utc)

    def mark_fulfilled(self, now: Optional[datetime] = None) -> None:
        self.fulfilled_at = now or datetime.now(timezone.utc)

    def needs_fulfillment(self) -> bool:
        return self.status == PaymentStatus.COMPLETED and self.fulfilled_at is None
