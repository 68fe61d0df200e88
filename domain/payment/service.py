"""
支付领域服务 - 订单创建、状态流转、履约与退款申请
"""
from typing import Any, Optional
from decimal import Decimal, InvalidOperation
from datetime import datetime, timezone

from .entity import (
    PaymentTransaction,
    PaymentStatus,
    WEBHOOK_STATUSES,
    generate_order_id,
    parse_payment_status,
    parse_payment_type,
    parse_reference_type,
)
from .repository import PaymentTransactionRepository, ReferenceRepository
from .dispatcher import FulfillmentDispatcher
from .policy import RefundDecision, RefundEligibilityEvaluator
from .exceptions import PaymentNotFoundException, RefundNotAllowedException
from domain.common.exceptions import DomainValidationException


def _require(value: Any, field: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise DomainValidationException(
            "Amount, payment type, reference ID, and reference type are required",
            field=field,
        )


class PaymentDomainService:
    """
    支付领域服务 - 编排支付生命周期

    职责：
    1. 创建 pending 交易（订单号生成、入参校验）
    2. 网关回调的状态写入（状态机校验）
    3. completed 后的履约副作用
    4. 退款资格判断与退款申请
    """

    def __init__(
        self,
        payment_repository: PaymentTransactionRepository,
        reference_repository: ReferenceRepository,
        *,
        enforce_transitions: bool = True,
        evaluator: Optional[RefundEligibilityEvaluator] = None,
    ):
        self.payment_repository = payment_repository
        self.reference_repository = reference_repository
        self.enforce_transitions = enforce_transitions
        self.dispatcher = FulfillmentDispatcher(reference_repository)
        self.evaluator = evaluator or RefundEligibilityEvaluator(reference_repository)

    async def create_order(
        self,
        *,
        user_id: int,
        amount: Any,
        payment_type: Any,
        reference_id: Any,
        reference_type: Any,
        currency: str = "INR",
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PaymentTransaction:
        """
        创建 pending 交易

        业务规则：
        1. amount / payment_type / reference_id / reference_type 必填
        2. 枚举值必须合法，金额大于0
        校验全部通过后才会写库。
        """
        _require(amount, "amount")
        _require(payment_type, "payment_type")
        _require(reference_id, "reference_id")
        _require(reference_type, "reference_type")
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise DomainValidationException(f"Invalid amount: {amount}", field="amount")
        try:
            reference_id = int(reference_id)
        except (TypeError, ValueError):
            raise DomainValidationException(f"Invalid reference ID: {reference_id}", field="reference_id")

        now = now or datetime.now(timezone.utc)
        transaction = PaymentTransaction(
            id=None,
            order_id=generate_order_id(now),
            user_id=user_id,
            amount=amount,
            currency=currency or "INR",
            payment_type=parse_payment_type(payment_type),
            reference_id=reference_id,
            reference_type=parse_reference_type(reference_type),
            status=PaymentStatus.PENDING,
            description=description,
            created_at=now,
            updated_at=now,
        )
        return await self.payment_repository.create(transaction)

    async def apply_status_update(
        self,
        order_id: str,
        new_status: Any,
        transaction_id: Optional[str] = None,
        gateway_response: Optional[dict] = None,
    ) -> PaymentTransaction:
        """写入网关回调状态并持久化；履约由调用方在同一事务内触发"""
        if not order_id or not new_status:
            raise DomainValidationException("Order ID and status are required", field="order_id" if not order_id else "status")
        status = parse_payment_status(new_status)
        if status not in WEBHOOK_STATUSES:
            raise DomainValidationException("Invalid payment status", field="status")

        transaction = await self.payment_repository.get_by_order_id(order_id)
        if transaction is None:
            raise PaymentNotFoundException(order_id, "Payment order not found")

        transaction.apply_status(
            status,
            transaction_id=transaction_id,
            gateway_response=gateway_response,
            enforce=self.enforce_transitions,
        )
        return await self.payment_repository.update(transaction)

    async def fulfill(self, transaction: PaymentTransaction, now: Optional[datetime] = None) -> PaymentTransaction:
        """执行履约副作用并记录 fulfilled_at；失败时异常向上抛出"""
        now = now or datetime.now(timezone.utc)
        await self.dispatcher.dispatch(transaction.payment_type, transaction.reference_id, now=now)
        transaction.mark_fulfilled(now)
        return await self.payment_repository.update(transaction)

    async def get_owned(self, user_id: int, order_id: str) -> PaymentTransaction:
        transaction = await self.payment_repository.get_by_order_id_for_user(order_id, user_id)
        if transaction is None:
            raise PaymentNotFoundException(order_id)
        return transaction

    async def evaluate_refund(self, transaction: PaymentTransaction, now: Optional[datetime] = None) -> RefundDecision:
        return await self.evaluator.evaluate(transaction, now)

    async def request_refund(
        self,
        user_id: int,
        order_id: str,
        reason: Optional[str],
        now: Optional[datetime] = None,
    ) -> PaymentTransaction:
        """
        申请退款

        业务规则：
        1. 交易必须属于该用户且状态为 completed（否则按不存在处理）
        2. 退款策略拒绝时抛出 RefundNotAllowedException，携带策略原因
        """
        transaction = await self.payment_repository.get_by_order_id_for_user(order_id, user_id)
        if transaction is None or transaction.status != PaymentStatus.COMPLETED:
            raise PaymentNotFoundException(order_id, "Payment not found or not eligible for refund")

        decision = await self.evaluate_refund(transaction, now)
        if not decision.allowed:
            raise RefundNotAllowedException(order_id, decision.reason or "Refund not allowed")

        transaction.request_refund(reason, now=now)
        return await self.payment_repository.update(transaction)
