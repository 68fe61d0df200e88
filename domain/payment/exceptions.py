"""
支付领域异常
"""
from __future__ import annotations

from typing import Any

from domain.common.exceptions import BusinessException, NotFoundException
from shared.codes.payment_codes import PaymentCode


def _status_value(status: Any) -> str:
    return getattr(status, "value", status)


class PaymentNotFoundException(NotFoundException):
    """支付记录不存在（或不属于当前用户）"""

    def __init__(self, order_id: str, message: str = "Payment not found"):
        super().__init__(
            message,
            details={"order_id": order_id},
            code=PaymentCode.PAYMENT_NOT_FOUND,
            error_type="PaymentNotFound",
        )


class ReferenceNotFoundException(NotFoundException):
    """支付所指向的预订/订单/报名不存在"""

    def __init__(self, reference_kind: str, reference_id: int):
        super().__init__(
            f"{reference_kind} {reference_id} not found",
            details={"reference_kind": reference_kind, "reference_id": reference_id},
            code=PaymentCode.REFERENCE_NOT_FOUND,
            error_type="ReferenceNotFound",
        )


class OrderIdConflictException(BusinessException):
    """order_id 唯一索引冲突"""

    def __init__(self, order_id: str):
        super().__init__(
            code=PaymentCode.ORDER_ID_CONFLICT,
            message=f"Order {order_id} already exists",
            error_type="OrderIdConflict",
            details={"order_id": order_id},
            http_status=409,
        )


class IllegalStatusTransitionException(BusinessException):
    """状态机不允许的转换"""

    def __init__(self, order_id: str, current: Any, target: Any):
        super().__init__(
            code=PaymentCode.ILLEGAL_TRANSITION,
            message=f"Cannot transition payment from {_status_value(current)} to {_status_value(target)}",
            error_type="IllegalStatusTransition",
            details={
                "order_id": order_id,
                "current_status": _status_value(current),
                "requested_status": _status_value(target),
            },
            field="status",
            http_status=409,
        )


class RefundNotAllowedException(BusinessException):
    """退款策略拒绝，message 为策略给出的原因"""

    def __init__(self, order_id: str, reason: str):
        super().__init__(
            code=PaymentCode.REFUND_NOT_ALLOWED,
            message=reason,
            error_type="RefundNotAllowed",
            details={"order_id": order_id},
            http_status=400,
        )


class PaymentSignatureException(BusinessException):
    def __init__(self, message: str = "Invalid payment signature"):
        super().__init__(
            code=PaymentCode.SIGNATURE_ERROR,
            message=message,
            error_type="PaymentSignatureError",
            http_status=400,
        )
