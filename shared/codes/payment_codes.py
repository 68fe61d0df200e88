"""
Payment specific codes and gateway status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Lifecycle errors (2xxxx, payment range)
    PAYMENT_NOT_FOUND = 20101
    ORDER_ID_CONFLICT = 20102
    ILLEGAL_TRANSITION = 20103
    REFUND_NOT_ALLOWED = 20104
    REFERENCE_NOT_FOUND = 20105

    # Gateway errors (6xxxx)
    SIGNATURE_ERROR = 60002


# Gateway-native status strings accepted by the webhook, mapped to internal
# statuses. Internal status names map to themselves implicitly.
GATEWAY_STATUS_TO_INTERNAL = {
    # Razorpay order/payment states
    "created": "pending",
    "attempted": "processing",
    "authorized": "processing",
    "captured": "completed",
    "paid": "completed",
    # Generic hosted-checkout vocabulary
    "success": "completed",
    "succeeded": "completed",
    "failure": "failed",
    "canceled": "cancelled",
    "aborted": "cancelled",
}
