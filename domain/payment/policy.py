"""
Refund eligibility policy, one rule per payment type.

The evaluator only gates eligibility. Ownership and the ``completed``
precondition are checked by the caller, and moving money back is the
gateway's business.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .entity import PaymentTransaction, PaymentType, _ensure_utc
from .repository import ReferenceRepository


REASON_PAST_BOOKING = "Cannot refund past bookings"
REASON_PAST_EVENT = "Cannot refund past events"
REASON_STORE_WINDOW = "Refund window expired for store orders"
REASON_DONATION = "Donations are non-refundable"
REASON_UNSUPPORTED = "Refund not supported for this payment type"
REASON_DEFAULT = "Refund not allowed"

DEFAULT_STORE_ORDER_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class RefundDecision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "RefundDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "RefundDecision":
        return cls(allowed=False, reason=reason)


class RefundEligibilityEvaluator:
    def __init__(
        self,
        references: ReferenceRepository,
        *,
        store_order_window: timedelta = DEFAULT_STORE_ORDER_WINDOW,
    ) -> None:
        self._references = references
        self._store_order_window = store_order_window

    async def evaluate(self, transaction: PaymentTransaction, now: Optional[datetime] = None) -> RefundDecision:
        now = _ensure_utc(now) or datetime.now(timezone.utc)
        payment_type = transaction.payment_type

        if payment_type == PaymentType.BOOKING:
            return await self._evaluate_booking(transaction, now)
        if payment_type == PaymentType.EVENT_REGISTRATION:
            return await self._evaluate_event(transaction, now)
        if payment_type == PaymentType.STORE_ORDER:
            return self._evaluate_store_order(transaction, now)
        if payment_type == PaymentType.DONATION:
            return RefundDecision.deny(REASON_DONATION)
        return RefundDecision.deny(REASON_UNSUPPORTED)

    async def _evaluate_booking(self, transaction: PaymentTransaction, now: datetime) -> RefundDecision:
        booking_date = _ensure_utc(await self._references.get_booking_date(transaction.reference_id))
        if booking_date is None:
            return RefundDecision.deny(REASON_DEFAULT)
        if booking_date > now:
            return RefundDecision.allow()
        return RefundDecision.deny(REASON_PAST_BOOKING)

    async def _evaluate_event(self, transaction: PaymentTransaction, now: datetime) -> RefundDecision:
        start = _ensure_utc(await self._references.get_registration_event_start(transaction.reference_id))
        if start is None:
            return RefundDecision.deny(REASON_DEFAULT)
        if start > now:
            return RefundDecision.allow()
        return RefundDecision.deny(REASON_PAST_EVENT)

    def _evaluate_store_order(self, transaction: PaymentTransaction, now: datetime) -> RefundDecision:
        if transaction.created_at is None:
            return RefundDecision.deny(REASON_DEFAULT)
        if now - transaction.created_at <= self._store_order_window:
            return RefundDecision.allow()
        return RefundDecision.deny(REASON_STORE_WINDOW)
