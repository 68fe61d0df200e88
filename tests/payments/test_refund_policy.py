from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.payment.entity import PaymentStatus, PaymentTransaction
from domain.payment.policy import (
    REASON_DEFAULT,
    REASON_DONATION,
    REASON_PAST_BOOKING,
    REASON_PAST_EVENT,
    REASON_STORE_WINDOW,
    RefundEligibilityEvaluator,
)


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def _completed(payment_type: str, reference_id: int = 1, created_at: datetime = NOW) -> PaymentTransaction:
    reference_type = {
        "booking": "booking",
        "donation": "temple",
        "store_order": "store_order",
        "event_registration": "event",
    }[payment_type]
    return PaymentTransaction(
        id=1,
        order_id="ORDER_1_x",
        user_id=1,
        amount=Decimal("100"),
        currency="INR",
        payment_type=payment_type,
        reference_id=reference_id,
        reference_type=reference_type,
        status=PaymentStatus.COMPLETED,
        created_at=created_at,
    )


@pytest.mark.asyncio
async def test_future_booking_is_refundable(references):
    references.add_booking(1, NOW + timedelta(days=1))
    decision = await RefundEligibilityEvaluator(references).evaluate(_completed("booking"), NOW)
    assert decision.allowed
    assert decision.reason is None


@pytest.mark.asyncio
@pytest.mark.parametrize("booking_date", [NOW - timedelta(days=1), NOW])
async def test_past_or_current_booking_is_denied(references, booking_date):
    references.add_booking(1, booking_date)
    decision = await RefundEligibilityEvaluator(references).evaluate(_completed("booking"), NOW)
    assert not decision.allowed
    assert decision.reason == REASON_PAST_BOOKING


@pytest.mark.asyncio
async def test_missing_booking_is_denied_with_default_reason(references):
    decision = await RefundEligibilityEvaluator(references).evaluate(_completed("booking", 99), NOW)
    assert decision.reason == REASON_DEFAULT


@pytest.mark.asyncio
async def test_event_uses_registration_event_start(references):
    references.add_registration(5, NOW + timedelta(hours=2))
    references.add_registration(6, NOW - timedelta(hours=2))
    evaluator = RefundEligibilityEvaluator(references)

    assert (await evaluator.evaluate(_completed("event_registration", 5), NOW)).allowed
    denied = await evaluator.evaluate(_completed("event_registration", 6), NOW)
    assert denied.reason == REASON_PAST_EVENT


@pytest.mark.asyncio
async def test_store_order_window(references):
    evaluator = RefundEligibilityEvaluator(references)

    recent = await evaluator.evaluate(_completed("store_order", created_at=NOW - timedelta(hours=23)), NOW)
    assert recent.allowed

    edge = await evaluator.evaluate(_completed("store_order", created_at=NOW - timedelta(hours=24)), NOW)
    assert edge.allowed

    stale = await evaluator.evaluate(_completed("store_order", created_at=NOW - timedelta(hours=25)), NOW)
    assert not stale.allowed
    assert stale.reason == REASON_STORE_WINDOW


@pytest.mark.asyncio
async def test_store_order_window_is_configurable(references):
    evaluator = RefundEligibilityEvaluator(references, store_order_window=timedelta(hours=48))
    decision = await evaluator.evaluate(_completed("store_order", created_at=NOW - timedelta(hours=25)), NOW)
    assert decision.allowed


@pytest.mark.asyncio
async def test_donation_never_refundable(references):
    decision = await RefundEligibilityEvaluator(references).evaluate(_completed("donation"), NOW)
    assert not decision.allowed
    assert decision.reason == REASON_DONATION
