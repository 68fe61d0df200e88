from datetime import timedelta
from decimal import Decimal

import pytest

from application.dtos.payments import (
    CreateOrderDTO,
    OrderListQuery,
    RefundRequestDTO,
    StatusWebhookDTO,
)
from domain.common.exceptions import DomainValidationException
from domain.payment.entity import PaymentStatus
from domain.payment.exceptions import (
    IllegalStatusTransitionException,
    PaymentNotFoundException,
    RefundNotAllowedException,
)


def _booking_order(reference_id: int = 1, **overrides) -> CreateOrderDTO:
    fields = dict(amount="1500.00", payment_type="booking", reference_id=reference_id, reference_type="booking")
    fields.update(overrides)
    return CreateOrderDTO(**fields)


@pytest.mark.asyncio
async def test_create_order_persists_pending_with_payment_url(memory_service, payments):
    order = await memory_service.create_order(7, _booking_order(description="Abhishekam"))

    assert order.status == "pending"
    assert order.currency == "INR"
    assert order.amount == Decimal("1500.00")
    assert order.payment_url == f"https://pay.test/checkout/{order.order_id}"
    assert payments.rows[order.order_id].user_id == 7


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"payment_type": "subscription"},
        {"reference_type": "planet"},
        {"amount": None},
        {"amount": "-5"},
        {"amount": "abc"},
        {"amount": "NaN"},
        {"amount": "sNaN"},
        {"amount": "Infinity"},
        {"amount": "1e30"},
        {"amount": "10000000000000"},
        {"amount": "10.129"},
        {"reference_id": None},
        {"currency": "RUPEES"},
    ],
)
async def test_invalid_create_persists_nothing(memory_service, payments, overrides):
    with pytest.raises(DomainValidationException):
        await memory_service.create_order(7, _booking_order(**overrides))
    assert payments.rows == {}


@pytest.mark.asyncio
async def test_missing_fields_message(memory_service):
    with pytest.raises(DomainValidationException) as exc:
        await memory_service.create_order(7, CreateOrderDTO())
    assert exc.value.message == "Amount, payment type, reference ID, and reference type are required"


@pytest.mark.asyncio
async def test_unknown_order_leaves_store_unchanged(memory_service, payments):
    await memory_service.create_order(7, _booking_order())
    before = {k: (v.status, v.updated_at) for k, v in payments.rows.items()}

    with pytest.raises(PaymentNotFoundException) as exc:
        await memory_service.handle_status_update(StatusWebhookDTO(order_id="ORDER_0_missing", status="completed"))

    assert exc.value.message == "Payment order not found"
    assert {k: (v.status, v.updated_at) for k, v in payments.rows.items()} == before


@pytest.mark.asyncio
async def test_webhook_rejects_refund_requested_and_unknown_status(memory_service):
    order = await memory_service.create_order(7, _booking_order())
    for status in ("refund_requested", "exploded"):
        with pytest.raises(DomainValidationException):
            await memory_service.handle_status_update(StatusWebhookDTO(order_id=order.order_id, status=status))


@pytest.mark.asyncio
async def test_completed_booking_is_confirmed(memory_service, references, now):
    references.add_booking(1, now + timedelta(days=3))
    order = await memory_service.create_order(7, _booking_order())

    updated = await memory_service.handle_status_update(
        StatusWebhookDTO(order_id=order.order_id, status="captured", transaction_id="pay_9", gateway_response={"id": "pay_9"})
    )

    assert updated.status == "completed"
    assert updated.transaction_id == "pay_9"
    assert updated.fulfilled_at == now
    assert references.bookings[1]["status"] == "confirmed"


@pytest.mark.asyncio
async def test_redelivered_completed_webhook_is_idempotent(memory_service, references, now):
    references.add_booking(1, now + timedelta(days=3))
    order = await memory_service.create_order(7, _booking_order())
    webhook = StatusWebhookDTO(order_id=order.order_id, status="completed")

    await memory_service.handle_status_update(webhook)
    snapshot = dict(references.bookings[1])
    again = await memory_service.handle_status_update(webhook)

    assert again.status == "completed"
    assert references.bookings[1] == snapshot


@pytest.mark.asyncio
async def test_donation_completion_has_no_side_effect(memory_service, references):
    order = await memory_service.create_order(
        7, CreateOrderDTO(amount=101, payment_type="donation", reference_id=2, reference_type="temple")
    )
    updated = await memory_service.handle_status_update(StatusWebhookDTO(order_id=order.order_id, status="completed"))

    assert updated.status == "completed"
    assert references.writes == []


@pytest.mark.asyncio
async def test_missing_reference_keeps_payment_completed_but_unfulfilled(memory_service, payments):
    order = await memory_service.create_order(7, _booking_order(reference_id=404))

    updated = await memory_service.handle_status_update(StatusWebhookDTO(order_id=order.order_id, status="completed"))

    assert updated.status == "completed"
    assert updated.fulfilled_at is None
    assert payments.rows[order.order_id].needs_fulfillment()


@pytest.mark.asyncio
async def test_illegal_transition_is_rejected(memory_service, payments):
    order = await memory_service.create_order(7, _booking_order())
    await memory_service.handle_status_update(StatusWebhookDTO(order_id=order.order_id, status="cancelled"))

    with pytest.raises(IllegalStatusTransitionException):
        await memory_service.handle_status_update(StatusWebhookDTO(order_id=order.order_id, status="completed"))
    assert payments.rows[order.order_id].status == PaymentStatus.CANCELLED


@pytest.mark.asyncio
async def test_get_order_is_owner_scoped(memory_service):
    order = await memory_service.create_order(7, _booking_order())
    assert (await memory_service.get_order(7, order.order_id)).order_id == order.order_id
    with pytest.raises(PaymentNotFoundException):
        await memory_service.get_order(8, order.order_id)


@pytest.mark.asyncio
async def test_refund_future_booking(memory_service, references, now):
    references.add_booking(1, now + timedelta(days=3))
    order = await memory_service.create_order(7, _booking_order())
    await memory_service.handle_status_update(StatusWebhookDTO(order_id=order.order_id, status="completed"))

    refunded = await memory_service.request_refund(7, order.order_id, RefundRequestDTO(reason="travel cancelled"))

    assert refunded.status == "refund_requested"
    assert refunded.gateway_response["refund_reason"] == "travel cancelled"


@pytest.mark.asyncio
async def test_refund_denied_carries_policy_reason(memory_service, references, now):
    references.add_booking(1, now - timedelta(days=1))
    order = await memory_service.create_order(7, _booking_order())
    await memory_service.handle_status_update(StatusWebhookDTO(order_id=order.order_id, status="completed"))

    with pytest.raises(RefundNotAllowedException) as exc:
        await memory_service.request_refund(7, order.order_id, RefundRequestDTO(reason="late"))
    assert exc.value.message == "Cannot refund past bookings"


@pytest.mark.asyncio
async def test_refund_requires_completed_and_owner(memory_service, references, now):
    references.add_booking(1, now + timedelta(days=3))
    order = await memory_service.create_order(7, _booking_order())

    with pytest.raises(PaymentNotFoundException) as exc:
        await memory_service.request_refund(7, order.order_id, RefundRequestDTO())
    assert exc.value.message == "Payment not found or not eligible for refund"

    await memory_service.handle_status_update(StatusWebhookDTO(order_id=order.order_id, status="completed"))
    with pytest.raises(PaymentNotFoundException):
        await memory_service.request_refund(8, order.order_id, RefundRequestDTO())


@pytest.mark.asyncio
async def test_list_orders_filters_and_counts(memory_service):
    for _ in range(3):
        await memory_service.create_order(7, _booking_order())
    await memory_service.create_order(7, CreateOrderDTO(amount=51, payment_type="donation", reference_id=2, reference_type="temple"))
    await memory_service.create_order(8, _booking_order())

    items, total = await memory_service.list_orders(7, OrderListQuery(payment_type="booking", limit=2))
    assert total == 3
    assert len(items) == 2

    with pytest.raises(DomainValidationException):
        await memory_service.list_orders(7, OrderListQuery(status="bogus"))


@pytest.mark.asyncio
async def test_reconcile_retries_unfulfilled(memory_service, references, payments, now):
    order = await memory_service.create_order(7, _booking_order(reference_id=5))
    await memory_service.handle_status_update(StatusWebhookDTO(order_id=order.order_id, status="completed"))

    first = await memory_service.reconcile_fulfillments()
    assert (first.scanned, first.fulfilled, first.failed) == (1, 0, 1)

    references.add_booking(5, now + timedelta(days=1))
    second = await memory_service.reconcile_fulfillments()
    assert (second.scanned, second.fulfilled, second.failed) == (1, 1, 0)
    assert references.bookings[5]["status"] == "confirmed"
    assert payments.rows[order.order_id].fulfilled_at == now


def test_payment_methods_from_settings(memory_service):
    methods = {m.id: m for m in memory_service.list_payment_methods()}
    assert set(methods) == {"card", "upi", "netbanking", "wallet"}
    assert methods["card"].fees == Decimal("2.5")
