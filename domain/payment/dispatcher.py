"""
Reference-object side effects of a completed payment.

A completed payment confirms the thing it paid for: a booking becomes
``confirmed``, a store order ``paid``, an event registration ``confirmed``.
Donations have nothing to update.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from .entity import PaymentType
from .exceptions import ReferenceNotFoundException
from .repository import ReferenceRepository


BOOKING_CONFIRMED = "confirmed"
STORE_ORDER_PAID = "paid"
REGISTRATION_CONFIRMED = "confirmed"


class FulfillmentDispatcher:
    """Maps a payment type onto the single-row update it implies.

    Every update sets an absolute status, so running the same dispatch twice
    leaves the referenced row unchanged apart from ``updated_at``.
    """

    def __init__(self, references: ReferenceRepository) -> None:
        self._references = references

    def _route(self, payment_type: PaymentType) -> Optional[tuple[str, Callable[..., Awaitable[bool]], str]]:
        routes = {
            PaymentType.BOOKING: ("booking", self._references.set_booking_status, BOOKING_CONFIRMED),
            PaymentType.STORE_ORDER: ("store_order", self._references.set_store_order_status, STORE_ORDER_PAID),
            PaymentType.EVENT_REGISTRATION: (
                "event_registration",
                self._references.set_registration_status,
                REGISTRATION_CONFIRMED,
            ),
            PaymentType.DONATION: None,
        }
        if payment_type not in routes:
            raise ValueError(f"No fulfillment route for payment type {payment_type!r}")
        return routes[payment_type]

    async def dispatch(
        self,
        payment_type: PaymentType,
        reference_id: int,
        *,
        now: Optional[datetime] = None,
    ) -> bool:
        """Apply the side effect; returns False when the type has none."""
        route = self._route(PaymentType(payment_type))
        if route is None:
            return False

        kind, update, status = route
        matched = await update(reference_id, status, now or datetime.now(timezone.utc))
        if not matched:
            raise ReferenceNotFoundException(kind, reference_id)
        return True
