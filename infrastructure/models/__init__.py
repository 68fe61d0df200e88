"""Infrastructure models package exports."""
from .base import Base, metadata
from .payment import PaymentTransactionModel
from .reference import BookingModel, StoreOrderModel, EventModel, EventRegistrationModel

__all__ = [
    "Base",
    "metadata",
    "PaymentTransactionModel",
    "BookingModel",
    "StoreOrderModel",
    "EventModel",
    "EventRegistrationModel",
]
