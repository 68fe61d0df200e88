"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

from core.response import isoformat_utc
from shared.codes.payment_codes import GATEWAY_STATUS_TO_INTERNAL


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                return isoformat_utc(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class CreateOrderDTO(DTOBase):
    # Required fields are checked by the domain service so that a missing
    # field yields the same 400 message as an invalid one.
    amount: Optional[Any] = None
    currency: Optional[str] = None
    payment_type: Optional[str] = None
    reference_id: Optional[Any] = None
    reference_type: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=2000)


class StatusWebhookDTO(DTOBase):
    order_id: Optional[str] = None
    status: Optional[str] = None
    transaction_id: Optional[str] = None
    gateway_response: Optional[dict[str, Any]] = None

    @field_validator("status")
    @classmethod
    def _normalize_status(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        s = v.strip().lower()
        return GATEWAY_STATUS_TO_INTERNAL.get(s, s)


class RefundRequestDTO(DTOBase):
    reason: Optional[str] = Field(default=None, max_length=1000)


class PaymentTransactionDTO(DTOBase):
    id: int
    order_id: str
    user_id: int
    amount: Decimal
    currency: str
    payment_type: str
    reference_id: int
    reference_type: str
    status: str
    description: Optional[str] = None
    transaction_id: Optional[str] = None
    gateway_response: dict[str, Any] = Field(default_factory=dict)
    fulfilled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("payment_type", "reference_type", "status", mode="before")
    @classmethod
    def _enum_value(cls, v: Any) -> Any:
        return getattr(v, "value", v)


class OrderCreatedDTO(PaymentTransactionDTO):
    payment_url: str


class OrderListQuery(DTOBase):
    status: Optional[str] = None
    payment_type: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class TypeStatusStatDTO(DTOBase):
    payment_type: str
    status: str
    transaction_count: int
    total_amount: Decimal
    average_amount: Decimal


class MonthlyStatDTO(DTOBase):
    month: int
    transaction_count: int
    total_amount: Decimal


class PaymentStatsDTO(DTOBase):
    year: int
    by_type_and_status: list[TypeStatusStatDTO]
    monthly_breakdown: list[MonthlyStatDTO]


class PaymentMethodDTO(DTOBase):
    id: str
    name: str
    description: str
    enabled: bool
    fees: Decimal


class ReconcileResultDTO(DTOBase):
    scanned: int = 0
    fulfilled: int = 0
    failed: int = 0
