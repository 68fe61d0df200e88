"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so payment policy can be tuned
(``PAYMENT__REFUND__STORE_ORDER_WINDOW_HOURS=48``) without touching the
application settings.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class GatewaySettings(BaseModel):
    name: str = "hosted_checkout"
    checkout_base_url: str = "https://payment-gateway.example.com/pay"


class WebhookSettings(BaseModel):
    # When set, webhooks must carry a hex HMAC-SHA256 of the raw body
    secret: Optional[str] = None
    signature_header: str = "X-Webhook-Signature"


class RefundPolicySettings(BaseModel):
    store_order_window_hours: float = 24.0


class ReconcileSettings(BaseModel):
    batch_size: int = 100


class PaymentMethod(BaseModel):
    id: str
    name: str
    description: str
    enabled: bool = True
    fees: Decimal = Decimal("0")  # percentage


DEFAULT_PAYMENT_METHODS = [
    PaymentMethod(id="card", name="Credit/Debit Card", description="Pay using your credit or debit card", fees=Decimal("2.5")),
    PaymentMethod(id="upi", name="UPI", description="Pay using UPI apps like GPay, PhonePe, Paytm", fees=Decimal("0")),
    PaymentMethod(id="netbanking", name="Net Banking", description="Pay using your bank account", fees=Decimal("1.5")),
    PaymentMethod(id="wallet", name="Digital Wallet", description="Pay using digital wallets", fees=Decimal("1.0")),
]


class PaymentSettings(BaseSettings):
    default_currency: str = "INR"
    # Reject transitions outside the lifecycle table; False keeps enum-only checks
    enforce_transitions: bool = True
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    refund: RefundPolicySettings = Field(default_factory=RefundPolicySettings)
    reconcile: ReconcileSettings = Field(default_factory=ReconcileSettings)
    methods: list[PaymentMethod] = Field(default_factory=lambda: list(DEFAULT_PAYMENT_METHODS))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYMENT__",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
