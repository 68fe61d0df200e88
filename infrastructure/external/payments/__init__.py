"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from typing import Optional

from core.settings import PaymentSettings, payment_settings
from application.ports.payment_gateway import PaymentGateway


def get_payment_gateway(
    provider: Optional[str] = None,
    settings: Optional[PaymentSettings] = None,
) -> PaymentGateway:
    cfg = settings or payment_settings
    name = (provider or cfg.gateway.name).lower()
    if name in {"hosted_checkout", "hosted"}:
        from .hosted_checkout import HostedCheckoutGateway
        return HostedCheckoutGateway(
            checkout_base_url=cfg.gateway.checkout_base_url,
            webhook_secret=cfg.webhook.secret,
            signature_header=cfg.webhook.signature_header,
        )
    raise ValueError(f"Unsupported payment provider: {name}")
