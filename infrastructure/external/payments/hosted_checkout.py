"""
Hosted-checkout gateway adapter.

The customer is redirected to ``<checkout_base_url>/<order_id>``; the gateway
later posts status callbacks to ``/api/v1/payments/webhook``. When a webhook
secret is configured, each callback must carry the hex HMAC-SHA256 of the raw
body in the configured signature header.
"""
from __future__ import annotations

import hashlib
import hmac
from typing import Any, Mapping, Optional
from urllib.parse import quote

from core.logging_config import get_logger
from domain.payment.exceptions import PaymentSignatureException


logger = get_logger(__name__)


def compute_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body or b"", hashlib.sha256).hexdigest()


class HostedCheckoutGateway:
    provider = "hosted_checkout"

    def __init__(
        self,
        *,
        checkout_base_url: str,
        webhook_secret: Optional[str] = None,
        signature_header: str = "X-Webhook-Signature",
    ) -> None:
        self.checkout_base_url = checkout_base_url.rstrip("/")
        self._webhook_secret = webhook_secret
        self._signature_header = signature_header

    def checkout_url(self, order_id: str) -> str:
        return f"{self.checkout_base_url}/{quote(order_id, safe='')}"

    def verify_webhook(self, headers: Mapping[str, Any], body: bytes) -> None:
        if not self._webhook_secret:
            return
        # Header lookup is case-insensitive (Starlette headers or plain dict)
        wanted = self._signature_header.lower()
        provided = None
        for k, v in headers.items():
            if k.lower() == wanted:
                provided = v
                break
        if not provided:
            logger.warning("payment_webhook_signature_missing", provider=self.provider)
            raise PaymentSignatureException()
        expected = compute_signature(self._webhook_secret, body)
        if not hmac.compare_digest(expected, str(provided).strip().lower()):
            logger.warning("payment_webhook_signature_mismatch", provider=self.provider)
            raise PaymentSignatureException()
