"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class PaymentGateway(Protocol):
    """Hosted-checkout gateway.

    Payment itself happens on the gateway's page; this service only builds the
    redirect handle and authenticates the status callbacks it sends back.
    """

    provider: str

    def checkout_url(self, order_id: str) -> str: ...

    def verify_webhook(self, headers: Mapping[str, Any], body: bytes) -> None:
        """Raise PaymentSignatureException when the callback is not authentic."""
        ...
