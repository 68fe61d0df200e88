import json

import pytest

from core.settings import PaymentSettings
from infrastructure.external.payments.hosted_checkout import compute_signature


API = "/api/v1/payments"
SECRET = "whsec_test"


@pytest.fixture
def api_payment_settings() -> PaymentSettings:
    return PaymentSettings(webhook={"secret": SECRET})


@pytest.mark.asyncio
async def test_unsigned_webhook_rejected(api_client, auth_headers):
    created = await api_client.post(
        f"{API}/orders",
        json={"amount": 10, "payment_type": "donation", "reference_id": 1, "reference_type": "temple"},
        headers=auth_headers(3),
    )
    order_id = created.json()["data"]["order_id"]
    body = json.dumps({"order_id": order_id, "status": "completed"}).encode()

    unsigned = await api_client.post(f"{API}/webhook", content=body, headers={"content-type": "application/json"})
    assert unsigned.status_code == 400
    assert unsigned.json()["message"] == "Invalid payment signature"

    order = await api_client.get(f"{API}/orders/{order_id}", headers=auth_headers(3))
    assert order.json()["data"]["status"] == "pending"


@pytest.mark.asyncio
async def test_signed_webhook_accepted(api_client, auth_headers):
    created = await api_client.post(
        f"{API}/orders",
        json={"amount": 10, "payment_type": "donation", "reference_id": 1, "reference_type": "temple"},
        headers=auth_headers(3),
    )
    order_id = created.json()["data"]["order_id"]
    body = json.dumps({"order_id": order_id, "status": "success"}).encode()

    resp = await api_client.post(
        f"{API}/webhook",
        content=body,
        headers={"content-type": "application/json", "X-Webhook-Signature": compute_signature(SECRET, body)},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "completed"
