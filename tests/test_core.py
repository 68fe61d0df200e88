from datetime import datetime, timedelta, timezone

from core.exceptions import business_exception_status
from core.logging_config import redact_sensitive
from core.response import error_response, isoformat_utc, offset_paginated_response, success_response
from domain.common.exceptions import BusinessException, NotFoundException, PersistenceException
from domain.payment.exceptions import IllegalStatusTransitionException
from shared.codes import BusinessCode


def test_redact_sensitive_masks_top_level_keys():
    event = {"event": "payment_status_updated", "order_id": "ORDER_1_a", "signature": "abc", "gateway_response": {"x": 1}}

    result = redact_sensitive(None, "info", event)

    assert result["signature"] == "***"
    assert result["gateway_response"] == "***"
    assert result["order_id"] == "ORDER_1_a"


def test_business_exception_status_mapping():
    assert business_exception_status(NotFoundException()) == 404
    assert business_exception_status(PersistenceException("create payment transaction")) == 500
    assert business_exception_status(BusinessException(code=BusinessCode.CONFLICT, message="dup")) == 409
    assert business_exception_status(BusinessException(code=12345, message="unknown")) == 400
    assert business_exception_status(IllegalStatusTransitionException("ORDER_1_a", "cancelled", "completed")) == 409


def test_isoformat_utc_normalizes_timezones():
    naive = datetime(2026, 3, 15, 12, 0)
    ist = datetime(2026, 3, 15, 17, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))

    assert isoformat_utc(naive) == "2026-03-15T12:00:00Z"
    assert isoformat_utc(ist) == "2026-03-15T12:00:00Z"


def test_envelopes():
    ok = success_response(data={"a": 1}).model_dump(mode="json")
    assert ok["code"] == 0 and ok["data"] == {"a": 1} and ok["error"] is None

    err = error_response(code=BusinessCode.NOT_FOUND, message="Payment not found", request_id="r1").model_dump(mode="json")
    assert err["data"] is None
    assert err["error"]["request_id"] == "r1"
    assert err["error"]["timestamp"].endswith("Z")

    page = offset_paginated_response(items=[1, 2], total=5, limit=2, offset=0).model_dump(mode="json")
    assert page["data"]["pagination"] == {"limit": 2, "offset": 0, "total": 5}
