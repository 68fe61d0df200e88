"""
Payments API routes.

Exposes order creation, the gateway status webhook, owner-scoped order
queries and refund requests via the application service. Keep this thin:
no persistence or gateway details here.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import ValidationError

from api.dependencies import get_current_user_id, get_payment_service
from application.dtos.payments import (
    CreateOrderDTO,
    OrderListQuery,
    RefundRequestDTO,
    StatusWebhookDTO,
)
from application.services.payment_service import PaymentApplicationService
from core.config import settings
from core.logging_config import get_logger
from core.response import success_response, offset_paginated_response
from domain.common.exceptions import DomainValidationException


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


@router.post("/orders", summary="Create payment order", status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: CreateOrderDTO,
    user_id: int = Depends(get_current_user_id),
    service: PaymentApplicationService = Depends(get_payment_service),
):
    order = await service.create_order(user_id, payload)
    return success_response(data=order, message="Payment order created")


@router.post("/webhook", summary="Gateway status webhook")
async def payment_webhook(
    request: Request,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    raw_body = await request.body()
    service.verify_webhook(request.headers, raw_body)
    try:
        payload = StatusWebhookDTO.model_validate_json(raw_body or b"{}")
    except ValidationError as exc:
        logger.warning("payment_webhook_invalid_payload", error=str(exc))
        raise DomainValidationException("Invalid webhook payload") from exc

    transaction = await service.handle_status_update(payload)
    return success_response(data=transaction, message="Payment status updated")


@router.get("/orders", summary="Payment history")
async def list_orders(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    payment_type: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    user_id: int = Depends(get_current_user_id),
    service: PaymentApplicationService = Depends(get_payment_service),
):
    query = OrderListQuery(
        status=status_filter,
        payment_type=payment_type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    items, total = await service.list_orders(user_id, query)
    return offset_paginated_response(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", summary="Payment statistics")
async def payment_stats(
    year: Optional[int] = Query(default=None, ge=2000, le=9999),
    user_id: int = Depends(get_current_user_id),
    service: PaymentApplicationService = Depends(get_payment_service),
):
    stats = await service.get_stats(user_id, year)
    return success_response(data=stats)


@router.get("/methods", summary="Available payment methods")
async def payment_methods(
    service: PaymentApplicationService = Depends(get_payment_service),
):
    methods = service.list_payment_methods()
    return success_response(data=methods)


@router.get("/orders/{order_id}", summary="Get payment order")
async def get_order(
    order_id: str,
    user_id: int = Depends(get_current_user_id),
    service: PaymentApplicationService = Depends(get_payment_service),
):
    order = await service.get_order(user_id, order_id)
    return success_response(data=order)


@router.post("/orders/{order_id}/refund", summary="Request refund")
async def request_refund(
    order_id: str,
    payload: Optional[RefundRequestDTO] = None,
    user_id: int = Depends(get_current_user_id),
    service: PaymentApplicationService = Depends(get_payment_service),
):
    order = await service.request_refund(user_id, order_id, payload or RefundRequestDTO())
    return success_response(data=order, message="Refund request submitted")
