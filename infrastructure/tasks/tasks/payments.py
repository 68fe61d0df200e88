"""
Celery tasks for payment compensation workflows.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from celery import shared_task
from sqlalchemy.exc import SQLAlchemyError

from application.services.payment_service import PaymentApplicationService
from core.logging_config import get_logger
from core.settings import payment_settings
from infrastructure.database import engine
from infrastructure.external.payments import get_payment_gateway
from infrastructure.tasks.utils.base_task import BaseTask
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


logger = get_logger(__name__)


async def run_reconciliation(limit: Optional[int] = None, service: Optional[PaymentApplicationService] = None) -> dict:
    service = service or PaymentApplicationService(
        uow_factory=SQLAlchemyUnitOfWork,
        gateway=get_payment_gateway(),
        settings=payment_settings,
    )
    result = await service.reconcile_fulfillments(limit)
    return result.model_dump()


async def _run_isolated(limit: Optional[int]) -> dict:
    try:
        return await run_reconciliation(limit)
    finally:
        # Pooled connections are bound to the loop that asyncio.run closes
        await engine.dispose()


@shared_task(
    name="payments.reconcile_fulfillments",
    bind=True,
    base=BaseTask,
    max_retries=5,
    autoretry_for=(SQLAlchemyError, OSError),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
)
def reconcile_fulfillments(self, limit: Optional[int] = None) -> dict:
    """Re-run side effects for completed payments whose fulfilment never landed."""
    result = asyncio.run(_run_isolated(limit))
    logger.info("payment_reconcile_task_done", task_id=self.request.id, **result)
    return result
