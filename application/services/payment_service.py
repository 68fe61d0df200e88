"""
Application service orchestrating payment use-cases.

This class depends only on the unit-of-work abstraction, the PaymentGateway
port and DTOs. Gateway implementations are provided by infrastructure and
must be injected from the composition root (API/tasks), keeping dependencies
one-way.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

from application.dtos.payments import (
    CreateOrderDTO,
    MonthlyStatDTO,
    OrderCreatedDTO,
    OrderListQuery,
    PaymentMethodDTO,
    PaymentStatsDTO,
    PaymentTransactionDTO,
    ReconcileResultDTO,
    RefundRequestDTO,
    StatusWebhookDTO,
    TypeStatusStatDTO,
)
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from core.settings import PaymentSettings, payment_settings
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import (
    PaymentStatus,
    PaymentTransaction,
    parse_payment_status,
    parse_payment_type,
)
from domain.payment.policy import RefundEligibilityEvaluator
from domain.payment.repository import PaymentListFilter
from domain.payment.service import PaymentDomainService


logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_dto(transaction: PaymentTransaction) -> PaymentTransactionDTO:
    return PaymentTransactionDTO.model_validate(transaction)


class PaymentApplicationService:
    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        gateway: PaymentGateway,
        settings: Optional[PaymentSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self.gateway = gateway
        self.settings = settings or payment_settings
        self._clock = clock

    def _domain(self, uow: AbstractUnitOfWork) -> PaymentDomainService:
        window = timedelta(hours=self.settings.refund.store_order_window_hours)
        return PaymentDomainService(
            uow.payment_repository,
            uow.reference_repository,
            enforce_transitions=self.settings.enforce_transitions,
            evaluator=RefundEligibilityEvaluator(uow.reference_repository, store_order_window=window),
        )

    async def _fulfill_in_savepoint(
        self,
        uow: AbstractUnitOfWork,
        domain: PaymentDomainService,
        transaction: PaymentTransaction,
        now: datetime,
    ) -> bool:
        """Run the side effect in a savepoint; a failure leaves fulfilled_at unset."""
        previous = transaction.fulfilled_at
        try:
            async with uow.savepoint():
                await domain.fulfill(transaction, now)
        except Exception as exc:
            transaction.fulfilled_at = previous
            logger.error(
                "payment_fulfillment_failed",
                order_id=transaction.order_id,
                payment_type=transaction.payment_type.value,
                reference_id=transaction.reference_id,
                error=str(exc),
                exc_info=True,
            )
            return False
        logger.info(
            "payment_fulfilled",
            order_id=transaction.order_id,
            payment_type=transaction.payment_type.value,
            reference_id=transaction.reference_id,
        )
        return True

    async def create_order(self, user_id: int, data: CreateOrderDTO) -> OrderCreatedDTO:
        async with self._uow_factory() as uow:
            transaction = await self._domain(uow).create_order(
                user_id=user_id,
                amount=data.amount,
                payment_type=data.payment_type,
                reference_id=data.reference_id,
                reference_type=data.reference_type,
                currency=data.currency or self.settings.default_currency,
                description=data.description,
                now=self._clock(),
            )
        logger.info(
            "payment_order_created",
            order_id=transaction.order_id,
            user_id=user_id,
            payment_type=transaction.payment_type.value,
            amount=str(transaction.amount),
            currency=transaction.currency,
        )
        return OrderCreatedDTO(
            **_to_dto(transaction).model_dump(),
            payment_url=self.gateway.checkout_url(transaction.order_id),
        )

    def verify_webhook(self, headers: Mapping[str, Any], body: bytes) -> None:
        self.gateway.verify_webhook(headers, body)

    async def handle_status_update(self, data: StatusWebhookDTO) -> PaymentTransactionDTO:
        """Persist a gateway status and, for completed payments, fulfil the referenced object.

        The status write and the side effect share one transaction; the side
        effect runs in a savepoint so its failure never loses the status.
        """
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            transaction = await domain.apply_status_update(
                data.order_id,
                data.status,
                transaction_id=data.transaction_id,
                gateway_response=data.gateway_response,
            )
            logger.info(
                "payment_status_updated",
                order_id=transaction.order_id,
                status=transaction.status.value,
                transaction_id=transaction.transaction_id,
            )
            if transaction.status == PaymentStatus.COMPLETED:
                await self._fulfill_in_savepoint(uow, domain, transaction, self._clock())
            return _to_dto(transaction)

    async def get_order(self, user_id: int, order_id: str) -> PaymentTransactionDTO:
        async with self._uow_factory(readonly=True) as uow:
            transaction = await self._domain(uow).get_owned(user_id, order_id)
            return _to_dto(transaction)

    async def list_orders(self, user_id: int, query: OrderListQuery) -> tuple[list[PaymentTransactionDTO], int]:
        filters = PaymentListFilter(
            status=parse_payment_status(query.status) if query.status else None,
            payment_type=parse_payment_type(query.payment_type) if query.payment_type else None,
            start_date=query.start_date,
            end_date=query.end_date,
        )
        async with self._uow_factory(readonly=True) as uow:
            repo = uow.payment_repository
            items = await repo.list_by_user(user_id, filters, skip=query.offset, limit=query.limit)
            total = await repo.count_by_user(user_id, filters)
            return [_to_dto(t) for t in items], total

    async def get_stats(self, user_id: int, year: Optional[int] = None) -> PaymentStatsDTO:
        year = year or self._clock().year
        async with self._uow_factory(readonly=True) as uow:
            repo = uow.payment_repository
            by_type = await repo.stats_by_type_and_status(user_id, year)
            monthly = await repo.monthly_completed(user_id, year)
        return PaymentStatsDTO(
            year=year,
            by_type_and_status=[
                TypeStatusStatDTO(
                    payment_type=s.payment_type,
                    status=s.status,
                    transaction_count=s.transaction_count,
                    total_amount=s.total_amount,
                    average_amount=s.average_amount,
                )
                for s in by_type
            ],
            monthly_breakdown=[
                MonthlyStatDTO(month=m.month, transaction_count=m.transaction_count, total_amount=m.total_amount)
                for m in monthly
            ],
        )

    async def request_refund(self, user_id: int, order_id: str, data: RefundRequestDTO) -> PaymentTransactionDTO:
        async with self._uow_factory() as uow:
            transaction = await self._domain(uow).request_refund(user_id, order_id, data.reason, now=self._clock())
        logger.info("payment_refund_requested", order_id=order_id, user_id=user_id)
        return _to_dto(transaction)

    async def reconcile_fulfillments(self, limit: Optional[int] = None) -> ReconcileResultDTO:
        """Retry side effects for completed payments whose fulfilment never landed."""
        limit = limit or self.settings.reconcile.batch_size
        result = ReconcileResultDTO()
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            pending = await uow.payment_repository.list_unfulfilled(limit)
            result.scanned = len(pending)
            for transaction in pending:
                if await self._fulfill_in_savepoint(uow, domain, transaction, self._clock()):
                    result.fulfilled += 1
                else:
                    result.failed += 1
        logger.info(
            "payment_reconcile_finished",
            scanned=result.scanned,
            fulfilled=result.fulfilled,
            failed=result.failed,
        )
        return result

    def list_payment_methods(self) -> list[PaymentMethodDTO]:
        return [PaymentMethodDTO(**m.model_dump()) for m in self.settings.methods]
