"""
支付交易仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import Optional, List
from decimal import Decimal
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, extract
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from domain.common.exceptions import PersistenceException
from domain.payment.entity import PaymentTransaction, PaymentStatus
from domain.payment.exceptions import OrderIdConflictException
from domain.payment.repository import (
    PaymentTransactionRepository,
    PaymentListFilter,
    TypeStatusStat,
    MonthlyStat,
)
from infrastructure.models.payment import PaymentTransactionModel
from core.logging_config import get_logger


logger = get_logger(__name__)


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _year_bounds(year: int) -> tuple[datetime, datetime]:
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc),
    )


class SQLAlchemyPaymentTransactionRepository(PaymentTransactionRepository):
    """支付交易仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: PaymentTransactionModel) -> PaymentTransaction:
        """将数据库模型转换为领域实体"""
        return PaymentTransaction(
            id=model.id,
            order_id=model.order_id,
            user_id=model.user_id,
            amount=Decimal(str(model.amount)),
            currency=model.currency,
            payment_type=model.payment_type,
            reference_id=model.reference_id,
            reference_type=model.reference_type,
            status=model.status,
            description=model.description,
            transaction_id=model.transaction_id,
            gateway_response=model.gateway_response or {},
            fulfilled_at=model.fulfilled_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: PaymentTransaction) -> PaymentTransactionModel:
        """将领域实体转换为数据库模型"""
        return PaymentTransactionModel(
            id=entity.id,
            order_id=entity.order_id,
            user_id=entity.user_id,
            amount=entity.amount,
            currency=entity.currency,
            payment_type=entity.payment_type.value,
            reference_id=entity.reference_id,
            reference_type=entity.reference_type.value,
            status=entity.status.value,
            description=entity.description,
            transaction_id=entity.transaction_id,
            gateway_response=entity.gateway_response,
            fulfilled_at=entity.fulfilled_at,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def _apply_filters(self, query, user_id: int, filters: Optional[PaymentListFilter]):
        query = query.where(PaymentTransactionModel.user_id == user_id)
        if filters is None:
            return query
        if filters.status:
            query = query.where(PaymentTransactionModel.status == filters.status.value)
        if filters.payment_type:
            query = query.where(PaymentTransactionModel.payment_type == filters.payment_type.value)
        if filters.start_date:
            query = query.where(PaymentTransactionModel.created_at >= filters.start_date)
        if filters.end_date:
            query = query.where(PaymentTransactionModel.created_at <= filters.end_date)
        return query

    async def create(self, transaction: PaymentTransaction) -> PaymentTransaction:
        """创建交易记录"""
        try:
            db_tx = self._to_model(transaction)
            self.session.add(db_tx)
            await self.session.flush()
            await self.session.refresh(db_tx)
        except IntegrityError as e:
            if "order_id" in str(e).lower():
                logger.warning("payment_order_conflict", order_id=transaction.order_id)
                raise OrderIdConflictException(transaction.order_id)
            raise PersistenceException("create payment order") from e
        except SQLAlchemyError as e:
            raise PersistenceException("create payment order") from e

        logger.info(
            "payment_transaction_created",
            transaction_pk=db_tx.id,
            order_id=db_tx.order_id,
            payment_type=db_tx.payment_type,
        )
        return self._to_entity(db_tx)

    async def get_by_order_id(self, order_id: str) -> Optional[PaymentTransaction]:
        """根据订单ID获取交易"""
        result = await self.session.execute(
            select(PaymentTransactionModel).where(PaymentTransactionModel.order_id == order_id)
        )
        db_tx = result.scalar_one_or_none()
        return self._to_entity(db_tx) if db_tx else None

    async def get_by_order_id_for_user(self, order_id: str, user_id: int) -> Optional[PaymentTransaction]:
        """根据订单ID获取属于用户的交易"""
        result = await self.session.execute(
            select(PaymentTransactionModel).where(
                PaymentTransactionModel.order_id == order_id,
                PaymentTransactionModel.user_id == user_id,
            )
        )
        db_tx = result.scalar_one_or_none()
        return self._to_entity(db_tx) if db_tx else None

    async def update(self, transaction: PaymentTransaction) -> PaymentTransaction:
        """更新交易记录"""
        result = await self.session.execute(
            select(PaymentTransactionModel).where(PaymentTransactionModel.id == transaction.id)
        )
        db_tx = result.scalar_one_or_none()

        if not db_tx:
            raise ValueError(f"Payment transaction with id {transaction.id} not found")

        # 更新字段（order_id/user_id/amount 等创建后不可变）
        db_tx.status = transaction.status.value
        db_tx.transaction_id = transaction.transaction_id
        db_tx.gateway_response = transaction.gateway_response
        db_tx.fulfilled_at = transaction.fulfilled_at
        db_tx.updated_at = transaction.updated_at or datetime.now(timezone.utc)

        try:
            await self.session.flush()
            await self.session.refresh(db_tx)
        except SQLAlchemyError as e:
            raise PersistenceException("update payment transaction") from e

        logger.info(
            "payment_transaction_updated",
            transaction_pk=db_tx.id,
            order_id=db_tx.order_id,
            status=db_tx.status,
        )

        return self._to_entity(db_tx)

    async def list_by_user(
        self,
        user_id: int,
        filters: Optional[PaymentListFilter] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> List[PaymentTransaction]:
        """获取用户的交易列表"""
        query = self._apply_filters(select(PaymentTransactionModel), user_id, filters)
        query = query.order_by(
            PaymentTransactionModel.created_at.desc(),
            PaymentTransactionModel.id.desc(),
        ).offset(skip).limit(limit)

        result = await self.session.execute(query)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def count_by_user(self, user_id: int, filters: Optional[PaymentListFilter] = None) -> int:
        """统计用户的交易数量"""
        query = self._apply_filters(select(func.count(PaymentTransactionModel.id)), user_id, filters)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def stats_by_type_and_status(self, user_id: int, year: int) -> List[TypeStatusStat]:
        start, end = _year_bounds(year)
        result = await self.session.execute(
            select(
                PaymentTransactionModel.payment_type,
                PaymentTransactionModel.status,
                func.count(PaymentTransactionModel.id),
                func.sum(PaymentTransactionModel.amount),
                func.avg(PaymentTransactionModel.amount),
            )
            .where(
                PaymentTransactionModel.user_id == user_id,
                PaymentTransactionModel.created_at >= start,
                PaymentTransactionModel.created_at < end,
            )
            .group_by(PaymentTransactionModel.payment_type, PaymentTransactionModel.status)
            .order_by(PaymentTransactionModel.payment_type, PaymentTransactionModel.status)
        )
        return [
            TypeStatusStat(
                payment_type=payment_type,
                status=status,
                transaction_count=int(count),
                total_amount=_decimal(total),
                average_amount=_decimal(average).quantize(Decimal("0.01")),
            )
            for payment_type, status, count, total, average in result.all()
        ]

    async def monthly_completed(self, user_id: int, year: int) -> List[MonthlyStat]:
        start, end = _year_bounds(year)
        month = extract("month", PaymentTransactionModel.created_at)
        result = await self.session.execute(
            select(
                month,
                func.count(PaymentTransactionModel.id),
                func.sum(PaymentTransactionModel.amount),
            )
            .where(
                PaymentTransactionModel.user_id == user_id,
                PaymentTransactionModel.status == PaymentStatus.COMPLETED.value,
                PaymentTransactionModel.created_at >= start,
                PaymentTransactionModel.created_at < end,
            )
            .group_by(month)
            .order_by(month)
        )
        return [
            MonthlyStat(month=int(m), transaction_count=int(count), total_amount=_decimal(total))
            for m, count, total in result.all()
        ]

    async def list_unfulfilled(self, limit: int = 100) -> List[PaymentTransaction]:
        """completed 且 fulfilled_at 为空的交易（最早的优先）"""
        result = await self.session.execute(
            select(PaymentTransactionModel)
            .where(
                PaymentTransactionModel.status == PaymentStatus.COMPLETED.value,
                PaymentTransactionModel.fulfilled_at.is_(None),
            )
            .order_by(PaymentTransactionModel.updated_at.asc(), PaymentTransactionModel.id.asc())
            .limit(limit)
        )
        return [self._to_entity(m) for m in result.scalars().all()]
