"""
关联对象仓储实现 - 预订/商城订单/活动报名的状态更新与日期查询
"""
from typing import Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from domain.payment.repository import ReferenceRepository
from infrastructure.models.reference import (
    BookingModel,
    StoreOrderModel,
    EventModel,
    EventRegistrationModel,
)


class SQLAlchemyReferenceRepository(ReferenceRepository):
    """关联对象仓储的SQLAlchemy实现，每次写入按主键更新一行"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _set_status(self, model, pk: int, status: str, now: datetime) -> bool:
        result = await self.session.execute(
            update(model)
            .where(model.id == pk)
            .values(status=status, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def set_booking_status(self, booking_id: int, status: str, now: datetime) -> bool:
        return await self._set_status(BookingModel, booking_id, status, now)

    async def set_store_order_status(self, store_order_id: int, status: str, now: datetime) -> bool:
        return await self._set_status(StoreOrderModel, store_order_id, status, now)

    async def set_registration_status(self, registration_id: int, status: str, now: datetime) -> bool:
        return await self._set_status(EventRegistrationModel, registration_id, status, now)

    async def get_booking_date(self, booking_id: int) -> Optional[datetime]:
        result = await self.session.execute(
            select(BookingModel.booking_date).where(BookingModel.id == booking_id)
        )
        return result.scalar_one_or_none()

    async def get_registration_event_start(self, registration_id: int) -> Optional[datetime]:
        result = await self.session.execute(
            select(EventModel.start_date)
            .join(EventRegistrationModel, EventRegistrationModel.event_id == EventModel.id)
            .where(EventRegistrationModel.id == registration_id)
        )
        return result.scalar_one_or_none()
