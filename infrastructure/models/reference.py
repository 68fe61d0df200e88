"""
支付关联对象的数据库模型

这些表由预订/商城/活动模块维护，这里只映射支付流程读写的列。
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from .base import Base, utcnow


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(32), nullable=False, default="pending", comment="预订状态")
    booking_date = Column(DateTime(timezone=True), nullable=False, comment="预订日期")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class StoreOrderModel(Base):
    __tablename__ = "store_orders"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(32), nullable=False, default="pending", comment="商城订单状态")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class EventModel(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False, comment="活动开始时间")


class EventRegistrationModel(Base):
    __tablename__ = "event_registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default="pending", comment="报名状态")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
