"""
支付仓储接口 - 定义支付数据访问的抽象接口
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from .entity import PaymentTransaction, PaymentStatus, PaymentType


@dataclass(frozen=True)
class PaymentListFilter:
    """用户支付历史的筛选条件"""
    status: Optional[PaymentStatus] = None
    payment_type: Optional[PaymentType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


@dataclass(frozen=True)
class TypeStatusStat:
    payment_type: str
    status: str
    transaction_count: int
    total_amount: Decimal
    average_amount: Decimal


@dataclass(frozen=True)
class MonthlyStat:
    month: int
    transaction_count: int
    total_amount: Decimal


class PaymentTransactionRepository(ABC):
    """支付交易仓储抽象接口 - 只定义能做什么，不管怎么做"""

    @abstractmethod
    async def create(self, transaction: PaymentTransaction) -> PaymentTransaction:
        """创建交易记录"""
        pass

    @abstractmethod
    async def get_by_order_id(self, order_id: str) -> Optional[PaymentTransaction]:
        """根据订单ID获取交易（不做归属校验，供网关回调使用）"""
        pass

    @abstractmethod
    async def get_by_order_id_for_user(self, order_id: str, user_id: int) -> Optional[PaymentTransaction]:
        """根据订单ID获取属于指定用户的交易"""
        pass

    @abstractmethod
    async def update(self, transaction: PaymentTransaction) -> PaymentTransaction:
        """更新交易的可变字段（order_id 不可变）"""
        pass

    @abstractmethod
    async def list_by_user(
        self,
        user_id: int,
        filters: Optional[PaymentListFilter] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> List[PaymentTransaction]:
        """获取用户的交易列表（按创建时间倒序）"""
        pass

    @abstractmethod
    async def count_by_user(self, user_id: int, filters: Optional[PaymentListFilter] = None) -> int:
        """统计用户的交易数量"""
        pass

    @abstractmethod
    async def stats_by_type_and_status(self, user_id: int, year: int) -> List[TypeStatusStat]:
        """按用途与状态汇总某年交易"""
        pass

    @abstractmethod
    async def monthly_completed(self, user_id: int, year: int) -> List[MonthlyStat]:
        """某年已完成交易的月度汇总"""
        pass

    @abstractmethod
    async def list_unfulfilled(self, limit: int = 100) -> List[PaymentTransaction]:
        """completed 但副作用尚未成功的交易"""
        pass


class ReferenceRepository(ABC):
    """支付所指向业务对象（预订/商城订单/活动报名）的读写接口

    写方法按主键更新单行，返回是否命中。
    """

    @abstractmethod
    async def set_booking_status(self, booking_id: int, status: str, now: datetime) -> bool:
        pass

    @abstractmethod
    async def set_store_order_status(self, store_order_id: int, status: str, now: datetime) -> bool:
        pass

    @abstractmethod
    async def set_registration_status(self, registration_id: int, status: str, now: datetime) -> bool:
        pass

    @abstractmethod
    async def get_booking_date(self, booking_id: int) -> Optional[datetime]:
        pass

    @abstractmethod
    async def get_registration_event_start(self, registration_id: int) -> Optional[datetime]:
        """报名所属活动的开始时间"""
        pass
