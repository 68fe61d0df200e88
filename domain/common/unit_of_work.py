"""Unit of Work 抽象定义

应用层通过 UoW 访问支付仓储与关联对象仓储，二者共享同一事务。
正常退出时自动提交（只读除外），异常退出时回滚。
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncContextManager

from domain.payment.repository import PaymentTransactionRepository, ReferenceRepository


class AbstractUnitOfWork(ABC):
    payment_repository: PaymentTransactionRepository
    reference_repository: ReferenceRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self.readonly = readonly

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            await self.rollback()
        elif not self.readonly and not self._committed:
            await self.commit()

    @abstractmethod
    def savepoint(self) -> AsyncContextManager[None]:
        """嵌套事务：块内异常只回滚块内写入，外层事务继续"""

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...
