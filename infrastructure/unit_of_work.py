"""SQLAlchemy Unit of Work 实现

一个 UoW 对应一个会话与一个外层事务；支付状态写入与履约副作用共享该事务，
履约副作用放在 SAVEPOINT 中执行，失败只回滚副作用本身。
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.payment_repository import SQLAlchemyPaymentTransactionRepository
from infrastructure.repositories.reference_repository import SQLAlchemyReferenceRepository


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """基于SQLAlchemy的Unit of Work"""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self.session: Optional[AsyncSession] = None
        self._transaction: Optional[AsyncSessionTransaction] = None

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        self.session = self._session_factory()
        self.payment_repository = SQLAlchemyPaymentTransactionRepository(self.session)
        self.reference_repository = SQLAlchemyReferenceRepository(self.session)
        # 只读查询走 autobegin，不显式开启事务
        if not self.readonly:
            self._transaction = await self.session.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            await self.session.close()
            self.session = None
            self._transaction = None
            self.payment_repository = None
            self.reference_repository = None

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        # begin_nested 在异常时回滚到 SAVEPOINT 并继续抛出
        async with self.session.begin_nested():
            yield

    async def commit(self) -> None:
        if not self.readonly and self.session.in_transaction():
            await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        if self.session.in_transaction():
            await self.session.rollback()
        self._committed = False
