"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

# Mandatory secret key for settings validation
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DEBUG", "false")

import copy
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, List

import httpx
import jwt
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from application.services.payment_service import PaymentApplicationService
from core.settings import PaymentSettings
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.entity import PaymentStatus, PaymentTransaction
from domain.payment.exceptions import OrderIdConflictException
from domain.payment.repository import (
    MonthlyStat,
    PaymentListFilter,
    PaymentTransactionRepository,
    ReferenceRepository,
    TypeStatusStat,
)
from infrastructure.external.payments.hosted_checkout import HostedCheckoutGateway
from infrastructure.database import create_tables
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


TEST_SECRET_KEY = "test-secret-key"


class InMemoryPaymentRepository(PaymentTransactionRepository):
    """Keeps detached copies so callers cannot mutate stored rows by accident."""

    def __init__(self) -> None:
        self.rows: dict[str, PaymentTransaction] = {}
        self._next_id = 1

    async def create(self, transaction: PaymentTransaction) -> PaymentTransaction:
        if transaction.order_id in self.rows:
            raise OrderIdConflictException(transaction.order_id)
        stored = copy.deepcopy(transaction)
        stored.id = self._next_id
        self._next_id += 1
        self.rows[stored.order_id] = stored
        return copy.deepcopy(stored)

    async def get_by_order_id(self, order_id: str) -> Optional[PaymentTransaction]:
        row = self.rows.get(order_id)
        return copy.deepcopy(row) if row else None

    async def get_by_order_id_for_user(self, order_id: str, user_id: int) -> Optional[PaymentTransaction]:
        row = self.rows.get(order_id)
        if row is None or row.user_id != user_id:
            return None
        return copy.deepcopy(row)

    async def update(self, transaction: PaymentTransaction) -> PaymentTransaction:
        if transaction.order_id not in self.rows:
            raise ValueError(f"Payment transaction with id {transaction.id} not found")
        self.rows[transaction.order_id] = copy.deepcopy(transaction)
        return copy.deepcopy(transaction)

    def _matching(self, user_id: int, filters: Optional[PaymentListFilter]) -> List[PaymentTransaction]:
        rows = [r for r in self.rows.values() if r.user_id == user_id]
        if filters:
            if filters.status:
                rows = [r for r in rows if r.status == filters.status]
            if filters.payment_type:
                rows = [r for r in rows if r.payment_type == filters.payment_type]
            if filters.start_date:
                rows = [r for r in rows if r.created_at >= filters.start_date]
            if filters.end_date:
                rows = [r for r in rows if r.created_at <= filters.end_date]
        return rows

    async def list_by_user(self, user_id, filters=None, skip=0, limit=20):
        rows = sorted(self._matching(user_id, filters), key=lambda r: (r.created_at, r.id), reverse=True)
        return [copy.deepcopy(r) for r in rows[skip:skip + limit]]

    async def count_by_user(self, user_id, filters=None) -> int:
        return len(self._matching(user_id, filters))

    async def stats_by_type_and_status(self, user_id: int, year: int) -> List[TypeStatusStat]:
        groups: dict[tuple[str, str], list[Decimal]] = {}
        for r in self._matching(user_id, None):
            if r.created_at.year == year:
                groups.setdefault((r.payment_type.value, r.status.value), []).append(r.amount)
        return [
            TypeStatusStat(
                payment_type=pt,
                status=st,
                transaction_count=len(amounts),
                total_amount=sum(amounts, Decimal("0")),
                average_amount=(sum(amounts, Decimal("0")) / len(amounts)).quantize(Decimal("0.01")),
            )
            for (pt, st), amounts in sorted(groups.items())
        ]

    async def monthly_completed(self, user_id: int, year: int) -> List[MonthlyStat]:
        months: dict[int, list[Decimal]] = {}
        for r in self._matching(user_id, None):
            if r.created_at.year == year and r.status == PaymentStatus.COMPLETED:
                months.setdefault(r.created_at.month, []).append(r.amount)
        return [
            MonthlyStat(month=m, transaction_count=len(a), total_amount=sum(a, Decimal("0")))
            for m, a in sorted(months.items())
        ]

    async def list_unfulfilled(self, limit: int = 100) -> List[PaymentTransaction]:
        rows = [r for r in self.rows.values() if r.needs_fulfillment()]
        return [copy.deepcopy(r) for r in rows[:limit]]


class InMemoryReferenceRepository(ReferenceRepository):
    def __init__(self) -> None:
        self.bookings: dict[int, dict] = {}
        self.store_orders: dict[int, dict] = {}
        self.events: dict[int, datetime] = {}
        self.registrations: dict[int, dict] = {}
        self.writes: list[tuple[str, int, str]] = []

    def add_booking(self, booking_id: int, booking_date: datetime, status: str = "pending") -> None:
        self.bookings[booking_id] = {"status": status, "booking_date": booking_date}

    def add_store_order(self, store_order_id: int, status: str = "pending") -> None:
        self.store_orders[store_order_id] = {"status": status}

    def add_registration(self, registration_id: int, event_start: datetime, status: str = "pending") -> None:
        event_id = registration_id + 1000
        self.events[event_id] = event_start
        self.registrations[registration_id] = {"status": status, "event_id": event_id}

    def _set(self, table: dict, kind: str, pk: int, status: str, now: datetime) -> bool:
        if pk not in table:
            return False
        table[pk]["status"] = status
        table[pk]["updated_at"] = now
        self.writes.append((kind, pk, status))
        return True

    async def set_booking_status(self, booking_id, status, now) -> bool:
        return self._set(self.bookings, "booking", booking_id, status, now)

    async def set_store_order_status(self, store_order_id, status, now) -> bool:
        return self._set(self.store_orders, "store_order", store_order_id, status, now)

    async def set_registration_status(self, registration_id, status, now) -> bool:
        return self._set(self.registrations, "event_registration", registration_id, status, now)

    async def get_booking_date(self, booking_id: int) -> Optional[datetime]:
        row = self.bookings.get(booking_id)
        return row["booking_date"] if row else None

    async def get_registration_event_start(self, registration_id: int) -> Optional[datetime]:
        row = self.registrations.get(registration_id)
        return self.events.get(row["event_id"]) if row else None


class InMemoryUnitOfWork(AbstractUnitOfWork):
    def __init__(self, payments, references, *, readonly: bool = False) -> None:
        super().__init__(readonly=readonly)
        self._payments = payments
        self._references = references
        self.commits = 0
        self.rollbacks = 0

    async def __aenter__(self):
        self.payment_repository = self._payments
        self.reference_repository = self._references
        return self

    @asynccontextmanager
    async def savepoint(self):
        yield

    async def commit(self) -> None:
        self._committed = True
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


class RecordingGateway:
    provider = "recording"

    def __init__(self) -> None:
        self.verified: list[bytes] = []

    def checkout_url(self, order_id: str) -> str:
        return f"https://pay.test/checkout/{order_id}"

    def verify_webhook(self, headers, body: bytes) -> None:
        self.verified.append(body)


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def payments() -> InMemoryPaymentRepository:
    return InMemoryPaymentRepository()


@pytest.fixture
def references() -> InMemoryReferenceRepository:
    return InMemoryReferenceRepository()


@pytest.fixture
def memory_uow_factory(payments, references):
    def factory(readonly: bool = False) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(payments, references, readonly=readonly)
    return factory


@pytest.fixture
def memory_service(memory_uow_factory, now) -> PaymentApplicationService:
    return PaymentApplicationService(
        uow_factory=memory_uow_factory,
        gateway=RecordingGateway(),
        settings=PaymentSettings(),
        clock=lambda: now,
    )


@pytest_asyncio.fixture
async def sqlite_engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    # pysqlite 默认的事务处理会吞掉 SAVEPOINT，这里改为显式 BEGIN
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    await create_tables(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    return async_sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def sqlite_uow_factory(session_factory):
    def factory(readonly: bool = False) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory=session_factory, readonly=readonly)
    return factory


@pytest.fixture
def seed(session_factory):
    async def _seed(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
    return _seed


@pytest.fixture
def api_payment_settings() -> PaymentSettings:
    return PaymentSettings()


@pytest_asyncio.fixture
async def api_client(sqlite_uow_factory, api_payment_settings):
    from main import app
    from api.dependencies import get_payment_service

    gateway = HostedCheckoutGateway(
        checkout_base_url="https://pay.test/checkout",
        webhook_secret=api_payment_settings.webhook.secret,
        signature_header=api_payment_settings.webhook.signature_header,
    )
    app.dependency_overrides[get_payment_service] = lambda: PaymentApplicationService(
        uow_factory=sqlite_uow_factory,
        gateway=gateway,
        settings=api_payment_settings,
    )
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id: int = 1, **claims) -> dict:
        payload = {
            "sub": str(user_id),
            "type": "access",
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            **claims,
        }
        token = jwt.encode(payload, TEST_SECRET_KEY, algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}
    return _headers
