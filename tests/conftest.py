# tests/conftest.py
from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import AsyncGenerator, Dict, Optional, Union

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import NullPool

from elitespeed_api.core.exceptions import TrackingFetchFailed
from order_sync.db import Order, OrderStatusHistory, Seller, get_engine, get_session_factory
from order_sync.db.base import create_tables
from order_sync.services.reconciliation_service import ReconciliationService
from order_sync.services.settlement_ledger import SettlementLedger


class FakeCarrier:
    """Carrier stub: tracking number -> status, None (no data) or an exception to raise."""

    def __init__(self, statuses: Optional[Dict[str, Union[str, Exception, None]]] = None, delay: float = 0.0):
        self.statuses = dict(statuses or {})
        self.delay = delay
        self.calls = []

    async def fetch_status(self, tracking_number: str) -> Optional[str]:
        self.calls.append(tracking_number)
        if self.delay:
            await asyncio.sleep(self.delay)
        value = self.statuses.get(tracking_number)
        if isinstance(value, Exception):
            raise value
        return value

    def fail(self, tracking_number: str, detail: str = "ReadTimeout: timed out") -> None:
        self.statuses[tracking_number] = TrackingFetchFailed(tracking_number, detail)


# =========================================
# One SQLite file per test (NullPool, no connection shared across loops)
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = get_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'order_sync_test.db'}",
        poolclass=NullPool,
        pool_pre_ping=False,
    )
    await create_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine: AsyncEngine):
    return get_session_factory(async_engine)


@pytest.fixture
def carrier() -> FakeCarrier:
    return FakeCarrier()


@pytest.fixture
def ledger(session_factory) -> SettlementLedger:
    return SettlementLedger(session_factory, timeout=5)


@pytest.fixture
def service(carrier, session_factory, ledger) -> ReconciliationService:
    return ReconciliationService(
        carrier=carrier,
        session_factory=session_factory,
        ledger=ledger,
        max_concurrency=1,
        carrier_timeout=2,
        db_timeout=5,
    )


async def seed_seller(session_factory, balance: str = "0.00", email: str = "seller@example.com") -> int:
    async with session_factory() as session:
        async with session.begin():
            seller = Seller(email=email, name="Test Seller", balance=Decimal(balance))
            session.add(seller)
            await session.flush()
            return seller.id


_order_counter = 0


async def seed_order(
    session_factory,
    seller_id: int,
    tracking_number: Optional[str] = "ES-0001",
    status: str = "En cours de livraison",
    total_amount: str = "150.00",
    allow_reshipping: bool = True,
    **fields,
) -> int:
    global _order_counter
    _order_counter += 1
    async with session_factory() as session:
        async with session.begin():
            order = Order(
                order_number=f"ORD-{_order_counter:05d}",
                seller_id=seller_id,
                tracking_number=tracking_number,
                status=status,
                shipping_status=status,
                allow_reshipping=allow_reshipping,
                total_amount=Decimal(total_amount),
                **fields,
            )
            session.add(order)
            await session.flush()
            return order.id


async def load_order(session_factory, order_id: int) -> Order:
    async with session_factory() as session:
        return await session.get(Order, order_id)


async def load_balance(session_factory, seller_id: int) -> Decimal:
    async with session_factory() as session:
        seller = await session.get(Seller, seller_id)
        return Decimal(str(seller.balance))


async def count_history(session_factory, order_id: int) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count()).select_from(OrderStatusHistory).where(OrderStatusHistory.order_id == order_id)
        )
        return int(result.scalar())
