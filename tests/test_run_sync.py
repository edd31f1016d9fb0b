from decimal import Decimal

import pytest

from order_sync.db import Order
from order_sync.db.repository import OrderRepository
from order_sync.services.reconciliation_service import ReconciliationService
from tests.conftest import FakeCarrier, count_history, load_balance, load_order, seed_order, seed_seller


@pytest.mark.asyncio
async def test_run_counts_each_outcome(service, carrier, session_factory):
    seller_id = await seed_seller(session_factory)
    delivered = await seed_order(session_factory, seller_id, tracking_number="ES-1", total_amount="100.00")
    same = await seed_order(session_factory, seller_id, tracking_number="ES-2", status="Expédié")
    broken = await seed_order(session_factory, seller_id, tracking_number="ES-3")
    untracked = await seed_order(session_factory, seller_id, tracking_number=None, status="PENDING")

    carrier.statuses.update({"ES-1": "Livré", "ES-2": "Expédié"})
    carrier.fail("ES-3")

    result = await service.run_sync(sync_type="manual")

    assert result.success
    assert result.candidates == 3
    assert result.updated == 1
    assert result.unchanged == 1
    assert result.failed == 1
    assert result.skipped == 0
    assert carrier.calls == ["ES-1", "ES-2", "ES-3"]
    assert await load_balance(session_factory, seller_id) == Decimal("100.00")
    assert (await load_order(session_factory, untracked)).status == "PENDING"
    assert (await load_order(session_factory, broken)).status == "En cours de livraison"
    assert await count_history(session_factory, same) == 0
    assert await count_history(session_factory, delivered) == 1


@pytest.mark.asyncio
async def test_delivered_orders_are_not_candidates_again(service, carrier, session_factory):
    seller_id = await seed_seller(session_factory)
    await seed_order(session_factory, seller_id, tracking_number="ES-1", total_amount="40.00")
    carrier.statuses["ES-1"] = "Livré"

    first = await service.run_sync()
    second = await service.run_sync()

    assert first.candidates == 1
    assert second.candidates == 0
    assert carrier.calls == ["ES-1"]
    assert await load_balance(session_factory, seller_id) == Decimal("40.00")


@pytest.mark.asyncio
async def test_externally_delivered_status_is_excluded(service, carrier, session_factory):
    seller_id = await seed_seller(session_factory)
    await seed_order(session_factory, seller_id, tracking_number="ES-1", status="Livré")

    result = await service.run_sync()

    assert result.candidates == 0
    assert carrier.calls == []


@pytest.mark.asyncio
async def test_force_includes_delivered_orders_without_crediting_again(service, carrier, session_factory):
    seller_id = await seed_seller(session_factory)
    await seed_order(session_factory, seller_id, tracking_number="ES-1", total_amount="40.00")
    carrier.statuses["ES-1"] = "Livré"

    await service.run_sync()
    forced = await service.run_sync(sync_type="manual", force=True)

    assert forced.candidates == 1
    assert forced.unchanged == 1
    assert await load_balance(session_factory, seller_id) == Decimal("40.00")


@pytest.mark.asyncio
async def test_limit_caps_candidates(service, carrier, session_factory):
    seller_id = await seed_seller(session_factory)
    for index in range(5):
        await seed_order(session_factory, seller_id, tracking_number=f"ES-{index}")

    result = await service.run_sync(limit=2)

    assert result.candidates == 2
    assert carrier.calls == ["ES-0", "ES-1"]


@pytest.mark.asyncio
async def test_one_crashing_order_does_not_abort_the_run(service, carrier, session_factory):
    seller_id = await seed_seller(session_factory)
    await seed_order(session_factory, seller_id, tracking_number="ES-1")
    last = await seed_order(session_factory, seller_id, tracking_number="ES-2")
    carrier.statuses["ES-1"] = RuntimeError("unexpected payload")
    carrier.statuses["ES-2"] = "Refusé"

    result = await service.run_sync()

    assert result.failed == 1
    assert result.updated == 1
    assert len(result.errors) == 1
    assert "unexpected payload" in result.errors[0]
    order = await load_order(session_factory, last)
    assert order.status == "Refusé"
    assert order.allow_reshipping is False


@pytest.mark.asyncio
async def test_pending_settlement_is_retried_on_next_run(service, carrier, session_factory):
    order_id = await seed_order(session_factory, seller_id=555, tracking_number="ES-1", total_amount="70.00")
    carrier.statuses["ES-1"] = "Livré"

    first = await service.run_sync()
    assert first.updated == 1
    assert (await load_order(session_factory, order_id)).settled_at is None

    # Seller record becomes available; delivered order is no longer a candidate
    seller_id = await seed_seller(session_factory)
    assert seller_id != 555
    async with session_factory() as session:
        async with session.begin():
            order = await session.get(Order, order_id)
            order.seller_id = seller_id

    second = await service.run_sync()

    assert second.candidates == 0
    assert second.settlements_retried == 1
    assert await load_balance(session_factory, seller_id) == Decimal("70.00")
    assert (await load_order(session_factory, order_id)).settled_at is not None


@pytest.mark.asyncio
async def test_run_report_is_recorded(service, carrier, session_factory):
    seller_id = await seed_seller(session_factory)
    await seed_order(session_factory, seller_id, tracking_number="ES-1")
    carrier.statuses["ES-1"] = "Expédié"

    await service.run_sync(sync_type="scheduled")
    status = await service.get_sync_status(next_scheduled="2026-10-19 10:10:00")

    assert status["next_scheduled_sync"] == "2026-10-19 10:10:00"
    assert status["last_sync_success"] is True
    assert len(status["sync_history"]) == 1
    report = status["sync_history"][0]
    assert report["sync_type"] == "scheduled"
    assert report["candidates"] == 1
    assert report["updated"] == 1


@pytest.mark.asyncio
async def test_concurrent_pool_processes_every_candidate(session_factory):
    seller_id = await seed_seller(session_factory)
    carrier = FakeCarrier(delay=0.01)
    for index in range(6):
        await seed_order(session_factory, seller_id, tracking_number=f"ES-{index}")
        carrier.statuses[f"ES-{index}"] = None
    service = ReconciliationService(carrier=carrier, session_factory=session_factory, max_concurrency=3)

    result = await service.run_sync()

    assert result.candidates == 6
    assert result.unchanged == 6
    assert sorted(carrier.calls) == [f"ES-{index}" for index in range(6)]


@pytest.mark.asyncio
async def test_list_candidates_ignores_blank_tracking_numbers(session_factory):
    seller_id = await seed_seller(session_factory)
    await seed_order(session_factory, seller_id, tracking_number="   ")
    tracked = await seed_order(session_factory, seller_id, tracking_number="ES-1")

    async with session_factory() as session:
        candidates = await OrderRepository(session).list_candidates()

    assert [order.id for order in candidates] == [tracked]
