"""Repository for order sync data access.

Methods never commit; callers own the transaction so that history, order
fields and settlement are written with the atomicity each step needs.
"""

from typing import List, Optional, Sequence

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from elitespeed_api.core.status import is_delivered
from .models import Order, OrderStatusHistory, SyncRun


class OrderRepository:
    """Data access layer for orders, status history and sync runs."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with async session."""
        self.session = session

    async def get_order(self, order_id: int) -> Optional[Order]:
        """Get an order by primary key."""
        return await self.session.get(Order, order_id)

    async def get_order_by_tracking_number(self, tracking_number: str) -> Optional[Order]:
        """Get the order shipped under a tracking number."""
        query = select(Order).where(Order.tracking_number == tracking_number).limit(1)
        result = await self.session.execute(query)
        return result.scalars().first()

    async def list_candidates(self, force: bool = False, limit: Optional[int] = None) -> List[Order]:
        """
        Select orders to reconcile against the carrier.

        Candidates have a tracking number and are not delivered yet. With
        ``force`` every tracked order is returned, delivered ones included.

        Args:
            force: Ignore the delivered exclusion
            limit: Maximum number of orders returned

        Returns:
            Orders ordered by ID
        """
        query = (
            select(Order)
            .where(Order.tracking_number.is_not(None))
            .where(func.trim(Order.tracking_number) != "")
            .order_by(Order.id)
        )
        if limit is not None and limit <= 0:
            return []

        if force:
            if limit is not None:
                query = query.limit(limit)
            result = await self.session.execute(query)
            return list(result.scalars().all())

        # Statuses set outside this engine are classified in Python, like the engine does,
        # so rows are streamed until enough undelivered orders are found.
        query = query.where(Order.delivered_at.is_(None))
        candidates: List[Order] = []
        result = await self.session.stream_scalars(query)
        try:
            async for order in result:
                if is_delivered(order.status):
                    continue
                candidates.append(order)
                if limit is not None and len(candidates) >= limit:
                    break
        finally:
            await result.close()
        return candidates

    async def list_unsettled_deliveries(self, limit: Optional[int] = None) -> List[Order]:
        """Orders whose delivery was observed but whose seller was never credited."""
        query = (
            select(Order)
            .where(Order.delivered_at.is_not(None))
            .where(Order.settled_at.is_(None))
            .order_by(Order.delivered_at, Order.id)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def add_history(
        self,
        order_id: int,
        old_status: Optional[str],
        new_status: str,
        note: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Append a status change to the order's history."""
        entry = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            note=note,
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def get_history(self, order_id: int) -> Sequence[OrderStatusHistory]:
        """Get the status history of an order, oldest first."""
        query = (
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.created_at, OrderStatusHistory.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def record_sync_run(self, run: SyncRun) -> SyncRun:
        """Store a sync run report."""
        self.session.add(run)
        await self.session.flush()
        return run

    async def recent_sync_runs(self, limit: int = 10) -> Sequence[SyncRun]:
        """Get the latest sync run reports, newest first."""
        query = select(SyncRun).order_by(SyncRun.started_at.desc(), SyncRun.id.desc()).limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def health_check(self) -> bool:
        """Check that the database answers."""
        result = await self.session.execute(text("SELECT 1"))
        return result.scalar() == 1
