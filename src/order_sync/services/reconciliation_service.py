"""
Reconciliation Service for EliteSpeed order tracking.

Polls the carrier for every shipped, not yet delivered order, applies the
observed status, revokes reshipping for returns and triggers seller
settlement on delivery. Used by the scheduler, the CLI and the dashboard's
manual trigger.
"""

import asyncio
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from elitespeed_api.config.constants import (
    CARRIER_TIMEOUT_SECONDS,
    DB_TIMEOUT_SECONDS,
    MAX_REPORTED_ERRORS,
    NOTE_CARRIER_SYNC,
    SYNC_HISTORY_SIZE,
    SYNC_MAX_CONCURRENCY,
)
from elitespeed_api.core.exceptions import TrackingFetchFailed
from elitespeed_api.core.logger import setup_logger
from elitespeed_api.core.monitoring import capture_exception, set_order_context
from order_sync.db.models import Order, SyncRun
from order_sync.db.repository import OrderRepository
from order_sync.services.settlement_ledger import SettlementLedger, SettlementOutcome
from order_sync.services.transitions import StatusTransition, plan_transition

logger = setup_logger(__name__)


class SyncOutcome(str, Enum):
    """Result of reconciling one order."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SyncResult:
    """Result of a sync run."""
    sync_type: str  # "scheduled", "startup", "manual"
    started_at: datetime
    completed_at: datetime
    candidates: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    skipped: int = 0
    settlements_retried: int = 0
    errors: List[str] = field(default_factory=list)
    success: bool = True

    def to_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["completed_at"] = self.completed_at.isoformat()
        return data


class ReconciliationService:
    """
    Synchronizes order statuses with the EliteSpeed tracking API.

    Features:
    - reconcile(): one order against the carrier
    - apply_status(): apply an observed status (shared with the carrier webhook)
    - run_sync(): select candidates, reconcile them on a bounded pool, retry
      pending settlements and record the run report
    """

    def __init__(
        self,
        carrier,
        session_factory,
        ledger: Optional[SettlementLedger] = None,
        max_concurrency: int = SYNC_MAX_CONCURRENCY,
        candidate_limit: Optional[int] = None,
        carrier_timeout: float = CARRIER_TIMEOUT_SECONDS,
        db_timeout: float = DB_TIMEOUT_SECONDS,
    ):
        """Initialize the service.

        Args:
            carrier: Object exposing ``async fetch_status(tracking_number)``
            session_factory: Async session factory
            ledger: Settlement ledger (built on the same session factory if omitted)
            max_concurrency: Orders reconciled in parallel
            candidate_limit: Default cap on candidates per run
            carrier_timeout: Upper bound for one carrier call in seconds
            db_timeout: Upper bound for one persistence block in seconds
        """
        self.carrier = carrier
        self.session_factory = session_factory
        self.ledger = ledger or SettlementLedger(session_factory, timeout=db_timeout)
        self.max_concurrency = max(1, max_concurrency)
        self.candidate_limit = candidate_limit
        self.carrier_timeout = carrier_timeout
        self.db_timeout = db_timeout

    async def reconcile(self, order: Order) -> SyncOutcome:
        """
        Reconcile one order with the carrier.

        Steps:
        1. No tracking number -> SKIPPED
        2. Fetch the latest carrier status; failure -> FAILED, order untouched
        3. No status data -> UNCHANGED
        4. Apply the observed status (history, status, reshipping, settlement)
        """
        tracking_number = (order.tracking_number or "").strip()
        if not tracking_number:
            return SyncOutcome.SKIPPED

        set_order_context(order_id=order.id, tracking_number=tracking_number)

        try:
            observed = await asyncio.wait_for(
                self.carrier.fetch_status(tracking_number),
                timeout=self.carrier_timeout,
            )
        except TrackingFetchFailed as e:
            logger.warning(
                f"EliteSpeed tracking failed for order {order.order_number}",
                extra={"order_id": order.id, "tracking_number": tracking_number, "response": str(e.detail)},
            )
            return SyncOutcome.FAILED
        except asyncio.TimeoutError:
            logger.warning(
                f"EliteSpeed tracking timed out for order {order.order_number} after {self.carrier_timeout}s",
                extra={"order_id": order.id, "tracking_number": tracking_number},
            )
            return SyncOutcome.FAILED

        if observed is None:
            return SyncOutcome.UNCHANGED

        return await self.apply_status(order.id, observed, note=NOTE_CARRIER_SYNC)

    async def apply_status(self, order_id: int, observed: str, note: Optional[str] = None) -> SyncOutcome:
        """
        Apply an observed carrier status to an order.

        History and order fields are committed together before settlement runs,
        so the delivery is recorded even if crediting the seller fails.

        Args:
            order_id: Order to update
            observed: Status reported by the carrier
            note: History note (update source)

        Returns:
            UPDATED if the order row changed, UNCHANGED otherwise,
            SKIPPED if the order no longer exists
        """
        transition = await asyncio.wait_for(
            self._persist_transition(order_id, observed, note),
            timeout=self.db_timeout,
        )
        if transition is None:
            return SyncOutcome.SKIPPED

        if transition.delivered_edge:
            outcome = await self.ledger.credit_seller_on_delivery(order_id)
            if outcome == SettlementOutcome.FAILED:
                logger.warning(
                    f"Order {order_id} delivered but settlement failed, will retry next run",
                    extra={"order_id": order_id},
                )

        return SyncOutcome.UPDATED if transition.changed else SyncOutcome.UNCHANGED

    async def _persist_transition(
        self, order_id: int, observed: str, note: Optional[str]
    ) -> Optional[StatusTransition]:
        async with self.session_factory() as session:
            async with session.begin():
                repository = OrderRepository(session)
                order = await repository.get_order(order_id)
                if order is None:
                    logger.warning(f"Order {order_id} not found, skipping status update")
                    return None

                transition = plan_transition(order.status, order.allow_reshipping, observed)

                if transition.status_changed:
                    await repository.add_history(
                        order.id,
                        old_status=transition.old_status,
                        new_status=transition.new_status,
                        note=note,
                    )
                    order.status = observed
                    order.shipping_status = observed
                    if transition.delivered_edge and order.delivered_at is None:
                        order.delivered_at = datetime.utcnow()

                    logger.info(
                        "Order status updated",
                        extra={
                            "order_number": order.order_number,
                            "old_status": transition.old_status,
                            "new_status": transition.new_status,
                        },
                    )

                if transition.reshipping_revoked:
                    order.allow_reshipping = False
                    logger.info(
                        f"Reshipping disabled for order {order.order_number} (return status '{order.status}')"
                    )

                return transition

    async def settle_pending(self, limit: Optional[int] = None) -> int:
        """
        Retry settlement for delivered orders whose seller was never credited.

        Returns:
            Number of orders credited
        """
        async with self.session_factory() as session:
            pending = await OrderRepository(session).list_unsettled_deliveries(limit)

        credited = 0
        for order in pending:
            logger.info(f"Retrying settlement for delivered order {order.order_number}")
            outcome = await self.ledger.credit_seller_on_delivery(order.id)
            if outcome == SettlementOutcome.CREDITED:
                credited += 1
        return credited

    async def _reconcile_isolated(
        self, order: Order, semaphore: asyncio.Semaphore, errors: List[str]
    ) -> SyncOutcome:
        """Reconcile one order; any error counts as FAILED for this order only."""
        async with semaphore:
            try:
                return await self.reconcile(order)
            except Exception as e:
                error_msg = f"Error reconciling order {order.order_number}: {type(e).__name__}: {e}"
                logger.error(error_msg, exc_info=True)
                capture_exception(e, {"order_id": order.id, "tracking_number": order.tracking_number})
                errors.append(error_msg)
                return SyncOutcome.FAILED

    async def run_sync(
        self,
        sync_type: str = "scheduled",
        force: bool = False,
        limit: Optional[int] = None,
    ) -> SyncResult:
        """
        Run one synchronization pass.

        Steps:
        1. Select candidates (tracked, not delivered; everything tracked with force)
        2. Reconcile them on a bounded pool
        3. Retry settlements left pending by earlier failures
        4. Record and log the run report

        Args:
            sync_type: Report label ("scheduled", "startup", "manual")
            force: Re-sync delivered orders too
            limit: Cap on candidates (defaults to the configured cap)
        """
        started_at = datetime.utcnow()
        limit = limit if limit is not None else self.candidate_limit
        errors: List[str] = []
        counts: Counter = Counter()
        candidates: List[Order] = []
        settlements_retried = 0
        success = True

        logger.info(f"Starting {sync_type} sync (force={force}, limit={limit})")

        try:
            async with self.session_factory() as session:
                candidates = await OrderRepository(session).list_candidates(force=force, limit=limit)

            if candidates:
                logger.info(f"Found {len(candidates)} orders to sync")
                semaphore = asyncio.Semaphore(self.max_concurrency)
                outcomes = await asyncio.gather(
                    *(self._reconcile_isolated(order, semaphore, errors) for order in candidates)
                )
                counts.update(outcomes)
            else:
                logger.info("No orders to sync")

            settlements_retried = await self.settle_pending()

        except Exception as e:
            error_msg = f"Sync failed: {type(e).__name__}: {e}"
            logger.error(error_msg, exc_info=True)
            capture_exception(e, {"sync_type": sync_type})
            errors.append(error_msg)
            success = False

        result = SyncResult(
            sync_type=sync_type,
            started_at=started_at,
            completed_at=datetime.utcnow(),
            candidates=len(candidates),
            updated=counts[SyncOutcome.UPDATED],
            unchanged=counts[SyncOutcome.UNCHANGED],
            failed=counts[SyncOutcome.FAILED],
            skipped=counts[SyncOutcome.SKIPPED],
            settlements_retried=settlements_retried,
            errors=errors,
            success=success,
        )

        await self._record_sync_result(result)

        logger.info(
            f"Sync completed: {result.updated} updated, {result.unchanged} unchanged, "
            f"{result.failed} failed, {result.skipped} skipped of {result.candidates} candidates",
            extra={"sync_report": result.to_dict()},
        )
        return result

    async def _record_sync_result(self, result: SyncResult) -> None:
        """Persist the run report; a reporting failure never fails the run."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await OrderRepository(session).record_sync_run(
                        SyncRun(
                            sync_type=result.sync_type,
                            started_at=result.started_at,
                            completed_at=result.completed_at,
                            candidates=result.candidates,
                            updated=result.updated,
                            unchanged=result.unchanged,
                            failed=result.failed,
                            skipped=result.skipped,
                            settlements_retried=result.settlements_retried,
                            success=result.success,
                            errors="\n".join(result.errors[:MAX_REPORTED_ERRORS]) or None,
                        )
                    )
        except Exception as e:
            logger.error(f"Failed to record sync result: {e}", exc_info=True)

    async def get_sync_status(self, next_scheduled: Optional[str] = None) -> dict:
        """
        Returns current sync state for the dashboard.

        Args:
            next_scheduled: Next scheduled sync time (from scheduler)
        """
        async with self.session_factory() as session:
            runs = await OrderRepository(session).recent_sync_runs(SYNC_HISTORY_SIZE)

        last_run = runs[0] if runs else None
        return {
            "last_sync_at": last_run.completed_at.isoformat() if last_run else None,
            "last_sync_success": bool(last_run.success) if last_run else None,
            "next_scheduled_sync": next_scheduled,
            "sync_history": [run.to_dict() for run in runs],
        }
