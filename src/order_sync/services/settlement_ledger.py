"""
Settlement Ledger.

Credits a seller with the full order amount the first time delivery is
detected. The settlement marker (``orders.settled_at``) is claimed with a
conditional UPDATE and the balance is incremented in the same transaction,
so an order reconciled twice (overlapping runs, retries, webhook + polling)
is credited exactly once.
"""

import asyncio
from datetime import datetime
from enum import Enum

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from elitespeed_api.config.constants import DB_TIMEOUT_SECONDS
from elitespeed_api.core.exceptions import SettlementFailed
from elitespeed_api.core.logger import setup_logger
from elitespeed_api.core.monitoring import capture_exception
from order_sync.db.models import Order, Seller

logger = setup_logger(__name__)


class SettlementOutcome(str, Enum):
    """Result of a settlement attempt."""

    CREDITED = "credited"
    ALREADY_CREDITED = "already_credited"
    FAILED = "failed"


class SettlementLedger:
    """Idempotent seller crediting on delivery."""

    def __init__(self, session_factory, timeout: float = DB_TIMEOUT_SECONDS):
        """Initialize ledger.

        Args:
            session_factory: Async session factory
            timeout: Upper bound for the settlement transaction in seconds
        """
        self.session_factory = session_factory
        self.timeout = timeout

    async def credit_seller_on_delivery(self, order_id: int) -> SettlementOutcome:
        """
        Credit the order's seller with ``total_amount`` unless already done.

        Steps (single transaction):
        1. Claim the marker: UPDATE orders SET settled_at WHERE settled_at IS NULL
        2. Nothing claimed -> ALREADY_CREDITED
        3. Increment the seller balance; a missing seller rolls everything back

        Args:
            order_id: Delivered order

        Returns:
            SettlementOutcome; FAILED leaves the marker unset so a later run retries
        """
        try:
            return await asyncio.wait_for(self._credit(order_id), timeout=self.timeout)
        except SettlementFailed as e:
            logger.error(
                f"Failed to credit seller for order {e.order_id}: {e.reason}",
                extra={"order_id": e.order_id, "seller_id": e.seller_id},
            )
            capture_exception(e, {"order_id": e.order_id, "seller_id": e.seller_id})
            return SettlementOutcome.FAILED
        except asyncio.TimeoutError as e:
            logger.error(
                f"Settlement timed out for order {order_id} after {self.timeout}s",
                extra={"order_id": order_id},
            )
            capture_exception(e, {"order_id": order_id})
            return SettlementOutcome.FAILED
        except SQLAlchemyError as e:
            logger.error(
                f"Database error while crediting seller for order {order_id}: {e}",
                extra={"order_id": order_id},
                exc_info=True,
            )
            capture_exception(e, {"order_id": order_id})
            return SettlementOutcome.FAILED

    async def _credit(self, order_id: int) -> SettlementOutcome:
        async with self.session_factory() as session:
            async with session.begin():
                order = await session.get(Order, order_id)
                if order is None:
                    raise SettlementFailed(order_id, None, "order not found")

                seller_id = order.seller_id
                amount = order.total_amount
                now = datetime.utcnow()

                claimed = await session.execute(
                    update(Order)
                    .where(Order.id == order_id)
                    .where(Order.settled_at.is_(None))
                    .values(settled_at=now)
                    .execution_options(synchronize_session=False)
                )
                if claimed.rowcount == 0:
                    logger.info(
                        f"Order {order.order_number} already settled, skipping credit",
                        extra={"order_id": order_id, "seller_id": seller_id},
                    )
                    return SettlementOutcome.ALREADY_CREDITED

                credited = await session.execute(
                    update(Seller)
                    .where(Seller.id == seller_id)
                    .values(balance=Seller.balance + amount)
                    .execution_options(synchronize_session=False)
                )
                if credited.rowcount == 0:
                    # Raising inside the transaction releases the claimed marker
                    raise SettlementFailed(order_id, seller_id, "seller not found")

                order_number = order.order_number

        logger.info(
            "Seller credited for delivered order",
            extra={
                "order_id": order_id,
                "order_number": order_number,
                "seller_id": seller_id,
                "credit_amount": str(amount),
            },
        )
        return SettlementOutcome.CREDITED
