"""EliteSpeed webhook processing.

Status pushes go through the same transition and settlement rules as
polling, so a parcel reported by both paths is recorded and paid once.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from elitespeed_api.config.constants import NOTE_CARRIER_WEBHOOK
from elitespeed_api.core.logger import setup_logger
from elitespeed_api.core.monitoring import capture_exception, set_order_context
from order_sync.db.repository import OrderRepository
from order_sync.models.webhook import CarrierWebhookEvent
from order_sync.services.reconciliation_service import ReconciliationService, SyncOutcome

logger = setup_logger(__name__)


@dataclass
class WebhookResult:
    """Outcome of one webhook, mapped to an HTTP response by the route."""
    status_code: int
    message: str
    order_number: Optional[str] = None
    outcome: Optional[SyncOutcome] = None

    def to_dict(self) -> dict:
        return {
            "success": self.status_code == 200,
            "message": self.message,
            "order_number": self.order_number,
            "outcome": self.outcome.value if self.outcome else None,
        }


class WebhookProcessor:
    """Applies carrier status pushes to orders."""

    def __init__(self, reconciliation_service: ReconciliationService):
        self.service = reconciliation_service

    async def process_event(self, payload: Dict[str, Any]) -> WebhookResult:
        """Process a webhook payload.

        Returns:
            400 when tracking code or status is missing, 404 when no order
            ships under the tracking code, 500 when the status could not be
            stored, 200 once the status is applied
        """
        try:
            event = CarrierWebhookEvent.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"EliteSpeed webhook: invalid payload: {e}")
            return WebhookResult(400, "Invalid payload")

        tracking_number = event.get_tracking_number()
        status = event.get_status()

        if not tracking_number or not status:
            logger.warning("EliteSpeed webhook: missing required fields", extra={"payload": payload})
            return WebhookResult(400, "Missing required fields")

        async with self.service.session_factory() as session:
            order = await OrderRepository(session).get_order_by_tracking_number(tracking_number)

        if order is None:
            logger.warning(f"EliteSpeed webhook: order not found for tracking {tracking_number}")
            return WebhookResult(404, "Order not found")

        set_order_context(order_id=order.id, tracking_number=tracking_number, source="webhook")

        try:
            outcome = await self.service.apply_status(order.id, status, note=NOTE_CARRIER_WEBHOOK)
        except (asyncio.TimeoutError, SQLAlchemyError) as e:
            logger.error(
                f"EliteSpeed webhook: failed to apply status to order {order.order_number}: {type(e).__name__}: {e}",
                extra={"order_id": order.id, "tracking_number": tracking_number, "new_status": status},
                exc_info=True,
            )
            capture_exception(e, {"order_id": order.id, "tracking_number": tracking_number, "source": "webhook"})
            return WebhookResult(500, "Failed to apply status", order_number=order.order_number)

        logger.info(
            f"Order {order.order_number} processed via webhook: {outcome.value}",
            extra={"tracking_number": tracking_number, "new_status": status},
        )
        return WebhookResult(200, "Order status updated", order_number=order.order_number, outcome=outcome)
