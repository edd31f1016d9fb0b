"""Exceptions raised by the carrier client and the settlement ledger."""

from typing import Any, Optional


class OrderSyncError(Exception):
    """Base class for order synchronization errors."""


class TrackingFetchFailed(OrderSyncError):
    """The carrier tracking call failed (transport, HTTP status or body parsing)."""

    def __init__(self, tracking_number: str, detail: Any, status_code: Optional[int] = None):
        self.tracking_number = tracking_number
        self.detail = detail
        self.status_code = status_code
        super().__init__(
            f"Tracking fetch failed for {tracking_number}"
            + (f" (HTTP {status_code})" if status_code else "")
            + f": {detail}"
        )


class SettlementFailed(OrderSyncError):
    """Seller credit could not be applied; the settlement marker stays unset."""

    def __init__(self, order_id: int, seller_id: Optional[int], reason: str):
        self.order_id = order_id
        self.seller_id = seller_id
        self.reason = reason
        super().__init__(f"Settlement failed for order {order_id} (seller {seller_id}): {reason}")
