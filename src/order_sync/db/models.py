"""SQLAlchemy models for orders, sellers, status history and sync runs."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Seller(Base):
    """Seller account credited when one of its orders is delivered.

    Only ``balance`` is written by the sync engine, and only through the
    settlement ledger's atomic increment.
    """

    __tablename__ = "sellers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


class Order(Base):
    """
    Customer order shipped through EliteSpeed.

    ``status`` holds the raw carrier status once the parcel has been picked
    up ("En cours de livraison", "Livré", ...); before that it carries an
    internal placeholder (PENDING, PRINTED). ``shipping_status`` mirrors it
    for the UI. ``settled_at`` is the settlement marker: set exactly once, in
    the same transaction that credits the seller.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    seller_id: Mapped[int] = mapped_column(ForeignKey("sellers.id"), index=True, nullable=False)

    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), index=True, nullable=True)
    status: Mapped[str] = mapped_column(String(255), default="PENDING", index=True, nullable=False)
    shipping_status: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    allow_reshipping: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Set by the sync engine when delivery is first observed
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    settled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "seller_id": self.seller_id,
            "tracking_number": self.tracking_number,
            "status": self.status,
            "shipping_status": self.shipping_status,
            "allow_reshipping": bool(self.allow_reshipping),
            "total_amount": str(self.total_amount),
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "settled_at": self.settled_at.isoformat() if self.settled_at else None,
        }


class OrderStatusHistory(Base):
    """Append-only record of every status change observed for an order."""

    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    old_status: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    new_status: Mapped[str] = mapped_column(String(255), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "old_status": self.old_status,
            "new_status": self.new_status,
            "note": self.note,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class SyncRun(Base):
    """Report of one synchronization run."""

    __tablename__ = "sync_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sync_type: Mapped[str] = mapped_column(String(32), index=True, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    candidates: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unchanged: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    settlements_retried: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    errors: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sync_type": self.sync_type,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "candidates": self.candidates,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "failed": self.failed,
            "skipped": self.skipped,
            "settlements_retried": self.settlements_retried,
            "success": bool(self.success),
            "errors": (self.errors or "").splitlines(),
        }
