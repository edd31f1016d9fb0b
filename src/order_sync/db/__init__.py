"""Database module."""

from .base import Base, get_engine, get_session_factory, init_db
from .models import Order, OrderStatusHistory, Seller, SyncRun
from .repository import OrderRepository

__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "init_db",
    "Order",
    "OrderStatusHistory",
    "Seller",
    "SyncRun",
    "OrderRepository",
]
