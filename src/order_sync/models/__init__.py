"""Pydantic models for inbound payloads."""

from .webhook import CarrierWebhookEvent

__all__ = ["CarrierWebhookEvent"]
