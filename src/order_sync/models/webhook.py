"""Pydantic models for EliteSpeed webhook events."""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CarrierWebhookEvent(BaseModel):
    """Parcel status push from EliteSpeed.

    The carrier has used several field names for the same data, so every
    known variant is accepted.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    code_shippment: Optional[Union[str, int]] = Field(None, description="Tracking code")
    tracking_code: Optional[Union[str, int]] = Field(None, description="Tracking code (alternative field)")
    code: Optional[Union[str, int]] = Field(None, description="Tracking code (alternative field)")

    statut: Optional[str] = Field(None, description="Current status")
    status: Optional[str] = Field(None, description="Current status (alternative field)")
    last_status: Optional[str] = Field(None, description="Current status (alternative field)")
    data: Optional[Any] = Field(None, description="Status events (newest first) or a single event")

    token: Optional[str] = Field(None, description="Shared secret when not sent as header")

    def get_tracking_number(self) -> Optional[str]:
        """Extract the tracking code from any known field name."""
        for value in (self.code_shippment, self.tracking_code, self.code):
            if value and str(value).strip():
                return str(value).strip()
        return None

    def get_status(self) -> Optional[str]:
        """Extract the status, falling back to the newest timeline event."""
        for value in (self.statut, self.status, self.last_status):
            if value and value.strip():
                return value.strip()

        latest = self.data
        if isinstance(latest, list):
            latest = latest[0] if latest else None
        if isinstance(latest, dict):
            value = latest.get("status")
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None
