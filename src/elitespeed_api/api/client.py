"""EliteSpeed carrier tracking API client."""

from typing import Optional

import httpx

from elitespeed_api.config.constants import CARRIER_TIMEOUT_SECONDS, ELITESPEED_BASE_URL
from elitespeed_api.core.exceptions import TrackingFetchFailed
from elitespeed_api.core.logger import setup_logger
from .endpoints import TRACK_PARCEL
from .extractors import extract_status

logger = setup_logger(__name__)

# Raw bodies are truncated in logs and errors
MAX_LOGGED_BODY = 500


class EliteSpeedClient:
    """Async HTTP client for the EliteSpeed tracking API."""

    def __init__(
        self,
        api_token: Optional[str],
        base_url: str = ELITESPEED_BASE_URL,
        timeout: float = CARRIER_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize API client with credentials.

        Args:
            api_token: Value sent in the ``api-Token`` header
            base_url: API root (``https://Elitelivraison.com/api``)
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        if not api_token:
            logger.warning("EliteSpeed API token not configured, tracking calls will be rejected")
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/json",
                "api-Token": api_token or "",
            },
        )

    async def track_parcel(self, tracking_number: str) -> dict:
        """
        Fetch the raw tracking payload for a parcel.

        Args:
            tracking_number: Parcel code assigned by EliteSpeed

        Returns:
            Parsed JSON object returned by the carrier

        Raises:
            TrackingFetchFailed: transport error, timeout, non-2xx status,
                unparseable or non-object body
        """
        url = f"{self.base_url}{TRACK_PARCEL.format(code=tracking_number)}"

        try:
            logger.debug(f"Tracking parcel {tracking_number}")
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:MAX_LOGGED_BODY]
            logger.error(
                f"EliteSpeed tracking failed for {tracking_number}: HTTP {e.response.status_code}",
                extra={"tracking_number": tracking_number, "response": body},
            )
            raise TrackingFetchFailed(tracking_number, body, status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error(
                f"EliteSpeed tracking failed for {tracking_number}: {type(e).__name__}: {e}",
                extra={"tracking_number": tracking_number, "error": repr(e)},
            )
            raise TrackingFetchFailed(tracking_number, f"{type(e).__name__}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            body = response.text[:MAX_LOGGED_BODY]
            logger.error(
                f"EliteSpeed returned unparseable body for {tracking_number}",
                extra={"tracking_number": tracking_number, "response": body},
            )
            raise TrackingFetchFailed(tracking_number, f"Invalid JSON: {body}") from e

        if not isinstance(data, dict):
            logger.error(
                f"EliteSpeed returned unexpected payload type for {tracking_number}",
                extra={"tracking_number": tracking_number, "response": str(data)[:MAX_LOGGED_BODY]},
            )
            raise TrackingFetchFailed(tracking_number, f"Unexpected payload: {str(data)[:MAX_LOGGED_BODY]}")

        return data

    async def fetch_status(self, tracking_number: str) -> Optional[str]:
        """
        Fetch the latest carrier status for a parcel.

        Args:
            tracking_number: Parcel code assigned by EliteSpeed

        Returns:
            Latest status string, or None when the carrier has no status yet
        """
        if not tracking_number or not tracking_number.strip():
            raise ValueError("tracking_number is required")

        data = await self.track_parcel(tracking_number.strip())
        status = extract_status(data)

        if status is None:
            logger.info(f"No status data for {tracking_number}")
        return status

    async def close(self) -> None:
        """Close HTTP client connection."""
        await self.client.aclose()
