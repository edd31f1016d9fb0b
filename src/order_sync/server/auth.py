"""
Authentication helpers.

API key for dashboard/operator endpoints, shared token for carrier webhooks.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from elitespeed_api.config.settings import settings


async def verify_api_key(x_api_key: str = Header(..., description="Dashboard API key")):
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: If API key is invalid or the dashboard is not configured
    """
    expected_key = settings.dashboard_api_key

    if not expected_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard not configured (DASHBOARD_API_KEY not set in environment)"
        )

    if not hmac.compare_digest(x_api_key, expected_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    return True


def is_valid_webhook_token(provided: Optional[str], expected: Optional[str]) -> bool:
    """Check a webhook token; validation is disabled when no token is configured."""
    if not expected:
        return True
    if not provided:
        return False
    return hmac.compare_digest(str(provided), expected)
