"""
GlitchTip Error Monitoring Utilities

Helper functions for error tracking and context management.
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from elitespeed_api.core.logger import setup_logger

logger = setup_logger(__name__)


def init_monitoring(dsn: Optional[str], environment: str, integrations: Optional[list] = None) -> bool:
    """
    Initialize GlitchTip (Sentry protocol) error monitoring.

    Args:
        dsn: GlitchTip DSN; monitoring stays off when empty
        environment: Deployment environment name
        integrations: Extra integrations (e.g. FastApiIntegration)

    Returns:
        True if monitoring was initialized
    """
    if not dsn:
        return False

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            integrations=[
                LoggingIntegration(
                    level=None,  # Capture all log levels as breadcrumbs
                    event_level=logging.ERROR,  # Send ERROR logs as events
                ),
                *(integrations or []),
            ],
            traces_sample_rate=0.1,
            profiles_sample_rate=0.0,
            send_default_pii=False,
        )
        logger.info("GlitchTip error monitoring initialized")
        return True
    except Exception as e:
        logger.error(f"Failed to initialize GlitchTip: {e}")
        return False


def set_order_context(
    order_id: Optional[int] = None,
    tracking_number: Optional[str] = None,
    **extra_tags
) -> None:
    """
    Set order-specific context for error tracking.

    Args:
        order_id: Internal order ID
        tracking_number: Carrier tracking number
        **extra_tags: Additional tags to add
    """
    try:
        if order_id is not None:
            sentry_sdk.set_tag("order.id", order_id)
        if tracking_number:
            sentry_sdk.set_tag("order.tracking_number", tracking_number)

        for key, value in extra_tags.items():
            sentry_sdk.set_tag(key, value)

        context_data = {
            "order_id": order_id,
            "tracking_number": tracking_number,
        }
        context_data.update(extra_tags)
        sentry_sdk.set_context("order", context_data)

    except Exception as e:
        logger.warning(f"Failed to set order context: {e}")


def capture_exception(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error"
) -> None:
    """
    Capture an exception and send to GlitchTip.

    Args:
        error: The exception to capture
        context: Additional context data
        level: Error level (error, warning, info)
    """
    try:
        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context("custom", context)
            scope.level = level
            sentry_sdk.capture_exception(error)

    except Exception as e:
        logger.warning(f"Failed to capture exception in GlitchTip: {e}")
