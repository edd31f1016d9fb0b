"""
Status extraction from EliteSpeed tracking responses.

The tracking endpoint answers in several shapes:

    {"statut": "Livré", ...}
    {"last_status": "En cours de livraison", ...}
    {"message": "Hors zone"}
    {"data": [{"status": "Livré", "date": "..."}, {"status": "Expédié"}]}

Each strategy inspects the payload and returns a status or None. Strategies
run in priority order and the first hit wins; new response variants are
supported by appending a strategy to STATUS_EXTRACTORS.
"""

from typing import Any, Callable, Optional, Tuple

from elitespeed_api.config.constants import (
    STATUS_FIELDS,
    TIMELINE_FIELD,
    TIMELINE_STATUS_FIELD,
)

StatusExtractor = Callable[[dict], Optional[str]]


def _clean(value: Any) -> Optional[str]:
    """Return a stripped status string, or None for empty/non-text values."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def field_extractor(field: str) -> StatusExtractor:
    """Build a strategy reading a single current-status field."""

    def extract(payload: dict) -> Optional[str]:
        return _clean(payload.get(field))

    extract.__name__ = f"extract_{field}"
    return extract


def timeline_extractor(payload: dict) -> Optional[str]:
    """Read the newest event of the tracking timeline (first element)."""
    events = payload.get(TIMELINE_FIELD)
    if not isinstance(events, list) or not events:
        return None
    latest = events[0]
    if not isinstance(latest, dict):
        return None
    return _clean(latest.get(TIMELINE_STATUS_FIELD))


STATUS_EXTRACTORS: Tuple[StatusExtractor, ...] = (
    *(field_extractor(field) for field in STATUS_FIELDS),
    timeline_extractor,
)


def extract_status(payload: Any, extractors: Tuple[StatusExtractor, ...] = STATUS_EXTRACTORS) -> Optional[str]:
    """Run the extraction strategies in order and return the first status found.

    Returns None when the payload carries no status (NoData).
    """
    if not isinstance(payload, dict):
        return None
    for extractor in extractors:
        status = extractor(payload)
        if status is not None:
            return status
    return None
