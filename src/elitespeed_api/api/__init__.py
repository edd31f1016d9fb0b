"""EliteSpeed API package."""

from .client import EliteSpeedClient
from .extractors import extract_status

__all__ = ["EliteSpeedClient", "extract_status"]
