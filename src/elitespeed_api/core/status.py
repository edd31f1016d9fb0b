"""
EliteSpeed status vocabulary.

Carrier statuses are free French text outside our control ("Livré",
"En cours de livraison", "Hors zone", ...). They are stored verbatim on the
order; these predicates derive the two facts the sync engine acts on.
Matching is case-insensitive, accent-insensitive and tolerant of the
encoding damage seen in carrier payloads (UTF-8 read as Latin-1, and
U+FFFD replacement characters where an accent was lost).
"""

import re
import unicodedata
from functools import lru_cache
from typing import Optional, Pattern

from elitespeed_api.config.constants import DELIVERED_INFLECTIONS, DELIVERED_TOKEN, RETURN_STATUS_TOKENS

REPLACEMENT_CHAR = "\ufffd"

# Typical lead bytes of UTF-8 text decoded as Latin-1/CP1252 ("Ã©", "Ã¨", "Â ")
_MOJIBAKE_MARKERS = ("Ã", "Â")


def _repair_mojibake(text: str) -> str:
    """Undo UTF-8 bytes that were decoded as Latin-1 ("LivrÃ©" -> "Livré")."""
    if not any(marker in text for marker in _MOJIBAKE_MARKERS):
        return text
    for codec in ("latin-1", "cp1252"):
        try:
            return text.encode(codec).decode("utf-8")
        except UnicodeError:
            continue
    return text


def normalize_status(status: Optional[str]) -> str:
    """Normalize a carrier status for comparison.

    Lower-cased, accents stripped, whitespace collapsed. Replacement
    characters are kept so the matchers can treat them as wildcards.
    """
    if not status:
        return ""
    text = _repair_mojibake(str(status))
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return " ".join(text.lower().split())


@lru_cache(maxsize=None)
def _token_pattern(token: str, endings: Optional[str] = None) -> Pattern:
    # Each letter may also appear as a replacement character. Tokens never
    # start inside a word. Without endings a token is a stem and may run on
    # ("annul" -> "annulée"); with endings only up to two of those letters
    # may follow ("livre" -> "livrees", never "livreur").
    body = "".join(
        f"(?:{re.escape(ch)}|{REPLACEMENT_CHAR})" if ch.isalpha() else re.escape(ch)
        for ch in token
    )
    if endings is None:
        return re.compile(rf"(?<![a-z]){body}")
    return re.compile(rf"(?<![a-z]){body}[{re.escape(endings)}]{{0,2}}(?![a-z])")


def _contains_token(normalized: str, token: str, endings: Optional[str] = None) -> bool:
    return bool(normalized) and _token_pattern(token, endings).search(normalized) is not None


def is_delivered(status: Optional[str]) -> bool:
    """True when the carrier reports the parcel as delivered ("Livré", "Livrée").

    This is the only status that triggers seller settlement.
    """
    return _contains_token(normalize_status(status), DELIVERED_TOKEN, DELIVERED_INFLECTIONS)


def is_return_status(status: Optional[str]) -> bool:
    """True when the status is one of the closed set of return/failure statuses."""
    normalized = normalize_status(status)
    return any(_contains_token(normalized, token) for token in RETURN_STATUS_TOKENS)
