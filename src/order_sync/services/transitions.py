"""Pure status transition planning for one observed carrier status."""

from dataclasses import dataclass
from typing import Optional

from elitespeed_api.core.status import is_delivered, is_return_status


@dataclass(frozen=True)
class StatusTransition:
    """What applying an observed carrier status to an order changes."""

    old_status: Optional[str]
    new_status: Optional[str]
    status_changed: bool
    delivered_edge: bool
    reshipping_revoked: bool

    @property
    def changed(self) -> bool:
        """True when the order row needs to be written."""
        return self.status_changed or self.reshipping_revoked


def plan_transition(
    current_status: Optional[str],
    allow_reshipping: bool,
    observed: str,
) -> StatusTransition:
    """
    Decide how an observed status applies to an order.

    - A status different from the stored one (exact string comparison) is a
      change and gets a history entry.
    - Settlement fires only on the edge into "delivered": the new status is
      delivered and the previous one was not.
    - Reshipping is revoked whenever the resulting status is a return status,
      including when the status itself did not change.

    Args:
        current_status: Status stored on the order
        allow_reshipping: Current reshipping flag
        observed: Status just reported by the carrier

    Returns:
        StatusTransition describing the writes to perform
    """
    status_changed = observed != current_status
    new_status = observed if status_changed else current_status

    return StatusTransition(
        old_status=current_status,
        new_status=new_status,
        status_changed=status_changed,
        delivered_edge=status_changed and is_delivered(observed) and not is_delivered(current_status),
        reshipping_revoked=bool(allow_reshipping) and is_return_status(new_status),
    )
