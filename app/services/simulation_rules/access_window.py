from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.utils.datetime_utils import as_utc
from app.utils.enums import AccessDenialReason


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[AccessDenialReason] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: AccessDenialReason) -> "AccessDecision":
        return cls(allowed=False, reason=reason)


ACCESS_DENIAL_MESSAGES = {
    AccessDenialReason.not_started: "The simulation has not started yet",
    AccessDenialReason.expired: "The simulation has expired",
    AccessDenialReason.assignment_closed: "This assignment has been closed",
    AccessDenialReason.no_access: "You do not have access to this simulation",
    AccessDenialReason.already_completed: "This simulation cannot be retaken",
    AccessDenialReason.max_attempts_reached: "Maximum number of attempts reached",
}


def can_access(
    now: datetime,
    effective_start_date: datetime | None,
    effective_end_date: datetime | None,
    has_virtual_room_override: bool,
    is_assignment_active: bool,
) -> AccessDecision:
    """Decide whether a student may enter a simulation right now.

    - A start date in the future blocks entry unless a virtual room is open;
      the room lifts only this gate.
    - An end date in the past blocks entry unless the assignment is kept
      ACTIVE by staff.
    - Both bounds are inclusive and a missing bound imposes nothing.
    """
    now = as_utc(now)
    start = as_utc(effective_start_date)
    end = as_utc(effective_end_date)

    if start is not None and start > now and not has_virtual_room_override:
        return AccessDecision.deny(AccessDenialReason.not_started)

    if end is not None and end < now and not is_assignment_active:
        return AccessDecision.deny(AccessDenialReason.expired)

    return AccessDecision.allow()


def effective_window(simulation, assignment=None) -> tuple[datetime | None, datetime | None]:
    """Assignment-level dates win over the simulation defaults, per side."""
    start = getattr(assignment, "start_date", None) if assignment is not None else None
    end = getattr(assignment, "end_date", None) if assignment is not None else None
    if start is None:
        start = simulation.start_date
    if end is None:
        end = simulation.end_date
    return as_utc(start), as_utc(end)
