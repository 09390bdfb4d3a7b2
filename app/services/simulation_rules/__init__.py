"""Pure access and attempt rules for simulations; no database access here."""

from .access_window import (
    ACCESS_DENIAL_MESSAGES,
    AccessDecision,
    can_access,
    effective_window,
)
from .attempt_limits import attempt_denial_reason, can_start_attempt

__all__ = [
    "ACCESS_DENIAL_MESSAGES",
    "AccessDecision",
    "can_access",
    "effective_window",
    "attempt_denial_reason",
    "can_start_attempt",
]
