from __future__ import annotations

from typing import Optional

from app.utils.enums import AccessDenialReason


def attempt_denial_reason(
    is_repeatable: bool,
    completed_attempts: int,
    max_attempts: int | None,
    has_in_progress_attempt: bool,
) -> Optional[AccessDenialReason]:
    """Return why a new attempt is refused, or None when it may start.

    An unfinished attempt can always be resumed, whatever the limits say.
    """
    if has_in_progress_attempt:
        return None
    if not is_repeatable and completed_attempts > 0:
        return AccessDenialReason.already_completed
    if max_attempts is not None and completed_attempts >= max_attempts:
        return AccessDenialReason.max_attempts_reached
    return None


def can_start_attempt(
    is_repeatable: bool,
    completed_attempts: int,
    max_attempts: int | None,
    has_in_progress_attempt: bool,
) -> bool:
    return (
        attempt_denial_reason(
            is_repeatable, completed_attempts, max_attempts, has_in_progress_attempt
        )
        is None
    )
