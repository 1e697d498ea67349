"""
Attempt eligibility rules.
"""

from typing import Optional, Sequence

from lms_backend.assessments.models import (
    AssessmentConfig,
    Attempt,
    Eligibility,
    IneligibilityReason,
)


def graded_count(attempts: Sequence[Attempt]) -> int:
    return sum(1 for attempt in attempts if attempt.is_graded)


def can_start_attempt(config: Optional[AssessmentConfig], attempts: Sequence[Attempt]) -> Eligibility:
    """
    Decide whether a learner may start a new attempt.

    Checks run in a fixed order and the first failure is reported: the
    assessment must be enabled, no attempt may be in progress, and the number
    of graded attempts must be below ``max_attempts`` when one is set.
    """
    if config is None or not config.is_enabled:
        return Eligibility(can_start=False, reason=IneligibilityReason.NOT_ENABLED)

    if any(attempt.is_in_progress for attempt in attempts):
        return Eligibility(can_start=False, reason=IneligibilityReason.ATTEMPT_IN_PROGRESS)

    if config.max_attempts is not None and graded_count(attempts) >= config.max_attempts:
        return Eligibility(can_start=False, reason=IneligibilityReason.MAX_ATTEMPTS_REACHED)

    return Eligibility(can_start=True)


def attempts_remaining(config: AssessmentConfig, attempts: Sequence[Attempt]) -> Optional[int]:
    """Graded attempts left, or None when attempts are unlimited."""
    if config.max_attempts is None:
        return None
    return max(0, config.max_attempts - graded_count(attempts))
