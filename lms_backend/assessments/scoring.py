"""
Effective score resolution across a learner's attempts.
"""

from typing import List, Optional, Sequence

from lms_backend.assessments.models import Attempt, EffectiveScore, ScoreMode


def graded_attempts(attempts: Sequence[Attempt]) -> List[Attempt]:
    """Graded attempts sorted by ascending attempt number."""
    return sorted((a for a in attempts if a.is_graded), key=lambda a: a.attempt_number)


def _to_effective(attempt: Attempt) -> EffectiveScore:
    return EffectiveScore(
        score=attempt.percent_score,
        passed=attempt.passed,
        attempt_id=attempt.attempt_id,
        attempt_number=attempt.attempt_number,
    )


def resolve_effective_score(attempts: Sequence[Attempt], score_mode: ScoreMode) -> Optional[EffectiveScore]:
    """
    Pick the attempt that represents the learner.

    ``best`` takes the highest percent score, the earliest attempt winning a
    tie. ``latest`` takes the graded attempt with the highest attempt number.
    Attempts still in progress are ignored.

    Returns:
        The effective score, or None when nothing has been graded
    """
    graded = graded_attempts(attempts)
    if not graded:
        return None

    if ScoreMode(score_mode) is ScoreMode.LATEST:
        return _to_effective(graded[-1])

    chosen = graded[0]
    for attempt in graded[1:]:
        if attempt.percent_score > chosen.percent_score:
            chosen = attempt
    return _to_effective(chosen)


def best_score(attempts: Sequence[Attempt]) -> Optional[int]:
    graded = graded_attempts(attempts)
    if not graded:
        return None
    return max(a.percent_score for a in graded)


def latest_score(attempts: Sequence[Attempt]) -> Optional[int]:
    graded = graded_attempts(attempts)
    if not graded:
        return None
    return graded[-1].percent_score
