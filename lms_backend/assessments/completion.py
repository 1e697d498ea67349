"""
Course Completion Cascade

Re-derives whether a learner has completed a course. A course is complete
when every lesson is done and, if the course requires it, the assessment has
been passed under its score mode. The evaluation runs after a passing grade
and after lesson progress changes, so the order in which a learner finishes
the two does not matter.
"""

from typing import Any, Dict, Optional

from lms_backend.assessments.models import AssessmentConfig, CompletionDecision, CourseProgress
from lms_backend.assessments.repositories import (
    AssessmentConfigRepository,
    AttemptRepository,
    CourseProgressRepository,
)
from lms_backend.assessments.scoring import resolve_effective_score
from lms_backend.common import events
from lms_backend.common.events import EventPublisher
from lms_backend.common.logger import app_logger

logger = app_logger.getChild("assessments.completion")

LESSONS_INCOMPLETE = "lessons incomplete"


def _gates_completion(config: Optional[AssessmentConfig]) -> bool:
    return config is not None and config.is_enabled and config.required_for_completion


class CompletionCascadeEvaluator:
    """Evaluates and records course completion for learners."""

    def __init__(
        self,
        configs: AssessmentConfigRepository,
        attempts: AttemptRepository,
        progress: CourseProgressRepository,
        publisher: EventPublisher,
    ):
        self.configs = configs
        self.attempts = attempts
        self.progress = progress
        self.publisher = publisher

    async def is_assessment_required(self, course_id: str) -> bool:
        """Whether passing the course assessment gates completion."""
        return _gates_completion(await self.configs.get_by_course(course_id))

    async def assessment_status(self, course_id: str, learner_id: str) -> Dict[str, Any]:
        """
        Report whether the learner has passed the course assessment.

        Returns:
            Dictionary with ``passed``, ``score`` (None without graded attempts)
            and ``config`` (None when the course has no enabled assessment)
        """
        config = await self.configs.get_by_course(course_id)
        if config is None or not config.is_enabled:
            return {"passed": False, "score": None, "config": None}

        attempts = await self.attempts.list_for_learner(course_id, learner_id)
        effective = resolve_effective_score(attempts, config.score_mode)
        return {
            "passed": bool(effective and effective.passed),
            "score": effective.score if effective else None,
            "config": config,
        }

    async def evaluate(self, course_id: str, progress: CourseProgress) -> CompletionDecision:
        """
        Decide whether ``progress`` amounts to a completed course.

        Args:
            course_id: Course being evaluated
            progress: The learner's lesson progress for the course

        Returns:
            CompletionDecision, with a reason when not completed
        """
        if progress.percent_complete != 100:
            return CompletionDecision(completed=False, reason=LESSONS_INCOMPLETE)

        config = await self.configs.get_by_course(course_id)
        if not _gates_completion(config):
            return CompletionDecision(completed=True)

        attempts = await self.attempts.list_for_learner(course_id, progress.user_id)
        effective = resolve_effective_score(attempts, config.score_mode)
        if effective is None or not effective.passed:
            return CompletionDecision(
                completed=False,
                reason=(
                    f"assessment not passed: requires {config.passing_score}% "
                    f"under {config.score_mode.value} score mode"
                ),
            )
        return CompletionDecision(completed=True)

    async def _reconcile(self, course_id: str, progress: CourseProgress) -> bool:
        if progress.completed or progress.percent_complete != 100:
            return False

        decision = await self.evaluate(course_id, progress)
        if not decision.completed:
            logger.debug(f"Course {course_id} not complete for {progress.user_id}: {decision.reason}")
            return False

        if not await self.progress.mark_completed(progress.user_id, course_id):
            return False

        await self.publisher.publish(events.COURSE_COMPLETED, {
            "course_id": course_id,
            "user_id": progress.user_id,
        })
        logger.info(f"Course {course_id} completed by {progress.user_id}")
        return True

    async def on_assessment_passed(self, course_id: str, learner_id: str) -> bool:
        """
        Complete the course if the learner's lessons are already done.

        Returns:
            True if this call completed the course
        """
        progress = await self.progress.get(learner_id, course_id)
        if progress is None:
            return False
        return await self._reconcile(course_id, progress)

    async def on_lesson_progress(self, progress: CourseProgress) -> bool:
        """
        Store lesson progress and complete the course if nothing else is missing.

        Returns:
            True if this call completed the course
        """
        stored = await self.progress.save(progress)
        return await self._reconcile(stored.course_id, stored)
