"""
Assessment Attempt Lifecycle

This module provides the service that drives a learner through a course
assessment: starting attempts, submitting and grading them, and summarising
the learner's standing. It publishes domain events for each transition and
hands passing grades to the completion cascade.
"""

from typing import List, Optional, Sequence

from lms_backend.assessments.completion import CompletionCascadeEvaluator
from lms_backend.assessments.eligibility import attempts_remaining, can_start_attempt
from lms_backend.assessments.grading import build_evidence_snapshot, grade_attempt
from lms_backend.assessments.models import (
    AssessmentSummary,
    Attempt,
    AttemptDetail,
    AttemptStatus,
    StartOutcome,
    SubmissionResult,
    SubmittedAnswer,
    new_id,
    utcnow,
)
from lms_backend.assessments.repositories import (
    AnswerRepository,
    AssessmentConfigRepository,
    AttemptRepository,
    CourseRepository,
)
from lms_backend.assessments.scoring import best_score, latest_score, resolve_effective_score
from lms_backend.assessments.validation import validate_required_answers
from lms_backend.common import events
from lms_backend.common.events import EventPublisher
from lms_backend.common.exceptions import (
    AlreadySubmittedError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from lms_backend.common.logger import LoggerAdapter, app_logger, log_execution_time

logger = app_logger.getChild("assessments.lifecycle")

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 200

# Outcomes reported to the caller rather than failures of the service
EXPECTED_ERRORS = (ValidationError, NotFoundError, AuthorizationError, AlreadySubmittedError, ConflictError)


class AttemptLifecycle:
    """
    Service coordinating assessment attempts for learners.

    The service holds no state of its own; every call reads what it needs
    from the repositories, so several instances may serve the same stores.
    """

    def __init__(
        self,
        courses: CourseRepository,
        configs: AssessmentConfigRepository,
        attempts: AttemptRepository,
        answers: AnswerRepository,
        publisher: EventPublisher,
        completion: Optional[CompletionCascadeEvaluator] = None,
        start_max_retries: int = 3,
        max_page_limit: int = MAX_PAGE_LIMIT,
    ):
        """
        Initialize the lifecycle service.

        Args:
            courses: Course lookup
            configs: Assessment config and question bank storage
            attempts: Attempt storage
            answers: Graded answer storage
            publisher: Event publisher
            completion: Completion cascade run after a passing grade
            start_max_retries: Times ``start`` retries after losing a race
            max_page_limit: Upper bound for the admin attempt listing
        """
        self.courses = courses
        self.configs = configs
        self.attempts = attempts
        self.answers = answers
        self.publisher = publisher
        self.completion = completion
        self.start_max_retries = start_max_retries
        self.max_page_limit = max_page_limit

    async def _require_course(self, course_id: str, published_only: bool = True) -> None:
        course = await self.courses.get(course_id)
        # Learners never see unpublished courses
        if course is None or (published_only and not course.is_published):
            raise NotFoundError("course", course_id)

    async def _load_owned_attempt(self, course_id: str, attempt_id: str, learner_id: str) -> Attempt:
        attempt = await self.attempts.get(attempt_id)
        if attempt is None:
            raise NotFoundError("attempt", attempt_id)
        if attempt.learner_id != learner_id or attempt.course_id != course_id:
            raise AuthorizationError(
                "Attempt does not belong to this learner and course",
                resource=f"attempt:{attempt_id}",
                action="access"
            )
        return attempt

    @log_execution_time(logger, expected_errors=EXPECTED_ERRORS)
    async def start(self, course_id: str, learner_id: str) -> StartOutcome:
        """
        Start a new attempt if the learner is eligible.

        A refusal is a normal outcome carrying the reason. When a concurrent
        call wins the race for the in-progress slot or the attempt number,
        eligibility is re-evaluated against the fresh attempt list.

        Raises:
            NotFoundError: If the course does not exist
            ConflictError: If the store kept rejecting the write after retries
        """
        await self._require_course(course_id)
        log = logger.getChild("start")

        for attempt_no in range(self.start_max_retries + 1):
            config = await self.configs.get_by_course(course_id)
            existing = await self.attempts.list_for_learner(course_id, learner_id)

            eligibility = can_start_attempt(config, existing)
            if not eligibility.can_start:
                log.info(f"Learner {learner_id} cannot start assessment for {course_id}: {eligibility.reason.value}")
                return StartOutcome(ineligible_reason=eligibility.reason)

            now = utcnow()
            attempt = Attempt(
                attempt_id=new_id("att"),
                course_id=course_id,
                config_id=config.config_id,
                learner_id=learner_id,
                attempt_number=len(existing) + 1,
                status=AttemptStatus.IN_PROGRESS,
                started_at=now,
                created_at=now,
                updated_at=now,
            )
            try:
                await self.attempts.create(attempt)
            except ConflictError:
                if attempt_no >= self.start_max_retries:
                    raise
                log.info(f"Concurrent start for {learner_id} on {course_id}, re-checking eligibility")
                continue

            await self.publisher.publish(events.ATTEMPT_STARTED, {
                "attempt_id": attempt.attempt_id,
                "course_id": course_id,
                "learner_id": learner_id,
                "attempt_number": attempt.attempt_number,
            })
            log.info(f"Started attempt {attempt.attempt_number} ({attempt.attempt_id}) for {learner_id} on {course_id}")
            return StartOutcome(attempt=attempt)

        # The loop either returns or raises on the last iteration
        raise ConflictError("attempt", f"{course_id}/{learner_id}")

    @log_execution_time(logger, expected_errors=EXPECTED_ERRORS)
    async def submit(
        self,
        course_id: str,
        attempt_id: str,
        learner_id: str,
        answers: Sequence[SubmittedAnswer]
    ) -> SubmissionResult:
        """
        Grade an in-progress attempt.

        The attempt moves to ``graded`` exactly once. The attempt and its
        answers are written together, and only if no other submit got there
        first.

        Raises:
            NotFoundError: If the attempt or config does not exist
            AuthorizationError: If the attempt belongs to someone else or another course
            AlreadySubmittedError: If the attempt has already been graded
            MissingRequiredAnswerError: If a required question is unanswered
        """
        attempt = await self._load_owned_attempt(course_id, attempt_id, learner_id)
        if not attempt.is_in_progress:
            raise AlreadySubmittedError(attempt_id)

        config = await self.configs.get_by_course(course_id)
        if config is None:
            raise NotFoundError("assessment_config", course_id)
        questions = await self.configs.get_questions(config.config_id)

        validate_required_answers(questions, answers)

        result = grade_attempt(config, questions, answers)
        now = utcnow()
        graded = attempt.copy(
            status=AttemptStatus.GRADED,
            submitted_at=now,
            graded_at=now,
            raw_score=result.raw_score,
            max_score=result.max_score,
            percent_score=result.percent_score,
            passed=result.passed,
            evidence=build_evidence_snapshot(config, len(questions), now),
            updated_at=now,
        )
        for answer in result.answers:
            answer.attempt_id = attempt_id
            answer.created_at = now
            answer.updated_at = now

        if not await self.attempts.complete_grading(graded, result.answers):
            raise AlreadySubmittedError(attempt_id)

        log = LoggerAdapter(logger, {"attempt_id": attempt_id, "course_id": course_id, "learner_id": learner_id})
        log.info(
            f"Graded attempt {attempt_id}: {result.raw_score}/{result.max_score} "
            f"({result.percent_score}%), passed={result.passed}"
        )

        payload = {
            "attempt_id": attempt_id,
            "course_id": course_id,
            "learner_id": learner_id,
            "attempt_number": graded.attempt_number,
            "percent_score": graded.percent_score,
            "passed": graded.passed,
        }
        await self.publisher.publish(events.ATTEMPT_SUBMITTED, payload)
        if graded.passed:
            await self.publisher.publish(events.ASSESSMENT_PASSED, dict(
                payload,
                passing_score=config.passing_score,
                is_certification=config.is_certification,
            ))
            if self.completion is not None:
                await self.completion.on_assessment_passed(course_id, learner_id)

        return SubmissionResult(attempt=graded, answers=list(result.answers))

    async def summary(self, course_id: str, learner_id: str) -> Optional[AssessmentSummary]:
        """
        Summarise a learner's standing on a course assessment.

        Returns:
            The summary, or None when the course has no enabled assessment

        Raises:
            NotFoundError: If the course does not exist
        """
        await self._require_course(course_id)

        config = await self.configs.get_by_course(course_id)
        if config is None or not config.is_enabled:
            return None

        questions = await self.configs.get_questions(config.config_id)
        attempts = await self.attempts.list_for_learner(course_id, learner_id)
        eligibility = can_start_attempt(config, attempts)

        return AssessmentSummary(
            config=config,
            question_count=len(questions),
            attempts=attempts,
            best_score=best_score(attempts),
            latest_score=latest_score(attempts),
            effective_score=resolve_effective_score(attempts, config.score_mode),
            can_start_attempt=eligibility.can_start,
            ineligible_reason=eligibility.reason,
            attempts_remaining=attempts_remaining(config, attempts),
        )

    async def get_attempt(self, course_id: str, attempt_id: str, learner_id: str) -> AttemptDetail:
        """
        Fetch one of the learner's attempts with its answers.

        While the attempt is in progress the questions are included without
        their answer keys.
        """
        attempt = await self._load_owned_attempt(course_id, attempt_id, learner_id)
        answers = await self.answers.list_for_attempt(attempt_id)
        questions = await self.configs.get_questions(attempt.config_id)

        position = {question.question_id: question.order_index for question in questions}
        answers.sort(key=lambda a: position.get(a.question_id, len(position)))

        return AttemptDetail(
            attempt=attempt,
            answers=answers,
            questions=questions if attempt.is_in_progress else [],
        )

    async def list_course_attempts(
        self,
        course_id: str,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0
    ) -> List[Attempt]:
        """All attempts for a course, newest first. ``limit`` is capped."""
        await self._require_course(course_id, published_only=False)
        limit = max(1, min(limit, self.max_page_limit))
        offset = max(0, offset)
        return await self.attempts.list_for_course(course_id, limit=limit, offset=offset)

    async def list_learner_attempts(self, course_id: str, learner_id: str) -> List[Attempt]:
        """One learner's attempts on a course, by attempt number."""
        await self._require_course(course_id, published_only=False)
        return await self.attempts.list_for_learner(course_id, learner_id)
