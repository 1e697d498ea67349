"""
Assessment Domain Models

This module defines the entities handled by the assessment core: the course
assessment configuration and its question bank, learner attempts and their
graded answers, course progress, and the value objects returned by the
grading, scoring and eligibility functions.
"""

import enum
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4()}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class QuestionType(str, enum.Enum):
    """Question types the grading engine understands."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"


class ScoreMode(str, enum.Enum):
    """Policy for deriving the effective score from several attempts."""
    BEST = "best"
    LATEST = "latest"


class AttemptStatus(str, enum.Enum):
    """Status of an assessment attempt. ``GRADED`` is terminal."""
    IN_PROGRESS = "in_progress"
    GRADED = "graded"


class IneligibilityReason(str, enum.Enum):
    """Why a learner may not start a new attempt."""
    NOT_ENABLED = "not_enabled"
    ATTEMPT_IN_PROGRESS = "attempt_in_progress"
    MAX_ATTEMPTS_REACHED = "max_attempts_reached"


@dataclass
class AssessmentConfig:
    """
    Per-course assessment settings. At most one exists per course.

    Attributes:
        config_id: Unique identifier for the config
        course_id: Course the assessment belongs to
        is_enabled: Whether learners may take the assessment
        passing_score: Minimum percent score (0-100) that passes
        score_mode: How the effective score is chosen from attempts
        max_attempts: Graded attempts allowed, or None for unlimited
        required_for_completion: Whether passing gates course completion
        is_certification: Whether a pass is a certification
    """
    config_id: str
    course_id: str
    is_enabled: bool = False
    title: str = "Assessment"
    description: Optional[str] = None
    passing_score: int = 80
    score_mode: ScoreMode = ScoreMode.BEST
    max_attempts: Optional[int] = None
    required_for_completion: bool = False
    is_certification: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if isinstance(self.score_mode, str):
            self.score_mode = ScoreMode(self.score_mode)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "config_id": self.config_id,
            "course_id": self.course_id,
            "is_enabled": self.is_enabled,
            "title": self.title,
            "description": self.description,
            "passing_score": self.passing_score,
            "score_mode": self.score_mode.value,
            "max_attempts": self.max_attempts,
            "required_for_completion": self.required_for_completion,
            "is_certification": self.is_certification,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class Option:
    """An answer option of a multiple choice question."""
    option_id: str
    question_id: str
    label: str
    order_index: int
    is_correct: bool = False

    def to_dict(self, include_answer_key: bool = True) -> Dict[str, Any]:
        result = {
            "option_id": self.option_id,
            "question_id": self.question_id,
            "label": self.label,
            "order_index": self.order_index,
        }
        if include_answer_key:
            result["is_correct"] = self.is_correct
        return result


@dataclass
class Question:
    """
    A question within an assessment.

    ``correct_boolean_answer`` is only meaningful for true/false questions and
    ``options`` only for multiple choice questions.
    """
    question_id: str
    config_id: str
    type: QuestionType
    prompt: str
    order_index: int
    points: int = 1
    is_required: bool = True
    correct_boolean_answer: Optional[bool] = None
    options: List[Option] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if isinstance(self.type, str):
            self.type = QuestionType(self.type)

    def correct_option(self) -> Optional[Option]:
        """Return the first option flagged correct, in option order."""
        for option in sorted(self.options, key=lambda o: o.order_index):
            if option.is_correct:
                return option
        return None

    def to_dict(self, include_answer_key: bool = True) -> Dict[str, Any]:
        """
        Convert the question to a dictionary.

        Args:
            include_answer_key: When false, correctness data is left out so the
                result can be shown to a learner taking the assessment
        """
        result = {
            "question_id": self.question_id,
            "config_id": self.config_id,
            "type": self.type.value,
            "prompt": self.prompt,
            "points": self.points,
            "order_index": self.order_index,
            "is_required": self.is_required,
            "options": [
                option.to_dict(include_answer_key)
                for option in sorted(self.options, key=lambda o: o.order_index)
            ],
        }
        if include_answer_key and self.type is QuestionType.TRUE_FALSE:
            result["correct_boolean_answer"] = self.correct_boolean_answer
        return result


@dataclass
class SubmittedAnswer:
    """A learner's raw answer to one question, as received from the client."""
    question_id: str
    selected_option_id: Optional[str] = None
    boolean_answer: Optional[bool] = None


@dataclass
class Answer:
    """A graded answer. One exists per question of a graded attempt."""
    answer_id: str
    attempt_id: str
    question_id: str
    selected_option_id: Optional[str] = None
    boolean_answer: Optional[bool] = None
    is_correct: bool = False
    points_earned: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer_id": self.answer_id,
            "attempt_id": self.attempt_id,
            "question_id": self.question_id,
            "selected_option_id": self.selected_option_id,
            "boolean_answer": self.boolean_answer,
            "is_correct": self.is_correct,
            "points_earned": self.points_earned,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class Attempt:
    """
    One learner's pass through a course assessment.

    Attributes:
        attempt_number: 1-based, strictly increasing per learner and course
        status: ``in_progress`` until submitted, then ``graded`` for good
        evidence: Frozen copy of the scoring config taken at grading time
    """
    attempt_id: str
    course_id: str
    config_id: str
    learner_id: str
    attempt_number: int
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    started_at: datetime = field(default_factory=utcnow)
    submitted_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    raw_score: int = 0
    max_score: int = 0
    percent_score: int = 0
    passed: bool = False
    evidence: Optional[Dict[str, Any]] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = AttemptStatus(self.status)

    @property
    def is_graded(self) -> bool:
        return self.status is AttemptStatus.GRADED

    @property
    def is_in_progress(self) -> bool:
        return self.status is AttemptStatus.IN_PROGRESS

    def copy(self, **changes) -> 'Attempt':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt_id": self.attempt_id,
            "course_id": self.course_id,
            "config_id": self.config_id,
            "learner_id": self.learner_id,
            "attempt_number": self.attempt_number,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "submitted_at": _iso(self.submitted_at),
            "graded_at": _iso(self.graded_at),
            "raw_score": self.raw_score,
            "max_score": self.max_score,
            "percent_score": self.percent_score,
            "passed": self.passed,
            "evidence": self.evidence,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class Course:
    """The slice of a course this core needs to know about."""
    course_id: str
    title: str = ""
    is_published: bool = True


@dataclass
class CourseProgress:
    """A learner's progress through a course's lessons."""
    user_id: str
    course_id: str
    percent_complete: int = 0
    completed: bool = False
    completed_at: Optional[datetime] = None
    current_lesson_id: Optional[str] = None
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "percent_complete": self.percent_complete,
            "completed": self.completed,
            "completed_at": _iso(self.completed_at),
            "current_lesson_id": self.current_lesson_id,
            "updated_at": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class GradingResult:
    """Output of the grading engine for one submission."""
    raw_score: int
    max_score: int
    percent_score: int
    passed: bool
    answers: List[Answer]


@dataclass(frozen=True)
class EffectiveScore:
    """The attempt chosen to represent a learner under a score mode."""
    score: int
    passed: bool
    attempt_id: str
    attempt_number: int


@dataclass(frozen=True)
class Eligibility:
    """Whether a new attempt may be started, and if not, why."""
    can_start: bool
    reason: Optional[IneligibilityReason] = None


@dataclass(frozen=True)
class StartOutcome:
    """Result of ``start``: either a new attempt or a refusal reason."""
    attempt: Optional[Attempt] = None
    ineligible_reason: Optional[IneligibilityReason] = None

    @property
    def started(self) -> bool:
        return self.attempt is not None


@dataclass(frozen=True)
class SubmissionResult:
    """Result of a successful ``submit``."""
    attempt: Attempt
    answers: List[Answer]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt": self.attempt.to_dict(),
            "answers": [answer.to_dict() for answer in self.answers],
        }


@dataclass(frozen=True)
class CompletionDecision:
    """Outcome of evaluating whether a course is complete for a learner."""
    completed: bool
    reason: Optional[str] = None


@dataclass
class AssessmentSummary:
    """Learner-facing overview of a course assessment."""
    config: AssessmentConfig
    question_count: int
    attempts: List[Attempt]
    best_score: Optional[int]
    latest_score: Optional[int]
    effective_score: Optional[EffectiveScore]
    can_start_attempt: bool
    ineligible_reason: Optional[IneligibilityReason]
    attempts_remaining: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        effective = None
        if self.effective_score is not None:
            effective = {
                "score": self.effective_score.score,
                "passed": self.effective_score.passed,
                "attempt_id": self.effective_score.attempt_id,
            }
        return {
            "assessment_config": self.config.to_dict(),
            "question_count": self.question_count,
            "attempts": [attempt.to_dict() for attempt in self.attempts],
            "best_score": self.best_score,
            "latest_score": self.latest_score,
            "effective_score": effective,
            "can_start_attempt": self.can_start_attempt,
            "ineligible_reason": self.ineligible_reason.value if self.ineligible_reason else None,
            "attempts_remaining": self.attempts_remaining,
        }


@dataclass
class AttemptDetail:
    """An attempt with its answers, plus the questions while it is open."""
    attempt: Attempt
    answers: List[Answer]
    questions: List[Question] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "attempt": self.attempt.to_dict(),
            "answers": [answer.to_dict() for answer in self.answers],
        }
        if self.questions:
            result["questions"] = [q.to_dict(include_answer_key=False) for q in self.questions]
        return result
