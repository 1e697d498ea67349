"""
Memory Assessment Repositories

In-memory implementations of the assessment repository interfaces, used for
development and testing. They enforce the same uniqueness and conditional
write rules as the SQL repositories. Every mutation happens inside an
``asyncio.Lock`` with no awaits between the check and the write.
"""

import asyncio
import copy
from typing import Dict, List, Optional, Sequence, Tuple

from lms_backend.assessments.models import (
    Answer,
    AssessmentConfig,
    Attempt,
    Course,
    CourseProgress,
    Question,
    utcnow,
)
from lms_backend.assessments.repositories import (
    AnswerRepository,
    AssessmentConfigRepository,
    AttemptRepository,
    CourseProgressRepository,
    CourseRepository,
)
from lms_backend.assessments.validation import validate_config, validate_question_bank
from lms_backend.common.exceptions import ConflictError, NotFoundError
from lms_backend.common.logger import app_logger

logger = app_logger.getChild("assessments.memory_repository")


class MemoryCourseRepository(CourseRepository):
    """In-memory course lookup."""

    def __init__(self, initial_data: Optional[List[Course]] = None):
        self._courses: Dict[str, Course] = {}
        for course in initial_data or []:
            self._courses[course.course_id] = course

    async def get(self, course_id: str) -> Optional[Course]:
        course = self._courses.get(course_id)
        return copy.deepcopy(course) if course else None

    async def save(self, course: Course) -> Course:
        self._courses[course.course_id] = copy.deepcopy(course)
        return course


class MemoryAssessmentConfigRepository(AssessmentConfigRepository):
    """In-memory config and question bank storage."""

    def __init__(self):
        self._configs: Dict[str, AssessmentConfig] = {}
        self._questions: Dict[str, List[Question]] = {}
        self._lock = asyncio.Lock()

    async def get_by_course(self, course_id: str) -> Optional[AssessmentConfig]:
        for config in self._configs.values():
            if config.course_id == course_id:
                return copy.deepcopy(config)
        return None

    async def get_questions(self, config_id: str) -> List[Question]:
        questions = sorted(self._questions.get(config_id, []), key=lambda q: q.order_index)
        result = []
        for question in questions:
            question = copy.deepcopy(question)
            question.options.sort(key=lambda o: o.order_index)
            result.append(question)
        return result

    async def save(self, config: AssessmentConfig) -> AssessmentConfig:
        validate_config(config)
        async with self._lock:
            for existing in self._configs.values():
                if existing.course_id == config.course_id and existing.config_id != config.config_id:
                    raise ConflictError("assessment_config", config.course_id)
            config.updated_at = utcnow()
            self._configs[config.config_id] = copy.deepcopy(config)
        return config

    async def save_questions(self, config_id: str, questions: Sequence[Question]) -> List[Question]:
        validate_question_bank(questions)
        async with self._lock:
            if config_id not in self._configs:
                raise NotFoundError("assessment_config", config_id)
            self._questions[config_id] = [copy.deepcopy(q) for q in questions]
        logger.info(f"Saved {len(questions)} questions for config {config_id}")
        return list(questions)


class MemoryAnswerRepository(AnswerRepository):
    """In-memory graded answer storage keyed by (attempt_id, question_id)."""

    def __init__(self):
        self._answers: Dict[Tuple[str, str], Answer] = {}

    def _put(self, answer: Answer) -> None:
        key = (answer.attempt_id, answer.question_id)
        existing = self._answers.get(key)
        stored = copy.deepcopy(answer)
        if existing is not None:
            stored.answer_id = existing.answer_id
            stored.created_at = existing.created_at
            stored.updated_at = utcnow()
        self._answers[key] = stored

    async def upsert_many(self, answers: Sequence[Answer]) -> List[Answer]:
        for answer in answers:
            self._put(answer)
        return [copy.deepcopy(self._answers[(a.attempt_id, a.question_id)]) for a in answers]

    async def list_for_attempt(self, attempt_id: str) -> List[Answer]:
        return [
            copy.deepcopy(answer)
            for (stored_attempt_id, _), answer in self._answers.items()
            if stored_attempt_id == attempt_id
        ]


class MemoryAttemptRepository(AttemptRepository):
    """
    In-memory attempt storage.

    ``complete_grading`` writes answers through the given answer repository so
    that the attempt transition and its answers land together.
    """

    def __init__(self, answer_repository: Optional[MemoryAnswerRepository] = None):
        self._attempts: Dict[str, Attempt] = {}
        self._sequence: Dict[str, int] = {}
        self._answers = answer_repository or MemoryAnswerRepository()
        self._lock = asyncio.Lock()

    async def create(self, attempt: Attempt) -> Attempt:
        async with self._lock:
            for existing in self._attempts.values():
                if existing.course_id != attempt.course_id or existing.learner_id != attempt.learner_id:
                    continue
                if existing.is_in_progress:
                    raise ConflictError("attempt", f"{attempt.course_id}/{attempt.learner_id} in progress")
                if existing.attempt_number == attempt.attempt_number:
                    raise ConflictError("attempt", f"{attempt.course_id}/{attempt.learner_id}#{attempt.attempt_number}")
            if attempt.attempt_id in self._attempts:
                raise ConflictError("attempt", attempt.attempt_id)
            self._attempts[attempt.attempt_id] = copy.deepcopy(attempt)
            self._sequence[attempt.attempt_id] = len(self._sequence)
        return attempt

    async def get(self, attempt_id: str) -> Optional[Attempt]:
        attempt = self._attempts.get(attempt_id)
        return copy.deepcopy(attempt) if attempt else None

    async def list_for_learner(self, course_id: str, learner_id: str) -> List[Attempt]:
        attempts = [
            copy.deepcopy(a) for a in self._attempts.values()
            if a.course_id == course_id and a.learner_id == learner_id
        ]
        return sorted(attempts, key=lambda a: a.attempt_number)

    async def list_for_course(self, course_id: str, limit: int = 50, offset: int = 0) -> List[Attempt]:
        attempts = [copy.deepcopy(a) for a in self._attempts.values() if a.course_id == course_id]
        attempts.sort(key=lambda a: (a.started_at, self._sequence[a.attempt_id]), reverse=True)
        return attempts[offset:offset + limit]

    async def complete_grading(self, attempt: Attempt, answers: Sequence[Answer]) -> bool:
        async with self._lock:
            stored = self._attempts.get(attempt.attempt_id)
            if stored is None:
                raise NotFoundError("attempt", attempt.attempt_id)
            if not stored.is_in_progress:
                return False
            self._attempts[attempt.attempt_id] = copy.deepcopy(attempt)
            for answer in answers:
                self._answers._put(answer)
        return True


class MemoryCourseProgressRepository(CourseProgressRepository):
    """In-memory course progress storage."""

    def __init__(self):
        self._progress: Dict[Tuple[str, str], CourseProgress] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str, course_id: str) -> Optional[CourseProgress]:
        progress = self._progress.get((user_id, course_id))
        return copy.deepcopy(progress) if progress else None

    async def save(self, progress: CourseProgress) -> CourseProgress:
        key = (progress.user_id, progress.course_id)
        async with self._lock:
            stored = copy.deepcopy(progress)
            stored.updated_at = utcnow()
            existing = self._progress.get(key)
            if existing is not None and existing.completed:
                stored.completed = True
                stored.completed_at = existing.completed_at
            self._progress[key] = stored
            return copy.deepcopy(stored)

    async def mark_completed(self, user_id: str, course_id: str) -> bool:
        async with self._lock:
            progress = self._progress.get((user_id, course_id))
            if progress is None or progress.completed:
                return False
            now = utcnow()
            progress.completed = True
            progress.completed_at = now
            progress.updated_at = now
        return True
