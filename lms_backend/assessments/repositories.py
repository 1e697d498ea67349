"""
Assessment Repositories

This module defines the storage interfaces the assessment core depends on.
In-memory and SQLAlchemy implementations live in ``memory_repository`` and
``sql_repository``.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from lms_backend.assessments.models import (
    Answer,
    AssessmentConfig,
    Attempt,
    Course,
    CourseProgress,
    Question,
)


class CourseRepository(ABC):
    """Read access to courses."""

    @abstractmethod
    async def get(self, course_id: str) -> Optional[Course]:
        pass


class AssessmentConfigRepository(ABC):
    """
    Storage for course assessment configs and their question banks.
    """

    @abstractmethod
    async def get_by_course(self, course_id: str) -> Optional[AssessmentConfig]:
        """
        Retrieve the assessment config of a course.

        Returns:
            The config if the course has one, None otherwise
        """
        pass

    @abstractmethod
    async def get_questions(self, config_id: str) -> List[Question]:
        """
        Retrieve the questions of a config ordered by ``order_index``, each
        with its options ordered by ``order_index``.
        """
        pass

    @abstractmethod
    async def save(self, config: AssessmentConfig) -> AssessmentConfig:
        """
        Create or update a config.

        Raises:
            ValidationError: If the config values are out of range
            ConflictError: If another config already exists for the course
        """
        pass

    @abstractmethod
    async def save_questions(self, config_id: str, questions: Sequence[Question]) -> List[Question]:
        """
        Replace the question bank of a config.

        Raises:
            ValidationError: If the bank cannot be graded unambiguously
            NotFoundError: If the config does not exist
        """
        pass


class AttemptRepository(ABC):
    """
    Storage for assessment attempts.

    Implementations must enforce two rules on ``create``: a learner has at most
    one in-progress attempt per course, and attempt numbers are unique per
    learner and course.
    """

    @abstractmethod
    async def create(self, attempt: Attempt) -> Attempt:
        """
        Persist a new in-progress attempt.

        Raises:
            ConflictError: If the learner already has an in-progress attempt
                for the course or the attempt number is taken
        """
        pass

    @abstractmethod
    async def get(self, attempt_id: str) -> Optional[Attempt]:
        pass

    @abstractmethod
    async def list_for_learner(self, course_id: str, learner_id: str) -> List[Attempt]:
        """All attempts of a learner for a course, ascending by attempt number."""
        pass

    @abstractmethod
    async def list_for_course(self, course_id: str, limit: int = 50, offset: int = 0) -> List[Attempt]:
        """All attempts for a course, newest first."""
        pass

    @abstractmethod
    async def complete_grading(self, attempt: Attempt, answers: Sequence[Answer]) -> bool:
        """
        Store the graded attempt and its answers as one unit of work.

        The write only happens if the stored attempt is still in progress.

        Returns:
            True if the attempt was transitioned, False if it had already been
            graded, in which case nothing is written
        """
        pass


class AnswerRepository(ABC):
    """Storage for graded answers."""

    @abstractmethod
    async def upsert_many(self, answers: Sequence[Answer]) -> List[Answer]:
        """Insert or replace answers keyed by (attempt_id, question_id)."""
        pass

    @abstractmethod
    async def list_for_attempt(self, attempt_id: str) -> List[Answer]:
        pass


class CourseProgressRepository(ABC):
    """Storage for learner course progress."""

    @abstractmethod
    async def get(self, user_id: str, course_id: str) -> Optional[CourseProgress]:
        pass

    @abstractmethod
    async def save(self, progress: CourseProgress) -> CourseProgress:
        """
        Store lesson progress.

        A record that is already completed stays completed with its original
        ``completed_at``; only ``mark_completed`` changes completion.

        Returns:
            The progress as stored
        """
        pass

    @abstractmethod
    async def mark_completed(self, user_id: str, course_id: str) -> bool:
        """
        Flip the progress record to completed.

        Returns:
            True if this call completed the course, False if it was already
            completed or no progress exists
        """
        pass
