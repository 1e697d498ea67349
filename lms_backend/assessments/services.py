"""
Assessment Service Factory

Builds the assessment services over a chosen set of repositories. The
application uses the SQL repositories; development and tests can use the
in-memory ones.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from lms_backend.assessments.completion import CompletionCascadeEvaluator
from lms_backend.assessments.handlers import AssessmentEventHandler, register_default_handlers
from lms_backend.assessments.lifecycle import MAX_PAGE_LIMIT, AttemptLifecycle
from lms_backend.assessments.memory_repository import (
    MemoryAnswerRepository,
    MemoryAssessmentConfigRepository,
    MemoryAttemptRepository,
    MemoryCourseProgressRepository,
    MemoryCourseRepository,
)
from lms_backend.assessments.repositories import (
    AnswerRepository,
    AssessmentConfigRepository,
    AttemptRepository,
    CourseProgressRepository,
    CourseRepository,
)
from lms_backend.assessments.sql_repository import (
    SQLAnswerRepository,
    SQLAssessmentConfigRepository,
    SQLAttemptRepository,
    SQLCourseProgressRepository,
    SQLCourseRepository,
)
from lms_backend.common.events import EventPublisher


@dataclass
class AssessmentServices:
    """Everything the HTTP layer needs, wired together."""
    courses: CourseRepository
    configs: AssessmentConfigRepository
    attempts: AttemptRepository
    answers: AnswerRepository
    progress: CourseProgressRepository
    publisher: EventPublisher
    lifecycle: AttemptLifecycle
    completion: CompletionCascadeEvaluator
    handler: Optional[AssessmentEventHandler] = None


def create_assessment_services(
    courses: CourseRepository,
    configs: AssessmentConfigRepository,
    attempts: AttemptRepository,
    answers: AnswerRepository,
    progress: CourseProgressRepository,
    publisher: Optional[EventPublisher] = None,
    start_max_retries: int = 3,
    max_page_limit: int = MAX_PAGE_LIMIT,
    register_handlers: bool = True,
) -> AssessmentServices:
    """
    Wire the lifecycle and completion cascade over the given repositories.

    Args:
        courses, configs, attempts, answers, progress: Repository implementations
        publisher: Event publisher; a new one is created when omitted
        start_max_retries: Retries for a ``start`` that loses a race
        max_page_limit: Cap for the admin attempt listing
        register_handlers: Whether to subscribe the default event handlers

    Returns:
        AssessmentServices
    """
    publisher = publisher or EventPublisher()
    completion = CompletionCascadeEvaluator(configs, attempts, progress, publisher)
    lifecycle = AttemptLifecycle(
        courses=courses,
        configs=configs,
        attempts=attempts,
        answers=answers,
        publisher=publisher,
        completion=completion,
        start_max_retries=start_max_retries,
        max_page_limit=max_page_limit,
    )
    handler = register_default_handlers(publisher) if register_handlers else None
    return AssessmentServices(
        courses=courses,
        configs=configs,
        attempts=attempts,
        answers=answers,
        progress=progress,
        publisher=publisher,
        lifecycle=lifecycle,
        completion=completion,
        handler=handler,
    )


def create_sql_services(session_factory: async_sessionmaker, **kwargs) -> AssessmentServices:
    """Build the services over the SQLAlchemy repositories."""
    return create_assessment_services(
        courses=SQLCourseRepository(session_factory),
        configs=SQLAssessmentConfigRepository(session_factory),
        attempts=SQLAttemptRepository(session_factory),
        answers=SQLAnswerRepository(session_factory),
        progress=SQLCourseProgressRepository(session_factory),
        **kwargs
    )


def create_memory_services(**kwargs) -> AssessmentServices:
    """Build the services over fresh in-memory repositories."""
    answers = MemoryAnswerRepository()
    return create_assessment_services(
        courses=MemoryCourseRepository(),
        configs=MemoryAssessmentConfigRepository(),
        attempts=MemoryAttemptRepository(answers),
        answers=answers,
        progress=MemoryCourseProgressRepository(),
        **kwargs
    )
