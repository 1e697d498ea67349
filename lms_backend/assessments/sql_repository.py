"""
SQL Assessment Repositories

SQLAlchemy asyncio implementations of the assessment repository interfaces.
Each public method runs in its own ``session_scope`` unit of work. The
conditional writes (in-progress uniqueness, grading transition, course
completion) are enforced by the database itself.
"""

from typing import List, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from lms_backend.assessments.database_models import (
    AnswerModel,
    AssessmentConfigModel,
    AttemptModel,
    CourseModel,
    CourseProgressModel,
    QuestionModel,
)
from lms_backend.assessments.models import (
    Answer,
    AssessmentConfig,
    Attempt,
    AttemptStatus,
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
from lms_backend.common.db import session_scope
from lms_backend.common.exceptions import NotFoundError
from lms_backend.common.logger import app_logger

logger = app_logger.getChild("assessments.sql_repository")


class SQLRepositoryMixin:
    """Holds the session factory and names the entity for error messages."""

    entity_type = "entity"

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    def _scope(self):
        return session_scope(self.session_factory, self.entity_type)


class SQLCourseRepository(SQLRepositoryMixin, CourseRepository):
    entity_type = "course"

    async def get(self, course_id: str) -> Optional[Course]:
        async with self._scope() as session:
            model = await session.get(CourseModel, course_id)
            return model.to_domain() if model else None

    async def save(self, course: Course) -> Course:
        async with self._scope() as session:
            await session.merge(CourseModel(
                course_id=course.course_id,
                title=course.title,
                is_published=course.is_published,
            ))
        return course


class SQLAssessmentConfigRepository(SQLRepositoryMixin, AssessmentConfigRepository):
    entity_type = "assessment_config"

    async def get_by_course(self, course_id: str) -> Optional[AssessmentConfig]:
        async with self._scope() as session:
            result = await session.execute(
                select(AssessmentConfigModel).where(AssessmentConfigModel.course_id == course_id)
            )
            model = result.scalar_one_or_none()
            return model.to_domain() if model else None

    async def get_questions(self, config_id: str) -> List[Question]:
        async with self._scope() as session:
            result = await session.execute(
                select(QuestionModel)
                .where(QuestionModel.config_id == config_id)
                .order_by(QuestionModel.order_index)
            )
            return [model.to_domain() for model in result.scalars().all()]

    async def save(self, config: AssessmentConfig) -> AssessmentConfig:
        validate_config(config)
        async with self._scope() as session:
            model = await session.get(AssessmentConfigModel, config.config_id)
            if model is None:
                session.add(AssessmentConfigModel.from_domain(config))
            else:
                model.apply(config)
        return config

    async def save_questions(self, config_id: str, questions: Sequence[Question]) -> List[Question]:
        validate_question_bank(questions)
        async with self._scope() as session:
            if await session.get(AssessmentConfigModel, config_id) is None:
                raise NotFoundError("assessment_config", config_id)

            result = await session.execute(select(QuestionModel).where(QuestionModel.config_id == config_id))
            for existing in result.scalars().all():
                await session.delete(existing)
            await session.flush()

            session.add_all([QuestionModel.from_domain(question) for question in questions])
        logger.info(f"Saved {len(questions)} questions for config {config_id}")
        return list(questions)


class SQLAnswerRepository(SQLRepositoryMixin, AnswerRepository):
    entity_type = "assessment_answer"

    async def upsert_many(self, answers: Sequence[Answer]) -> List[Answer]:
        stored: List[Answer] = []
        async with self._scope() as session:
            for answer in answers:
                result = await session.execute(
                    select(AnswerModel).where(
                        AnswerModel.attempt_id == answer.attempt_id,
                        AnswerModel.question_id == answer.question_id,
                    )
                )
                model = result.scalar_one_or_none()
                if model is None:
                    model = AnswerModel.from_domain(answer)
                    session.add(model)
                else:
                    model.update({
                        "selected_option_id": answer.selected_option_id,
                        "boolean_answer": answer.boolean_answer,
                        "is_correct": answer.is_correct,
                        "points_earned": answer.points_earned,
                    })
                await session.flush()
                stored.append(model.to_domain())
        return stored

    async def list_for_attempt(self, attempt_id: str) -> List[Answer]:
        async with self._scope() as session:
            result = await session.execute(
                select(AnswerModel).where(AnswerModel.attempt_id == attempt_id)
            )
            return [model.to_domain() for model in result.scalars().all()]


class SQLAttemptRepository(SQLRepositoryMixin, AttemptRepository):
    entity_type = "assessment_attempt"

    async def create(self, attempt: Attempt) -> Attempt:
        async with self._scope() as session:
            session.add(AttemptModel.from_domain(attempt))
        return attempt

    async def get(self, attempt_id: str) -> Optional[Attempt]:
        async with self._scope() as session:
            model = await session.get(AttemptModel, attempt_id)
            return model.to_domain() if model else None

    async def list_for_learner(self, course_id: str, learner_id: str) -> List[Attempt]:
        async with self._scope() as session:
            result = await session.execute(
                select(AttemptModel)
                .where(AttemptModel.course_id == course_id, AttemptModel.learner_id == learner_id)
                .order_by(AttemptModel.attempt_number)
            )
            return [model.to_domain() for model in result.scalars().all()]

    async def list_for_course(self, course_id: str, limit: int = 50, offset: int = 0) -> List[Attempt]:
        async with self._scope() as session:
            result = await session.execute(
                select(AttemptModel)
                .where(AttemptModel.course_id == course_id)
                .order_by(AttemptModel.started_at.desc(), AttemptModel.attempt_number.desc())
                .limit(limit)
                .offset(offset)
            )
            return [model.to_domain() for model in result.scalars().all()]

    async def complete_grading(self, attempt: Attempt, answers: Sequence[Answer]) -> bool:
        async with self._scope() as session:
            result = await session.execute(
                update(AttemptModel)
                .where(
                    AttemptModel.attempt_id == attempt.attempt_id,
                    AttemptModel.status == AttemptStatus.IN_PROGRESS.value,
                )
                .values(
                    status=attempt.status.value,
                    submitted_at=attempt.submitted_at,
                    graded_at=attempt.graded_at,
                    raw_score=attempt.raw_score,
                    max_score=attempt.max_score,
                    percent_score=attempt.percent_score,
                    passed=attempt.passed,
                    evidence=attempt.evidence,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.info(f"Attempt {attempt.attempt_id} was no longer in progress")
                return False
            session.add_all([AnswerModel.from_domain(answer) for answer in answers])
        return True


class SQLCourseProgressRepository(SQLRepositoryMixin, CourseProgressRepository):
    entity_type = "course_progress"

    async def get(self, user_id: str, course_id: str) -> Optional[CourseProgress]:
        async with self._scope() as session:
            model = await session.get(CourseProgressModel, (user_id, course_id))
            return model.to_domain() if model else None

    async def save(self, progress: CourseProgress) -> CourseProgress:
        now = utcnow()
        key = (progress.user_id, progress.course_id)
        values = {
            "percent_complete": progress.percent_complete,
            "current_lesson_id": progress.current_lesson_id,
            "updated_at": now,
        }
        if progress.completed:
            values["completed"] = True
            values["completed_at"] = func.coalesce(CourseProgressModel.completed_at, progress.completed_at or now)

        async with self._scope() as session:
            # Completion columns are only ever set here, never cleared
            result = await session.execute(
                update(CourseProgressModel)
                .where(
                    CourseProgressModel.user_id == progress.user_id,
                    CourseProgressModel.course_id == progress.course_id,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.add(CourseProgressModel(
                    user_id=progress.user_id,
                    course_id=progress.course_id,
                    percent_complete=progress.percent_complete,
                    completed=progress.completed,
                    completed_at=progress.completed_at,
                    current_lesson_id=progress.current_lesson_id,
                    updated_at=now,
                ))
                await session.flush()
            model = await session.get(CourseProgressModel, key, populate_existing=True)
            return model.to_domain()

    async def mark_completed(self, user_id: str, course_id: str) -> bool:
        now = utcnow()
        async with self._scope() as session:
            result = await session.execute(
                update(CourseProgressModel)
                .where(
                    CourseProgressModel.user_id == user_id,
                    CourseProgressModel.course_id == course_id,
                    CourseProgressModel.completed == False,  # noqa: E712
                )
                .values(completed=True, completed_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1
