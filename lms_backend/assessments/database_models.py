"""
SQLAlchemy ORM models for course assessments.

This module defines the tables backing the assessment repositories:
- CourseModel: Courses (read-only to the assessment core)
- AssessmentConfigModel: One assessment config per course
- QuestionModel / OptionModel: The question bank
- AttemptModel: Learner attempts
- AnswerModel: Graded answers, one per question per attempt
- CourseProgressModel: Learner progress through a course
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, text
)
from sqlalchemy.orm import relationship
from sqlalchemy.schema import UniqueConstraint

from lms_backend.assessments.models import (
    Answer,
    AssessmentConfig,
    Attempt,
    AttemptStatus,
    Course,
    CourseProgress,
    Option,
    Question,
)
from lms_backend.database.base import ModelBase, TimestampMixin, utcnow


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CourseModel(ModelBase):
    __tablename__ = "course"

    course_id = Column(String(255), primary_key=True)
    title = Column(String(500), nullable=False, default="")
    is_published = Column(Boolean, nullable=False, default=True)

    def to_domain(self) -> Course:
        return Course(course_id=self.course_id, title=self.title, is_published=self.is_published)


class AssessmentConfigModel(TimestampMixin, ModelBase):
    """Per-course assessment settings."""
    __tablename__ = "assessment_config"

    config_id = Column(String(255), primary_key=True)
    course_id = Column(String(255), nullable=False, unique=True)
    is_enabled = Column(Boolean, nullable=False, default=False)
    title = Column(String(500), nullable=False, default="Assessment")
    description = Column(Text, nullable=True)
    passing_score = Column(Integer, nullable=False, default=80)
    score_mode = Column(String(20), nullable=False, default="best")
    max_attempts = Column(Integer, nullable=True)
    required_for_completion = Column(Boolean, nullable=False, default=False)
    is_certification = Column(Boolean, nullable=False, default=False)

    questions = relationship(
        "QuestionModel", back_populates="config",
        cascade="all, delete-orphan", order_by="QuestionModel.order_index"
    )

    @classmethod
    def from_domain(cls, config: AssessmentConfig) -> 'AssessmentConfigModel':
        model = cls(config_id=config.config_id)
        model.apply(config)
        model.created_at = config.created_at
        return model

    def apply(self, config: AssessmentConfig) -> None:
        self.update({
            "course_id": config.course_id,
            "is_enabled": config.is_enabled,
            "title": config.title,
            "description": config.description,
            "passing_score": config.passing_score,
            "score_mode": config.score_mode.value,
            "max_attempts": config.max_attempts,
            "required_for_completion": config.required_for_completion,
            "is_certification": config.is_certification,
            "updated_at": utcnow(),
        })

    def to_domain(self) -> AssessmentConfig:
        return AssessmentConfig(
            config_id=self.config_id,
            course_id=self.course_id,
            is_enabled=self.is_enabled,
            title=self.title,
            description=self.description,
            passing_score=self.passing_score,
            score_mode=self.score_mode,
            max_attempts=self.max_attempts,
            required_for_completion=self.required_for_completion,
            is_certification=self.is_certification,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


class QuestionModel(TimestampMixin, ModelBase):
    __tablename__ = "assessment_question"

    question_id = Column(String(255), primary_key=True)
    config_id = Column(String(255), ForeignKey("assessment_config.config_id", ondelete="CASCADE"), nullable=False)
    type = Column(String(30), nullable=False)
    prompt = Column(Text, nullable=False)
    points = Column(Integer, nullable=False, default=1)
    order_index = Column(Integer, nullable=False)
    is_required = Column(Boolean, nullable=False, default=True)
    correct_boolean_answer = Column(Boolean, nullable=True)

    config = relationship("AssessmentConfigModel", back_populates="questions")
    options = relationship(
        "OptionModel", back_populates="question",
        cascade="all, delete-orphan", order_by="OptionModel.order_index", lazy="selectin"
    )

    __table_args__ = (
        Index("idx_assessment_question_config_order", config_id, order_index),
    )

    @classmethod
    def from_domain(cls, question: Question) -> 'QuestionModel':
        return cls(
            question_id=question.question_id,
            config_id=question.config_id,
            type=question.type.value,
            prompt=question.prompt,
            points=question.points,
            order_index=question.order_index,
            is_required=question.is_required,
            correct_boolean_answer=question.correct_boolean_answer,
            created_at=question.created_at,
            updated_at=question.updated_at,
            options=[OptionModel.from_domain(option) for option in question.options],
        )

    def to_domain(self) -> Question:
        return Question(
            question_id=self.question_id,
            config_id=self.config_id,
            type=self.type,
            prompt=self.prompt,
            points=self.points,
            order_index=self.order_index,
            is_required=self.is_required,
            correct_boolean_answer=self.correct_boolean_answer,
            options=[option.to_domain() for option in self.options],
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


class OptionModel(ModelBase):
    __tablename__ = "assessment_option"

    option_id = Column(String(255), primary_key=True)
    question_id = Column(
        String(255), ForeignKey("assessment_question.question_id", ondelete="CASCADE"), nullable=False, index=True
    )
    label = Column(Text, nullable=False)
    order_index = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    question = relationship("QuestionModel", back_populates="options")

    @classmethod
    def from_domain(cls, option: Option) -> 'OptionModel':
        return cls(
            option_id=option.option_id,
            question_id=option.question_id,
            label=option.label,
            order_index=option.order_index,
            is_correct=option.is_correct,
        )

    def to_domain(self) -> Option:
        return Option(
            option_id=self.option_id,
            question_id=self.question_id,
            label=self.label,
            order_index=self.order_index,
            is_correct=self.is_correct,
        )


class AttemptModel(TimestampMixin, ModelBase):
    """
    Learner attempts.

    The unique constraint keeps attempt numbers distinct per learner and
    course; the partial unique index allows only one in-progress attempt.
    """
    __tablename__ = "assessment_attempt"

    attempt_id = Column(String(255), primary_key=True)
    course_id = Column(String(255), nullable=False)
    config_id = Column(String(255), ForeignKey("assessment_config.config_id"), nullable=False)
    learner_id = Column(String(255), nullable=False)
    attempt_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=AttemptStatus.IN_PROGRESS.value, index=True)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)
    raw_score = Column(Integer, nullable=False, default=0)
    max_score = Column(Integer, nullable=False, default=0)
    percent_score = Column(Integer, nullable=False, default=0)
    passed = Column(Boolean, nullable=False, default=False)
    evidence = Column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("course_id", "learner_id", "attempt_number", name="uq_assessment_attempt_number"),
        Index(
            "uq_assessment_attempt_in_progress",
            "course_id", "learner_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
        Index("idx_assessment_attempt_course_started", "course_id", "started_at"),
    )

    @classmethod
    def from_domain(cls, attempt: Attempt) -> 'AttemptModel':
        return cls(
            attempt_id=attempt.attempt_id,
            course_id=attempt.course_id,
            config_id=attempt.config_id,
            learner_id=attempt.learner_id,
            attempt_number=attempt.attempt_number,
            status=attempt.status.value,
            started_at=attempt.started_at,
            submitted_at=attempt.submitted_at,
            graded_at=attempt.graded_at,
            raw_score=attempt.raw_score,
            max_score=attempt.max_score,
            percent_score=attempt.percent_score,
            passed=attempt.passed,
            evidence=attempt.evidence,
            created_at=attempt.created_at,
            updated_at=attempt.updated_at,
        )

    def to_domain(self) -> Attempt:
        return Attempt(
            attempt_id=self.attempt_id,
            course_id=self.course_id,
            config_id=self.config_id,
            learner_id=self.learner_id,
            attempt_number=self.attempt_number,
            status=self.status,
            started_at=_aware(self.started_at),
            submitted_at=_aware(self.submitted_at),
            graded_at=_aware(self.graded_at),
            raw_score=self.raw_score,
            max_score=self.max_score,
            percent_score=self.percent_score,
            passed=self.passed,
            evidence=self.evidence,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


class AnswerModel(TimestampMixin, ModelBase):
    __tablename__ = "assessment_answer"

    answer_id = Column(String(255), primary_key=True)
    attempt_id = Column(
        String(255), ForeignKey("assessment_attempt.attempt_id", ondelete="CASCADE"), nullable=False
    )
    question_id = Column(String(255), nullable=False)
    selected_option_id = Column(String(255), nullable=True)
    boolean_answer = Column(Boolean, nullable=True)
    is_correct = Column(Boolean, nullable=False, default=False)
    points_earned = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_assessment_answer_question"),
    )

    @classmethod
    def from_domain(cls, answer: Answer) -> 'AnswerModel':
        return cls(
            answer_id=answer.answer_id,
            attempt_id=answer.attempt_id,
            question_id=answer.question_id,
            selected_option_id=answer.selected_option_id,
            boolean_answer=answer.boolean_answer,
            is_correct=answer.is_correct,
            points_earned=answer.points_earned,
            created_at=answer.created_at,
            updated_at=answer.updated_at,
        )

    def to_domain(self) -> Answer:
        return Answer(
            answer_id=self.answer_id,
            attempt_id=self.attempt_id,
            question_id=self.question_id,
            selected_option_id=self.selected_option_id,
            boolean_answer=self.boolean_answer,
            is_correct=self.is_correct,
            points_earned=self.points_earned,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )


class CourseProgressModel(ModelBase):
    __tablename__ = "course_progress"

    user_id = Column(String(255), primary_key=True)
    course_id = Column(String(255), primary_key=True)
    percent_complete = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    current_lesson_id = Column(String(255), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_domain(self) -> CourseProgress:
        return CourseProgress(
            user_id=self.user_id,
            course_id=self.course_id,
            percent_complete=self.percent_complete,
            completed=self.completed,
            completed_at=_aware(self.completed_at),
            current_lesson_id=self.current_lesson_id,
            updated_at=_aware(self.updated_at),
        )
