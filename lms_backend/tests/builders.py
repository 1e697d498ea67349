"""
Builders for assessment test data.
"""

from typing import List, Optional

from lms_backend.assessments.models import (
    AssessmentConfig,
    Course,
    Option,
    Question,
    QuestionType,
    SubmittedAnswer,
)

COURSE_ID = "course-1"
CONFIG_ID = "cfg-1"
LEARNER_ID = "learner-1"


def make_config(**overrides) -> AssessmentConfig:
    values = dict(
        config_id=CONFIG_ID,
        course_id=COURSE_ID,
        is_enabled=True,
        passing_score=80,
        max_attempts=2,
    )
    values.update(overrides)
    return AssessmentConfig(**values)


def make_mc_question(
    question_id: str,
    correct: Optional[str] = "A",
    labels: str = "ABCD",
    points: int = 1,
    order_index: int = 0,
    is_required: bool = True,
    config_id: str = CONFIG_ID,
) -> Question:
    """Build a multiple choice question whose option ids are ``<question_id>-<label>``."""
    options = [
        Option(
            option_id=f"{question_id}-{label}",
            question_id=question_id,
            label=label,
            order_index=index,
            is_correct=(label == correct),
        )
        for index, label in enumerate(labels)
    ]
    return Question(
        question_id=question_id,
        config_id=config_id,
        type=QuestionType.MULTIPLE_CHOICE,
        prompt=f"Question {question_id}",
        order_index=order_index,
        points=points,
        is_required=is_required,
        options=options,
    )


def make_tf_question(
    question_id: str,
    correct: Optional[bool] = True,
    points: int = 1,
    order_index: int = 0,
    is_required: bool = True,
    config_id: str = CONFIG_ID,
) -> Question:
    return Question(
        question_id=question_id,
        config_id=config_id,
        type=QuestionType.TRUE_FALSE,
        prompt=f"Statement {question_id}",
        order_index=order_index,
        points=points,
        is_required=is_required,
        correct_boolean_answer=correct,
    )


def scenario_questions() -> List[Question]:
    """One multiple choice question (correct A) and one true/false question (correct true)."""
    return [
        make_mc_question("q1", correct="A", order_index=0),
        make_tf_question("q2", correct=True, order_index=1),
    ]


def choose(question_id: str, label: str) -> SubmittedAnswer:
    return SubmittedAnswer(question_id=question_id, selected_option_id=f"{question_id}-{label}")


def answer_tf(question_id: str, value: Optional[bool]) -> SubmittedAnswer:
    return SubmittedAnswer(question_id=question_id, boolean_answer=value)


def passing_answers() -> List[SubmittedAnswer]:
    return [choose("q1", "A"), answer_tf("q2", True)]


def failing_answers() -> List[SubmittedAnswer]:
    return [choose("q1", "B"), answer_tf("q2", False)]


async def seed(services, config: Optional[AssessmentConfig] = None, questions: Optional[List[Question]] = None):
    """Store the course, its config and its question bank."""
    config = config or make_config()
    await services.courses.save(Course(course_id=config.course_id, title="Intro course"))
    await services.configs.save(config)
    await services.configs.save_questions(config.config_id, questions or scenario_questions())
    return services


