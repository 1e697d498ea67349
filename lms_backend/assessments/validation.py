"""
Assessment Validation

Checks applied to learner submissions before grading and to the question bank
and config when they are saved.
"""

from typing import Any, Dict, List, Sequence

from lms_backend.assessments.models import (
    AssessmentConfig,
    Question,
    QuestionType,
    SubmittedAnswer,
)
from lms_backend.common.exceptions import MissingRequiredAnswerError, ValidationError


def has_structural_answer(question: Question, answer: SubmittedAnswer) -> bool:
    """Whether ``answer`` carries the field the question type needs."""
    if question.type is QuestionType.MULTIPLE_CHOICE:
        return bool(answer.selected_option_id)
    if question.type is QuestionType.TRUE_FALSE:
        return answer.boolean_answer is not None
    return False


def validate_required_answers(questions: Sequence[Question], answers: Sequence[SubmittedAnswer]) -> None:
    """
    Ensure every required question has a usable answer.

    Questions are checked in order and the first offender is reported.

    Raises:
        MissingRequiredAnswerError: Naming the first unanswered required question
    """
    for question in questions:
        if not question.is_required:
            continue
        submitted = next((a for a in answers if a.question_id == question.question_id), None)
        if submitted is None or not has_structural_answer(question, submitted):
            raise MissingRequiredAnswerError(question.question_id)


def validate_question_bank(questions: Sequence[Question]) -> None:
    """
    Reject question banks that cannot be graded unambiguously.

    Raises:
        ValidationError: With the problems found, keyed by question id
    """
    problems: Dict[str, List[str]] = {}
    seen = set()

    for question in questions:
        issues = problems.setdefault(question.question_id, [])
        if question.question_id in seen:
            issues.append("duplicate question id")
        seen.add(question.question_id)

        if question.points is None or question.points <= 0:
            issues.append("points must be a positive integer")

        if question.type is QuestionType.MULTIPLE_CHOICE:
            correct = sum(1 for option in question.options if option.is_correct)
            if correct != 1:
                issues.append(f"multiple choice question needs exactly one correct option, found {correct}")
        elif question.type is QuestionType.TRUE_FALSE:
            if question.correct_boolean_answer is None:
                issues.append("true/false question needs correct_boolean_answer")

    details: Dict[str, Any] = {qid: issues for qid, issues in problems.items() if issues}
    if details:
        raise ValidationError("Invalid question bank", details={"questions": details})


def validate_config(config: AssessmentConfig) -> None:
    """
    Raises:
        ValidationError: If passing_score or max_attempts is out of range
    """
    if not 0 <= config.passing_score <= 100:
        raise ValidationError(
            "passing_score must be between 0 and 100",
            details={"passing_score": config.passing_score}
        )
    if config.max_attempts is not None and config.max_attempts < 1:
        raise ValidationError(
            "max_attempts must be at least 1",
            details={"max_attempts": config.max_attempts}
        )
