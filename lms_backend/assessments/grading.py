"""
Grading Engine

Scores a submission against a question bank. Everything here is pure: the
same inputs always give the same result and nothing is persisted.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from lms_backend.assessments.models import (
    Answer,
    AssessmentConfig,
    GradingResult,
    Question,
    QuestionType,
    SubmittedAnswer,
    new_id,
    utcnow,
)


def percent_score(raw_score: int, max_score: int) -> int:
    """
    Percentage of ``max_score`` earned, rounded half up to an integer.

    Integer arithmetic keeps exact halves (e.g. 2/8 = 12.5) from being rounded
    to even as ``round`` would do.
    """
    if max_score <= 0:
        return 0
    return (raw_score * 200 + max_score) // (2 * max_score)


def _first_answer(answers: Sequence[SubmittedAnswer], question_id: str) -> Optional[SubmittedAnswer]:
    for answer in answers:
        if answer.question_id == question_id:
            return answer
    return None


def grade_question(question: Question, submitted: Optional[SubmittedAnswer]) -> Answer:
    """Grade one question. A missing submission is graded as incorrect."""
    selected_option_id = None
    boolean_answer = None
    is_correct = False

    if question.type is QuestionType.MULTIPLE_CHOICE:
        selected_option_id = submitted.selected_option_id if submitted else None
        correct = question.correct_option()
        is_correct = correct is not None and selected_option_id == correct.option_id
    elif question.type is QuestionType.TRUE_FALSE:
        boolean_answer = submitted.boolean_answer if submitted else None
        is_correct = (
            question.correct_boolean_answer is not None
            and boolean_answer is not None
            and boolean_answer == question.correct_boolean_answer
        )

    return Answer(
        answer_id=new_id("ans"),
        attempt_id="",
        question_id=question.question_id,
        selected_option_id=selected_option_id,
        boolean_answer=boolean_answer,
        is_correct=is_correct,
        points_earned=question.points if is_correct else 0,
    )


def grade_attempt(
    config: AssessmentConfig,
    questions: Sequence[Question],
    answers: Sequence[SubmittedAnswer]
) -> GradingResult:
    """
    Grade a submission.

    One graded answer is produced per question, whether or not the learner
    answered it. When a question id appears more than once in ``answers`` the
    first occurrence is used. The returned answers have an empty
    ``attempt_id``; the caller binds them to the attempt.

    Args:
        config: Assessment config providing the passing score
        questions: Question bank in order
        answers: Learner submission

    Returns:
        GradingResult with scores, pass flag and graded answers
    """
    graded: List[Answer] = [
        grade_question(question, _first_answer(answers, question.question_id))
        for question in questions
    ]

    max_score = sum(question.points for question in questions)
    raw_score = sum(answer.points_earned for answer in graded)
    percent = percent_score(raw_score, max_score)

    return GradingResult(
        raw_score=raw_score,
        max_score=max_score,
        percent_score=percent,
        passed=percent >= config.passing_score,
        answers=graded,
    )


def build_evidence_snapshot(
    config: AssessmentConfig,
    question_count: int,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Freeze the scoring-relevant parts of ``config`` at grading time."""
    now = now or utcnow()
    return {
        "passing_score": config.passing_score,
        "score_mode": config.score_mode.value,
        "max_attempts": config.max_attempts,
        "question_count": question_count,
        "snapshot_at": now.isoformat(),
    }
