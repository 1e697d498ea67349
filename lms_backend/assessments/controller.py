"""
Course Assessment Controller

This module implements the HTTP endpoints learners and administrators use to
interact with course assessments. Domain errors are raised as-is and rendered
by the shared exception handlers.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from pydantic import BaseModel, Field

from lms_backend.assessments.lifecycle import DEFAULT_PAGE_LIMIT, AttemptLifecycle
from lms_backend.assessments.models import CourseProgress, SubmittedAnswer
from lms_backend.assessments.services import AssessmentServices
from lms_backend.common.auth import get_current_user_id, require_admin
from lms_backend.common.exceptions import IneligibleError, NotFoundError
from lms_backend.common.logger import app_logger

logger = app_logger.getChild("assessments.controller")

router = APIRouter()


# Request Models
class AnswerPayload(BaseModel):
    question_id: str = Field(..., min_length=1, description="Question identifier")
    selected_option_id: Optional[str] = Field(None, description="Chosen option for multiple choice questions")
    boolean_answer: Optional[bool] = Field(None, description="Answer for true/false questions")


class SubmitAttemptRequest(BaseModel):
    answers: List[AnswerPayload] = Field(default_factory=list)


class LessonProgressRequest(BaseModel):
    percent_complete: int = Field(..., ge=0, le=100, description="Share of lessons completed")
    current_lesson_id: Optional[str] = None


def get_services(request: Request) -> AssessmentServices:
    return request.app.state.services


def get_lifecycle(services: AssessmentServices = Depends(get_services)) -> AttemptLifecycle:
    return services.lifecycle


@router.get("/courses/{course_id}/assessment")
async def get_assessment_summary(
    course_id: str = Path(..., description="Course identifier"),
    user_id: str = Depends(get_current_user_id),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
) -> Dict[str, Any]:
    """Summary of the learner's standing, or ``null`` without an enabled assessment."""
    summary = await lifecycle.summary(course_id, user_id)
    return {"summary": summary.to_dict() if summary else None}


@router.post("/courses/{course_id}/assessment/attempts/start")
async def start_attempt(
    course_id: str = Path(..., description="Course identifier"),
    user_id: str = Depends(get_current_user_id),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
) -> Dict[str, Any]:
    """
    Start a new attempt.

    Raises:
        IneligibleError: When the learner may not start an attempt, with the reason
    """
    outcome = await lifecycle.start(course_id, user_id)
    if not outcome.started:
        logger.info(f"Start refused for {user_id} on {course_id}: {outcome.ineligible_reason.value}")
        raise IneligibleError(outcome.ineligible_reason.value)
    return {"attempt": outcome.attempt.to_dict()}


@router.post("/courses/{course_id}/assessment/attempts/{attempt_id}/submit")
async def submit_attempt(
    payload: SubmitAttemptRequest,
    course_id: str = Path(..., description="Course identifier"),
    attempt_id: str = Path(..., description="Attempt identifier"),
    user_id: str = Depends(get_current_user_id),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
) -> Dict[str, Any]:
    answers = [
        SubmittedAnswer(
            question_id=answer.question_id,
            selected_option_id=answer.selected_option_id,
            boolean_answer=answer.boolean_answer,
        )
        for answer in payload.answers
    ]
    result = await lifecycle.submit(course_id, attempt_id, user_id, answers)
    return result.to_dict()


@router.get("/courses/{course_id}/assessment/attempts/{attempt_id}")
async def get_attempt(
    course_id: str = Path(..., description="Course identifier"),
    attempt_id: str = Path(..., description="Attempt identifier"),
    user_id: str = Depends(get_current_user_id),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
) -> Dict[str, Any]:
    detail = await lifecycle.get_attempt(course_id, attempt_id, user_id)
    return detail.to_dict()


@router.put("/courses/{course_id}/progress")
async def update_lesson_progress(
    payload: LessonProgressRequest,
    course_id: str = Path(..., description="Course identifier"),
    user_id: str = Depends(get_current_user_id),
    services: AssessmentServices = Depends(get_services),
) -> Dict[str, Any]:
    """Record lesson progress and complete the course when nothing is missing."""
    if await services.courses.get(course_id) is None:
        raise NotFoundError("course", course_id)
    progress = CourseProgress(
        user_id=user_id,
        course_id=course_id,
        percent_complete=payload.percent_complete,
        current_lesson_id=payload.current_lesson_id,
    )
    completed_now = await services.completion.on_lesson_progress(progress)
    stored = await services.progress.get(user_id, course_id)
    return {"progress": stored.to_dict(), "course_completed": completed_now}


@router.get("/admin/courses/{course_id}/assessment/attempts")
async def list_course_attempts(
    course_id: str = Path(..., description="Course identifier"),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, description="Page size, capped by the server"),
    offset: int = Query(0, ge=0),
    admin_id: str = Depends(require_admin),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
) -> Dict[str, Any]:
    attempts = await lifecycle.list_course_attempts(course_id, limit=limit, offset=offset)
    return {
        "attempts": [attempt.to_dict() for attempt in attempts],
        "limit": min(limit, lifecycle.max_page_limit),
        "offset": offset,
    }


@router.get("/admin/courses/{course_id}/assessment/learners/{learner_id}/attempts")
async def list_learner_attempts(
    course_id: str = Path(..., description="Course identifier"),
    learner_id: str = Path(..., description="Learner identifier"),
    admin_id: str = Depends(require_admin),
    lifecycle: AttemptLifecycle = Depends(get_lifecycle),
) -> Dict[str, Any]:
    attempts = await lifecycle.list_learner_attempts(course_id, learner_id)
    return {"attempts": [attempt.to_dict() for attempt in attempts]}
