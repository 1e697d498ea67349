"""
Tests for the course completion cascade.
"""

import pytest

from lms_backend.assessments.models import CourseProgress, ScoreMode
from lms_backend.common import events
from lms_backend.tests.builders import (
    COURSE_ID,
    LEARNER_ID,
    failing_answers,
    make_config,
    passing_answers,
    seed,
)


async def take_attempt(services, answers):
    outcome = await services.lifecycle.start(COURSE_ID, LEARNER_ID)
    return await services.lifecycle.submit(COURSE_ID, outcome.attempt.attempt_id, LEARNER_ID, answers)


def progress(percent: int = 100) -> CourseProgress:
    return CourseProgress(user_id=LEARNER_ID, course_id=COURSE_ID, percent_complete=percent)


@pytest.mark.asyncio
async def test_lessons_incomplete(services):
    await seed(services)
    decision = await services.completion.evaluate(COURSE_ID, progress(90))
    assert not decision.completed
    assert decision.reason == "lessons incomplete"


@pytest.mark.asyncio
async def test_lessons_done_without_required_assessment(services):
    await seed(services, config=make_config(required_for_completion=False))
    decision = await services.completion.evaluate(COURSE_ID, progress())
    assert decision.completed


@pytest.mark.asyncio
async def test_disabled_assessment_does_not_gate(services):
    await seed(services, config=make_config(is_enabled=False, required_for_completion=True))
    assert (await services.completion.evaluate(COURSE_ID, progress())).completed
    assert not await services.completion.is_assessment_required(COURSE_ID)


@pytest.mark.asyncio
async def test_required_assessment_not_passed(services):
    await seed(services, config=make_config(required_for_completion=True, passing_score=75))
    await take_attempt(services, failing_answers())

    decision = await services.completion.evaluate(COURSE_ID, progress())
    assert not decision.completed
    assert "75" in decision.reason
    assert "best" in decision.reason


@pytest.mark.asyncio
async def test_latest_mode_uses_latest_attempt(services):
    await seed(services, config=make_config(
        required_for_completion=True, score_mode=ScoreMode.LATEST, max_attempts=None
    ))
    await take_attempt(services, passing_answers())
    await take_attempt(services, failing_answers())

    decision = await services.completion.evaluate(COURSE_ID, progress())
    assert not decision.completed


@pytest.mark.asyncio
async def test_course_completes_on_later_passing_attempt(services):
    await seed(services, config=make_config(required_for_completion=True))
    assert not await services.completion.on_lesson_progress(progress())
    assert not (await services.progress.get(LEARNER_ID, COURSE_ID)).completed

    await take_attempt(services, failing_answers())
    assert not (await services.progress.get(LEARNER_ID, COURSE_ID)).completed

    await take_attempt(services, passing_answers())
    stored = await services.progress.get(LEARNER_ID, COURSE_ID)
    assert stored.completed
    assert stored.completed_at is not None

    await services.publisher.drain()
    completed = services.publisher.events_of_type(events.COURSE_COMPLETED)
    assert len(completed) == 1
    assert completed[0].payload == {"course_id": COURSE_ID, "user_id": LEARNER_ID}


@pytest.mark.asyncio
async def test_cascade_is_idempotent(services):
    await seed(services, config=make_config(required_for_completion=True))
    await services.progress.save(progress())
    await take_attempt(services, passing_answers())

    assert not await services.completion.on_assessment_passed(COURSE_ID, LEARNER_ID)
    assert not await services.completion.on_assessment_passed(COURSE_ID, LEARNER_ID)

    await services.publisher.drain()
    assert len(services.publisher.events_of_type(events.COURSE_COMPLETED)) == 1


@pytest.mark.asyncio
async def test_passing_before_lessons_complete(services):
    await seed(services, config=make_config(required_for_completion=True))
    await services.completion.on_lesson_progress(progress(50))
    await take_attempt(services, passing_answers())
    assert not (await services.progress.get(LEARNER_ID, COURSE_ID)).completed

    assert await services.completion.on_lesson_progress(progress(100))
    assert (await services.progress.get(LEARNER_ID, COURSE_ID)).completed


@pytest.mark.asyncio
async def test_lesson_progress_keeps_completion(services):
    await seed(services, config=make_config(required_for_completion=False))
    assert await services.completion.on_lesson_progress(progress(100))

    assert not await services.completion.on_lesson_progress(progress(100))
    stored = await services.progress.get(LEARNER_ID, COURSE_ID)
    assert stored.completed

    await services.publisher.drain()
    assert len(services.publisher.events_of_type(events.COURSE_COMPLETED)) == 1


@pytest.mark.asyncio
async def test_pass_without_progress_record(services):
    await seed(services, config=make_config(required_for_completion=True))
    await take_attempt(services, passing_answers())

    assert await services.progress.get(LEARNER_ID, COURSE_ID) is None
    await services.publisher.drain()
    assert services.publisher.events_of_type(events.COURSE_COMPLETED) == []


@pytest.mark.asyncio
async def test_assessment_status(services):
    await seed(services, config=make_config(required_for_completion=True))
    status = await services.completion.assessment_status(COURSE_ID, LEARNER_ID)
    assert status["passed"] is False
    assert status["score"] is None
    assert status["config"].course_id == COURSE_ID

    await take_attempt(services, passing_answers())
    status = await services.completion.assessment_status(COURSE_ID, LEARNER_ID)
    assert status["passed"] is True
    assert status["score"] == 100
    assert await services.completion.is_assessment_required(COURSE_ID)


@pytest.mark.asyncio
async def test_assessment_status_without_config(services):
    status = await services.completion.assessment_status("no-assessment", LEARNER_ID)
    assert status == {"passed": False, "score": None, "config": None}


@pytest.mark.asyncio
async def test_assessment_status_with_disabled_config(services):
    await seed(services, config=make_config(required_for_completion=True))
    await take_attempt(services, passing_answers())
    await services.configs.save(make_config(required_for_completion=True, is_enabled=False))

    status = await services.completion.assessment_status(COURSE_ID, LEARNER_ID)
    assert status == {"passed": False, "score": None, "config": None}


@pytest.mark.asyncio
async def test_saving_progress_never_clears_completion(services):
    await seed(services, config=make_config(required_for_completion=False))
    await services.progress.save(progress())
    assert await services.progress.mark_completed(LEARNER_ID, COURSE_ID)
    completed_at = (await services.progress.get(LEARNER_ID, COURSE_ID)).completed_at

    stored = await services.progress.save(progress(60))
    assert stored.completed
    assert stored.completed_at == completed_at
    assert stored.percent_complete == 60
