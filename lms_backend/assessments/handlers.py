"""
Assessment Event Handlers

Default subscribers for the assessment events. Every event is written to the
``lms.audit`` logger, and certifications and course completions get their own
log lines for downstream badge and notification pipelines to pick up.
"""

from lms_backend.common import events
from lms_backend.common.events import DomainEvent, EventPublisher
from lms_backend.common.logger import app_logger

audit_logger = app_logger.getChild("audit")
logger = app_logger.getChild("assessments.handlers")


class AssessmentEventHandler:
    """Handles events from the assessment core."""

    async def audit(self, event: DomainEvent) -> None:
        """Record every event in the audit log."""
        audit_logger.info(
            f"{event.event_type} {event.event_id}",
            extra={"data": event.to_dict()}
        )

    async def on_assessment_passed(self, event: DomainEvent) -> None:
        payload = event.payload
        if not payload.get("is_certification"):
            return
        logger.info(
            f"Certification earned: learner={payload['learner_id']}, course={payload['course_id']}",
            extra={"data": {"learner_id": payload["learner_id"], "course_id": payload["course_id"]}}
        )

    async def on_course_completed(self, event: DomainEvent) -> None:
        payload = event.payload
        logger.info(
            f"Course completed: user={payload['user_id']}, course={payload['course_id']}",
            extra={"data": {"user_id": payload["user_id"], "course_id": payload["course_id"]}}
        )


def register_default_handlers(publisher: EventPublisher) -> AssessmentEventHandler:
    """Subscribe the default handlers to ``publisher`` and return them."""
    handler = AssessmentEventHandler()
    publisher.subscribe(events.ALL_EVENTS, handler.audit)
    publisher.subscribe(events.ASSESSMENT_PASSED, handler.on_assessment_passed)
    publisher.subscribe(events.COURSE_COMPLETED, handler.on_course_completed)
    return handler
