"""
Domain Events

This module provides the event bus the assessment core publishes to. Handlers
(badge evaluation, notifications, audit logging) subscribe by event type and
run as background tasks, so a slow or failing handler never changes the
outcome of the operation that published the event.
"""

import asyncio
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Deque, Dict, List, Set

from lms_backend.common.logger import app_logger

logger = app_logger.getChild("events")

ATTEMPT_STARTED = "assessment.attempt_started"
ATTEMPT_SUBMITTED = "assessment.attempt_submitted"
ASSESSMENT_PASSED = "assessment.passed"
COURSE_COMPLETED = "lms.course_completed"

ALL_EVENTS = "*"


@dataclass(frozen=True)
class DomainEvent:
    """An immutable record of something that happened in the assessment core."""
    event_type: str
    payload: Dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": dict(self.payload),
        }


EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventPublisher:
    """
    In-process, fire-and-forget event dispatcher.

    ``publish`` returns as soon as the handlers are scheduled. ``drain`` waits
    for outstanding handler tasks and is used on shutdown and in tests.
    """

    def __init__(self, history_size: int = 1000):
        self._subscribers: Dict[str, List[EventHandler]] = {}
        self._pending_tasks: Set[asyncio.Task] = set()
        self.history: Deque[DomainEvent] = deque(maxlen=history_size)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe ``handler`` to ``event_type`` (``"*"`` for every event)."""
        self._subscribers.setdefault(event_type, []).append(handler)
        logger.debug(f"Registered handler {getattr(handler, '__name__', handler)} for {event_type}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> DomainEvent:
        """
        Publish an event to every matching subscriber.

        Args:
            event_type: Event type name
            payload: JSON-serialisable event data

        Returns:
            The published event
        """
        event = DomainEvent(event_type=event_type, payload=payload)
        self.history.append(event)

        handlers = self._subscribers.get(event_type, []) + self._subscribers.get(ALL_EVENTS, [])
        for handler in handlers:
            task = asyncio.create_task(self._run_handler(handler, event))
            self._pending_tasks.add(task)
            task.add_done_callback(self._pending_tasks.discard)

        logger.debug(f"Published {event_type} to {len(handlers)} handler(s)")
        return event

    async def _run_handler(self, handler: EventHandler, event: DomainEvent) -> None:
        try:
            await handler(event)
        except Exception as e:
            logger.error(
                f"Event handler {getattr(handler, '__name__', handler)} failed for {event.event_type}: {e}",
                extra={"data": {"event_id": event.event_id, "event_type": event.event_type}},
                exc_info=e
            )

    async def drain(self) -> None:
        """Wait until every scheduled handler has finished."""
        while self._pending_tasks:
            await asyncio.gather(*list(self._pending_tasks), return_exceptions=True)

    def events_of_type(self, event_type: str) -> List[DomainEvent]:
        return [event for event in self.history if event.event_type == event_type]
