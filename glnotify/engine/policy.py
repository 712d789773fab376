"""Notification policy - decides whether an event reaches the sink."""
from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from .models import (
    Decision,
    NotificationPayload,
    PipelineEvent,
    PipelineStatus,
    UserFilterConfig,
)

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationPolicy:
    """Applies user filters to accepted events.

    Rules are evaluated in order and the first match suppresses:

    1. replays and catch-up events (not live traffic)
    2. pending status (not actionable)
    3. namespace filter set and different from the event's namespace
    4. ignored project
    5. events older than ``max_event_age_seconds`` (10 s by default, 0 disables)
    """

    def __init__(
        self,
        max_event_age_seconds: float = 10.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._max_event_age = max_event_age_seconds
        self._clock = clock

    def should_notify(
        self,
        event: PipelineEvent,
        filters: UserFilterConfig,
        decision: Decision,
        past_watermark: bool,
    ) -> bool:
        """Check if a notification should be sent for this event.

        Args:
            event: The decoded pipeline event
            filters: Current user filters
            decision: SequenceGate classification of the envelope
            past_watermark: False while the event is historical catch-up

        Returns:
            True if notification should be sent
        """
        if decision is not Decision.ACCEPT or not past_watermark:
            logger.debug(
                "Suppressed %s: %s catch-up, not live",
                event.project_name, decision.value,
            )
            return False

        if event.status is PipelineStatus.PENDING:
            logger.debug("Suppressed %s: pending status", event.project_name)
            return False

        if filters.namespace and filters.namespace != event.namespace:
            logger.debug(
                "Suppressed %s: namespace %s is not %s",
                event.project_name, event.namespace, filters.namespace,
            )
            return False

        if filters.ignore_project and filters.ignore_project == event.project_name:
            logger.debug("Suppressed %s: project is ignored", event.project_name)
            return False

        if self._max_event_age > 0:
            age = (self._clock() - event.timestamp).total_seconds()
            if age > self._max_event_age:
                logger.debug(
                    "Suppressed %s: event is %.1fs old (limit %.1fs)",
                    event.project_name, age, self._max_event_age,
                )
                return False

        return True

    @staticmethod
    def build_payload(event: PipelineEvent) -> NotificationPayload:
        return NotificationPayload(
            title=f"Pipeline for {event.project_name} {event.raw_status}",
            body=event.commit_message,
            project_url=event.project_url,
            pipeline_id=event.pipeline_id,
        )

    def decide(
        self,
        event: PipelineEvent,
        filters: UserFilterConfig,
        decision: Decision,
        past_watermark: bool,
    ) -> NotificationPayload | None:
        """Return the payload to send, or None when suppressed."""
        if not self.should_notify(event, filters, decision, past_watermark):
            return None
        logger.info(
            "Allowing notification: %s %s (pipeline %d)",
            event.project_name, event.raw_status, event.pipeline_id,
        )
        return self.build_payload(event)
