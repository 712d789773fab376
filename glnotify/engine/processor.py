"""Per-frame ingestion chain.

Decoder -> SequenceGate -> ProjectStateTracker -> NotificationPolicy,
run sequentially for each frame in arrival order by the supervisor's
single ingestion task.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from .decoder import Decoder
from .dispatcher import NotificationDispatcher
from .errors import DecodeError
from .models import Decision, UserFilterConfig
from .policy import NotificationPolicy
from .project_tracker import IndicatorController, ProjectStateTracker
from .sequence_gate import SequenceGate

logger = logging.getLogger(__name__)


@dataclass
class PipelineMetrics:
    """Lightweight counters for observability."""

    frames_received: int = 0
    decode_errors: int = 0
    accepted: int = 0
    replayed: int = 0
    stale: int = 0
    markers: int = 0
    catch_up_applied: int = 0
    notifications_queued: int = 0
    notifications_suppressed: int = 0

    def snapshot(self) -> dict[str, int]:
        """Return a dict copy of all counters."""
        return asdict(self)


class IngestionPipeline:
    """Runs one frame through the decision chain and fires side effects."""

    def __init__(
        self,
        decoder: Decoder,
        gate: SequenceGate,
        tracker: ProjectStateTracker,
        policy: NotificationPolicy,
        dispatcher: NotificationDispatcher,
        indicator: IndicatorController,
        filters: UserFilterConfig | None = None,
    ) -> None:
        self._decoder = decoder
        self._gate = gate
        self._tracker = tracker
        self._policy = policy
        self._dispatcher = dispatcher
        self._indicator = indicator
        self.filters = filters or UserFilterConfig()
        self.metrics = PipelineMetrics()

    def process(self, frame: str | bytes) -> Decision | None:
        """Handle one raw frame. Returns None when the frame was dropped."""
        self.metrics.frames_received += 1
        try:
            envelope = self._decoder.decode(frame)
        except DecodeError as exc:
            self.metrics.decode_errors += 1
            logger.warning(
                "Dropping malformed frame (%d so far): %s",
                self.metrics.decode_errors, exc.reason,
            )
            return None

        decision = self._gate.observe(envelope)
        if decision is Decision.STALE:
            self.metrics.stale += 1
            return decision
        if decision is Decision.ACCEPT:
            self.metrics.accepted += 1
        else:
            self.metrics.replayed += 1

        event = envelope.inner_event
        if event is None:
            self.metrics.markers += 1
            logger.info(
                "Replay complete at epoch %d seq %d",
                envelope.epoch, envelope.seq,
            )
            return decision

        past_watermark = self._gate.is_past_watermark(envelope.seq)
        if decision is Decision.ACCEPT:
            self._tracker.apply(event)
        elif not past_watermark:
            self.metrics.catch_up_applied += 1
            self._tracker.apply(event)
        self._indicator.refresh()

        payload = self._policy.decide(event, self.filters, decision, past_watermark)
        if payload is None:
            self.metrics.notifications_suppressed += 1
        elif self._dispatcher.submit(payload):
            self.metrics.notifications_queued += 1
        return decision
