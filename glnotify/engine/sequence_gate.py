"""Epoch-then-sequence ordering gate.

The server bumps ``epoch`` once per fresh connection, so ordering
survives reconnects even when the sequence counter restarts. Within
an epoch, ``seq`` gives ordering and deduplication.

After a reconnect the server replays history and then sends a marker
frame (no inner event). The seq of the first marker in an epoch
becomes the replay watermark: replays at or below it are catch-up
that must update project state without notifying.
"""
from __future__ import annotations

import logging
from dataclasses import replace

from .models import Decision, Envelope, GateState

logger = logging.getLogger(__name__)


def classify(envelope: Envelope, state: GateState) -> tuple[Decision, GateState]:
    """Classify an envelope against the gate state.

    Returns the decision and the new state. STALE never changes state.
    """
    if envelope.epoch > state.current_epoch:
        decision = Decision.ACCEPT
        new_state = GateState(
            current_epoch=envelope.epoch,
            latest_accepted_seq=envelope.seq,
        )
    elif envelope.epoch < state.current_epoch:
        return Decision.STALE, state
    elif envelope.seq <= state.latest_accepted_seq:
        decision = Decision.REPLAY
        new_state = state
    else:
        decision = Decision.ACCEPT
        new_state = replace(state, latest_accepted_seq=envelope.seq)

    if envelope.is_marker and new_state.replay_watermark is None:
        new_state = replace(new_state, replay_watermark=envelope.seq)
    return decision, new_state


def is_past_watermark(seq: int, state: GateState) -> bool:
    """True when *seq* is live traffic rather than historical catch-up."""
    return state.replay_watermark is None or seq > state.replay_watermark


class SequenceGate:
    """Holds GateState for one supervisor lifetime.

    Mutated only by the ingestion task; ``state`` is an immutable
    snapshot and safe to hand to readers.
    """

    def __init__(self, state: GateState | None = None) -> None:
        self._state = state or GateState()

    @property
    def state(self) -> GateState:
        return self._state

    def observe(self, envelope: Envelope) -> Decision:
        decision, new_state = classify(envelope, self._state)
        if new_state.current_epoch != self._state.current_epoch:
            logger.info(
                "New epoch %d (previous %d), seq restarts at %d",
                new_state.current_epoch,
                self._state.current_epoch,
                envelope.seq,
            )
        if decision is Decision.STALE:
            logger.debug(
                "Dropping stale envelope from epoch %d (current %d)",
                envelope.epoch, self._state.current_epoch,
            )
        elif decision is Decision.REPLAY:
            logger.debug(
                "Replayed message epoch %d seq %d (latest %d)",
                envelope.epoch, envelope.seq, self._state.latest_accepted_seq,
            )
        self._state = new_state
        return decision

    def is_past_watermark(self, seq: int) -> bool:
        return is_past_watermark(seq, self._state)
