"""Tests for epoch/seq classification and the replay watermark."""
from __future__ import annotations

import random
from datetime import datetime, timezone

from glnotify.engine.models import (
    Decision,
    Envelope,
    GateState,
    PipelineEvent,
    PipelineStatus,
)
from glnotify.engine.sequence_gate import SequenceGate, classify, is_past_watermark

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _event(project: str = "X") -> PipelineEvent:
    return PipelineEvent(
        project_id=1,
        project_name=project,
        namespace="group",
        status=PipelineStatus.RUNNING,
        raw_status="running",
        commit_message="",
        project_url=f"https://gitlab.example.com/group/{project}",
        pipeline_id=100,
        timestamp=NOW,
    )


def _env(epoch: int, seq: int, marker: bool = False) -> Envelope:
    return Envelope(
        seq=seq,
        epoch=epoch,
        received_at=NOW,
        inner_event=None if marker else _event(),
    )


class TestClassify:
    def test_first_envelope_accepted(self):
        decision, state = classify(_env(1, 1), GateState())
        assert decision is Decision.ACCEPT
        assert state == GateState(current_epoch=1, latest_accepted_seq=1)

    def test_same_seq_twice_is_replay(self):
        _, state = classify(_env(1, 1), GateState())
        decision, after = classify(_env(1, 1), state)
        assert decision is Decision.REPLAY
        assert after == state

    def test_lower_seq_is_replay(self):
        state = GateState(current_epoch=1, latest_accepted_seq=10)
        decision, after = classify(_env(1, 4), state)
        assert decision is Decision.REPLAY
        assert after is state

    def test_lower_epoch_is_stale_and_state_unchanged(self):
        state = GateState(current_epoch=3, latest_accepted_seq=2, replay_watermark=1)
        decision, after = classify(_env(2, 99), state)
        assert decision is Decision.STALE
        assert after is state

    def test_new_epoch_resets_ordering_and_watermark(self):
        state = GateState(current_epoch=1, latest_accepted_seq=50, replay_watermark=20)
        decision, after = classify(_env(2, 1), state)
        assert decision is Decision.ACCEPT
        assert after == GateState(current_epoch=2, latest_accepted_seq=1)

    def test_gaps_are_accepted(self):
        state = GateState(current_epoch=1, latest_accepted_seq=1)
        decision, after = classify(_env(1, 9), state)
        assert decision is Decision.ACCEPT
        assert after.latest_accepted_seq == 9

    def test_first_marker_sets_watermark(self):
        state = GateState(current_epoch=1, latest_accepted_seq=4)
        decision, after = classify(_env(1, 5, marker=True), state)
        assert decision is Decision.ACCEPT
        assert after.replay_watermark == 5

    def test_later_marker_keeps_first_watermark(self):
        state = GateState(current_epoch=1, latest_accepted_seq=5, replay_watermark=5)
        _, after = classify(_env(1, 9, marker=True), state)
        assert after.replay_watermark == 5

    def test_is_past_watermark(self):
        assert is_past_watermark(1, GateState())
        state = GateState(current_epoch=1, latest_accepted_seq=5, replay_watermark=5)
        assert not is_past_watermark(5, state)
        assert not is_past_watermark(3, state)
        assert is_past_watermark(6, state)


class TestProperties:
    def test_no_duplicate_accepts_and_seqs_increase(self):
        rng = random.Random(42)
        gate = SequenceGate()
        accepted: list[tuple[int, int]] = []
        for _ in range(500):
            env = _env(rng.randint(1, 4), rng.randint(1, 30), marker=rng.random() < 0.05)
            if gate.observe(env) is Decision.ACCEPT:
                accepted.append((env.epoch, env.seq))

        assert len(accepted) == len(set(accepted))
        by_epoch: dict[int, list[int]] = {}
        for epoch, seq in accepted:
            by_epoch.setdefault(epoch, []).append(seq)
        for seqs in by_epoch.values():
            assert seqs == sorted(seqs)
            assert len(seqs) == len(set(seqs))
        epochs = [epoch for epoch, _ in accepted]
        assert epochs == sorted(epochs)

    def test_same_envelope_twice_accept_then_replay(self):
        gate = SequenceGate()
        env = _env(1, 3)
        assert gate.observe(env) is Decision.ACCEPT
        assert gate.observe(env) is Decision.REPLAY

    def test_same_envelope_after_higher_epoch_is_stale(self):
        gate = SequenceGate()
        env = _env(1, 3)
        assert gate.observe(env) is Decision.ACCEPT
        assert gate.observe(_env(2, 1)) is Decision.ACCEPT
        assert gate.observe(env) is Decision.STALE


class TestScenarios:
    def test_scenario_a_first_envelope_accepted(self):
        gate = SequenceGate()
        assert gate.observe(_env(1, 1)) is Decision.ACCEPT
        assert gate.state.current_epoch == 1

    def test_scenario_b_replay_of_same_envelope(self):
        gate = SequenceGate()
        gate.observe(_env(1, 1))
        before = gate.state
        assert gate.observe(_env(1, 1)) is Decision.REPLAY
        assert gate.state == before

    def test_scenario_c_new_epoch_accepts_reused_seq(self):
        gate = SequenceGate()
        for seq in range(1, 6):
            gate.observe(_env(1, seq))
        assert gate.observe(_env(2, 1)) is Decision.ACCEPT
        assert gate.state == GateState(current_epoch=2, latest_accepted_seq=1)

    def test_replay_catch_up_below_watermark(self):
        gate = SequenceGate()
        gate.observe(_env(1, 10))
        gate.observe(_env(1, 11, marker=True))
        assert gate.observe(_env(1, 4)) is Decision.REPLAY
        assert not gate.is_past_watermark(4)
        assert gate.observe(_env(1, 12)) is Decision.ACCEPT
        assert gate.is_past_watermark(12)
