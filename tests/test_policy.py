"""Tests for the notification policy rules and payload format."""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from glnotify.engine.models import (
    Decision,
    PipelineEvent,
    PipelineStatus,
    UserFilterConfig,
)
from glnotify.engine.policy import NotificationPolicy

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _event(
    status: PipelineStatus = PipelineStatus.SUCCESS,
    project: str = "api",
    namespace: str = "backend",
    timestamp: datetime = NOW,
) -> PipelineEvent:
    return PipelineEvent(
        project_id=12,
        project_name=project,
        namespace=namespace,
        status=status,
        raw_status=status.value,
        commit_message="Fix login",
        project_url="https://gitlab.example.com/backend/api",
        pipeline_id=4711,
        timestamp=timestamp,
    )


NO_FILTERS = UserFilterConfig()


class TestShouldNotify:
    def test_live_accept_notifies(self):
        policy = NotificationPolicy(clock=lambda: NOW)
        assert policy.should_notify(_event(), NO_FILTERS, Decision.ACCEPT, True)

    @pytest.mark.parametrize("decision", [Decision.REPLAY, Decision.STALE])
    def test_non_accept_suppressed(self, decision):
        policy = NotificationPolicy(clock=lambda: NOW)
        assert not policy.should_notify(_event(), NO_FILTERS, decision, True)

    def test_catch_up_suppressed(self):
        policy = NotificationPolicy(clock=lambda: NOW)
        assert not policy.should_notify(_event(), NO_FILTERS, Decision.ACCEPT, False)

    @pytest.mark.parametrize(
        "filters",
        [
            UserFilterConfig(),
            UserFilterConfig(namespace="backend"),
            UserFilterConfig(namespace="other"),
            UserFilterConfig(ignore_project="web"),
        ],
    )
    def test_scenario_d_pending_never_notifies(self, filters):
        policy = NotificationPolicy(clock=lambda: NOW)
        event = _event(status=PipelineStatus.PENDING)
        assert not policy.should_notify(event, filters, Decision.ACCEPT, True)

    def test_namespace_mismatch_suppressed(self):
        policy = NotificationPolicy(clock=lambda: NOW)
        filters = UserFilterConfig(namespace="frontend")
        assert not policy.should_notify(_event(), filters, Decision.ACCEPT, True)

    def test_namespace_match_notifies(self):
        policy = NotificationPolicy(clock=lambda: NOW)
        filters = UserFilterConfig(namespace="backend")
        assert policy.should_notify(_event(), filters, Decision.ACCEPT, True)

    def test_ignored_project_suppressed(self):
        policy = NotificationPolicy(clock=lambda: NOW)
        filters = UserFilterConfig(ignore_project="api")
        assert not policy.should_notify(_event(), filters, Decision.ACCEPT, True)

    def test_unknown_status_still_notifies(self):
        policy = NotificationPolicy(clock=lambda: NOW)
        event = _event(status=PipelineStatus.UNKNOWN)
        assert policy.should_notify(event, NO_FILTERS, Decision.ACCEPT, True)

    def test_zero_max_age_disables_age_check(self):
        policy = NotificationPolicy(
            max_event_age_seconds=0, clock=lambda: NOW + timedelta(days=1)
        )
        assert policy.should_notify(_event(), NO_FILTERS, Decision.ACCEPT, True)

    def test_events_older_than_ten_seconds_suppressed_by_default(self):
        policy = NotificationPolicy(clock=lambda: NOW + timedelta(seconds=11))
        assert not policy.should_notify(_event(), NO_FILTERS, Decision.ACCEPT, True)

    def test_old_event_suppressed_when_age_limit_set(self):
        policy = NotificationPolicy(
            max_event_age_seconds=10, clock=lambda: NOW + timedelta(seconds=11)
        )
        assert not policy.should_notify(_event(), NO_FILTERS, Decision.ACCEPT, True)

    def test_recent_event_allowed_with_age_limit(self):
        policy = NotificationPolicy(
            max_event_age_seconds=10, clock=lambda: NOW + timedelta(seconds=5)
        )
        assert policy.should_notify(_event(), NO_FILTERS, Decision.ACCEPT, True)


class TestPayload:
    def test_build_payload(self):
        payload = NotificationPolicy.build_payload(_event(status=PipelineStatus.FAILED))
        assert payload.title == "Pipeline for api failed"
        assert payload.body == "Fix login"
        assert payload.metadata == {
            "projectUrl": "https://gitlab.example.com/backend/api",
            "pipelineId": "4711",
        }

    def test_title_uses_raw_status(self):
        event = replace(
            _event(), status=PipelineStatus.UNKNOWN, raw_status="exploded"
        )
        payload = NotificationPolicy.build_payload(event)
        assert payload.title == "Pipeline for api exploded"

    def test_decide_returns_none_when_suppressed(self):
        policy = NotificationPolicy(clock=lambda: NOW)
        assert policy.decide(_event(), NO_FILTERS, Decision.REPLAY, True) is None

    def test_decide_returns_payload(self):
        policy = NotificationPolicy(clock=lambda: NOW)
        payload = policy.decide(_event(), NO_FILTERS, Decision.ACCEPT, True)
        assert payload is not None
        assert payload.pipeline_id == 4711
