"""Frame decoder: raw WebSocket frame -> typed Envelope.

The protocol carries one JSON object per text frame:

    {"gitlab": {...} | null, "received_at": "...", "seq": 1,
     "epoch": 1, "version": 1}

Only the fields the decision logic consumes are extracted; anything
else in the payload is ignored so new server-side fields never break
decoding.
"""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from .errors import DecodeError
from .models import Envelope, PipelineEvent, PipelineStatus

logger = logging.getLogger(__name__)

# Servers written in Go emit nanosecond fractions; datetime takes six digits.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp with optional fractional seconds.

    Accepts a trailing ``Z`` and fractions longer than microseconds.
    Naive timestamps are assumed to be UTC.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require_int(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    # bool is an int subclass; true/false are not sequence numbers
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"'{key}' must be an integer, got {value!r}")
    return value


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise DecodeError(f"gitlab event is missing '{key}'")
    return value


def _require(section: dict[str, Any], key: str, path: str) -> Any:
    value = section.get(key)
    if value is None:
        raise DecodeError(f"gitlab event is missing '{path}'")
    return value


class Decoder:
    """Parses raw frames into Envelopes. Stateless."""

    def decode(self, raw: str | bytes) -> Envelope:
        if not isinstance(raw, str):
            raise DecodeError("binary frames are not supported", frame=raw)
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            raise DecodeError(f"invalid JSON: {exc}", frame=raw) from exc
        if not isinstance(data, dict):
            raise DecodeError("frame is not a JSON object", frame=raw)

        try:
            seq = _require_int(data, "seq")
            epoch = _require_int(data, "epoch")
            received_raw = data.get("received_at")
            if not isinstance(received_raw, str):
                raise DecodeError("'received_at' is missing")
            try:
                received_at = parse_timestamp(received_raw)
            except ValueError as exc:
                raise DecodeError(
                    f"'received_at' is not ISO-8601: {received_raw!r}"
                ) from exc

            version = data.get("version", 0)
            if isinstance(version, bool) or not isinstance(version, int):
                version = 0

            gitlab = data.get("gitlab")
            inner_event = None
            if gitlab is not None:
                if not isinstance(gitlab, dict):
                    raise DecodeError("'gitlab' must be an object or null")
                inner_event = self._decode_event(gitlab, received_at)
        except DecodeError as exc:
            if exc.frame is None:
                exc.frame = raw
            raise

        return Envelope(
            seq=seq,
            epoch=epoch,
            received_at=received_at,
            version=version,
            inner_event=inner_event,
        )

    def _decode_event(
        self, gitlab: dict[str, Any], received_at: datetime
    ) -> PipelineEvent:
        attributes = _section(gitlab, "object_attributes")
        project = _section(gitlab, "project")
        commit = gitlab.get("commit")
        if not isinstance(commit, dict):
            commit = {}

        raw_status = str(_require(attributes, "status", "object_attributes.status"))
        try:
            pipeline_id = int(_require(attributes, "id", "object_attributes.id"))
            project_id = int(_require(project, "id", "project.id"))
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"non-numeric id in gitlab event: {exc}") from exc

        return PipelineEvent(
            project_id=project_id,
            project_name=str(_require(project, "name", "project.name")),
            namespace=str(_require(project, "namespace", "project.namespace")),
            status=PipelineStatus.parse(raw_status),
            raw_status=raw_status,
            commit_message=str(commit.get("message") or ""),
            project_url=str(_require(project, "web_url", "project.web_url")),
            pipeline_id=pipeline_id,
            timestamp=received_at,
        )
