"""Grouping of events into Loki streams and log-line serialization."""
from typing import Any, Dict, Sequence
import orjson
from ..event_models import Event
from ..timestamps import to_sink_nanoseconds

JOB_NAME = "netbird-events"
UNKNOWN_ACCOUNT = "unknown"


def label_set(event: Event) -> Dict[str, str]:
    """Labels identifying the stream an event belongs to."""
    return {
        "job": JOB_NAME,
        "account_id": event.account_id or UNKNOWN_ACCOUNT,
        "activity": event.activity,
        "activity_code": event.activity_code,
    }


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def label_key(labels: Dict[str, str]) -> str:
    """Canonical ``{k="v",...}`` rendering with sorted keys and escaped values."""
    body = ",".join(f'{key}="{_escape(labels[key])}"' for key in sorted(labels))
    return "{" + body + "}"


def log_line(event: Event) -> str:
    """Serialize an event as the compact JSON log line pushed to Loki."""
    record = {
        "event_id": event.id,
        "timestamp": event.timestamp,
        "activity": event.activity,
        "activity_code": event.activity_code,
        "initiator_id": event.initiator_id or "",
        "target_id": event.target_id or "",
        "account_id": event.account_id or "",
        "meta": event.meta,
    }
    return orjson.dumps(record).decode()


def build_push_request(events: Sequence[Event]) -> Dict[str, Any]:
    """
    Build the body of a Loki push request.

    Streams are ordered by first appearance and keep the input order of their
    values.

    Returns:
        ``{"streams": [{"stream": labels, "values": [[ns, line], ...]}, ...]}``
    """
    streams: Dict[str, Dict[str, Any]] = {}
    for event in events:
        labels = label_set(event)
        stream = streams.setdefault(label_key(labels), {"stream": labels, "values": []})
        stream["values"].append([to_sink_nanoseconds(event.timestamp), log_line(event)])
    return {"streams": list(streams.values())}
