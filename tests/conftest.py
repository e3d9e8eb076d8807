"""Shared fixtures."""
import pytest
from signal_exporter.event_models import Event


@pytest.fixture
def make_event():
    """Build an Event with sensible defaults."""
    counter = {"n": 0}

    def _make(timestamp="2023-01-01T00:00:00Z", **fields):
        counter["n"] += 1
        data = {
            "id": str(counter["n"]),
            "timestamp": timestamp,
            "activity": "User joined",
            "activity_code": "user.join",
            "account_id": "acc1",
        }
        data.update(fields)
        return Event(**data)

    return _make
