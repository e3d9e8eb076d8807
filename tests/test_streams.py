"""Tests for stream grouping and log-line serialization."""
import orjson
from signal_exporter.services.streams import build_push_request, label_key, label_set, log_line


def test_label_set(make_event):
    event = make_event(account_id="acc1", activity="Peer added", activity_code="peer.add")
    assert label_set(event) == {
        "job": "netbird-events",
        "account_id": "acc1",
        "activity": "Peer added",
        "activity_code": "peer.add",
    }


def test_label_set_unknown_account(make_event):
    assert label_set(make_event(account_id=None))["account_id"] == "unknown"


def test_label_key_is_sorted():
    labels = {"job": "j", "activity": "a", "account_id": "x", "activity_code": "c"}
    assert label_key(labels) == '{account_id="x",activity="a",activity_code="c",job="j"}'


def test_log_line_fields(make_event):
    event = make_event(
        id="42",
        timestamp="2023-01-01T00:00:00Z",
        initiator_id="user1",
        initiator_email="user1@example.com",
        target_id="peer9",
        meta={"name": "laptop", "ip": "100.64.0.1"},
    )

    record = orjson.loads(log_line(event))

    assert record == {
        "event_id": "42",
        "timestamp": "2023-01-01T00:00:00Z",
        "activity": "User joined",
        "activity_code": "user.join",
        "initiator_id": "user1",
        "target_id": "peer9",
        "account_id": "acc1",
        "meta": {"name": "laptop", "ip": "100.64.0.1"},
    }


def test_log_line_absent_fields(make_event):
    line = log_line(make_event(account_id=None))
    record = orjson.loads(line)

    assert record["initiator_id"] == ""
    assert record["target_id"] == ""
    assert record["account_id"] == ""
    assert record["meta"] is None
    assert "\n" not in line
    assert ": " not in line


def test_same_labels_share_a_stream(make_event):
    events = [make_event("2023-01-01T00:00:00Z"), make_event("2023-01-02T00:00:00Z")]

    body = build_push_request(events)

    assert len(body["streams"]) == 1
    values = body["streams"][0]["values"]
    assert [v[0] for v in values] == ["1672531200000000000", "1672617600000000000"]
    assert [orjson.loads(v[1])["event_id"] for v in values] == [events[0].id, events[1].id]


def test_differing_labels_split_streams(make_event):
    base = make_event()
    events = [
        base,
        make_event(account_id="acc2"),
        make_event(activity="Peer added"),
        make_event(activity_code="peer.add"),
    ]

    body = build_push_request(events)

    assert len(body["streams"]) == 4
    assert body["streams"][0]["stream"] == label_set(base)
    assert all(len(stream["values"]) == 1 for stream in body["streams"])


def test_unparseable_timestamp_still_serialized(make_event):
    body = build_push_request([make_event("not-a-date")])

    ts, line = body["streams"][0]["values"][0]
    assert ts.isdigit()
    assert orjson.loads(line)["timestamp"] == "not-a-date"


def test_empty_batch():
    assert build_push_request([]) == {"streams": []}


def test_label_key_escapes_values():
    labels = {"account_id": 'x",activity="y', "activity": "back\\slash"}
    assert label_key(labels) == '{account_id="x\\",activity=\\"y",activity="back\\\\slash"}'


def test_quoted_values_do_not_merge_streams(make_event):
    a = make_event(account_id='x",activity="y', activity="z")
    b = make_event(account_id="x", activity='y",activity="z')
    assert label_set(a) != label_set(b)

    body = build_push_request([a, b])

    assert len(body["streams"]) == 2
    assert [s["stream"] for s in body["streams"]] == [label_set(a), label_set(b)]
