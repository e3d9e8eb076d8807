"""Watermark-based deduplication of fetched event batches."""
from typing import Sequence
from ..event_models import Event
from ..errors import TimestampUnparseable
from ..timestamps import parse_rfc3339


def _parsed(batch: Sequence[Event]) -> list[tuple[int, Event]]:
    pairs = []
    for event in batch:
        try:
            pairs.append((parse_rfc3339(event.timestamp), event))
        except TimestampUnparseable:
            continue
    return pairs


def select_new(batch: Sequence[Event], watermark: int | None) -> tuple[list[Event], int | None]:
    """
    Select the events of ``batch`` that are newer than ``watermark``.

    Events with an unparseable timestamp are never selected: they cannot be
    ordered against the watermark, so they are not acknowledged as seen.
    Ties keep their fetch order.

    Args:
        batch: Events as fetched, in any order
        watermark: Epoch nanoseconds of the last forwarded event, or None

    Returns:
        (selected events in ascending time order, candidate watermark). The
        candidate is the time of the last selected event, or ``watermark``
        when nothing was selected.
    """
    pairs = sorted(_parsed(batch), key=lambda pair: pair[0])
    if watermark is not None:
        pairs = [pair for pair in pairs if pair[0] > watermark]

    if not pairs:
        return [], watermark
    return [event for _, event in pairs], pairs[-1][0]


def find_unparseable(batch: Sequence[Event]) -> list[Event]:
    """Return the events that ``select_new`` drops for their timestamp."""
    unparseable = []
    for event in batch:
        try:
            parse_rfc3339(event.timestamp)
        except TimestampUnparseable:
            unparseable.append(event)
    return unparseable
