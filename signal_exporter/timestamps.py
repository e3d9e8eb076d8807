"""RFC3339 timestamp handling.

Parsed timestamps are integer nanoseconds since the Unix epoch (UTC). NetBird
emits sub-microsecond precision and Loki takes nanoseconds, so ``datetime``
alone would lose ordering information between close events.
"""
from datetime import datetime, timedelta, timezone
import re
import time
import structlog
from .errors import TimestampUnparseable

log = structlog.get_logger()

NS_PER_SECOND = 1_000_000_000

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_RFC3339 = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"[Tt ]"
    r"(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?:(?P<utc>[Zz])|(?P<sign>[+-])(?P<off_hour>\d{2}):(?P<off_minute>\d{2}))$",
    re.ASCII,
)


def parse_rfc3339(value: str) -> int:
    """
    Parse an RFC3339 timestamp into epoch nanoseconds.

    Fractions longer than nine digits are truncated. Second 60 (a leap
    second) is accepted. A missing UTC offset is an error.

    Raises:
        TimestampUnparseable: If ``value`` is not a valid RFC3339 timestamp
    """
    match = _RFC3339.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise TimestampUnparseable(value)

    parts = match.groupdict()
    # A leap second counts as the first instant of the following minute
    leap = parts["second"] == "60"
    try:
        dt = datetime(
            int(parts["year"]),
            int(parts["month"]),
            int(parts["day"]),
            int(parts["hour"]),
            int(parts["minute"]),
            59 if leap else int(parts["second"]),
            tzinfo=timezone.utc,
        )
    except ValueError:
        raise TimestampUnparseable(value) from None

    offset_seconds = 0
    if parts["utc"] is None:
        off_hour, off_minute = int(parts["off_hour"]), int(parts["off_minute"])
        if off_hour > 23 or off_minute > 59:
            raise TimestampUnparseable(value)
        offset_seconds = off_hour * 3600 + off_minute * 60
        if parts["sign"] == "-":
            offset_seconds = -offset_seconds

    fraction = (parts["fraction"] or "")[:9].ljust(9, "0")
    seconds = (dt - _EPOCH) // timedelta(seconds=1) - offset_seconds
    if leap:
        seconds += 1
    return seconds * NS_PER_SECOND + int(fraction)


def to_sink_nanoseconds(value: str) -> str:
    """
    Convert an event timestamp to the nanosecond string Loki expects.

    Tries RFC3339, then the same text with trailing ``Z`` replaced by an
    explicit ``+00:00`` offset, and finally falls back to the current time.
    """
    try:
        return str(parse_rfc3339(value))
    except TimestampUnparseable:
        pass

    try:
        return str(parse_rfc3339(value.rstrip("Z") + "+00:00"))
    except TimestampUnparseable:
        log.warning("timestamp.fallback", timestamp=value, reason="unparseable, using current time")
        return str(time.time_ns())


def format_ns(ns: int) -> str:
    """Render epoch nanoseconds as an RFC3339 UTC string."""
    seconds, remainder = divmod(ns, NS_PER_SECOND)
    dt = _EPOCH + timedelta(seconds=seconds)
    text = dt.strftime("%Y-%m-%dT%H:%M:%S")
    if remainder:
        text += "." + f"{remainder:09d}".rstrip("0")
    return text + "Z"
