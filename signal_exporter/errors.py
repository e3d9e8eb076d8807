"""Exception hierarchy for the exporter.

Everything raised while running a cycle derives from ``ExporterError`` so the
driving loop can contain it. Only ``ConfigError`` is fatal.
"""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigError(ExporterError):
    """Required configuration is missing or invalid."""


class SourceError(ExporterError):
    """The event source could not deliver a batch."""


class SourceUnavailable(SourceError):
    """Transport failure reaching the source, or a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SourceMalformed(SourceError):
    """The source response could not be decoded into events."""


class ForwardError(ExporterError):
    """A batch could not be delivered to the sink."""


class SinkUnavailable(ForwardError):
    """Transport failure reaching the sink."""


class SinkRejected(ForwardError):
    """The sink answered with a non-success status."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"sink rejected push: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class TimestampUnparseable(ExporterError):
    """An event timestamp is not valid RFC3339."""

    def __init__(self, value: str):
        super().__init__(f"unparseable timestamp: {value!r}")
        self.value = value
