"""In-memory source and sink adapters."""
from typing import Sequence
import structlog
from .base import EventSink, EventSource
from ..event_models import Event
from ..errors import ExporterError

log = structlog.get_logger()


class InMemorySource(EventSource):
    """Source serving a fixed event list, optionally failing on demand."""

    def __init__(self, events: Sequence[Event] = ()):
        self.events: list[Event] = list(events)
        self.error: ExporterError | None = None
        self.fetch_count = 0

    async def fetch(self) -> list[Event]:
        self.fetch_count += 1
        if self.error is not None:
            raise self.error
        return list(self.events)


class InMemorySink(EventSink):
    """Sink recording every accepted batch."""

    def __init__(self):
        self.batches: list[list[Event]] = []
        self.error: ExporterError | None = None
        self.attempts = 0

    async def forward(self, events: Sequence[Event]) -> None:
        if not events:
            return
        self.attempts += 1
        if self.error is not None:
            raise self.error
        self.batches.append(list(events))
        log.info("sink.forwarded", count=len(events), adapter="memory")

    async def is_ready(self) -> bool:
        """In-memory sink is ready unless told to fail."""
        return self.error is None

    @property
    def forwarded(self) -> list[Event]:
        return [event for batch in self.batches for event in batch]
