"""Interfaces for the two ends of the exporter."""
from abc import ABC, abstractmethod
from typing import Sequence
from ..event_models import Event


class EventSource(ABC):
    """Abstract interface for event sources."""

    @abstractmethod
    async def fetch(self) -> list[Event]:
        """
        Fetch the full current event list.

        Returns:
            Events in no particular order

        Raises:
            SourceUnavailable: If the source cannot be reached or answers with an error
            SourceMalformed: If the response cannot be decoded into events
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the source."""


class EventSink(ABC):
    """Abstract interface for event sinks."""

    @abstractmethod
    async def forward(self, events: Sequence[Event]) -> None:
        """
        Deliver a batch of events.

        An empty batch is a no-op. On failure the whole batch counts as
        undelivered.

        Raises:
            ForwardError: If the batch was not accepted
        """
        pass

    @abstractmethod
    async def is_ready(self) -> bool:
        """
        Check if the sink is reachable and accepting writes.

        Returns:
            True if the sink is ready, False otherwise
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the sink."""
