"""Grafana Loki push API sink."""
import asyncio
from typing import Sequence
import httpx
import orjson
import structlog
from .base import EventSink
from ..event_models import Event
from ..errors import SinkRejected, SinkUnavailable
from ..services.streams import build_push_request

log = structlog.get_logger()

PUSH_PATH = "/loki/api/v1/push"
READY_PATH = "/ready"


class LokiClient(EventSink):
    """Pushes event batches to Loki, one request per batch."""

    def __init__(
        self,
        loki_url: str,
        push_timeout: float = 10.0,
        probe_timeout: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.loki_url = loki_url.rstrip("/")
        self.probe_timeout = probe_timeout
        self._client = httpx.AsyncClient(
            base_url=self.loki_url,
            timeout=push_timeout,
            transport=transport,
        )

    async def forward(self, events: Sequence[Event]) -> None:
        """
        Push ``events`` to Loki grouped into label streams.

        Raises:
            SinkUnavailable: If Loki cannot be reached
            SinkRejected: If Loki answers with a non-2xx status
        """
        if not events:
            return

        body = build_push_request(events)
        try:
            response = await self._client.post(
                PUSH_PATH,
                content=orjson.dumps(body),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise SinkUnavailable(f"failed to reach Loki: {e}") from e

        if not response.is_success:
            raise SinkRejected(response.status_code, response.text)

        log.info("sink.forwarded", count=len(events), streams=len(body["streams"]))

    async def is_ready(self) -> bool:
        """Probe ``/ready`` once."""
        try:
            response = await self._client.get(READY_PATH, timeout=self.probe_timeout)
        except httpx.HTTPError as e:
            log.debug("sink.probe_failed", error=str(e))
            return False
        return response.is_success

    async def wait_for_ready(self, attempts: int = 60, interval: float = 2.0) -> bool:
        """
        Poll ``/ready`` until Loki answers or ``attempts`` run out.

        Raises:
            SinkUnavailable: If Loki never became ready
        """
        log.info("sink.waiting", url=self.loki_url, attempts=attempts)
        for attempt in range(1, attempts + 1):
            if await self.is_ready():
                log.info("sink.ready", attempt=attempt)
                return True
            if attempt % 10 == 0:
                log.info("sink.still_waiting", attempt=attempt, attempts=attempts)
            if attempt < attempts:
                await asyncio.sleep(interval)

        raise SinkUnavailable(f"Loki not ready after {attempts} attempts")

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
