"""Driving loop: fetch, filter against the watermark, forward, sleep."""
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable
import asyncio
import time
import uuid
import structlog
from ..adapters.base import EventSink, EventSource
from ..errors import ForwardError, SourceError
from ..metrics import Metrics
from ..timestamps import format_ns
from .watermark import find_unparseable, select_new

log = structlog.get_logger()


class CycleOutcome(str, Enum):
    FETCH_FAILED = "fetch_failed"
    IDLE = "idle"
    FORWARDED = "forwarded"
    FORWARD_FAILED = "forward_failed"
    ERROR = "error"


@dataclass
class CycleReport:
    """What a single cycle did."""

    outcome: CycleOutcome
    fetched: int = 0
    forwarded: int = 0
    unparseable: int = 0
    error: Exception | None = None


class Exporter:
    """
    Runs the exporter cycle on a fixed interval.

    The watermark lives here and only here. It is committed after the sink
    accepted a batch, never before: a failed forward leaves it untouched so
    the same events are selected again on the next cycle.
    """

    def __init__(
        self,
        source: EventSource,
        sink: EventSink,
        interval: float,
        metrics: Metrics | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the exporter.

        Args:
            source: Where events are fetched from
            sink: Where new events are forwarded to
            interval: Seconds to sleep between cycles
            metrics: Optional Prometheus metrics
            sleep: Sleep coroutine (replaced in tests)
        """
        self.source = source
        self.sink = sink
        self.interval = interval
        self.metrics = metrics
        self._sleep = sleep
        self._watermark: int | None = None
        self.cycles = 0
        self.last_success: float | None = None

    @property
    def watermark(self) -> int | None:
        """Epoch nanoseconds of the last forwarded event."""
        return self._watermark

    async def run_forever(self):
        """Run cycles until cancelled."""
        log.info("exporter.started", interval=self.interval)
        while True:
            await self.run_cycle()
            await self._sleep(self.interval)

    async def run_cycle(self) -> CycleReport:
        """
        Run one fetch/filter/forward cycle.

        Errors are logged and reported, never raised.
        """
        structlog.contextvars.bind_contextvars(cycle_id=str(uuid.uuid4()))
        try:
            report = await self._cycle()
        except Exception as e:
            log.error("cycle.crashed", error=str(e), error_type=e.__class__.__name__, exc_info=True)
            report = CycleReport(CycleOutcome.ERROR, error=e)
        finally:
            structlog.contextvars.unbind_contextvars("cycle_id")

        self.cycles += 1
        if report.outcome in (CycleOutcome.IDLE, CycleOutcome.FORWARDED):
            self.last_success = time.monotonic()
        if self.metrics:
            self.metrics.record_cycle(report.outcome.value)
        return report

    async def _cycle(self) -> CycleReport:
        start_time = time.perf_counter()
        try:
            batch = await self.source.fetch()
        except SourceError as e:
            log.error("cycle.fetch_failed", error=str(e), error_type=e.__class__.__name__)
            return CycleReport(CycleOutcome.FETCH_FAILED, error=e)
        finally:
            if self.metrics:
                self.metrics.fetch_duration.observe(time.perf_counter() - start_time)

        unparseable = find_unparseable(batch)
        if unparseable:
            log.warning(
                "events.unparseable_dropped",
                count=len(unparseable),
                event_ids=[event.id for event in unparseable],
            )
        if self.metrics:
            self.metrics.record_fetch(len(batch), len(unparseable))

        selected, candidate = select_new(batch, self._watermark)
        if not selected:
            log.debug("cycle.idle", fetched=len(batch))
            return CycleReport(CycleOutcome.IDLE, fetched=len(batch), unparseable=len(unparseable))

        log.info("cycle.new_events", count=len(selected))

        start_time = time.perf_counter()
        try:
            await self.sink.forward(selected)
        except ForwardError as e:
            log.error(
                "cycle.forward_failed",
                error=str(e),
                error_type=e.__class__.__name__,
                status_code=getattr(e, "status_code", None),
                count=len(selected),
            )
            return CycleReport(
                CycleOutcome.FORWARD_FAILED,
                fetched=len(batch),
                unparseable=len(unparseable),
                error=e,
            )
        finally:
            if self.metrics:
                self.metrics.forward_duration.observe(time.perf_counter() - start_time)

        self._watermark = candidate
        if self.metrics:
            self.metrics.record_forward(len(selected), candidate)
        log.info("cycle.forwarded", count=len(selected), watermark=format_ns(candidate))

        return CycleReport(
            CycleOutcome.FORWARDED,
            fetched=len(batch),
            forwarded=len(selected),
            unparseable=len(unparseable),
        )
