"""
Liveness and readiness checks.
"""
from datetime import datetime, timezone
from typing import Dict, Any
import time
from .adapters.base import EventSink
from .logging import get_logger
from .services.exporter import Exporter
from .timestamps import format_ns

logger = get_logger()

# Intervals without a successful cycle before the exporter counts as not ready
STALE_CYCLES = 3


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthChecker:
    """
    Health checker for the exporter.

    Provides:
    - Liveness checks (is the process running?)
    - Readiness checks (is the loop healthy and the sink reachable?)
    """

    def __init__(
        self,
        exporter: Exporter | None = None,
        sink: EventSink | None = None,
        service_name: str = "signal-exporter",
        version: str = "0.1.0",
    ):
        self.exporter = exporter
        self.sink = sink
        self.service_name = service_name
        self.version = version

    def liveness(self) -> Dict[str, Any]:
        """
        Liveness check - basic health check.

        Returns:
            dict: Health status with service info and timestamp
        """
        return {
            "status": "ok",
            "service": self.service_name,
            "version": self.version,
            "timestamp": _now(),
        }

    async def readiness(self) -> Dict[str, Any]:
        """
        Readiness check.

        Checks:
        - Exporter loop has succeeded recently
        - Sink answers its readiness probe

        Returns:
            dict: Readiness status with detailed check results
        """
        checks = {
            "exporter": self._check_exporter(),
            "sink": await self._check_sink(),
        }
        overall_status = "ready"
        if any(check["status"] == "error" for check in checks.values()):
            overall_status = "not_ready"

        return {
            "status": overall_status,
            "service": self.service_name,
            "version": self.version,
            "timestamp": _now(),
            "checks": checks,
        }

    def _check_exporter(self) -> Dict[str, Any]:
        if self.exporter is None:
            return {"status": "skipped", "message": "Exporter not running"}

        watermark = self.exporter.watermark
        result = {
            "cycles": self.exporter.cycles,
            "watermark": format_ns(watermark) if watermark is not None else None,
        }

        last_success = self.exporter.last_success
        max_age = self.exporter.interval * STALE_CYCLES
        if last_success is None:
            stale = self.exporter.cycles >= STALE_CYCLES
        else:
            stale = time.monotonic() - last_success > max_age
        if stale:
            logger.warning("exporter_health_check_failed", cycles=self.exporter.cycles)
            return {"status": "error", "message": "No successful cycle recently", **result}

        return {"status": "ok", **result}

    async def _check_sink(self) -> Dict[str, Any]:
        if self.sink is None:
            return {"status": "skipped", "message": "Sink not configured"}

        start = time.time()
        ready = await self.sink.is_ready()
        latency_ms = round((time.time() - start) * 1000, 2)
        if not ready:
            logger.warning("sink_health_check_failed")
            return {"status": "error", "latency_ms": latency_ms}
        return {"status": "ok", "latency_ms": latency_ms}
