"""
Signal Exporter - forwards the NetBird activity log to Grafana Loki.

Features:
- Watermark-based polling of the NetBird events API
- Label-partitioned pushes to Loki
- Structured logging with per-cycle IDs
- Prometheus metrics
- Health checks (liveness and readiness)
"""
import asyncio
import contextlib
import sys
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from .adapters.base import EventSink, EventSource
from .adapters.loki import LokiClient
from .adapters.netbird import NetbirdClient
from .config import Settings, load_settings
from .errors import ConfigError, SinkUnavailable
from .health import HealthChecker
from .logging import setup_logging, get_logger
from .metrics import Metrics
from .services.exporter import Exporter

VERSION = "0.1.0"

logger = get_logger()


def create_app(
    settings: Settings,
    source: EventSource | None = None,
    sink: EventSink | None = None,
) -> FastAPI:
    """
    Build the service around one exporter loop.

    Args:
        settings: Loaded configuration
        source: Event source (defaults to the NetBird API client)
        sink: Event sink (defaults to the Loki client)
    """
    if source is None:
        source = NetbirdClient(settings.NETBIRD_API_URL, settings.NETBIRD_API_TOKEN)
    if sink is None:
        sink = LokiClient(settings.LOKI_URL)

    metrics = Metrics(service_name="signal-exporter", version=VERSION)
    exporter = Exporter(source, sink, interval=settings.CHECK_INTERVAL, metrics=metrics)
    health_checker = HealthChecker(exporter=exporter, sink=sink, version=VERSION)

    app = FastAPI(
        title="Signal Exporter",
        version=VERSION,
        description="Forwards the NetBird activity log to Grafana Loki",
    )
    app.state.settings = settings
    app.state.exporter = exporter
    app.state.metrics = metrics
    app.state.task = None

    # Mount Prometheus metrics endpoint
    app.mount("/metrics", make_asgi_app(registry=metrics.registry))

    @app.get("/health")
    async def health():
        """
        Liveness probe - basic health check.

        Returns 200 if the process is running.
        """
        logger.debug("health_check_liveness")
        return health_checker.liveness()

    @app.get("/health/ready")
    async def health_ready():
        """
        Readiness probe.

        Returns:
            200: Exporter loop healthy and sink reachable
            503: Otherwise
        """
        logger.debug("health_check_readiness")
        result = await health_checker.readiness()
        status_code = 200 if result["status"] == "ready" else 503
        return JSONResponse(result, status_code=status_code)

    async def run_exporter():
        if settings.WAIT_FOR_SINK and isinstance(sink, LokiClient):
            try:
                await sink.wait_for_ready(settings.READY_ATTEMPTS, settings.READY_INTERVAL)
            except SinkUnavailable as e:
                logger.warning("sink.not_ready", error=str(e), action="continuing anyway")
        await exporter.run_forever()

    @app.on_event("startup")
    async def startup_event():
        """Log the configuration and start the exporter loop."""
        logger.info(
            "service_starting",
            version=VERSION,
            env=settings.ENV,
            loki_url=settings.LOKI_URL,
            netbird_api_url=settings.NETBIRD_API_URL,
            check_interval=settings.CHECK_INTERVAL,
        )
        app.state.task = asyncio.create_task(run_exporter())

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop the loop and release HTTP clients."""
        logger.info("service_stopping")
        task = app.state.task
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await source.close()
        await sink.close()
        metrics.set_down()

    return app


def run():
    """Console entry point."""
    try:
        settings = load_settings()
    except ConfigError as e:
        setup_logging()
        logger.error("config.invalid", error=str(e))
        sys.exit(1)

    setup_logging(json_output=settings.LOG_JSON, level=settings.LOG_LEVEL)

    import uvicorn

    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.SERVICE_PORT,
        log_config=None,
    )


if __name__ == "__main__":
    run()
