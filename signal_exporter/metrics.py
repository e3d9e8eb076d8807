"""
Prometheus metrics for the signal exporter.
"""
from prometheus_client import Counter, Histogram, Gauge, Info, CollectorRegistry
from .timestamps import NS_PER_SECOND


class Metrics:
    """
    Centralized metrics for the exporter loop.
    """

    def __init__(self, service_name: str = "signal-exporter", version: str = "0.1.0", registry=None):
        self.service_name = service_name
        self.version = version
        self.registry = registry or CollectorRegistry()

        # Application Info
        self.app_info = Info(
            "app",
            "Application information",
            registry=self.registry,
        )
        self.app_info.info({"service": service_name, "version": version})

        self.app_up = Gauge(
            "app_up",
            "Application up status (1=up, 0=down)",
            ["service", "version"],
            registry=self.registry,
        )
        self.app_up.labels(service=service_name, version=version).set(1)

        # Loop metrics
        self.cycles_total = Counter(
            "signal_exporter_cycles_total",
            "Completed exporter cycles by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.events_fetched_total = Counter(
            "signal_exporter_events_fetched_total",
            "Events returned by the source",
            registry=self.registry,
        )

        self.events_forwarded_total = Counter(
            "signal_exporter_events_forwarded_total",
            "Events accepted by the sink",
            registry=self.registry,
        )

        self.events_unparseable_total = Counter(
            "signal_exporter_events_unparseable_total",
            "Fetched events dropped because their timestamp is not RFC3339",
            registry=self.registry,
        )

        self.fetch_duration = Histogram(
            "signal_exporter_fetch_duration_seconds",
            "Source fetch duration in seconds",
            registry=self.registry,
        )

        self.forward_duration = Histogram(
            "signal_exporter_forward_duration_seconds",
            "Sink forward duration in seconds",
            registry=self.registry,
        )

        self.watermark_timestamp = Gauge(
            "signal_exporter_watermark_timestamp_seconds",
            "Timestamp of the last forwarded event",
            registry=self.registry,
        )

    def record_cycle(self, outcome: str):
        """Record the end of a cycle."""
        self.cycles_total.labels(outcome=outcome).inc()

    def record_fetch(self, count: int, unparseable: int):
        """Record a successful fetch."""
        self.events_fetched_total.inc(count)
        if unparseable:
            self.events_unparseable_total.inc(unparseable)

    def record_forward(self, count: int, watermark_ns: int | None):
        """Record a successful forward and the committed watermark."""
        self.events_forwarded_total.inc(count)
        if watermark_ns is not None:
            self.watermark_timestamp.set(watermark_ns / NS_PER_SECOND)

    def set_down(self):
        """Mark the application as stopped."""
        self.app_up.labels(service=self.service_name, version=self.version).set(0)
