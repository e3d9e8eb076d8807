"""
Structured logging configuration using structlog.

Log format:
{
    "ts": "2025-11-18T04:30:00.123456Z",
    "level": "info",
    "service": "signal-exporter",
    "cycle_id": "uuid-v4",
    "event": "cycle.forwarded",
    "module": "signal_exporter.services.exporter",
    "func_name": "run_cycle",
    "lineno": 42,
    ...additional context...
}
"""
import structlog
import logging
from typing import Any

SERVICE_NAME = "signal-exporter"


def add_service_name(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Add service name to all log entries."""
    event_dict["service"] = SERVICE_NAME
    return event_dict


def setup_logging(json_output: bool = True, level: str = "info"):
    """
    Configure structured logging.

    Args:
        json_output: If True, output JSON logs. If False, use console format.
        level: Minimum level name ("debug", "info", "warning", ...).
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    shared_processors = [
        # Includes cycle_id bound by the exporter loop
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.add_log_level,
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors = shared_processors + [structlog.processors.JSONRenderer()]
    else:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
    )

    # httpx logs every request at INFO; the exporter reports its own outcomes
    logging.getLogger("httpx").setLevel(logging.WARNING)
    # Silence uvicorn's default logging to avoid duplicate logs
    logging.getLogger("uvicorn.error").handlers = []
    logging.getLogger("uvicorn.access").handlers = []


def get_logger():
    """Get a configured structlog logger."""
    return structlog.get_logger()
