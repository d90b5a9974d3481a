"""Structured logging setup.

structlog is bridged onto stdlib logging so uvicorn, SQLAlchemy and boto
records share one JSON stream in production. Debug mode switches to the
colored console renderer. Every entry carries the request correlation id
set by asgi-correlation-id.
"""

import logging
import logging.config

import structlog
from asgi_correlation_id.context import correlation_id

QUIET_LOGGERS = ("uvicorn.access", "httpx", "botocore", "boto3", "urllib3")


def add_correlation_id(logger, method, event_dict):
    """Copy the active request id into the event dict."""
    cid = correlation_id.get(None)
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    Must run before the first ``structlog.get_logger`` call is bound, since
    loggers cache their processor chain on first use.

    Args:
        log_level: Root log level name
        json_logs: JSON output when True, console output otherwise
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["default"], "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
