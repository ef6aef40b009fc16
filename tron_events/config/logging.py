import logging.config
from typing import Any, Dict

import structlog
from sqlalchemy.exc import DBAPIError

from ..errors import BackingStoreUnavailable

SERVICE_NAME = "tron-events"

# Libraries whose INFO output drowns the cache's own events
QUIET_LOGGERS = ("sqlalchemy.engine", "alembic", "asyncio")


def add_service_name(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure structured JSON logging on stderr.

    Standard output is left to command results, so ``tron-events``
    output can be piped while logs are collected separately.
    """
    log_level = log_level.upper()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    quiet_level = "WARNING" if logging.getLevelName(log_level) != logging.DEBUG else log_level

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": structlog.processors.JSONRenderer(),
                "foreign_pre_chain": [structlog.stdlib.add_log_level, add_service_name],
            },
        },
        "handlers": {
            "stderr": {
                "level": log_level,
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "json",
            },
        },
        "loggers": {
            "": {
                "handlers": ["stderr"],
                "level": log_level,
            },
            **{name: {"level": quiet_level} for name in QUIET_LOGGERS},
        }
    })

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def log_error(
    logger: Any,
    error: Exception,
    context: Dict[str, Any] = None,
    event: str = "event_cache_error"
) -> None:
    """Log an exception with the details it carries about the failing backend."""
    error_details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if isinstance(error, BackingStoreUnavailable):
        error_details["redis_url"] = error.url
        error_details["error_message"] = error.reason
    elif isinstance(error, DBAPIError) and error.orig is not None:
        error_details["driver_error"] = type(error.orig).__name__
        error_details["error_message"] = str(error.orig)
    error_details.update(context or {})
    logger.error(event, **error_details)
