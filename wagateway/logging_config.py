"""
Logging setup for the gateway and the uvicorn server running it.

Probe traffic is dropped from the access log; gateway modules log under the
"wagateway" logger at the configured level.
"""

import logging
import logging.config
from typing import Any, Dict, Iterable

HEALTH_CHECK_PATHS = ("/healthz",)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are too chatty below WARNING
QUIET_LOGGERS = ("sse_starlette", "redis")


class HealthCheckFilter(logging.Filter):
    """Drops uvicorn access lines for health check requests."""

    def __init__(self, paths: Iterable[str] = HEALTH_CHECK_PATHS):
        super().__init__()
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name != "uvicorn.access":
            return True

        message = record.getMessage()
        return not ("GET" in message and any(path in message for path in self.paths))


def _logger(handler: str, level: str) -> Dict[str, Any]:
    return {"handlers": [handler], "level": level, "propagate": False}


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """
    Build a dictConfig for the gateway.

    Args:
        level: Level for the "wagateway" logger (case-insensitive)

    Returns:
        Dictionary accepted by logging.config.dictConfig and uvicorn's log_config
    """
    level = level.upper()

    loggers = {
        "uvicorn": _logger("default", "INFO"),
        "uvicorn.error": _logger("default", "INFO"),
        "uvicorn.access": _logger("access", "INFO"),
        "wagateway": _logger("default", level),
    }
    for name in QUIET_LOGGERS:
        loggers[name] = _logger("default", "WARNING")

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "health_check_filter": {"()": HealthCheckFilter},
        },
        "formatters": {
            "default": {"format": LOG_FORMAT},
            "access": {"format": "%(asctime)s - access - %(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["health_check_filter"],
            },
        },
        "loggers": loggers,
        "root": {"level": "INFO", "handlers": ["default"]},
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration to the running process."""
    logging.config.dictConfig(get_logging_config(level))
