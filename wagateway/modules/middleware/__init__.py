"""
Request Logging Middleware Module - Black Box Interface

Purpose: Log every HTTP request handled by a FastAPI application
Interface: Middleware factory returning a configured callable
Hidden: Timing, path filtering, log formatting

Used with app.middleware("http")(...); independent of the routes it observes.
"""

import logging
import time
from typing import Iterable, Optional

from fastapi import Request

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """
    Logs "METHOD path -> status (ms)" for each request.

    Paths listed in skip_paths (e.g. health checks hit every few seconds) are not logged.
    """

    def __init__(self, skip_paths: Optional[Iterable[str]] = None, log_level: int = logging.INFO):
        """
        Initialize request logging middleware.

        Args:
            skip_paths: Request paths that are never logged
            log_level: Level used for successful requests
        """
        self.skip_paths = set(skip_paths or ())
        self.log_level = log_level

    async def __call__(self, request: Request, call_next):
        """Process the request and log its outcome."""
        path = request.url.path
        if path in self.skip_paths:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(f"{request.method} {path} -> unhandled error ({elapsed_ms:.1f} ms)")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if response.status_code >= 500 else self.log_level
        logger.log(level, f"{request.method} {path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
        return response


def create_request_logging_middleware(
    skip_paths: Optional[Iterable[str]] = None,
) -> RequestLoggingMiddleware:
    """
    Factory function to create request logging middleware.

    Args:
        skip_paths: Paths to leave out of the log (e.g. ["/healthz"])

    Returns:
        Configured RequestLoggingMiddleware instance
    """
    return RequestLoggingMiddleware(skip_paths=skip_paths)


# Module interface - what this module provides
__all__ = ["RequestLoggingMiddleware", "create_request_logging_middleware"]
