"""Observability module for marketcache.

JSON structured logging with request correlation.
"""

from marketcache.observability.logging import (
    LogContext,
    configure_logging,
    correlation_id_var,
    request_id_var,
    user_id_var,
)

__all__ = [
    "configure_logging",
    "LogContext",
    "request_id_var",
    "correlation_id_var",
    "user_id_var",
]
