"""
Services Module - Shared infrastructure services for the Moderation Console.

- Logging and observability
"""

from .logging_config import (
    ContextLogger,
    JsonFormatter,
    ReadableFormatter,
    configure_logging,
    get_logger,
    request_id_var,
    user_id_var,
)

__all__ = [
    "ContextLogger",
    "JsonFormatter",
    "ReadableFormatter",
    "configure_logging",
    "get_logger",
    "request_id_var",
    "user_id_var",
]
