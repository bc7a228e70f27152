"""Structured logging for the booking service."""

from .context import ContextFilter, LogContext, log_booking_context, log_context
from .filters import PIIFilter
from .formatters import DevFormatter, JSONFormatter
from .setup import setup_logging

__all__ = [
    "ContextFilter",
    "DevFormatter",
    "JSONFormatter",
    "LogContext",
    "PIIFilter",
    "log_booking_context",
    "log_context",
    "setup_logging",
]
