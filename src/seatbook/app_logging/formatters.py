"""Log formatters for JSON and human-readable output."""

import json
import logging
from datetime import UTC, datetime

BOOKING_FIELDS = ("ride_id", "booking_id", "user_id")


class JSONFormatter(logging.Formatter):
    """Formats logs as JSON for production environments."""

    CONTEXT_FIELDS = (*BOOKING_FIELDS, "correlation_id")

    def __init__(self, environment: str = "development"):
        super().__init__()
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "env": self.environment,
        }

        for field in self.CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevFormatter(logging.Formatter):
    """Human-readable format for development.

    Ride, booking and user IDs from the log context are shown before the message.
    """

    def __init__(self) -> None:
        super().__init__(
            fmt=(
                "%(asctime)s [%(levelname)8s] [corr=%(correlation_id)s] "
                "%(name)s:%(booking_context)s %(message)s"
            ),
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        pairs = [f"{f}={getattr(record, f)}" for f in BOOKING_FIELDS if getattr(record, f, None)]
        record.booking_context = f" [{' '.join(pairs)}]" if pairs else ""
        return super().format(record)
