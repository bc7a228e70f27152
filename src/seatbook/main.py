"""Service entry point: configure logging, open the database and serve the API."""

import logging
import sys

import uvicorn

from seatbook.api.app import create_app
from seatbook.app_logging import setup_logging
from seatbook.core.exceptions import ConfigurationError
from seatbook.db import init_database
from seatbook.settings import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point - initializes storage and runs the HTTP server."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        setup_logging()
        logger.error(e.message)
        sys.exit(1)

    setup_logging(
        level=settings.logging.level,
        json_output=settings.logging.format == "json",
        environment=settings.logging.environment,
    )

    session_factory = init_database(
        settings.database.url,
        busy_timeout_seconds=settings.database.busy_timeout_seconds,
        echo=settings.database.echo,
    )
    app = create_app(session_factory, settings)

    logger.info("Starting booking service on %s:%d", settings.server.host, settings.server.port)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
