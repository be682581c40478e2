"""
Logging setup for applications embedding the generator.

Library modules only call ``structlog.get_logger()``; the processor chain
is installed here, once, by the host application.
"""

import logging
import sys

import structlog

from .config.config import Settings, settings as default_settings


def configure_logging(settings: Settings = None) -> None:
    """
    Install the structlog processor chain over the stdlib logging module.

    Args:
        settings: Settings providing ``log_level`` and ``log_format``;
            defaults to the process-wide singleton
    """
    settings = settings or default_settings
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    if settings.log_format.lower() == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
