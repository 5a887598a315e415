"""
Structured logging setup.

Every component logs through structlog with snake_case event names and bound
context (component, patient_id), so alert decisions can be traced in production.
"""

import logging
import sys

import structlog
from structlog.typing import Processor

from vital_alerts.config import LoggingConfig


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Install the structlog processor chain for the configured level and format."""
    config = config or LoggingConfig()

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=config.level, force=True)

    renderer: Processor
    if config.format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
