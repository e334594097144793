"""
Logging configuration.

All modules log through structlog with key/value context; this sets up
the processor chain on top of the stdlib logging backend.
"""

import logging
import sys

import structlog


def configure_logging(level: str | int = "INFO", json_output: bool = False) -> None:
    """
    Configure structlog and the stdlib root handler.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level
        json_output: Render JSON lines instead of the console format
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
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


def configure_default_logging(level: str | int = "INFO") -> None:
    """
    Install a level-filtering default unless structlog is already configured.

    Called when a mesh is created so library use without configure_logging
    does not print debug events. An application's own structlog setup
    (including configure_logging) always takes precedence.
    """
    if structlog.is_configured():
        return
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))
