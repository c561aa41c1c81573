"""
Structured Logging

DESIGN DECISION: Every ledger mutation emits one structured event.
This provides:
1. Traceability of balance changes while debugging
2. A stable key/value shape that log tooling can filter on

Events are only written to the process log. Nothing is persisted:
the ledger itself is the record of what happened.
"""

import logging
from uuid import UUID, uuid4

import structlog

from src.config import get_settings


def configure_logging() -> None:
    """
    Configure structlog on top of the standard library logger.

    JSON lines by default; a readable console renderer in debug mode.
    """
    app_settings = get_settings().app
    renderer = (
        structlog.dev.ConsoleRenderer()
        if app_settings.debug_mode
        else structlog.processors.JSONRenderer()
    )

    logging.basicConfig(format="%(message)s", level=app_settings.log_level)

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
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structured logger named after the calling module."""
    return structlog.get_logger(name)


def create_operation_id() -> UUID:
    """
    Create a new ID to tie together the log lines of one ledger operation.

    Bind it on the logger at the start of the operation.
    """
    return uuid4()
