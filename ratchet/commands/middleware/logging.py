"""Logging middleware for command tracing."""

import logging
from typing import Any

from ...context import get_context
from ...domain import Command
from ...routing import intercepts
from .base import Handler, Middleware

LOGGER = logging.getLogger(__name__)


class LoggingMiddleware(Middleware):
    """Middleware that logs every received command with its tracing context.

    Only the command type and aggregate id are logged, never the payload,
    to avoid exposing sensitive data.

    Attributes:
        level: The numeric logging level (e.g., logging.INFO).

    Note:
        Register ContextPropagationMiddleware before LoggingMiddleware so
        the correlation identifiers are available when logging.
    """

    def __init__(self, level: str | int = "INFO"):
        """Initialize the logging middleware.

        Args:
            level: Log level name (case-insensitive) or numeric level.
        """
        self.level = level if isinstance(level, int) else getattr(logging, level.upper())

    @intercepts
    async def log_command(self, command: Command, next: Handler) -> Any:
        extra = {
            "command_type": command.command_kind(),
            "aggregate_id": command.aggregate_id,
            **get_context().as_log_extra(),
        }
        LOGGER.log(self.level, "Received Command", extra=extra)
        try:
            return await next(command)
        except Exception as e:
            LOGGER.log(self.level, "Command failed: %s", type(e).__name__, extra=extra)
            raise
