"""Context propagation middleware for correlation and causation tracking."""

from typing import Any

from ...context import ExecutionContext, use_context
from ...domain import Command
from ...routing import intercepts
from .base import Handler, Middleware


class ContextPropagationMiddleware(Middleware):
    """Middleware that sets the execution context from incoming commands.

    - If the command has a correlation_id, it is used; otherwise a new one
      is generated (entry point).
    - If the command has a causation_id, it is used; otherwise the
      correlation_id is used (self-referencing entry point).
    - The command_id always becomes the context's command_id, and therefore
      the causation_id of every event the command saves.

    The previous context is restored once the command finishes, even on
    failure. Register this middleware first so later middleware and the
    handler see the context.
    """

    @intercepts
    async def propagate_context(self, command: Command, next: Handler) -> Any:
        base = ExecutionContext.create(command.correlation_id)
        ctx = ExecutionContext(
            correlation_id=base.correlation_id,
            causation_id=command.causation_id or base.correlation_id,
            command_id=command.command_id,
        )
        with use_context(ctx):
            return await next(command)
