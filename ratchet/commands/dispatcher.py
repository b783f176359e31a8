"""Command dispatcher: the single entry point for state changes."""

import logging
from collections.abc import Callable, Coroutine
from functools import reduce
from typing import Any

from ..domain import Command
from ..events import EventPublisher
from ..unit_of_work import CommitResult, UnitOfWork
from .middleware import Middleware
from .registry import HandlerRegistry
from .result import DispatchResult

LOGGER = logging.getLogger(__name__)


class CommandDispatcher:
    """Dispatches commands through middleware to their handler.

    The baseline execution of a command is: resolve its handler, begin a
    fresh unit of work, invoke the handler with the command and the unit of
    work, and commit. If the handler fails the unit of work is rolled back
    and the failure re-raised. Middleware wraps the baseline execution in
    registration order, so a ConcurrencyRetryMiddleware re-runs all of it,
    unit of work included.

    Args:
        registry: Command type to handler mapping.
        publisher: Publisher handed to every unit of work.
        middleware: Middleware to apply (outermost first).

    Examples:
        >>> dispatcher = CommandDispatcher(
        ...     registry,
        ...     InMemoryEventPublisher(),
        ...     [ContextPropagationMiddleware(), ConcurrencyRetryMiddleware(RetryPolicy())],
        ... )
        >>> result = await dispatcher.dispatch(RegisterUser(aggregate_id="U1", name="Alice"))
        >>> result.summaries[0].sequence_number
        1
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        publisher: EventPublisher,
        middleware: list[Middleware] | None = None,
    ):
        self.registry = registry
        self.publisher = publisher
        self.middleware = list(middleware or [])
        # Build the middleware chain by reducing from right to left
        self.chain: Callable[[Command], Coroutine[Any, Any, Any]] = reduce(
            lambda next, mw: lambda cmd, n=next, m=mw: m.intercept(cmd, n),
            reversed(self.middleware),
            self._execute,
        )

    async def dispatch(self, command: Command) -> DispatchResult:
        """Dispatch a command and return the outcome of its commit.

        Raises:
            MissingCommandHandler: If no handler is registered for the command.
                Raised before any middleware runs, so it is never retried.
            RetriesExhausted: If a retry policy gave up on conflicts.
            Exception: Any failure raised by the handler.
        """
        self.registry.get(type(command))
        return await self.chain(command)

    async def _execute(self, command: Command) -> DispatchResult:
        handler = self.registry.get(type(command))
        unit_of_work = UnitOfWork(self.publisher)
        try:
            async with unit_of_work.scope():
                value = await handler(command, unit_of_work)
        except Exception as e:
            LOGGER.debug(
                "Unit of work rolled back: %s",
                type(e).__name__,
                extra={"command_type": command.command_kind(), "aggregate_id": command.aggregate_id},
            )
            raise

        # None when the handler rolled the unit of work back itself.
        commit = unit_of_work.result or CommitResult(summaries=())
        return DispatchResult(
            value=value,
            summaries=commit.summaries,
            publication_error=commit.publication_error,
        )
