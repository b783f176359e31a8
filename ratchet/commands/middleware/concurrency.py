"""Concurrency retry middleware for handling optimistic locking conflicts."""

import asyncio
import logging
from dataclasses import replace
from typing import Any

from ...domain import Command
from ...routing import intercepts
from ..result import DispatchResult
from ..retry import RetryPolicy, RetryState
from .base import Handler, Middleware

LOGGER = logging.getLogger(__name__)


class ConcurrencyRetryMiddleware(Middleware):
    """Middleware that re-executes commands that lost an optimistic concurrency race.

    Each attempt runs the whole downstream chain again: a new unit of work
    is started and the aggregate is reloaded from the event store, since the
    state loaded by the failed attempt is stale.

    Only failures the policy deems retryable are caught. Anything else
    propagates immediately. When the policy stops, every recorded failure is
    raised as one RetriesExhausted, most recent first.

    Attributes:
        policy: The retry policy deciding whether to try again.
        command_types: When given, only these command types are retried;
            other commands pass straight through.

    Examples:
        Retry every retry-eligible command up to 3 times:

        >>> middleware = ConcurrencyRetryMiddleware(RetryPolicy())

        Retry only renames, up to 5 times with a short delay:

        >>> middleware = ConcurrencyRetryMiddleware(
        ...     RetryPolicy(max_attempts=5, retry_delay=0.01),
        ...     command_types=[RenameUser],
        ... )
    """

    __slots__ = ("policy", "command_types")

    def __init__(self, policy: RetryPolicy, command_types: list[type[Command]] | None = None):
        self.policy = policy
        self.command_types = tuple(command_types) if command_types else None

    @intercepts
    async def retry_on_conflict(self, command: Command, next: Handler) -> Any:
        """Intercept commands and retry on concurrency conflicts.

        Raises:
            RetriesExhausted: If the policy stops retrying a conflicting command.
            Exception: Any non-retryable exception is re-raised immediately.
        """
        if self.command_types is not None and not isinstance(command, self.command_types):
            return await next(command)

        state = RetryState()
        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                result = await next(command)
            except Exception as e:
                if not self.policy.is_retryable(e):
                    raise
                state.record(e)
                LOGGER.warning(
                    "Concurrency conflict on attempt %d/%d: %s",
                    attempt,
                    self.policy.max_attempts,
                    e,
                    extra={
                        "command_type": command.command_kind(),
                        "aggregate_id": command.aggregate_id,
                    },
                )
                if not self.policy.should_retry(command, state.attempts, e):
                    break
                await asyncio.sleep(self.policy.retry_delay)
            else:
                if isinstance(result, DispatchResult):
                    return replace(result, attempts=attempt)
                return result

        raise state.exhausted(command) from state.failures[-1]
