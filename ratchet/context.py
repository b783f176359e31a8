import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace

from ulid import ULID


@dataclass(frozen=True)
class ExecutionContext:
    """Immutable tracing context for the command currently executing.

    The context only carries identifiers used for tracing and logging. It
    never carries the unit of work, which is always passed explicitly.

    Attributes:
        correlation_id: Traces an entire logical operation across commands
            and the events they produce. Constant throughout the flow.
        causation_id: ID of what directly caused the current operation.
        command_id: ID of the command being executed. Events saved while
            the command runs use it as their causation_id.

    Examples:
        >>> ctx = ExecutionContext.create()
        >>> cmd_ctx = ctx.for_command(command.command_id)
        >>> cmd_ctx.correlation_id == ctx.correlation_id
        True
    """

    correlation_id: ULID | None = None
    causation_id: ULID | None = None
    command_id: ULID | None = None

    @classmethod
    def create(cls, correlation_id: ULID | None = None) -> "ExecutionContext":
        """Create a new context at a system entry point.

        At entry points the causation_id references the correlation_id.
        """
        if correlation_id is None:
            correlation_id = ULID()
        return cls(correlation_id=correlation_id, causation_id=correlation_id)

    def for_command(self, command_id: ULID) -> "ExecutionContext":
        return replace(self, command_id=command_id)

    def as_log_extra(self) -> dict[str, str]:
        """Render the non-empty identifiers for a logging ``extra`` dict."""
        extra = {}
        if self.correlation_id is not None:
            extra["correlation_id"] = str(self.correlation_id)
        if self.causation_id is not None:
            extra["causation_id"] = str(self.causation_id)
        if self.command_id is not None:
            extra["command_id"] = str(self.command_id)
        return extra


_context: contextvars.ContextVar[ExecutionContext | None] = contextvars.ContextVar(
    "ratchet_execution_context", default=None
)


def get_context() -> ExecutionContext:
    """Get the current execution context.

    If no context has been set, returns an empty ExecutionContext with all
    fields None.
    """
    ctx = _context.get()
    if ctx is None:
        return ExecutionContext()
    return ctx


def set_context(context: ExecutionContext) -> None:
    _context.set(context)


def clear_context() -> None:
    _context.set(None)


@contextmanager
def use_context(context: ExecutionContext) -> Iterator[ExecutionContext]:
    """Set ``context`` for the duration of the block, restoring the previous one after.

    Example:
        >>> with use_context(ExecutionContext.create()) as ctx:
        ...     await dispatcher.dispatch(command)
    """
    token = _context.set(context)
    try:
        yield context
    finally:
        _context.reset(token)
