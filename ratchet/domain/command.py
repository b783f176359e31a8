"""Command base class for the write side.

Commands represent requests to change state and are dispatched to exactly
one handler.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID

TResponse = TypeVar("TResponse")


class Command(BaseModel, Generic[TResponse]):
    """Base class for all commands in the system.

    Commands are immutable once created. Every command names the aggregate
    it targets. Commands are generic over their response type, allowing
    handlers to return typed results. Use `Command[None]` for commands that
    don't return a value.

    Type Parameters:
        TResponse: The type returned by command handlers for this command

    Attributes:
        aggregate_id: ID of the aggregate that should handle this command.
        can_retry: Whether the command may be re-executed after a
            concurrency conflict. Only retry-eligible commands are retried
            by the default retry policy.
        command_id: Unique identifier for this command instance.
        correlation_id: Optional correlation ID for distributed tracing.
        causation_id: Optional ID of what caused this command.

    Examples:
        >>> class RenameUser(Command[None]):
        ...     name: str
        >>>
        >>> command = RenameUser(aggregate_id="U1", name="Alice", can_retry=True)
        >>> command.command_kind()
        'RenameUser'
    """

    model_config = ConfigDict(frozen=True)

    aggregate_id: str
    can_retry: bool = False
    command_id: ULID = Field(default_factory=ULID)
    correlation_id: ULID | None = None
    causation_id: ULID | None = None

    @classmethod
    def command_kind(cls) -> str:
        return cls.__name__
