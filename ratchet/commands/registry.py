"""Routing of command types to their single handler."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from ..aggregates import AggregateRepository
from ..domain import Aggregate, Command
from ..domain.exceptions import DuplicateCommandHandler, MissingCommandHandler

if TYPE_CHECKING:
    from ..unit_of_work import UnitOfWork

CommandHandler = Callable[[Command, "UnitOfWork"], Awaitable[Any]]


class AggregateCommandHandler:
    """Handler that delegates a command to a behavior of its target aggregate.

    The aggregate is loaded fresh from the event store (or created empty
    when it has no history), handles the command, and its staged events are
    saved into the command's unit of work.
    """

    __slots__ = ("repository",)

    def __init__(self, repository: AggregateRepository[Any]):
        self.repository = repository

    async def __call__(self, command: Command, unit_of_work: "UnitOfWork") -> Any:
        async with self.repository.acquire(unit_of_work, command.aggregate_id) as aggregate:
            return aggregate.handle(command)


class HandlerRegistry:
    """Mapping from command type to exactly one handler.

    Lookups are by exact command type.

    Examples:
        >>> registry = HandlerRegistry()
        >>> registry.register_aggregate(AggregateRepository(AggregateFactory(User), store))
        >>> registry.register(ImportUsers, import_users_handler)
    """

    def __init__(self) -> None:
        self.handlers: dict[type[Command], CommandHandler] = {}

    def register(self, command_type: type[Command], handler: CommandHandler) -> None:
        """Register the handler of a command type.

        Raises:
            DuplicateCommandHandler: If the command type already has a handler.
        """
        if command_type in self.handlers:
            raise DuplicateCommandHandler(command_type.__name__)
        self.handlers[command_type] = handler

    def register_aggregate(self, repository: AggregateRepository[Any]) -> None:
        """Register the repository's aggregate for every command it handles."""
        aggregate_type: type[Aggregate] = repository.aggregate_type
        handler = AggregateCommandHandler(repository)
        for command_type in aggregate_type.handled_commands():
            self.register(command_type, handler)

    def get(self, command_type: type[Command]) -> CommandHandler:
        """Resolve the handler of a command type.

        Raises:
            MissingCommandHandler: If no handler is registered.
        """
        try:
            return self.handlers[command_type]
        except KeyError:
            raise MissingCommandHandler(command_type.__name__) from None

    def __contains__(self, command_type: type[Command]) -> bool:
        return command_type in self.handlers
