from types import TracebackType
from typing import Any, Protocol, TypeVar, runtime_checkable

from .aggregates import AggregateFactory, AggregateRepository
from .commands import (
    CommandDispatcher,
    CommandHandler,
    ConcurrencyRetryMiddleware,
    ContextPropagationMiddleware,
    DispatchResult,
    HandlerRegistry,
    LoggingMiddleware,
    Middleware,
    RetryPolicy,
)
from .config import RatchetSettings
from .domain import Aggregate, Command
from .events import (
    EventPublisher,
    EventStore,
    InMemoryEventPublisher,
    InMemoryEventStore,
    RetryingEventPublisher,
)

A = TypeVar("A", bound=Aggregate)


@runtime_checkable
class HasLifecycle(Protocol):
    async def on_startup(self) -> None:
        """Called when the application is started."""
        ...

    async def on_shutdown(self) -> None:
        """Called when the application is shutdown."""
        ...


class Application:
    """A wired engine: event store, publisher, repositories and dispatcher.

    Use ApplicationBuilder to create one.
    """

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        event_store: EventStore,
        publisher: EventPublisher,
        repositories: dict[type[Aggregate], AggregateRepository[Any]],
        settings: RatchetSettings,
        dependencies: list[object],
    ):
        self.dispatcher = dispatcher
        self.event_store = event_store
        self.publisher = publisher
        self.repositories = repositories
        self.settings = settings
        self.dependencies = dependencies

    async def dispatch(self, command: Command) -> DispatchResult:
        """Dispatch a command to its handler.

        Args:
            command: The command to dispatch.

        Returns:
            The outcome of the command's commit.
        """
        return await self.dispatcher.dispatch(command)

    def repository(self, aggregate_type: type[A]) -> AggregateRepository[A]:
        """Get the repository of a registered aggregate type.

        Raises:
            KeyError: If the aggregate type was not registered.
        """
        return self.repositories[aggregate_type]

    def _lifecycle_dependencies(self) -> list[HasLifecycle]:
        candidates = [self.event_store, self.publisher, *self.dependencies]
        unique: list[HasLifecycle] = []
        for candidate in candidates:
            if isinstance(candidate, HasLifecycle) and not any(c is candidate for c in unique):
                unique.append(candidate)
        return unique

    async def startup(self) -> None:
        """Call on_startup on every dependency implementing HasLifecycle, in
        registration order."""
        for dependency in self._lifecycle_dependencies():
            await dependency.on_startup()

    async def shutdown(self) -> None:
        """Call on_shutdown on every dependency implementing HasLifecycle, in
        reverse registration order."""
        for dependency in reversed(self._lifecycle_dependencies()):
            await dependency.on_shutdown()

    async def __aenter__(self) -> "Application":
        await self.startup()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_value: BaseException | None,
        _traceback: TracebackType | None,
    ) -> None:
        await self.shutdown()


class ApplicationBuilder:
    """Fluent builder for Application instances.

    Defaults to an in-memory event store and publisher. Middleware runs in
    registration order, outermost first.

    Examples:
        >>> app = (
        ...     ApplicationBuilder()
        ...     .use_correlation_tracking()
        ...     .use_logging()
        ...     .use_retry()
        ...     .register_aggregate(User)
        ...     .build()
        ... )
        >>> await app.dispatch(RegisterUser(aggregate_id="U1", name="Alice"))
    """

    def __init__(self, settings: RatchetSettings | None = None) -> None:
        self.settings = settings or RatchetSettings()
        self.event_store: EventStore = InMemoryEventStore()
        self.publisher: EventPublisher = InMemoryEventPublisher()
        self.aggregates: list[type[Aggregate]] = []
        self.handlers: list[tuple[type[Command], CommandHandler]] = []
        self.middleware: list[Middleware] = []
        self.dependencies: list[object] = []

    def use_event_store(self, event_store: EventStore) -> "ApplicationBuilder":
        self.event_store = event_store
        return self

    def use_publisher(self, publisher: EventPublisher) -> "ApplicationBuilder":
        self.publisher = publisher
        return self

    def register_aggregate(self, aggregate_type: type[Aggregate]) -> "ApplicationBuilder":
        """Route every command the aggregate handles to it."""
        if aggregate_type not in self.aggregates:
            self.aggregates.append(aggregate_type)
        return self

    def register_handler(
        self, command_type: type[Command], handler: CommandHandler
    ) -> "ApplicationBuilder":
        """Register a custom handler receiving (command, unit_of_work)."""
        self.handlers.append((command_type, handler))
        return self

    def register_middleware(self, middleware: Middleware) -> "ApplicationBuilder":
        self.middleware.append(middleware)
        return self

    def register_dependency(self, dependency: object) -> "ApplicationBuilder":
        """Register an object whose lifecycle hooks the application manages."""
        self.dependencies.append(dependency)
        return self

    def use_correlation_tracking(self) -> "ApplicationBuilder":
        return self.register_middleware(ContextPropagationMiddleware())

    def use_logging(self, level: str | None = None) -> "ApplicationBuilder":
        return self.register_middleware(LoggingMiddleware(level or self.settings.numeric_log_level))

    def use_retry(
        self,
        policy: RetryPolicy | None = None,
        command_types: list[type[Command]] | None = None,
    ) -> "ApplicationBuilder":
        """Retry commands on concurrency conflicts.

        Without a policy, the policy is built from the settings.
        """
        policy = policy or RetryPolicy.from_settings(self.settings)
        return self.register_middleware(ConcurrencyRetryMiddleware(policy, command_types))

    def build(self) -> Application:
        """Wire repositories, the handler registry and the dispatcher.

        Raises:
            DuplicateCommandHandler: If two handlers claim the same command type.
        """
        publisher = self.publisher
        if self.settings.publish_max_attempts > 1:
            publisher = RetryingEventPublisher(
                publisher,
                max_attempts=self.settings.publish_max_attempts,
                retry_delay=self.settings.publish_retry_delay,
            )

        registry = HandlerRegistry()
        repositories: dict[type[Aggregate], AggregateRepository[Any]] = {}
        for aggregate_type in self.aggregates:
            repository = AggregateRepository(AggregateFactory(aggregate_type), self.event_store)
            repositories[aggregate_type] = repository
            registry.register_aggregate(repository)
        for command_type, handler in self.handlers:
            registry.register(command_type, handler)

        dispatcher = CommandDispatcher(registry, publisher, self.middleware)
        return Application(
            dispatcher=dispatcher,
            event_store=self.event_store,
            publisher=self.publisher,
            repositories=repositories,
            settings=self.settings,
            dependencies=self.dependencies,
        )
