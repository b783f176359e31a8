import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from functools import singledispatch
from typing import Any, TypeVar

from pydantic import BaseModel

from .domain.exceptions import MissingCommandHandler, UnsupportedEventKind

T = TypeVar("T")


class DefaultHandler(ABC):
    """Base handler for unregistered message types."""

    __slots__ = ("operation_name",)

    def __init__(self, operation_name: str):
        """Initialize the default handler.

        Args:
            operation_name: Name of the operation for error messages.
        """
        self.operation_name = operation_name

    @abstractmethod
    def __call__(self, message: Any, instance: Any, *args: Any, **kwargs: Any) -> Any:
        """Handle an unregistered message type."""
        ...


class RaiseMissingHandler(DefaultHandler):
    """Raise MissingCommandHandler for unregistered command types."""

    __slots__ = ()

    def __call__(self, message: Any, instance: Any, *args: Any, **kwargs: Any) -> Any:
        raise MissingCommandHandler(type(message).__name__)


class IgnoreHandler(DefaultHandler):
    """Silently ignore unregistered message types."""

    __slots__ = ()

    def __call__(self, message: Any, instance: Any, *args: Any, **kwargs: Any) -> Any:
        return None


def _extract_handler_type(func: Callable[..., Any], param_index: int = 1) -> type:
    """Extract the type annotation from a handler method.

    Args:
        func: The handler method to inspect.
        param_index: Index of the parameter to extract
            (0=self, 1=first arg, etc.)

    Returns:
        The annotated message type.

    Raises:
        ValueError: If the parameter lacks a type annotation.
    """
    func_name = getattr(func, "__name__", repr(func))
    params = list(inspect.signature(func).parameters.values())

    if len(params) <= param_index:
        raise ValueError(f"Handler {func_name} must have at least {param_index + 1} parameters")

    param = params[param_index]
    if param.annotation is inspect.Parameter.empty:
        raise ValueError(
            f"Handler {func_name} parameter '{param.name}' must have a type annotation"
        )
    annotation = param.annotation
    if isinstance(annotation, str):
        # Postponed annotations are resolved against the defining module.
        annotation = inspect.get_annotations(func, eval_str=True)[param.name]
    return annotation


class MessageRouter:
    """Generic router for dispatching messages to type-specific handlers.

    This class uses singledispatch to route messages (commands, middleware
    interception) to registered handler methods based on their type
    annotations. Subclasses of a registered type are routed to the same
    handler.
    """

    __slots__ = ("_dispatch", "_registered")

    def __init__(self, default_handler: DefaultHandler):
        @singledispatch
        def dispatch(message: object, instance: object, *args: Any, **kwargs: Any) -> object:
            return default_handler(message, instance, *args, **kwargs)

        self._dispatch = dispatch
        self._registered: list[type] = []

    def register(self, message_type: type, handler: Callable[..., object]) -> None:
        """Register a handler for a specific message type.

        Args:
            message_type: The message class this handler processes.
            handler: The method to call when handling this message type.
        """

        def wrapper(msg: object, inst: object, *args: Any, h: Any = handler, **kwargs: Any) -> object:
            return h(inst, msg, *args, **kwargs)

        self._dispatch.register(message_type)(wrapper)
        self._registered.append(message_type)

    def route(self, instance: Any, message: Any, *args: Any, **kwargs: Any) -> object:
        """Route a message to its registered handler.

        Args:
            instance: The instance to call the handler on (self).
            message: The message to route.
            *args: Additional positional arguments to pass to handler.
            **kwargs: Additional keyword arguments to pass to handler.

        Returns:
            The result of the handler method.
        """
        return self._dispatch(message, instance, *args, **kwargs)

    def message_types(self) -> list[type]:
        return list(self._registered)


class TransitionTable:
    """Closed mapping from event class to the method applying it.

    Unlike MessageRouter, lookups are by exact class: an event whose class
    was not registered on the aggregate is rejected with
    UnsupportedEventKind, even if it subclasses a registered event.
    """

    __slots__ = ("aggregate_kind", "_appliers")

    def __init__(self, aggregate_kind: str):
        self.aggregate_kind = aggregate_kind
        self._appliers: dict[type, Callable[[Any, Any], None]] = {}

    def register(self, event_type: type, applier: Callable[[Any, Any], None]) -> None:
        self._appliers[event_type] = applier

    def apply(self, instance: Any, event: BaseModel) -> None:
        match self._appliers.get(type(event)):
            case None:
                raise UnsupportedEventKind(self.aggregate_kind, type(event).__name__)
            case applier:
                applier(instance, event)

    def __contains__(self, event_type: type) -> bool:
        return event_type in self._appliers

    def __iter__(self) -> Iterator[type]:
        return iter(self._appliers)


class HandlerDecorator:
    """Base class for handler decorators.

    This class encapsulates the logic for creating decorators that mark methods
    as handlers for specific message types.
    """

    def __init__(self, marker_attr: str, type_attr: str):
        """Initialize the decorator.

        Args:
            marker_attr: Attribute name to mark decorated methods
                (e.g., '_is_command_handler').
            type_attr: Attribute name to store the message type
                (e.g., '_handles_command_type').
        """
        self.marker_attr = marker_attr
        self.type_attr = type_attr

    def __call__(self, func: Callable[..., T]) -> Callable[..., T]:
        message_type = _extract_handler_type(func, param_index=1)
        setattr(func, self.type_attr, message_type)
        setattr(func, self.marker_attr, True)
        return func


handles_command = HandlerDecorator("_is_command_handler", "_handles_command_type")
applies_event = HandlerDecorator("_is_event_applier", "_applies_event_type")
intercepts = HandlerDecorator("_is_command_interceptor", "_intercepts_command_type")

handles_command.__doc__ = """Decorator marking an aggregate method as a behavior operation.

The command type is automatically extracted from the method's type annotation.

Example:
    >>> class User(Aggregate):
    ...     @handles_command
    ...     def rename(self, cmd: RenameUser) -> None:
    ...         self.apply_new(UserRenamed(aggregate_id=self.id, name=cmd.name))
"""

applies_event.__doc__ = """Decorator marking an aggregate method as a state transition.

The event type is automatically extracted from the method's type annotation.
Transitions must be pure functions of (current state, event).

Example:
    >>> class User(Aggregate):
    ...     @applies_event
    ...     def on_renamed(self, evt: UserRenamed) -> None:
    ...         self.name = evt.name
"""

intercepts.__doc__ = """Decorator marking a middleware method as a command interceptor.

Use the Command base type to intercept every command, or a specific command
type for targeted interception.

Example:
    >>> class AuditMiddleware(Middleware):
    ...     @intercepts
    ...     async def audit(self, cmd: Command, next: Handler):
    ...         return await next(cmd)
"""


def _marked_methods(cls: type, marker_attr: str, type_attr: str) -> Iterator[tuple[type, Any]]:
    # Walk base classes first so overriding methods on subclasses win.
    for klass in reversed(cls.__mro__):
        for value in klass.__dict__.values():
            if getattr(value, marker_attr, None):
                yield getattr(value, type_attr), value


def setup_command_routing(cls: type) -> MessageRouter:
    """Set up command routing for an aggregate class."""
    router = MessageRouter(RaiseMissingHandler("handler"))
    for message_type, method in _marked_methods(cls, "_is_command_handler", "_handles_command_type"):
        router.register(message_type, method)
    return router


def setup_event_applying(cls: type) -> TransitionTable:
    """Build the closed transition table for an aggregate class."""
    table = TransitionTable(cls.__name__)
    for event_type, method in _marked_methods(cls, "_is_event_applier", "_applies_event_type"):
        table.register(event_type, method)
    return table


def setup_middleware_routing(cls: type) -> MessageRouter:
    """Set up command interception routing for middleware.

    Commands without a matching interceptor are passed through.
    """
    router = MessageRouter(IgnoreHandler("interceptor"))
    for message_type, method in _marked_methods(
        cls, "_is_command_interceptor", "_intercepts_command_type"
    ):
        router.register(message_type, method)
    return router
