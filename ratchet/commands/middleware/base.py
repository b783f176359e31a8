"""Base middleware class for command dispatch.

Middleware components wrap the dispatcher's baseline execution to provide
cross-cutting concerns like logging, tracing context or retries.
"""

import inspect
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any, ClassVar

from ...domain import Command
from ...routing import setup_middleware_routing

if TYPE_CHECKING:
    from ...routing import MessageRouter

Handler = Callable[[Command], Coroutine[Any, Any, Any]]


class Middleware:
    """Base class for middleware with annotation-based routing.

    Middleware follows the chain of responsibility pattern: each
    interceptor receives the command and the next handler, and decides
    whether and how to call it. Interceptors are marked with @intercepts
    and routed by the annotated command type. Annotate with the Command base
    type to intercept every command.

    If no interceptor matches the command type, the middleware forwards to
    the next handler.

    Examples:
        >>> class TimingMiddleware(Middleware):
        ...     @intercepts
        ...     async def time_command(self, cmd: Command, next: Handler) -> Any:
        ...         started = time.monotonic()
        ...         try:
        ...             return await next(cmd)
        ...         finally:
        ...             LOGGER.info("took %.3fs", time.monotonic() - started)
    """

    _command_router: ClassVar["MessageRouter"]

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        cls._command_router = setup_middleware_routing(cls)

    async def intercept(self, command: Command, next: Handler) -> Any:
        """Route the command to an interceptor method or forward to next.

        Args:
            command: The command to intercept.
            next: The next handler in the middleware chain.

        Returns:
            The result from the interceptor or next handler.
        """
        result = self._command_router.route(self, command, next)
        if result is None:
            return await next(command)
        if inspect.isawaitable(result):
            return await result
        return result
