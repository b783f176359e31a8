"""Command dispatch, handler registry, retry policy and middleware."""

from .dispatcher import CommandDispatcher
from .middleware import (
    ConcurrencyRetryMiddleware,
    ContextPropagationMiddleware,
    Handler,
    LoggingMiddleware,
    Middleware,
)
from .registry import AggregateCommandHandler, CommandHandler, HandlerRegistry
from .result import DispatchResult
from .retry import RetryPolicy, RetryState

__all__ = [
    "CommandDispatcher",
    "DispatchResult",
    "HandlerRegistry",
    "CommandHandler",
    "AggregateCommandHandler",
    "RetryPolicy",
    "RetryState",
    # Middleware
    "Handler",
    "Middleware",
    "ConcurrencyRetryMiddleware",
    "ContextPropagationMiddleware",
    "LoggingMiddleware",
]
