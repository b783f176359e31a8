"""Command middleware components."""

from .base import Handler, Middleware
from .concurrency import ConcurrencyRetryMiddleware
from .context import ContextPropagationMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "Handler",
    "Middleware",
    "ConcurrencyRetryMiddleware",
    "ContextPropagationMiddleware",
    "LoggingMiddleware",
]
