"""Publication of committed event summaries.

This module provides:
- EventPublisher: Abstract interface for delivering summaries to subscribers
- InMemoryEventPublisher: Ordered in-process feed with subscriber callbacks
- SummarySubscription: Index-based cursor over the in-memory feed
- RetryingEventPublisher: At-least-once wrapper retrying failed publication
- NullEventPublisher: Publisher that discards everything
"""

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from ..domain import EventSummary
from ..domain.exceptions import PublicationFailed

LOGGER = logging.getLogger(__name__)

Subscriber = Callable[[EventSummary], Awaitable[None] | None]


class EventPublisher(ABC):
    """Abstract interface for delivering committed event summaries.

    Publishers are only ever called by a unit of work after its events are
    durable. Delivery is at-least-once: a publisher that retries may deliver
    the same summary twice, so subscribers must be idempotent.
    """

    @abstractmethod
    async def publish(self, summaries: list[EventSummary]) -> None:
        """Deliver summaries to subscribers in order.

        Raises:
            PublicationFailed: If the summaries could not be delivered.
        """
        ...


class NullEventPublisher(EventPublisher):
    """Publisher that discards every summary."""

    async def publish(self, summaries: list[EventSummary]) -> None:
        pass


class InMemoryEventPublisher(EventPublisher):
    """In-process publisher keeping every summary in a single ordered feed.

    Subscriber callbacks, sync or async, are invoked for each summary in
    registration order. Subscriptions created with ``subscribe()`` read the
    feed from the beginning at their own pace.

    This implementation has no per-stream isolation: all subscribers see
    all summaries.
    """

    def __init__(self) -> None:
        self.summaries_in_order: list[EventSummary] = []
        self.subscribers: list[Subscriber] = []

    def add_subscriber(self, subscriber: Subscriber) -> None:
        self.subscribers.append(subscriber)

    def subscribe(self) -> "SummarySubscription":
        return SummarySubscription(self)

    async def publish(self, summaries: list[EventSummary]) -> None:
        for summary in summaries:
            self.summaries_in_order.append(summary)
            for subscriber in self.subscribers:
                result = subscriber(summary)
                if inspect.isawaitable(result):
                    await result


class SummarySubscription:
    """Index-based cursor over an in-memory publisher's feed.

    Raises IndexError when reading past the end of the feed; use ``depth()``
    to check availability first.
    """

    def __init__(self, publisher: InMemoryEventPublisher) -> None:
        self.index = 0
        self.publisher = publisher

    def depth(self) -> int:
        return len(self.publisher.summaries_in_order) - self.index

    def next(self) -> EventSummary:
        summary = self.publisher.summaries_in_order[self.index]
        self.index += 1
        return summary

    def drain(self) -> list[EventSummary]:
        """Read every summary not read yet."""
        pending = self.publisher.summaries_in_order[self.index :]
        self.index += len(pending)
        return pending


class RetryingEventPublisher(EventPublisher):
    """Publisher that retries an inner publisher on failure.

    Every attempt republishes the whole batch, which may deliver summaries
    more than once.

    Examples:
        >>> publisher = RetryingEventPublisher(BrokerPublisher(), max_attempts=3, retry_delay=0.5)
    """

    __slots__ = ("inner", "max_attempts", "retry_delay")

    def __init__(self, inner: EventPublisher, max_attempts: int, retry_delay: float = 0.0):
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if retry_delay < 0:
            raise ValueError("retry_delay must be non-negative")
        self.inner = inner
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    async def publish(self, summaries: list[EventSummary]) -> None:
        last_error: Exception | None = None
        for attempt in range(self.max_attempts):
            try:
                await self.inner.publish(summaries)
                return
            except Exception as e:
                last_error = e
                LOGGER.warning(
                    "Publication failed on attempt %d/%d: %s",
                    attempt + 1,
                    self.max_attempts,
                    e,
                )
                if attempt < self.max_attempts - 1:
                    await asyncio.sleep(self.retry_delay)
        raise PublicationFailed(
            f"Could not publish {len(summaries)} summaries after {self.max_attempts} attempt(s)"
        ) from last_error
