"""Transactional scope for a single command execution.

A unit of work separates "events persisted" from "events published".
Repositories append events as soon as an aggregate is saved and record the
resulting summaries in the unit of work. Only when the unit of work commits
are the summaries handed to the publisher. A unit of work that rolls back
publishes nothing.
"""

import contextvars
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .domain import EventSummary, VersionedEvent
from .domain.exceptions import NestedUnitOfWorkNotSupported, UnitOfWorkStateError
from .events import EventPublisher

LOGGER = logging.getLogger(__name__)


class UnitOfWorkState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a commit.

    A commit always succeeds once reached: the events are already durable.
    Publication may still have failed, in which case ``publication_error``
    holds the failure.
    """

    summaries: tuple[EventSummary, ...]
    publication_error: BaseException | None = None

    @property
    def published(self) -> bool:
        return self.publication_error is None


# Only used to detect nesting. The unit of work itself is passed explicitly.
_active: contextvars.ContextVar["UnitOfWork | None"] = contextvars.ContextVar(
    "ratchet_active_unit_of_work", default=None
)


class UnitOfWork:
    """Scope binding one command's persistence and publication together.

    The lifecycle is ``IDLE -> ACTIVE -> COMMITTED | ROLLED_BACK -> IDLE``.
    Exactly one unit of work may be active per execution context; starting
    a second one, for instance by dispatching a command from inside a
    handler, raises NestedUnitOfWorkNotSupported.

    Use ``scope()`` rather than calling the lifecycle methods directly: it
    commits on success, rolls back on any failure (including cancellation)
    and always returns the unit of work to ``IDLE``.

    Examples:
        >>> uow = UnitOfWork(publisher)
        >>> async with uow.scope():
        ...     user = await repository.get_or_create("U1")
        ...     user.handle(RegisterUser(aggregate_id="U1", name="Alice"))
        ...     await repository.save(user, uow)
        >>> uow.result.summaries
        (EventSummary(aggregate_id='U1', aggregate_kind='User', sequence_number=1, ...),)
    """

    __slots__ = ("publisher", "state", "appended", "pending", "result", "_token")

    def __init__(self, publisher: EventPublisher):
        self.publisher = publisher
        self.state = UnitOfWorkState.IDLE
        self.appended: list[VersionedEvent[Any]] = []
        self.pending: list[EventSummary] = []
        self.result: CommitResult | None = None
        self._token: contextvars.Token["UnitOfWork | None"] | None = None

    @property
    def is_active(self) -> bool:
        return self.state is UnitOfWorkState.ACTIVE

    def begin(self) -> None:
        """Start the unit of work.

        Raises:
            NestedUnitOfWorkNotSupported: If this or another unit of work is
                already active in the current execution context.
            UnitOfWorkStateError: If the unit of work finished but was not
                returned to IDLE with ``done()``.
        """
        if self.is_active or _active.get() is not None:
            raise NestedUnitOfWorkNotSupported(
                "A unit of work is already active in this execution context"
            )
        if self.state is not UnitOfWorkState.IDLE:
            raise UnitOfWorkStateError(f"Cannot begin a unit of work in state {self.state.value}")
        self._token = _active.set(self)
        self.appended = []
        self.pending = []
        self.result = None
        self.state = UnitOfWorkState.ACTIVE

    def record(self, appended: list[VersionedEvent[Any]], summaries: list[EventSummary]) -> None:
        """Record events appended by a repository save and their summaries."""
        self._require_active("record")
        self.appended.extend(appended)
        self.pending.extend(summaries)

    async def commit(self) -> CommitResult:
        """Mark the unit of work committed and publish its summaries.

        A publication failure does not undo the commit. It is logged and
        reported on the returned CommitResult.
        """
        self._require_active("commit")
        summaries = tuple(self.pending)
        self.state = UnitOfWorkState.COMMITTED

        publication_error: BaseException | None = None
        if summaries:
            try:
                await self.publisher.publish(list(summaries))
            except Exception as e:
                publication_error = e
                LOGGER.error(
                    "Publication of %d committed event(s) failed",
                    len(summaries),
                    exc_info=e,
                    extra={"aggregate_ids": sorted({s.aggregate_id for s in summaries})},
                )

        LOGGER.debug("Unit of work committed", extra={"event_count": len(summaries)})
        self.result = CommitResult(summaries=summaries, publication_error=publication_error)
        return self.result

    def rollback(self) -> None:
        """Discard recorded events and summaries.

        Appends that already reached the event store are not undone. A
        rollback only guarantees that nothing recorded is published.
        """
        self._require_active("rollback")
        if self.appended:
            LOGGER.warning(
                "Rolling back a unit of work after %d event(s) were appended",
                len(self.appended),
            )
        self.appended = []
        self.pending = []
        self.state = UnitOfWorkState.ROLLED_BACK

    def done(self) -> None:
        """Return the unit of work to IDLE unconditionally."""
        if self._token is not None:
            _active.reset(self._token)
            self._token = None
        self.appended = []
        self.pending = []
        self.state = UnitOfWorkState.IDLE

    @asynccontextmanager
    async def scope(self) -> AsyncIterator["UnitOfWork"]:
        """Run a block inside this unit of work.

        Commits when the block completes, rolls back and re-raises when it
        fails or is cancelled, and always ends with ``done()``. A block that
        already committed or rolled back is left as it ended.
        """
        self.begin()
        try:
            try:
                yield self
            except BaseException:
                if self.is_active:
                    self.rollback()
                raise
            if self.is_active:
                await self.commit()
        finally:
            self.done()

    def _require_active(self, operation: str) -> None:
        if not self.is_active:
            raise UnitOfWorkStateError(
                f"Cannot {operation} a unit of work in state {self.state.value}"
            )
