from dataclasses import dataclass
from typing import Any

from ..domain import EventSummary


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a successfully dispatched command.

    Attributes:
        value: Whatever the command handler returned.
        summaries: Summaries of the events committed by the command.
        attempts: Number of times the command was executed, including retries.
        publication_error: Set when the events were committed but could not
            be published.
    """

    value: Any = None
    summaries: tuple[EventSummary, ...] = ()
    attempts: int = 1
    publication_error: BaseException | None = None

    @property
    def published(self) -> bool:
        return self.publication_error is None
