"""Retry policy for optimistic concurrency conflicts.

The policy is pure: it only looks at the command, the number of attempts
made so far and the last failure. The retry loop itself lives in
ConcurrencyRetryMiddleware.
"""

from dataclasses import dataclass, field

from ..config import RatchetSettings
from ..domain import Command
from ..domain.exceptions import ConcurrencyConflict, RetriesExhausted


class RetryPolicy:
    """Decides whether a failed command should be executed again.

    By default only ConcurrencyConflict is retried, only for commands marked
    ``can_retry``, and only while fewer than ``max_attempts`` attempts were
    made. Subclasses may override ``should_retry`` for other rules; the
    middleware never exceeds ``max_attempts`` regardless.

    Attributes:
        max_attempts: The maximum number of attempts (initial + retries).
        retry_delay: Delay in seconds between attempts.
        retry_on: Failure types eligible for retry.
        require_retry_flag: Only retry commands with ``can_retry`` set.

    Examples:
        >>> policy = RetryPolicy()
        >>> policy.should_retry(command, attempt_count=1, last_failure=conflict)
        True
        >>> policy.should_retry(command, attempt_count=3, last_failure=conflict)
        False
    """

    __slots__ = ("max_attempts", "retry_delay", "retry_on", "require_retry_flag")

    def __init__(
        self,
        max_attempts: int = 3,
        retry_delay: float = 0.0,
        retry_on: tuple[type[BaseException], ...] = (ConcurrencyConflict,),
        require_retry_flag: bool = True,
    ):
        """Initialize the retry policy.

        Raises:
            ValueError: If max_attempts <= 0 or retry_delay < 0.
        """
        if max_attempts <= 0:
            raise ValueError("max_attempts must be positive")
        if retry_delay < 0:
            raise ValueError("retry_delay must be non-negative")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.retry_on = retry_on
        self.require_retry_flag = require_retry_flag

    @classmethod
    def from_settings(cls, settings: RatchetSettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            retry_delay=settings.retry_delay,
        )

    def is_retryable(self, failure: BaseException) -> bool:
        return isinstance(failure, self.retry_on)

    def should_retry(self, command: Command, attempt_count: int, last_failure: BaseException) -> bool:
        if not self.is_retryable(last_failure):
            return False
        if self.require_retry_flag and not command.can_retry:
            return False
        return attempt_count < self.max_attempts


@dataclass
class RetryState:
    """Attempt bookkeeping for one dispatch.

    Failures are kept in the order they happened.
    """

    attempts: int = 0
    failures: list[BaseException] = field(default_factory=list)

    def record(self, failure: BaseException) -> None:
        self.attempts += 1
        self.failures.append(failure)

    def most_recent_first(self) -> list[BaseException]:
        return list(reversed(self.failures))

    def exhausted(self, command: Command) -> RetriesExhausted:
        return RetriesExhausted(command.command_kind(), self.most_recent_first())
