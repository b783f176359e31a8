"""Engine configuration using pydantic-settings."""

import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class RatchetSettings(BaseSettings):
    """Configuration for command dispatch, retries and publication.

    All settings can be configured via environment variables with the
    RATCHET_ prefix. For example:
    - RATCHET_RETRY_MAX_ATTEMPTS=5
    - RATCHET_RETRY_DELAY=0.05
    - RATCHET_LOG_LEVEL=DEBUG

    Attributes:
        retry_max_attempts: Maximum attempts for retry-eligible commands
            that hit a concurrency conflict (initial attempt included).
        retry_delay: Delay in seconds between attempts.
        publish_max_attempts: Attempts made to publish committed summaries.
            Values above 1 wrap the publisher in a RetryingEventPublisher.
        publish_retry_delay: Delay in seconds between publication attempts.
        log_level: Level used by LoggingMiddleware for received commands.
    """

    retry_max_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=0.0, ge=0)
    publish_max_attempts: int = Field(default=1, ge=1)
    publish_retry_delay: float = Field(default=0.0, ge=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    model_config = {"env_prefix": "RATCHET_"}

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level)
