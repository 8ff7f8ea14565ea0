"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

import random
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_CONCURRENCY = 50
MAX_CONCURRENCY = 256


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff policy for fragment fetches.

    The delay before retry ``k`` (k >= 1) is ``base_delay * 2 ** (k - 1)``, plus a
    uniform jitter in ``[0, base_delay)`` when enabled.
    """

    base_delay: float = 1.0
    max_retries: int = 5
    jitter: bool = True

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, retry: int, rng: random.Random | None = None) -> float:
        """Returns the sleep duration in seconds before the given retry."""
        if retry < 1:
            raise ValueError("Retry numbers start at 1.")
        delay = self.base_delay * (2 ** (retry - 1))
        if self.jitter and self.base_delay > 0:
            delay += (rng or random).random() * self.base_delay
        return delay


class FetchConfig(BaseModel):
    """A validated configuration model for a download session."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    concurrency: int = DEFAULT_CONCURRENCY
    max_retries: int = 5
    base_backoff: float = 1.0
    jitter: bool = True
    attempt_timeout: float = 60.0
    headers: dict[str, str] = Field(default_factory=dict, repr=False)

    @field_validator("concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Ensures a reasonable number of parallel fetches."""
        if v < 1 or v > MAX_CONCURRENCY:
            raise ValueError(f"Concurrency must be between 1 and {MAX_CONCURRENCY}.")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Max retries cannot be negative.")
        return v

    @field_validator("base_backoff")
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Base backoff cannot be negative.")
        return v

    @field_validator("attempt_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Attempt timeout must be greater than zero.")
        return v

    def retry_policy(self) -> RetryPolicy:
        """Builds the retry policy described by this configuration."""
        return RetryPolicy(
            base_delay=self.base_backoff,
            max_retries=self.max_retries,
            jitter=self.jitter,
        )

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return {key for key in cls.model_fields if key != "headers"}
