"""
Retry policy for transition generation.

The policy decides; it does not own a timer. The sleep function is
injected so tests can run the full retry path without waiting.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from booth_transitions.errors import GenerationError

SleepFunction = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-backoff retry. max_attempts=2 means one initial attempt and one retry."""
    max_attempts: int = 2
    backoff_seconds: float = 2.0
    sleep: SleepFunction = field(default=asyncio.sleep, compare=False, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @property
    def last_attempt_number(self) -> int:
        return self.max_attempts - 1

    def should_retry(self, attempt_number: int, error: BaseException) -> bool:
        """Retry unless this was the last attempt or the error is non-retryable."""
        if attempt_number >= self.last_attempt_number:
            return False
        if isinstance(error, GenerationError) and not error.retryable:
            return False
        return True

    async def wait(self, attempt_number: int) -> None:
        await self.sleep(self.backoff_seconds)
