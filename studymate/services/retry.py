"""
Retry policy shared by every model call.

Attempts are spaced with a linearly growing delay (``attempt * base_delay``),
and a per-attempt timeout counts as a failed attempt. The error of the final
attempt propagates unchanged.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from studymate.core.config import settings
from studymate.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    timeout: float | None = None  # seconds per attempt
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False, compare=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.generation_max_attempts,
            base_delay=settings.generation_retry_base_delay,
            timeout=settings.generation_timeout_seconds or None,
        )

    def backoff(self, attempt: int) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        return attempt * self.base_delay

    async def run(self, operation: Callable[[], Awaitable[T]], label: str = "operation") -> T:
        """Call ``operation`` until it succeeds or the attempts are exhausted."""
        for attempt in range(1, self.max_attempts + 1):
            start_time = time.time()
            try:
                if self.timeout:
                    return await asyncio.wait_for(operation(), timeout=self.timeout)
                return await operation()
            except asyncio.TimeoutError:
                error = f"timed out after {self.timeout:.1f}s"
                if attempt == self.max_attempts:
                    logger.error(f"{label} failed after {attempt} attempts | error={error}")
                    raise
            except Exception as e:
                error = str(e)
                if attempt == self.max_attempts:
                    logger.error(f"{label} failed after {attempt} attempts | error={error}")
                    raise

            delay = self.backoff(attempt)
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                f"{label} attempt {attempt}/{self.max_attempts} failed | "
                f"duration={duration_ms:.2f}ms | retry_in={delay:.1f}s | error={error}"
            )
            await self.sleep(delay)

        raise RuntimeError("unreachable")
