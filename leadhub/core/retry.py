"""LeadHub — Store Write Retry.

Transient store errors are retried with capped exponential backoff;
anything else is re-raised on the first failure.
"""

import asyncio
from typing import Any, Callable, TypeVar

from leadhub.core.errors import is_transient_store_error
from leadhub.core.logging import get_logger

logger = get_logger("core.retry")

T = TypeVar("T")

STORE_MAX_ATTEMPTS = 5
STORE_BASE_DELAY = 0.5  # seconds
STORE_MAX_DELAY = 8.0


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def backoff_delay(attempt: int, base: float = STORE_BASE_DELAY, cap: float = STORE_MAX_DELAY) -> float:
    """Delay before retry number `attempt` (1-based)."""
    return min(base * (2 ** (attempt - 1)), cap)


async def retry_store_write(
    operation: Callable[..., T],
    *args: Any,
    description: str = "store write",
    attempts: int = STORE_MAX_ATTEMPTS,
    **kwargs: Any,
) -> T:
    """Run a synchronous store write, retrying transient failures."""
    for attempt in range(1, attempts + 1):
        try:
            return operation(*args, **kwargs)
        except Exception as e:
            if not is_transient_store_error(e) or attempt == attempts:
                raise
            wait = backoff_delay(attempt)
            logger.warning(
                f"Transient error on {description}: {e}. "
                f"Retrying in {wait}s (attempt {attempt}/{attempts})"
            )
            await _sleep(wait)
    raise RuntimeError("unreachable")
