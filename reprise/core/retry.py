"""RetryPolicy — bounded exponential backoff for single remote calls.

Only transient failures (5xx responses) are retried.  A transient failure
is retried up to ``max_attempts`` additional times, sleeping 1, 2, 4, 8,
16, ... seconds before each retry.  There is no jitter.  Permanent errors
propagate on the first failure.

The policy wraps *individual* calls (one status fetch), never a whole
polling loop: every call starts from a fresh ``RetryState``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from reprise.errors import ApiError
from reprise.models.monitor import RetryState

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Return ``True`` for failures worth retrying (server-side errors)."""
    return isinstance(exc, ApiError) and exc.is_transient


class RetryPolicy:
    """Retry a zero-argument operation on transient failure.

    Parameters
    ----------
    max_attempts:
        Additional attempts granted after the first failure.
    base_delay:
        Delay before the first retry; doubles on every subsequent one.
    sleeper:
        Blocking sleep used between attempts.  Retry backoff is not
        interrupted by cancellation.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        *,
        base_delay: float = 1.0,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleeper

    def call(self, operation: Callable[[], T], description: str = "remote call") -> T:
        """Run *operation*, retrying transient failures with backoff."""
        state = RetryState(base_delay=self.base_delay)
        while True:
            try:
                return operation()
            except ApiError as exc:
                if not is_transient(exc) or state.attempt >= self.max_attempts:
                    raise
                backoff = state.next_backoff()
                logger.warning(
                    "%s failed with HTTP %d (attempt %d/%d); retrying in %.0fs",
                    description,
                    exc.status,
                    state.attempt,
                    self.max_attempts,
                    backoff,
                )
                self._sleep(backoff)


def call_with_retry(
    operation: Callable[[], T],
    max_attempts: int = 5,
    *,
    sleeper: Callable[[float], None] = time.sleep,
) -> T:
    """Functional shorthand for ``RetryPolicy(max_attempts).call(operation)``."""
    return RetryPolicy(max_attempts, sleeper=sleeper).call(operation)
