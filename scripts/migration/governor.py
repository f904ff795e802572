"""Fixed-delay pacing and fixed-cooldown retry on rate limiting."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional, TypeVar

from scripts.migration.errors import ClerkAPIError, RateLimitExhaustedError

logger = logging.getLogger("migration.governor")

T = TypeVar("T")


class GovernorState(str, Enum):
    PACING = "pacing"
    COOLING = "cooling"


class RateLimitGovernor:
    """Serializes calls to Clerk.

    pace() sleeps a fixed delay before each record. call() runs an operation
    and, whenever it fails with a rate-limit error, sleeps the cooldown and
    runs it again from the top. max_retries=None never gives up.
    """

    def __init__(
        self,
        delay_s: float = 1.0,
        cooldown_s: float = 10.0,
        max_retries: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.delay_s = delay_s
        self.cooldown_s = cooldown_s
        self.max_retries = max_retries
        self._sleep = sleep
        self.state = GovernorState.PACING
        self.cooldowns = 0

    def pace(self) -> None:
        if self.delay_s > 0:
            self._sleep(self.delay_s)

    def call(self, operation: Callable[[], T], user_id: Optional[str] = None) -> T:
        attempt = 0
        while True:
            try:
                result = operation()
            except ClerkAPIError as exc:
                if not exc.is_rate_limited:
                    self.state = GovernorState.PACING
                    raise
                if self.max_retries is not None and attempt >= self.max_retries:
                    self.state = GovernorState.PACING
                    raise RateLimitExhaustedError(attempt, exc) from exc
                attempt += 1
                self._cool_down(attempt, user_id)
                continue
            self.state = GovernorState.PACING
            return result

    def _cool_down(self, attempt: int, user_id: Optional[str]) -> None:
        self.state = GovernorState.COOLING
        self.cooldowns += 1
        logger.warning(
            "Rate limit reached, waiting %.1fs",
            self.cooldown_s,
            extra={"user_id": user_id, "attempt": attempt, "delay_s": self.cooldown_s},
        )
        self._sleep(self.cooldown_s)
