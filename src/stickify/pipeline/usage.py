"""Process-wide usage counting and daily spend tracking."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import date

from stickify.errors import UsageLimitExceededError

logger = logging.getLogger(__name__)


class UsageCounter:
    """Monotonic count of successful transformations.

    Demo and live runs both count, so quota accounting stays consistent when
    the mode changes. Only live runs accrue estimated cost; the cost resets
    when the calendar day changes. All mutation happens under one lock.
    """

    def __init__(
        self,
        *,
        daily_budget_cents: float = 2500.0,
        cost_per_frame_cents: float = 0.03,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._budget = daily_budget_cents
        self._cost_per_frame = cost_per_frame_cents
        self._today = today
        self._cost_day = today()
        self._cost_cents = 0.0

    @property
    def value(self) -> int:
        with self._lock:
            return self._count

    @property
    def spent_today_cents(self) -> float:
        with self._lock:
            self._roll_day()
            return self._cost_cents

    @property
    def remaining_budget_cents(self) -> float:
        with self._lock:
            self._roll_day()
            return max(self._budget - self._cost_cents, 0.0)

    def increment(self, *, frames: int = 1, live: bool = False) -> int:
        """Record one terminal success and return the new count."""
        with self._lock:
            self._count += 1
            if live:
                self._roll_day()
                self._cost_cents += frames * self._cost_per_frame
            return self._count

    def check_budget(self) -> None:
        """Raise :class:`UsageLimitExceededError` once today's budget is spent."""
        with self._lock:
            self._roll_day()
            if self._cost_cents >= self._budget:
                logger.warning(
                    "Daily budget exhausted (%.2f of %.2f cents)", self._cost_cents, self._budget,
                )
                msg = f"daily budget of ${self._budget / 100:.2f} reached"
                raise UsageLimitExceededError(msg)

    def _roll_day(self) -> None:
        today = self._today()
        if today != self._cost_day:
            self._cost_day = today
            self._cost_cents = 0.0
