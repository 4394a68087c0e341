"""Daily buy budget shared by every asset.

The counter is reset to its configured maximum when the UTC calendar day
changes and is otherwise only ever decremented. ``reserve`` performs the
check and the decrement inside one critical section, so concurrent buy
attempts across assets can never spend more than the daily maximum.
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Callable

from pulse_core.models import Allocation, AllocationStatus

logger = logging.getLogger(__name__)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class DailyBudgetCounter:
    """Atomically reserved daily budget (in budget units)."""

    def __init__(
        self,
        maximum: float,
        today: Callable[[], date] | None = None,
    ):
        """
        Args:
            maximum: Budget available at the start of each day
            today: Returns the current calendar day (injectable for tests)
        """
        if maximum < 0:
            raise ValueError(f"daily budget must be >= 0, got {maximum}")
        self.maximum = maximum
        self._today = today or _utc_today
        self._day = self._today()
        self._remaining = maximum
        self._lock = asyncio.Lock()

    def _rollover(self) -> None:
        """Reset the budget if the day changed. Must be called under the lock."""
        day = self._today()
        if day != self._day:
            logger.info(
                "Daily budget reset for %s (%.4f unspent on %s)",
                day, self._remaining, self._day,
            )
            self._day = day
            self._remaining = self.maximum

    async def reserve(self, amount: float) -> Allocation:
        """
        Reserve up to ``amount`` from today's budget.

        Returns:
            Allocation with status FULL (granted in full), CLAMPED (granted
            what was left), EXHAUSTED (nothing left) or EMPTY (amount <= 0)
        """
        async with self._lock:
            self._rollover()

            if amount <= 0:
                return Allocation(
                    requested=amount, granted=0.0,
                    status=AllocationStatus.EMPTY, remaining=self._remaining,
                )

            if self._remaining <= 0:
                return Allocation(
                    requested=amount, granted=0.0,
                    status=AllocationStatus.EXHAUSTED, remaining=0.0,
                )

            granted = min(amount, self._remaining)
            self._remaining -= granted
            status = AllocationStatus.FULL if granted == amount else AllocationStatus.CLAMPED
            return Allocation(
                requested=amount, granted=granted,
                status=status, remaining=self._remaining,
            )

    async def remaining(self) -> float:
        """Budget left today."""
        async with self._lock:
            self._rollover()
            return self._remaining

    async def spent(self) -> float:
        """Budget used today."""
        async with self._lock:
            self._rollover()
            return self.maximum - self._remaining
