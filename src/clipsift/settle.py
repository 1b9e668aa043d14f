"""Settle filter: separates deliberate copies from selection noise.

Editors that mirror the selection onto the clipboard produce bursts of
mutations, and some producers write an intermediate value before the final
one. Mutations that survive the noise checks are handed to a scheduled
continuation that fires once the clipboard has had time to settle.
"""

import logging
from collections import deque
from collections.abc import Callable
from typing import Any, Protocol

from clipsift.config import BURST_LIMIT, BURST_WINDOW, MIN_INTERVAL, SETTLE_DELAY
from clipsift.models import MutationEvent

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    def schedule(self, delay: float, callback: Callable[[], None]) -> Any: ...


class SettleFilter:
    def __init__(
        self,
        scheduler: Scheduler,
        settle_delay: float = SETTLE_DELAY,
        burst_window: float = BURST_WINDOW,
        burst_limit: int = BURST_LIMIT,
        min_interval: float = MIN_INTERVAL,
    ):
        self._scheduler = scheduler
        self._settle_delay = settle_delay
        self._burst_window = burst_window
        self._burst_limit = burst_limit
        self._min_interval = min_interval
        self._recent: deque[float] = deque()
        self._last_accepted: float | None = None

    def submit(self, event: MutationEvent, on_settled: Callable[[MutationEvent], None]) -> bool:
        """Record a mutation and schedule a settled read unless it is noise.

        Returns True when a continuation was scheduled.
        """
        now = event.observed_at
        self._recent.append(now)
        self._trim(now)

        if len(self._recent) > self._burst_limit:
            logger.debug("Skipping rapid change (%d in window, likely selection)", len(self._recent))
            return False

        if self._last_accepted is not None and now - self._last_accepted < self._min_interval:
            logger.debug("Skipping change %.3fs after the previous one", now - self._last_accepted)
            return False

        self._last_accepted = now
        self._scheduler.schedule(self._settle_delay, lambda: on_settled(event))
        return True

    def is_bursting(self, now: float) -> bool:
        """Whether the trailing window still holds a selection burst."""
        self._trim(now)
        return len(self._recent) > self._burst_limit

    def reset(self) -> None:
        self._recent.clear()
        self._last_accepted = None

    def _trim(self, now: float) -> None:
        while self._recent and now - self._recent[0] >= self._burst_window:
            self._recent.popleft()
