import logging
import time
from collections.abc import Callable
from typing import Protocol

from clipsift.models import MutationEvent

logger = logging.getLogger(__name__)


class ChangeMarkerSource(Protocol):
    def current_change_marker(self) -> int: ...


class ChangeDetector:
    """Turns the clipboard's change counter into mutation events."""

    def __init__(self, reader: ChangeMarkerSource, clock: Callable[[], float] = time.time):
        self._reader = reader
        self._clock = clock
        self._last_marker = self._read_marker()

    @property
    def last_marker(self) -> int | None:
        return self._last_marker

    def poll(self) -> MutationEvent | None:
        current = self._read_marker()
        if current is None or current == self._last_marker:
            return None

        self._last_marker = current
        return MutationEvent(change_marker=current, observed_at=self._clock())

    def sync(self, expected: int | None = None) -> bool:
        """Adopt the current marker without emitting an event.

        With ``expected`` the marker is only adopted when it matches, so a change
        made by another app in the meantime still reaches the next poll.
        """
        marker = self._read_marker()
        if marker is None or (expected is not None and marker != expected):
            return False
        self._last_marker = marker
        return True

    def _read_marker(self) -> int | None:
        try:
            return self._reader.current_change_marker()
        except Exception:
            logger.debug("Could not read clipboard change marker", exc_info=True)
            return None
