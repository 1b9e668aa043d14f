import logging
import time
from collections.abc import Callable

from clipsift.config import GUARD_WINDOW
from clipsift.utils import compute_hash

logger = logging.getLogger(__name__)


class FeedbackGuard:
    """Remembers the engine's own clipboard writes for a short window.

    The mark expires ``window`` seconds after it was set; a mutation observed
    after that point is treated as external even if the content matches.
    """

    def __init__(self, window: float = GUARD_WINDOW, clock: Callable[[], float] = time.time):
        self._window = window
        self._clock = clock
        self._marked_hash: str | None = None
        self._marked_at: float | None = None

    def mark_internal_write(self, content: str | bytes) -> None:
        self._marked_hash = compute_hash(content)
        self._marked_at = self._clock()

    def is_internal(self, content: str | bytes, observed_at: float | None = None) -> bool:
        if self._marked_hash is None or self._marked_at is None:
            return False

        seen = self._clock() if observed_at is None else observed_at
        if seen - self._marked_at > self._window:
            self.clear()
            return False

        if compute_hash(content) != self._marked_hash:
            return False

        logger.debug("Ignoring clipboard change caused by our own write")
        self.clear()
        return True

    def clear(self) -> None:
        self._marked_hash = None
        self._marked_at = None
