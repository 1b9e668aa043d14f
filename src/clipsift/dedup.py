import logging

from clipsift.config import MAX_COMPARE_LENGTH, SIMILARITY_THRESHOLD

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 15
SINGLE_TOKEN_MAX_LENGTH = 150
SHORT_PHRASE_MAX_WORDS = 5
SHORT_PHRASE_MAX_LENGTH = 100
MIN_STRIPPED_LENGTH = 10


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit costs, keeping two rows of state."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(
                previous[j] + 1,  # deletion
                current[j - 1] + 1,  # insertion
                previous[j - 1] + cost,  # substitution
            )
        previous = current
    return previous[len(b)]


def similarity(a: str, b: str) -> float:
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / max_len


def selection_noise_reason(text: str) -> str | None:
    """Return why a text looks like a selection rather than a copy, or None."""
    if len(text) < MIN_TEXT_LENGTH:
        return "too short"
    if not any(ch.isspace() for ch in text) and len(text) < SINGLE_TOKEN_MAX_LENGTH:
        return "single token"
    if len(text.split()) < SHORT_PHRASE_MAX_WORDS and len(text) < SHORT_PHRASE_MAX_LENGTH:
        return "short phrase"
    if len(text.strip()) < MIN_STRIPPED_LENGTH:
        return "mostly whitespace"
    return None


class SimilarityDeduplicator:
    """Rejects selection noise and near-copies of the last accepted text."""

    def __init__(
        self,
        threshold: float = SIMILARITY_THRESHOLD,
        max_compare_length: int = MAX_COMPARE_LENGTH,
    ):
        self._threshold = threshold
        self._max_compare_length = max_compare_length
        self._last_text: str | None = None

    @property
    def last_text(self) -> str | None:
        return self._last_text

    def is_similar(self, a: str, b: str) -> bool:
        if len(a) > self._max_compare_length or len(b) > self._max_compare_length:
            return a == b
        return similarity(a, b) > self._threshold

    def should_accept(self, text: str) -> bool:
        reason = selection_noise_reason(text)
        if reason:
            logger.debug("Rejecting text as selection noise (%s)", reason)
            return False

        if self._last_text is not None and self.is_similar(text, self._last_text):
            logger.debug("Rejecting text as a near-duplicate of the previous entry")
            return False
        return True

    def remember(self, text: str) -> None:
        self._last_text = text

    def seed(self, text: str | None) -> None:
        self._last_text = text
