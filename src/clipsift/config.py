import os
from dataclasses import dataclass
from pathlib import Path

DATA_DIR = Path(os.environ.get("CLIPSIFT_DATA_DIR", Path.home() / ".local" / "share" / "clipsift"))
DB_PATH = DATA_DIR / "clipsift.db"
IMAGE_DIR = DATA_DIR / "images"
LOG_PATH = DATA_DIR / "clipsift.log"


def _parse_env_int(name: str, default: int, low: int, high: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(low, min(high, value))


def _parse_env_float(name: str, default: float, low: float, high: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if value != value:  # NaN
        return default
    return max(low, min(high, value))


POLL_INTERVAL = 0.5  # seconds between clipboard checks
SETTLE_DELAY = _parse_env_float("CLIPSIFT_SETTLE_DELAY", 1.0, 0.1, 5.0)
BURST_WINDOW = 2.0  # seconds of mutation history kept for burst detection
BURST_LIMIT = 3  # more mutations than this inside the window is selection noise
MIN_INTERVAL = 0.3  # minimum gap between accepted mutations
GUARD_WINDOW = 0.5  # lifetime of an internal-write mark
SIMILARITY_THRESHOLD = _parse_env_float("CLIPSIFT_SIMILARITY_THRESHOLD", 0.7, 0.0, 1.0)
MAX_COMPARE_LENGTH = 1000  # longer texts are compared for equality only
BUCKET_SIZE = _parse_env_int("CLIPSIFT_BUCKET_SIZE", 10, 1, 50)
MAX_ENTRIES = _parse_env_int("CLIPSIFT_MAX_ENTRIES", 500, 10, 10_000)
MAX_TEXT_SIZE = 1_000_000  # 1MB text limit
MAX_IMAGE_SIZE = 10_000_000  # 10MB image limit
PREVIEW_LENGTH = 60  # characters shown in menu item
MENU_DISPLAY_COUNT = _parse_env_int("CLIPSIFT_MENU_DISPLAY_COUNT", 10, 5, 50)


@dataclass(frozen=True)
class EngineSettings:
    """Tunable thresholds for the capture pipeline."""

    settle_delay: float = SETTLE_DELAY
    burst_window: float = BURST_WINDOW
    burst_limit: int = BURST_LIMIT
    min_interval: float = MIN_INTERVAL
    guard_window: float = GUARD_WINDOW
    similarity_threshold: float = SIMILARITY_THRESHOLD
    max_compare_length: int = MAX_COMPARE_LENGTH
    bucket_size: int = BUCKET_SIZE
    max_entries: int = MAX_ENTRIES
    max_text_size: int = MAX_TEXT_SIZE
    max_image_size: int = MAX_IMAGE_SIZE
