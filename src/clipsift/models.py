from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Category(str, Enum):
    TEXT = "text"
    URL = "url"
    CODE = "code"
    LOG = "log"
    PROMPT = "prompt"
    IMAGE = "image"
    FILE = "file"

    @property
    def is_textual(self) -> bool:
        return self not in (Category.IMAGE, Category.FILE)


class Bucket(str, Enum):
    LOGS = "logs"
    PROMPTS = "prompts"
    IMAGES = "images"
    OTHER = "other"


_BUCKETS = {
    Category.IMAGE: Bucket.IMAGES,
    Category.LOG: Bucket.LOGS,
    Category.PROMPT: Bucket.PROMPTS,
}


def bucket_for(category: Category) -> Bucket:
    return _BUCKETS.get(category, Bucket.OTHER)


@dataclass(frozen=True)
class ClipboardEntry:
    id: str
    category: Category
    text_content: str | None
    payload_path: str | None
    preview: str
    content_hash: str
    byte_size: int
    created_at: datetime

    def __post_init__(self):
        if (self.text_content is None) == (self.payload_path is None):
            raise ValueError("entry needs exactly one of text_content or payload_path")


@dataclass(frozen=True)
class MutationEvent:
    change_marker: int
    observed_at: float


@dataclass(frozen=True)
class ClipboardPayload:
    """Clipboard state read once a mutation has settled."""

    change_marker: int
    text: str | None = None
    image_bytes: bytes | None = None
    file_path: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.text is None and self.image_bytes is None and self.file_path is None


@dataclass(frozen=True)
class CacheSnapshot:
    logs: tuple[ClipboardEntry, ...] = ()
    prompts: tuple[ClipboardEntry, ...] = ()
    images: tuple[ClipboardEntry, ...] = ()
    other: tuple[ClipboardEntry, ...] = ()

    def bucket(self, bucket: Bucket) -> tuple[ClipboardEntry, ...]:
        return getattr(self, bucket.value)

    def __len__(self) -> int:
        return len(self.logs) + len(self.prompts) + len(self.images) + len(self.other)


@dataclass(frozen=True)
class HistoryEvent:
    """Published to subscribers whenever the history changes."""

    kind: str  # "added", "removed" or "cleared"
    snapshot: CacheSnapshot
    entry: ClipboardEntry | None = None
