import uuid
from datetime import datetime, timedelta

import pytest

from clipsift.config import EngineSettings
from clipsift.engine import ClipboardEngine
from clipsift.models import Category, ClipboardEntry
from clipsift.storage import StorageManager

_UNSET = object()

START = 1_700_000_000.0


class FakeClock:
    def __init__(self, start: float = START):
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeScheduler:
    """Collects scheduled callbacks and fires them as the fake clock advances."""

    def __init__(self, clock: FakeClock):
        self._clock = clock
        self._pending: list[tuple[float, int, object]] = []
        self._seq = 0

    def schedule(self, delay, callback):
        self._seq += 1
        self._pending.append((self._clock.now + delay, self._seq, callback))

    @property
    def pending(self) -> int:
        return len(self._pending)

    def advance(self, seconds: float) -> None:
        target = self._clock.now + seconds
        while True:
            due = sorted(p for p in self._pending if p[0] <= target)
            if not due:
                break
            when, seq, callback = due[0]
            self._pending.remove((when, seq, callback))
            self._clock.now = max(self._clock.now, when)
            callback()
        self._clock.now = target


class FakeClipboard:
    """In-memory clipboard with a change counter, like NSPasteboard."""

    def __init__(self):
        self.marker = 0
        self.text = None
        self.image = None
        self.file_path = None
        self.fail_reads = False
        self.defer_marker = False
        self._pending_bumps = 0
        self.writes = []

    def _set(self, text=None, image=None, file_path=None):
        self.text, self.image, self.file_path = text, image, file_path

    def copy_text(self, text: str) -> None:
        self._set(text=text)
        self.marker += 1

    def copy_image(self, data: bytes) -> None:
        self._set(image=data)
        self.marker += 1

    def copy_file(self, path: str) -> None:
        self._set(text=path.rsplit("/", 1)[-1], file_path=path)
        self.marker += 1

    def flush_marker(self) -> None:
        self.marker += self._pending_bumps
        self._pending_bumps = 0

    def current_change_marker(self) -> int:
        if self.fail_reads:
            raise RuntimeError("pasteboard unavailable")
        return self.marker

    def read_text(self):
        if self.fail_reads:
            raise RuntimeError("pasteboard unavailable")
        return self.text

    def read_image_bytes(self):
        return self.image

    def read_file_reference(self):
        return self.file_path

    def _bump(self):
        if self.defer_marker:
            self._pending_bumps += 1
        else:
            self.marker += 1

    def write_text(self, text: str) -> None:
        self.writes.append(text)
        self._set(text=text)
        self._bump()

    def write_image_bytes(self, data: bytes) -> None:
        self.writes.append(data)
        self._set(image=data)
        self._bump()


@pytest.fixture
def storage(tmp_path):
    mgr = StorageManager(db_path=":memory:", image_dir=tmp_path / "images")
    yield mgr
    mgr.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def make_engine(clipboard, scheduler, clock, storage, tmp_path):
    def _make_engine(persistence=_UNSET, **settings) -> ClipboardEngine:
        return ClipboardEngine(
            clipboard,
            scheduler,
            persistence=storage if persistence is _UNSET else persistence,
            clock=clock,
            settings=EngineSettings(**settings),
            image_dir=tmp_path / "images",
        )

    return _make_engine


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def copy_and_settle(clipboard, scheduler, engine):
    """Simulate a deliberate copy followed by the settle delay."""

    def _copy(text: str | None = None, image: bytes | None = None, gap: float = 2.5):
        if image is not None:
            clipboard.copy_image(image)
        else:
            clipboard.copy_text(text)
        engine.tick()
        scheduler.advance(gap)

    return _copy


@pytest.fixture
def make_entry():
    """Factory fixture to create ClipboardEntry instances for testing."""
    counter = {"n": 0}

    def _make_entry(
        text: str = "hello world from the clipboard",
        category: Category = Category.TEXT,
        payload_path: str | None = _UNSET,
        created_at: datetime | None = None,
        entry_id: str | None = None,
    ) -> ClipboardEntry:
        counter["n"] += 1
        stamp = created_at or datetime(2024, 1, 1, 12, 0, 0) + timedelta(seconds=counter["n"])
        if category in (Category.IMAGE, Category.FILE):
            path = "/tmp/test.png" if payload_path is _UNSET else payload_path
            return ClipboardEntry(
                id=entry_id or uuid.uuid4().hex,
                category=category,
                text_content=None,
                payload_path=path,
                preview="[Image: 100x100]" if category == Category.IMAGE else "test.png",
                content_hash=f"hash_{text}_{counter['n']}",
                byte_size=1000,
                created_at=stamp,
            )
        return ClipboardEntry(
            id=entry_id or uuid.uuid4().hex,
            category=category,
            text_content=text,
            payload_path=None,
            preview=text[:60],
            content_hash=f"hash_{text}_{counter['n']}",
            byte_size=len(text.encode()),
            created_at=stamp,
        )

    return _make_entry
