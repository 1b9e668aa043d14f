from collections.abc import Iterable
from dataclasses import replace

from clipsift.config import BUCKET_SIZE
from clipsift.models import Bucket, CacheSnapshot, ClipboardEntry, bucket_for


class CategorizedCache:
    """Newest-first, capacity-bounded buckets derived from the history.

    Buckets are tuples inside a frozen snapshot; every update builds a new
    snapshot, so readers can keep the one they were handed.
    """

    def __init__(self, capacity: int = BUCKET_SIZE):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._snapshot = CacheSnapshot()

    def snapshot(self) -> CacheSnapshot:
        return self._snapshot

    def add(self, entry: ClipboardEntry) -> Bucket:
        bucket = bucket_for(entry.category)
        current = self._snapshot.bucket(bucket)
        updated = ((entry,) + current)[: self._capacity]
        self._snapshot = replace(self._snapshot, **{bucket.value: updated})
        return bucket

    def discard(self, entry_id: str, backfill: Iterable[ClipboardEntry] = ()) -> bool:
        """Drop an entry and top its bucket up from ``backfill``.

        ``backfill`` should yield history entries newest-first; only those
        older than the bucket's remaining tail and in the same bucket are used.
        """
        for bucket in Bucket:
            current = self._snapshot.bucket(bucket)
            if not any(e.id == entry_id for e in current):
                continue

            remaining = tuple(e for e in current if e.id != entry_id)
            present = {e.id for e in remaining}
            tail = remaining[-1] if remaining else None
            refill = []
            passed_tail = tail is None
            for candidate in backfill:
                if len(remaining) + len(refill) >= self._capacity:
                    break
                if not passed_tail:
                    passed_tail = candidate.id == tail.id
                    continue
                if candidate.id == entry_id or candidate.id in present:
                    continue
                if bucket_for(candidate.category) is bucket:
                    refill.append(candidate)

            self._snapshot = replace(self._snapshot, **{bucket.value: remaining + tuple(refill)})
            return True
        return False

    def rebuild(self, entries: Iterable[ClipboardEntry]) -> None:
        """Replay entries oldest-first, as they would have been appended."""
        self._snapshot = CacheSnapshot()
        for entry in entries:
            self.add(entry)

    def clear(self) -> None:
        self._snapshot = CacheSnapshot()
