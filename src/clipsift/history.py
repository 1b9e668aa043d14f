from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from itertools import islice
from typing import Protocol

from clipsift.errors import EntryNotFound, PersistenceError
from clipsift.models import ClipboardEntry


class Persistence(Protocol):
    def append_durable(self, entry: ClipboardEntry) -> None: ...

    def load_all(self) -> list[ClipboardEntry]: ...

    def delete_entry(self, entry_id: str) -> bool: ...

    def clear_all(self) -> None: ...


class HistoryStore:
    """Append-only, time-ordered record of accepted clipboard entries.

    Entries live in an insertion-ordered dict keyed by id, so append, lookup
    and removal are O(1) and newest-first iteration walks the dict in reverse.
    """

    def __init__(self, persistence: Persistence | None = None):
        self._persistence = persistence
        self._entries: dict[str, ClipboardEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __iter__(self) -> Iterator[ClipboardEntry]:
        """Iterate newest-first."""
        return reversed(self._entries.values())

    def append(self, entry: ClipboardEntry) -> str:
        if entry.id in self._entries:
            raise ValueError(f"Duplicate entry id {entry.id!r}")
        latest = self.latest_timestamp()
        if latest is not None and entry.created_at < latest:
            raise ValueError("Entries must be appended in timestamp order")

        self._entries[entry.id] = entry

        if self._persistence is not None:
            try:
                self._persistence.append_durable(entry)
            except Exception as exc:
                raise PersistenceError(entry.id, exc) from exc
        return entry.id

    def restore(self, entries: Iterable[ClipboardEntry]) -> int:
        """Load previously persisted entries, oldest first, without re-persisting them."""
        loaded = 0
        for entry in sorted(entries, key=lambda e: e.created_at):
            if entry.id in self._entries:
                continue
            self._entries[entry.id] = entry
            loaded += 1
        return loaded

    def get(self, entry_id: str) -> ClipboardEntry:
        try:
            return self._entries[entry_id]
        except KeyError:
            raise EntryNotFound(entry_id) from None

    def remove(self, entry_id: str) -> bool:
        if self._entries.pop(entry_id, None) is None:
            return False
        if self._persistence is not None:
            try:
                self._persistence.delete_entry(entry_id)
            except Exception as exc:
                raise PersistenceError(entry_id, exc) from exc
        return True

    def list(self, limit: int = 25, offset: int = 0) -> list[ClipboardEntry]:
        if limit <= 0 or offset < 0:
            return []
        return list(islice(reversed(self._entries.values()), offset, offset + limit))

    def latest(self) -> ClipboardEntry | None:
        if not self._entries:
            return None
        return next(reversed(self._entries.values()))

    def oldest(self) -> ClipboardEntry | None:
        return next(iter(self._entries.values()), None)

    def latest_timestamp(self) -> datetime | None:
        latest = self.latest()
        return latest.created_at if latest else None

    def clear(self) -> None:
        self._entries.clear()
        if self._persistence is not None:
            try:
                self._persistence.clear_all()
            except Exception as exc:
                raise PersistenceError("*", exc) from exc
