class ClipsiftError(Exception):
    """Base class for errors the engine reports to its callers."""


class EntryNotFound(ClipsiftError, KeyError):
    def __init__(self, entry_id: str):
        super().__init__(entry_id)
        self.entry_id = entry_id

    def __str__(self) -> str:
        return f"No clipboard entry with id {self.entry_id!r}"


class PersistenceError(ClipsiftError):
    """A durable write failed. The in-memory state is kept."""

    def __init__(self, entry_id: str, cause: Exception):
        super().__init__(f"Could not persist entry {entry_id}: {cause}")
        self.entry_id = entry_id
        self.cause = cause
