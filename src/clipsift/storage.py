import sqlite3
from datetime import datetime
from pathlib import Path

from clipsift.config import DB_PATH, IMAGE_DIR
from clipsift.models import Category, ClipboardEntry


SCHEMA = """
CREATE TABLE IF NOT EXISTS clipboard_entries (
    seq            INTEGER PRIMARY KEY AUTOINCREMENT,
    id             TEXT NOT NULL UNIQUE,
    category       TEXT NOT NULL CHECK(category IN ('text', 'url', 'code', 'log', 'prompt', 'image', 'file')),
    text_content   TEXT,
    payload_path   TEXT,
    preview        TEXT NOT NULL,
    content_hash   TEXT NOT NULL,
    byte_size      INTEGER NOT NULL DEFAULT 0,
    created_at     TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_created_at ON clipboard_entries(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_category ON clipboard_entries(category);

CREATE VIRTUAL TABLE IF NOT EXISTS clipboard_fts USING fts5(
    preview,
    text_content,
    content='clipboard_entries',
    content_rowid='seq'
);

CREATE TRIGGER IF NOT EXISTS clipboard_ai AFTER INSERT ON clipboard_entries BEGIN
    INSERT INTO clipboard_fts(rowid, preview, text_content)
    VALUES (new.seq, new.preview, new.text_content);
END;

CREATE TRIGGER IF NOT EXISTS clipboard_ad AFTER DELETE ON clipboard_entries BEGIN
    INSERT INTO clipboard_fts(clipboard_fts, rowid, preview, text_content)
    VALUES ('delete', old.seq, old.preview, old.text_content);
END;
"""


class StorageManager:
    """SQLite persistence for history entries.

    Rows are ordered by ``seq`` (insertion order), which also breaks ties
    between entries sharing a timestamp.
    """

    def __init__(self, db_path: str | Path | None = None, image_dir: Path | None = None):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._image_dir = Path(image_dir) if image_dir else IMAGE_DIR
        self._conn = sqlite3.connect(self._db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self.init_db()

    def init_db(self) -> None:
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def _delete_owned_file(self, entry: ClipboardEntry) -> None:
        # Only image payloads are owned by us; file entries point at user files.
        if entry.category != Category.IMAGE or not entry.payload_path:
            return
        p = Path(entry.payload_path)
        if not p.exists() or p.parent != self._image_dir:
            return
        # Images are named by content hash, so repeats of one image share a file.
        shared = self._conn.execute(
            "SELECT 1 FROM clipboard_entries WHERE payload_path = ? AND id != ? LIMIT 1",
            (entry.payload_path, entry.id),
        ).fetchone()
        if shared is None:
            p.unlink()

    def append_durable(self, entry: ClipboardEntry) -> None:
        self._conn.execute(
            """INSERT INTO clipboard_entries
               (id, category, text_content, payload_path, preview, content_hash, byte_size, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                entry.id,
                entry.category.value,
                entry.text_content,
                entry.payload_path,
                entry.preview,
                entry.content_hash,
                entry.byte_size,
                entry.created_at.isoformat(),
            ),
        )
        self._conn.commit()

    def load_all(self) -> list[ClipboardEntry]:
        rows = self._conn.execute("SELECT * FROM clipboard_entries ORDER BY seq ASC").fetchall()
        return [self._row_to_entry(r) for r in rows]

    def get_recent(self, limit: int = 25, category: Category | None = None) -> list[ClipboardEntry]:
        if category is None:
            rows = self._conn.execute(
                "SELECT * FROM clipboard_entries ORDER BY seq DESC LIMIT ?",
                (limit,),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT * FROM clipboard_entries WHERE category = ? ORDER BY seq DESC LIMIT ?",
                (category.value, limit),
            ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def search(self, query: str, limit: int = 25) -> list[ClipboardEntry]:
        sanitized = self._sanitize_fts_query(query)
        if not sanitized:
            return []
        rows = self._conn.execute(
            """SELECT e.* FROM clipboard_entries e
               JOIN clipboard_fts f ON e.seq = f.rowid
               WHERE clipboard_fts MATCH ?
               ORDER BY e.seq DESC
               LIMIT ?""",
            (sanitized, limit),
        ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def get_entry(self, entry_id: str) -> ClipboardEntry | None:
        row = self._conn.execute(
            "SELECT * FROM clipboard_entries WHERE id = ?", (entry_id,)
        ).fetchone()
        return self._row_to_entry(row) if row else None

    def delete_entry(self, entry_id: str) -> bool:
        entry = self.get_entry(entry_id)
        if entry is None:
            return False
        self._delete_owned_file(entry)
        self._conn.execute("DELETE FROM clipboard_entries WHERE id = ?", (entry_id,))
        self._conn.commit()
        return True

    def clear_all(self) -> None:
        images = self.get_recent(limit=-1, category=Category.IMAGE)
        self._conn.execute("DELETE FROM clipboard_entries")
        for entry in images:
            self._delete_owned_file(entry)
        self._conn.commit()

    def count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM clipboard_entries").fetchone()
        return row["cnt"]

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @staticmethod
    def _sanitize_fts_query(query: str) -> str:
        # Quote each token to prevent FTS5 syntax errors from special chars
        tokens = query.split()
        if not tokens:
            return ""
        quoted = ['"' + token.replace('"', '""') + '"' for token in tokens]
        return " ".join(quoted)

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> ClipboardEntry:
        return ClipboardEntry(
            id=row["id"],
            category=Category(row["category"]),
            text_content=row["text_content"],
            payload_path=row["payload_path"],
            preview=row["preview"],
            content_hash=row["content_hash"],
            byte_size=row["byte_size"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
