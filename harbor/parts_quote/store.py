"""
Blob Stores - key/value persistence for the catalog.

The store pattern lets us swap implementations (in-memory for tests,
sqlite for the CLI and API) without changing session logic. Stores never
raise on I/O trouble: failures are logged and reported as None/False so
a broken store degrades to "nothing persisted" rather than a crash.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """Abstract key/value store for opaque byte blobs."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the blob stored under key, or None."""
        pass

    @abstractmethod
    def set(self, key: str, blob: bytes) -> bool:
        """Store blob under key. Returns True on success."""
        pass

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Delete key if present. Returns True on success."""
        pass


class InMemoryBlobStore(BlobStore):
    """
    Store backed by a dict.

    Useful for tests and for sessions that should not persist anything.
    """

    def __init__(self, initial: Optional[dict[str, bytes]] = None):
        self._blobs: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    def set(self, key: str, blob: bytes) -> bool:
        self._blobs[key] = bytes(blob)
        return True

    def remove(self, key: str) -> bool:
        self._blobs.pop(key, None)
        return True


class SqliteBlobStore(BlobStore):
    """Store backed by a single sqlite table, one row per key."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._initialized = False

    @contextmanager
    def get_db(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self):
        """Create the blobs table if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.get_db() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS blobs (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
        self._initialized = True

    def _ensure_db(self):
        if not self._initialized:
            self.init_db()

    def get(self, key: str) -> Optional[bytes]:
        try:
            self._ensure_db()
            with self.get_db() as conn:
                row = conn.execute("SELECT value FROM blobs WHERE key = ?", (key,)).fetchone()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to read {key!r} from {self.db_path}: {e}")
            return None
        return bytes(row["value"]) if row else None

    def set(self, key: str, blob: bytes) -> bool:
        try:
            self._ensure_db()
            with self.get_db() as conn:
                conn.execute(
                    """
                    INSERT INTO blobs (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                   updated_at = excluded.updated_at
                    """,
                    (key, sqlite3.Binary(blob), datetime.now().isoformat()),
                )
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to write {key!r} to {self.db_path}: {e}")
            return False
        return True

    def remove(self, key: str) -> bool:
        try:
            self._ensure_db()
            with self.get_db() as conn:
                conn.execute("DELETE FROM blobs WHERE key = ?", (key,))
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to remove {key!r} from {self.db_path}: {e}")
            return False
        return True
