# =============================================================================
# synka_core/offline/local_database.py
# Local SQLite Key/Value Store
# =============================================================================
"""
LocalDatabase - SQLite-backed key/value storage that survives process restarts.

Holds every piece of client-side persisted state:
- primary cache entries   ("{domain}_cache_{user_id}")
- offline fallback entries ("offline_{domain}_{user_id}")
- the pending CRM interaction slot and its returning flag

Values are opaque strings (callers store JSON).
"""

from __future__ import annotations
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional
from contextlib import contextmanager
import logging

logger = logging.getLogger(__name__)


class LocalDatabase:
    """
    Local SQLite key/value store.

    Usage:
        db = LocalDatabase(Path("local_data/synka_local.db"))
        db.initialize()
        db.set_item("tags_cache_u1", '{"data": [], "timestamp": 0}')
        raw = db.get_item("tags_cache_u1")
    """

    SCHEMA = {
        "kv_store": """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """,
    }

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._ensure_directory()
        self._local = threading.local()
        self._initialized = False

    def _ensure_directory(self) -> None:
        """Ensure database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
            )
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def transaction(self):
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self) -> None:
        """Create the schema if needed."""
        if self._initialized:
            return

        with self.transaction() as conn:
            for table_name, schema in self.SCHEMA.items():
                conn.execute(schema)
                logger.debug(f"Created/verified table: {table_name}")

        self._initialized = True
        logger.info(f"Local database initialized at: {self.db_path}")

    def close(self) -> None:
        """Close this thread's connection."""
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None

    # =========================================================================
    # KEY/VALUE OPERATIONS
    # =========================================================================

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value for ``key`` or None."""
        self.initialize()
        row = self._get_connection().execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        """Insert or overwrite ``key``."""
        self.initialize()
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, datetime.now().isoformat()),
            )

    def remove_item(self, key: str) -> bool:
        """Delete ``key``. Returns True if something was removed."""
        self.initialize()
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def keys(self, prefix: str = "") -> List[str]:
        """All keys starting with ``prefix``."""
        self.initialize()
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        rows = self._get_connection().execute(
            "SELECT key FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
            (f"{escaped}%",),
        ).fetchall()
        return [row["key"] for row in rows]

    def items(self, prefix: str = "") -> Dict[str, str]:
        """Mapping of key -> value for keys starting with ``prefix``."""
        return {key: self.get_item(key) for key in self.keys(prefix)}

    def clear(self) -> None:
        """Remove everything (used on sign-out)."""
        self.initialize()
        with self.transaction() as conn:
            conn.execute("DELETE FROM kv_store")
        logger.info("Local database cleared")

    def get_stats(self) -> Dict[str, int]:
        """Row count and rough payload size for status display."""
        self.initialize()
        row = self._get_connection().execute(
            "SELECT COUNT(*) AS n, COALESCE(SUM(LENGTH(value)), 0) AS size FROM kv_store"
        ).fetchone()
        return {"entries": row["n"], "bytes": row["size"]}
