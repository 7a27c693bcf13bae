"""SQLite connection management for the authority store.

Each thread gets its own connection to the same database file. WAL journal
mode lets lookups read while a harvest in another thread is writing.
"""

import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from authorities.utils.logger import LoggerManager

SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def _fold_case(value):
    return value.lower() if isinstance(value, str) else value


class AuthorityDatabase:
    """Per-thread SQLite connections plus schema initialization.

    Attributes:
        db_path: Path to the SQLite database file
    """

    def __init__(self, db_path: Path, timeout: float = 5.0):
        """Open (and create if needed) the authority database.

        Args:
            db_path: Path to SQLite database file (created if not exists)
            timeout: Seconds to wait on a locked database before failing
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.logger = LoggerManager.get_logger(__name__)
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._lock = threading.Lock()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def connection(self) -> sqlite3.Connection:
        """Get or create this thread's connection.

        Returns:
            Connection with foreign keys enabled and sqlite3.Row rows
        """
        conn: Optional[sqlite3.Connection] = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            # Same folding as the Python side (queries, subject lower_label)
            conn.create_function("lower", 1, _fold_case, deterministic=True)
            self._local.conn = conn
            with self._lock:
                self._connections.append(conn)
        return conn

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist."""
        with open(SCHEMA_PATH, encoding="utf-8") as f:
            schema = f.read()

        conn = self.connection()
        conn.executescript(schema)
        conn.commit()
        self.logger.debug(
            "store.schema.ready", extra={"extra_data": {"db_path": str(self.db_path)}}
        )

    def close(self) -> None:
        """Close every connection opened by this database."""
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()
