"""SQLite storage handle and schema."""
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .errors import StorageError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    display_name TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS devices (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    device_name TEXT NOT NULL,
    device_type TEXT NOT NULL,
    last_sync_at TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS usage_records (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    device_id TEXT NOT NULL,
    domain TEXT NOT NULL,
    title TEXT,
    category TEXT DEFAULT 'Other',
    date TEXT NOT NULL,
    total_seconds INTEGER NOT NULL DEFAULT 0,
    visits INTEGER NOT NULL DEFAULT 0,
    first_visit TEXT,
    last_visit TEXT,
    synced_at TEXT NOT NULL,
    UNIQUE(user_id, device_id, domain, date),
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (device_id) REFERENCES devices(id) ON DELETE CASCADE,
    CHECK(total_seconds >= 0),
    CHECK(visits >= 0)
);

CREATE TABLE IF NOT EXISTS screenshots (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    device_id TEXT NOT NULL,
    filename TEXT NOT NULL,
    domain TEXT,
    title TEXT,
    url TEXT,
    category TEXT DEFAULT 'Other',
    timestamp TEXT NOT NULL,
    date TEXT NOT NULL,
    file_size INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (device_id) REFERENCES devices(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS activity_events (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    device_id TEXT NOT NULL,
    state TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    date TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (device_id) REFERENCES devices(id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS sync_log (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    device_id TEXT NOT NULL,
    sync_type TEXT NOT NULL,
    records_synced INTEGER NOT NULL DEFAULT 0,
    synced_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_usage_user_date ON usage_records(user_id, date);
CREATE INDEX IF NOT EXISTS idx_usage_device ON usage_records(device_id, date);
CREATE INDEX IF NOT EXISTS idx_ss_user_date ON screenshots(user_id, date);
CREATE INDEX IF NOT EXISTS idx_ss_user_created ON screenshots(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_events_user_date ON activity_events(user_id, date);
CREATE INDEX IF NOT EXISTS idx_devices_user ON devices(user_id);
"""


def utc_now() -> str:
    """Current time as a UTC ISO-8601 string with microseconds (sortable)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class Store:
    """
    Handle on the SQLite database.

    Every unit of work gets its own connection, so the handle can be shared
    across concurrent requests. open() must be called before use and close()
    at shutdown.
    """

    def __init__(self, path: str, timeout: float = 10.0):
        self.path = path
        self.timeout = timeout
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        """Create the schema if needed and start accepting connections."""
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
            try:
                conn.execute("PRAGMA journal_mode = WAL")
                conn.executescript(SCHEMA)
                conn.execute(
                    "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
                    (SCHEMA_VERSION,)
                )
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.exception(f"Failed to initialize database at {self.path}")
            raise StorageError("Internal server error") from e
        self._open = True
        logger.info(f"Database ready at {self.path}")

    def close(self) -> None:
        self._open = False
        logger.info("Database closed")

    def _connect(self) -> sqlite3.Connection:
        if not self._open:
            raise StorageError("Store is not open")
        conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def transaction(self, write: bool = True) -> Iterator[sqlite3.Connection]:
        """
        Run a unit of work in one transaction with commit/rollback.

        Write transactions take SQLite's write lock up front (BEGIN IMMEDIATE)
        so read-modify-write sequences on the same row are serialized. Read
        transactions see a single snapshot.
        """
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            logger.exception("Failed to connect to database")
            raise StorageError("Internal server error") from e
        try:
            conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            logger.exception("Database error, transaction rolled back")
            raise StorageError("Internal server error") from e
        except Exception:
            if conn.in_transaction:
                conn.rollback()
            raise
        finally:
            conn.close()

    def read(self):
        return self.transaction(write=False)

    def schema_version(self) -> int | None:
        with self.read() as conn:
            return conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
