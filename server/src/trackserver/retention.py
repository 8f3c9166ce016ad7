"""Bounded retention: keep at most N rows per scope, evicting the oldest."""
import logging
import sqlite3
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_SCREENSHOT_CAP = 200


@dataclass(frozen=True)
class RetentionPolicy:
    """
    Cap on the number of rows in `table` sharing one `scope_column` value.

    Table and column names are interpolated into SQL and must come from
    code, never from requests. `order_by` lists oldest first; rowid breaks
    ties so eviction order is total.
    """
    table: str
    scope_column: str
    cap: int
    order_by: str = "created_at ASC"
    key_column: str = "id"

    def with_cap(self, cap: int) -> "RetentionPolicy":
        return RetentionPolicy(self.table, self.scope_column, cap, self.order_by, self.key_column)

    def count(self, conn: sqlite3.Connection, scope_value: str) -> int:
        return conn.execute(
            f"SELECT COUNT(*) FROM {self.table} WHERE {self.scope_column} = ?",
            (scope_value,)
        ).fetchone()[0]

    def enforce(self, conn: sqlite3.Connection, scope_value: str) -> list[sqlite3.Row]:
        """
        Delete the oldest rows beyond the cap and return them.

        Runs inside the caller's transaction. Anything the evicted rows point
        at (e.g. files) is the caller's to remove once that transaction has
        committed; a resource that is already missing must not stop it.
        """
        excess = self.count(conn, scope_value) - self.cap
        if excess <= 0:
            return []

        oldest = conn.execute(
            f"SELECT * FROM {self.table} WHERE {self.scope_column} = ? "
            f"ORDER BY {self.order_by}, rowid ASC LIMIT ?",
            (scope_value, excess)
        ).fetchall()

        conn.executemany(
            f"DELETE FROM {self.table} WHERE {self.key_column} = ?",
            [(row[self.key_column],) for row in oldest]
        )

        logger.info(f"Evicted {len(oldest)} rows from {self.table} for {self.scope_column}={scope_value}")
        return oldest


SCREENSHOT_RETENTION = RetentionPolicy(
    table="screenshots",
    scope_column="user_id",
    cap=DEFAULT_SCREENSHOT_CAP,
)
