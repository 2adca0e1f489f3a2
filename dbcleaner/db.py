"""SQLite access for a compaction pass.

:class:`CleanerDB` is the only object that talks to the database. It
offers the three things the engine needs:

- ``fetch_ids``: one ordered scalar read of the owning column
- ``execute``: a single parameterized statement, returning the row count
- ``transaction``: a ``BEGIN IMMEDIATE`` scope committed on success and
  rolled back on any exception

One connection is held for the lifetime of the object. The caller owns
that lifetime (use it as a context manager). The database journal
mode is left as the operator configured it.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from dbcleaner.registry import OwnerTable, quote_identifier


class CleanerDB:
    """Connection wrapper used by the scanner and the executor.

    Parameters
    ----------
    db_path:
        Path to an existing SQLite database file.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        if not self._db_path.is_file():
            raise FileNotFoundError(f"Database not found: {self._db_path}")
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._db_path

    # ------------------------------------------------------------------
    # Connection helpers
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self._db_path))
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> CleanerDB:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def fetch_ids(self, owner: OwnerTable) -> list[int]:
        """Return every identifier of the owning table, ascending."""
        conn = self._connect()
        rows = conn.execute(owner.select_sql).fetchall()
        return [row[0] for row in rows]

    def count_references(self, table: str, column: str) -> int:
        """Return the number of non-NULL values in *table*.*column*."""
        conn = self._connect()
        row = conn.execute(
            f"SELECT COUNT({quote_identifier(column)}) FROM {quote_identifier(table)}"
        ).fetchone()
        return row[0] if row else 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def execute(self, sql: str, params: Sequence[object] = ()) -> int:
        """Run one parameterized statement. Returns the affected row count."""
        conn = self._connect()
        cur = conn.execute(sql, tuple(params))
        return cur.rowcount

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group statements into one atomic unit.

        ``BEGIN IMMEDIATE`` takes the write lock up front. Any exception
        raised inside the block rolls back every statement of the block
        and is re-raised.
        """
        conn = self._connect()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield
            conn.commit()
        except Exception:
            conn.rollback()
            raise
