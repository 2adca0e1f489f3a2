"""Shared fixtures: small item databases built in tmp_path."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Callable, Iterable

import pytest

from dbcleaner.registry import DEFAULT_DEPENDENTS

ItemDBFactory = Callable[..., Path]


def create_item_db(
    db_path: Path,
    guids: Iterable[int],
    references: dict[tuple[str, str], list[int]] | None = None,
    dependents: Iterable[tuple[str, str]] = DEFAULT_DEPENDENTS,
) -> Path:
    """Create an item_instance table plus one table per dependent.

    *references* maps ``(table, column)`` to the values stored in that
    column, one row per value. Dependent tables without references are
    created empty.
    """
    references = references or {}
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute(
            "CREATE TABLE item_instance (guid INTEGER PRIMARY KEY, itemEntry INTEGER NOT NULL)"
        )
        conn.executemany(
            "INSERT INTO item_instance (guid, itemEntry) VALUES (?, ?)",
            [(g, 1000 + g) for g in guids],
        )
        tables: dict[str, list[str]] = {}
        for table, column in dependents:
            tables.setdefault(table, []).append(column)
        for table, columns in tables.items():
            cols = ", ".join(f'"{c}" INTEGER' for c in columns)
            conn.execute(f'CREATE TABLE "{table}" (id INTEGER PRIMARY KEY AUTOINCREMENT, {cols})')
        for (table, column), values in references.items():
            conn.executemany(
                f'INSERT INTO "{table}" ("{column}") VALUES (?)',
                [(v,) for v in values],
            )
        conn.commit()
    finally:
        conn.close()
    return db_path


def column_values(db_path: Path, table: str, column: str) -> list[int]:
    """Return every value of *table*.*column* ordered by row id."""
    conn = sqlite3.connect(str(db_path))
    try:
        rows = conn.execute(f'SELECT "{column}" FROM "{table}" ORDER BY rowid').fetchall()
        return [r[0] for r in rows]
    finally:
        conn.close()


@pytest.fixture
def item_db(tmp_path: Path) -> ItemDBFactory:
    """Return a factory building a fresh item database in tmp_path."""

    def _make(guids: Iterable[int], **kwargs) -> Path:
        return create_item_db(tmp_path / "characters.db", guids, **kwargs)

    return _make


@pytest.fixture
def read_column() -> Callable[[Path, str, str], list[int]]:
    return column_values
