"""Apply a reassignment mapping to the owning table and every dependent.

Each mapping entry is one transaction: the owning-table update followed by
the update of every registered dependent column. A failing entry is rolled
back as a whole and aborts the pass; entries committed before it stay
applied. Nothing is retried. Recovery is a fresh pass.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Sequence

from dbcleaner.compact.plan import MappingEntry
from dbcleaner.db import CleanerDB
from dbcleaner.errors import AmbiguousRowError, StaleRowError, StatementExecutionError
from dbcleaner.registry import Registry

log = logging.getLogger(__name__)


class ReassignmentExecutor:
    """Applies mapping entries in order against a :class:`Registry`.

    Parameters
    ----------
    db:
        Open database; its lifetime belongs to the caller.
    registry:
        Owning table and the dependent columns rewritten with it.
    """

    def __init__(self, db: CleanerDB, registry: Registry) -> None:
        self._db = db
        self._registry = registry

    def apply(
        self,
        mapping: Sequence[MappingEntry],
        label: str = "Replace",
    ) -> list[MappingEntry]:
        """Apply *mapping* entry by entry. Returns the applied entries.

        Raises
        ------
        StaleRowError
            The owning row for an entry's ``from_id`` no longer exists.
        AmbiguousRowError
            More than one owning row carries the entry's ``from_id``.
        StatementExecutionError
            The database rejected a statement of an entry.
        """
        owner = self._registry.owner
        applied: list[MappingEntry] = []

        for index, entry in enumerate(mapping, start=1):
            try:
                with self._db.transaction():
                    self._apply_entry(index, entry, applied)
            except (StaleRowError, AmbiguousRowError) as exc:
                log.error(
                    "> %d. Abort: %s (last applied: %s)", index, exc, exc.last_applied,
                )
                raise
            except sqlite3.Error as exc:
                last = applied[-1] if applied else None
                log.error(
                    "> %d. Abort: replacing %s failed: %s (last applied: %s)",
                    index, entry, exc, last,
                )
                raise StatementExecutionError(
                    f"Entry {index} ({entry}) failed: {exc}", index, entry, applied,
                ) from exc

            applied.append(entry)
            log.info(
                "> %d. %s %s from %d to %d",
                index, label, owner.column, entry.from_id, entry.to_id,
            )

        return applied

    def _apply_entry(
        self,
        index: int,
        entry: MappingEntry,
        applied: list[MappingEntry],
    ) -> None:
        owner = self._registry.owner
        params = (entry.to_id, entry.from_id)

        matched = self._db.execute(owner.update_sql, params)
        if matched == 0:
            raise StaleRowError(
                f"Entry {index} ({entry}): no `{owner.table}` row with "
                f"{owner.column} = {entry.from_id}",
                index, entry, applied,
            )
        if matched > 1:
            raise AmbiguousRowError(
                f"Entry {index} ({entry}): {matched} `{owner.table}` rows with "
                f"{owner.column} = {entry.from_id}",
                index, entry, applied,
            )

        for dep in self._registry.dependents:
            moved = self._db.execute(dep.update_sql, params)
            if moved:
                log.debug("    %s: %d rows", dep, moved)
