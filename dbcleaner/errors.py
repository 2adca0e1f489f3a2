"""Error taxonomy for a compaction pass.

``EmptyInventoryError`` and ``NoFragmentationError`` are expected outcomes:
:func:`dbcleaner.compact.run_pass` turns them into a successful
``PassResult`` with no work done. Subclasses of :class:`PassAbortedError`
are fatal and always propagate to the caller, as do
:class:`InventoryQueryError` and :class:`DuplicateIdentifierError`, which
stop a pass before the planner runs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dbcleaner.compact.plan import MappingEntry


class CleanerError(Exception):
    """Base class for all compaction errors."""


class EmptyInventoryError(CleanerError):
    """The owning table has no rows; there is nothing to compact."""

    def __init__(self, table: str) -> None:
        super().__init__(f"No data in db table `{table}`")
        self.table = table


class NoFragmentationError(CleanerError):
    """Every identifier below the highest one is already in use."""

    def __init__(self, max_id: int) -> None:
        super().__init__(f"Identifier space 1..{max_id} is already dense")
        self.max_id = max_id


class InventoryQueryError(CleanerError):
    """The owning table could not be read."""

    def __init__(self, table: str, column: str, cause: Exception) -> None:
        super().__init__(f"Cannot read `{table}`.`{column}`: {cause}")
        self.table = table
        self.column = column


class DuplicateIdentifierError(CleanerError):
    """The owning column holds the same identifier on several rows."""

    def __init__(self, table: str, column: str, duplicates: list[int]) -> None:
        shown = ", ".join(str(d) for d in duplicates[:10])
        more = f" (+{len(duplicates) - 10} more)" if len(duplicates) > 10 else ""
        super().__init__(
            f"`{table}`.`{column}` is not unique; duplicated values: {shown}{more}"
        )
        self.table = table
        self.column = column
        self.duplicates = duplicates


class PassAbortedError(CleanerError):
    """A mapping entry could not be applied; the remaining entries were skipped.

    Attributes
    ----------
    index:
        1-based position of the failing entry in the mapping.
    entry:
        The entry that failed. It was rolled back as a whole.
    applied:
        Entries committed before the failure. They stay applied.
    """

    def __init__(
        self,
        message: str,
        index: int,
        entry: MappingEntry,
        applied: list[MappingEntry],
    ) -> None:
        super().__init__(message)
        self.index = index
        self.entry = entry
        self.applied = list(applied)

    @property
    def last_applied(self) -> MappingEntry | None:
        return self.applied[-1] if self.applied else None


class StaleRowError(PassAbortedError):
    """The owning-table row for a planned ``from`` identifier no longer exists."""


# Name used by callers that think in terms of the missing row.
RowNotFoundError = StaleRowError


class AmbiguousRowError(PassAbortedError):
    """The owning-table update for an entry matched more than one row."""


class StatementExecutionError(PassAbortedError):
    """The database rejected one of the statements of a mapping entry."""
