"""Compaction pass: scan -> free slots -> plan -> execute.

Entry point: :func:`run_pass` runs one full pass against an open
:class:`~dbcleaner.db.CleanerDB` and returns a :class:`PassResult`.

The pass assumes exclusive write access to the owning table and every
dependent table until it returns. Concurrent writers that insert into a
free slot, or reference a ``from`` identifier mid-pass, are not detected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from dbcleaner.compact.execute import ReassignmentExecutor
from dbcleaner.compact.plan import MappingEntry, plan_reassignments, select_pre_seed
from dbcleaner.compact.scan import find_free_slots, read_ids, scan_inventory
from dbcleaner.db import CleanerDB
from dbcleaner.errors import EmptyInventoryError, NoFragmentationError
from dbcleaner.registry import Registry

log = logging.getLogger(__name__)

# Pass outcomes
STATUS_EMPTY = "empty"
STATUS_DENSE = "dense"
STATUS_PLANNED = "planned"
STATUS_COMPACTED = "compacted"


@dataclass
class PassResult:
    """Summary of one pass."""

    status: str
    total_ids: int = 0
    max_id: int = 0
    free_slots: int = 0
    planned: list[MappingEntry] = field(default_factory=list)
    applied: list[MappingEntry] = field(default_factory=list)
    pre_seeded: list[MappingEntry] = field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f"PassResult({self.status}, ids={self.total_ids}, max={self.max_id}, "
            f"free={self.free_slots}, applied={len(self.applied)})"
        )


def run_pass(
    db: CleanerDB,
    registry: Registry,
    pre_seed: Iterable[MappingEntry] = (),
    stop_at_crossover: bool = False,
    dry_run: bool = False,
) -> PassResult:
    """Run one compaction pass.

    Parameters
    ----------
    db:
        Open database.
    registry:
        Owning table and dependents to rewrite.
    pre_seed:
        Fixed remaps applied before the scan. Entries that no longer apply
        are skipped.
    stop_at_crossover:
        Never move an identifier upward (see :func:`plan_reassignments`).
    dry_run:
        Scan and plan only. Nothing is written, pre-seed included.

    Raises
    ------
    StaleRowError, AmbiguousRowError, StatementExecutionError
        Fatal; entries applied before the failure remain applied.
    InventoryQueryError, DuplicateIdentifierError
        The owning table cannot be read or is not unique; nothing is planned.
    """
    owner = registry.owner
    executor = ReassignmentExecutor(db, registry)
    pre_seeded: list[MappingEntry] = []

    pre_seed = list(pre_seed)
    if pre_seed:
        if dry_run:
            log.info("> Dry run: skipping %d pre-seed entries", len(pre_seed))
        else:
            selected = select_pre_seed(read_ids(db, owner), pre_seed)
            pre_seeded = executor.apply(selected, label="Pre-seed")

    try:
        inventory = scan_inventory(db, owner)
    except EmptyInventoryError as exc:
        log.warning("> %s", exc)
        return PassResult(status=STATUS_EMPTY, pre_seeded=pre_seeded)

    result = PassResult(
        status=STATUS_DENSE,
        total_ids=len(inventory),
        max_id=inventory[-1],
        pre_seeded=pre_seeded,
    )
    log.info("> Found %d %s values in `%s`", result.total_ids, owner.column, owner.table)
    log.info("> Last %s %d", owner.column, result.max_id)

    try:
        free_slots = find_free_slots(inventory)
    except NoFragmentationError:
        log.info("> Found 0 free ids. Very good. Skip clear")
        return result

    result.free_slots = len(free_slots)
    result.planned = plan_reassignments(inventory, free_slots, stop_at_crossover)

    if dry_run:
        log.info(
            "> Found %d free ids. Dry run: %d reassignments planned",
            result.free_slots, len(result.planned),
        )
        result.status = STATUS_PLANNED
        return result

    log.info("> Found %d free ids. Start replace", result.free_slots)
    result.applied = executor.apply(result.planned)
    result.status = STATUS_COMPACTED
    return result


__all__ = [
    "STATUS_COMPACTED",
    "STATUS_DENSE",
    "STATUS_EMPTY",
    "STATUS_PLANNED",
    "MappingEntry",
    "PassResult",
    "ReassignmentExecutor",
    "find_free_slots",
    "plan_reassignments",
    "read_ids",
    "run_pass",
    "scan_inventory",
    "select_pre_seed",
]
