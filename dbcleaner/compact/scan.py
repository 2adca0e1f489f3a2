"""Inventory scan and free-slot calculation."""

from __future__ import annotations

import logging
import sqlite3
from typing import Sequence

from dbcleaner.db import CleanerDB
from dbcleaner.errors import (
    DuplicateIdentifierError,
    EmptyInventoryError,
    InventoryQueryError,
    NoFragmentationError,
)
from dbcleaner.registry import OwnerTable

log = logging.getLogger(__name__)


def read_ids(db: CleanerDB, owner: OwnerTable) -> list:
    """Read the owning column as stored, ascending.

    Raises
    ------
    InventoryQueryError
        If the query fails (missing table or column, unreadable file).
    DuplicateIdentifierError
        If a value appears on more than one row.
    """
    try:
        raw = db.fetch_ids(owner)
    except sqlite3.Error as exc:
        log.error("> Cannot read `%s`.`%s`: %s", owner.table, owner.column, exc)
        raise InventoryQueryError(owner.table, owner.column, exc) from exc

    # Ascending order puts equal values next to each other
    duplicates = sorted({a for a, b in zip(raw, raw[1:]) if a is not None and a == b})
    if duplicates:
        raise DuplicateIdentifierError(owner.table, owner.column, duplicates)
    return raw


def scan_inventory(db: CleanerDB, owner: OwnerTable) -> list[int]:
    """Read every identifier in use by *owner*, ascending.

    NULL and non-positive values are outside the compactable range and are
    dropped with a warning.

    Raises
    ------
    EmptyInventoryError
        If the owning table has no usable rows.
    InventoryQueryError, DuplicateIdentifierError
        See :func:`read_ids`.
    """
    raw = read_ids(db, owner)
    inventory = [ident for ident in raw if ident is not None and ident > 0]
    if len(inventory) != len(raw):
        log.warning(
            "> Ignoring %d NULL or non-positive %s values in `%s`",
            len(raw) - len(inventory), owner.column, owner.table,
        )
    if not inventory:
        raise EmptyInventoryError(owner.table)
    return inventory


def find_free_slots(inventory: Sequence[int]) -> list[int]:
    """Return every unused identifier in ``[1, max_used - 1]``, ascending.

    *inventory* must be ascending; its last element is ``max_used``.
    Identifiers above ``max_used`` are never considered.

    Raises
    ------
    NoFragmentationError
        If no identifier below ``max_used`` is free.
    """
    max_used = inventory[-1]
    used = set(inventory)
    free = [slot for slot in range(1, max_used) if slot not in used]
    if not free:
        raise NoFragmentationError(max_used)
    return free
