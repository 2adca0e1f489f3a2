"""Reassignment planning: pair the highest used ids with the lowest free slots.

Both functions here are pure. They never touch the database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappingEntry:
    """Move identifier ``from_id`` to the free slot ``to_id``."""

    from_id: int
    to_id: int

    def __str__(self) -> str:
        return f"{self.from_id} -> {self.to_id}"


def plan_reassignments(
    inventory: Sequence[int],
    free_slots: Sequence[int],
    stop_at_crossover: bool = False,
) -> list[MappingEntry]:
    """Build the old -> new mapping for one pass.

    Used identifiers are visited from the highest down; each takes the
    smallest free slot still available. Planning stops when the free slots
    run out, which is a valid partial compaction.

    With *stop_at_crossover* planning also stops at the first identifier
    that is not above the smallest remaining slot, so every move is
    downward and re-planning over the result yields nothing.

    Parameters
    ----------
    inventory:
        Identifiers currently in use, any order.
    free_slots:
        Unused identifiers below the highest used one, any order.
    """
    slots = sorted(free_slots)
    cursor = 0
    mapping: list[MappingEntry] = []
    for ident in sorted(inventory, reverse=True):
        if cursor >= len(slots):
            break
        slot = slots[cursor]
        if stop_at_crossover and slot >= ident:
            break
        mapping.append(MappingEntry(from_id=ident, to_id=slot))
        cursor += 1
    return mapping


def select_pre_seed(
    inventory: Iterable[int],
    entries: Iterable[MappingEntry],
) -> list[MappingEntry]:
    """Keep the configured pre-seed remaps that still apply.

    An entry applies when its ``from_id`` is in use and its ``to_id`` is
    free, taking earlier accepted entries into account. Entries that no
    longer apply (typically because a previous run already moved them)
    are skipped with a warning.
    """
    used = set(inventory)
    selected: list[MappingEntry] = []
    for entry in entries:
        if entry.from_id not in used:
            log.warning("> Pre-seed %s skipped: %d is not in use", entry, entry.from_id)
            continue
        if entry.to_id in used:
            log.warning("> Pre-seed %s skipped: %d is already taken", entry, entry.to_id)
            continue
        used.discard(entry.from_id)
        used.add(entry.to_id)
        selected.append(entry)
    return selected
