"""Tests for dbcleaner.compact.plan — reassignment planning."""

from __future__ import annotations

import pytest

from dbcleaner.compact.plan import MappingEntry, plan_reassignments, select_pre_seed
from dbcleaner.compact.scan import find_free_slots
from dbcleaner.errors import NoFragmentationError


def _pairs(mapping: list[MappingEntry]) -> list[tuple[int, int]]:
    return [(e.from_id, e.to_id) for e in mapping]


def _plan(inventory: list[int], **kwargs) -> list[MappingEntry]:
    return plan_reassignments(inventory, find_free_slots(inventory), **kwargs)


def _apply(inventory: list[int], mapping: list[MappingEntry]) -> list[int]:
    moved = {e.from_id: e.to_id for e in mapping}
    return sorted(moved.get(i, i) for i in inventory)


class TestPlanReassignments:
    def test_highest_ids_take_lowest_slots(self) -> None:
        assert _pairs(_plan([1, 2, 4, 7])) == [(7, 3), (4, 5), (2, 6)]

    def test_stops_when_slots_exhausted(self) -> None:
        mapping = _plan([1, 2, 4, 7])
        assert 1 not in {e.from_id for e in mapping}

    def test_single_gap(self) -> None:
        assert _pairs(_plan([1, 2, 3, 5])) == [(5, 4)]

    def test_top_ids_fill_leading_gap(self) -> None:
        assert _pairs(_plan([1, 5, 6, 7, 8])) == [(8, 2), (7, 3), (6, 4)]

    def test_literal_pairing_can_move_small_ids_up(self) -> None:
        assert _pairs(_plan([1, 100, 101, 102]))[-1] == (1, 5)

    def test_no_free_slots_gives_empty_mapping(self) -> None:
        assert plan_reassignments([1, 2, 3], []) == []

    def test_accepts_unsorted_input(self) -> None:
        assert _pairs(plan_reassignments([7, 1, 4, 2], [6, 3, 5])) == [(7, 3), (4, 5), (2, 6)]

    def test_untouched_ids_are_not_in_mapping(self) -> None:
        mapping = _plan([1, 2, 3, 4, 5, 9, 10])
        assert _pairs(mapping) == [(10, 6), (9, 7), (5, 8)]
        assert {1, 2, 3, 4}.isdisjoint({e.from_id for e in mapping})

    def test_pure_function_does_not_mutate_inputs(self) -> None:
        inventory = [1, 2, 4, 7]
        slots = [3, 5, 6]
        plan_reassignments(inventory, slots)
        assert inventory == [1, 2, 4, 7]
        assert slots == [3, 5, 6]


class TestPlanInvariants:
    @pytest.mark.parametrize(
        "inventory",
        [
            [1, 2, 4, 7],
            [5],
            [2, 3, 50],
            [1, 3, 5, 7, 9, 11, 13],
            [10, 20, 30, 40],
            list(range(1, 200, 3)),
        ],
    )
    @pytest.mark.parametrize("stop_at_crossover", [False, True])
    def test_bijection_and_bounded_size(self, inventory: list[int], stop_at_crossover: bool) -> None:
        free = find_free_slots(inventory)
        mapping = plan_reassignments(inventory, free, stop_at_crossover=stop_at_crossover)

        froms = [e.from_id for e in mapping]
        tos = [e.to_id for e in mapping]
        assert len(set(froms)) == len(froms)
        assert len(set(tos)) == len(tos)
        assert not set(tos) & set(inventory)
        assert set(froms) <= set(inventory)

        if stop_at_crossover:
            eligible = sum(1 for i, s in zip(sorted(inventory, reverse=True), free) if s < i)
        else:
            eligible = len(inventory)
        assert len(mapping) == min(eligible, len(free))

    def test_dense_space_has_no_free_slots(self) -> None:
        with pytest.raises(NoFragmentationError):
            find_free_slots(list(range(1, 11)))


class TestStopAtCrossover:
    def test_never_moves_upward(self) -> None:
        assert _pairs(_plan([1, 2, 4, 7], stop_at_crossover=True)) == [(7, 3)]

    def test_same_as_default_when_all_moves_are_downward(self) -> None:
        inventory = [1, 5, 6, 7, 8]
        assert _plan(inventory, stop_at_crossover=True) == _plan(inventory)

    @pytest.mark.parametrize(
        "inventory",
        [[1, 2, 4, 7], [2, 3, 50], [1, 3, 5, 7, 9, 11, 13], list(range(1, 200, 3))],
    )
    def test_replanning_after_apply_is_empty(self, inventory: list[int]) -> None:
        compacted = _apply(inventory, _plan(inventory, stop_at_crossover=True))
        assert compacted == list(range(1, len(inventory) + 1))
        with pytest.raises(NoFragmentationError):
            find_free_slots(compacted)


class TestSelectPreSeed:
    def test_applicable_entry_kept(self) -> None:
        entries = [MappingEntry(1, 3631)]
        assert select_pre_seed([1, 5], entries) == entries

    def test_missing_source_skipped(self) -> None:
        assert select_pre_seed([2, 5], [MappingEntry(1, 3631)]) == []

    def test_taken_target_skipped(self) -> None:
        assert select_pre_seed([1, 3631], [MappingEntry(1, 3631)]) == []

    def test_chained_entries_see_earlier_moves(self) -> None:
        entries = [MappingEntry(1, 2), MappingEntry(9, 1)]
        assert select_pre_seed([1, 9], entries) == entries

    def test_skip_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING"):
            select_pre_seed([1], [MappingEntry(7, 2)])
        assert "7 is not in use" in caplog.text
