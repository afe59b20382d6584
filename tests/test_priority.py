"""Tests for tile priority classification and overwrite arbitration."""

import itertools

import pytest

from tileforge.priority import TilePriority, can_overwrite, priority_of


@pytest.mark.parametrize(
    "tile_id, expected",
    [
        (-1, TilePriority.EMPTY),
        (0, TilePriority.GRASS),
        (2, TilePriority.GRASS),
        (4, TilePriority.FOREST),
        (30, TilePriority.FOREST),
        (94, TilePriority.DECOR),
        (131, TilePriority.DECOR),
        (40, TilePriority.PATH),
        (45, TilePriority.FENCE),
        (44, TilePriority.FENCE),
        (69, TilePriority.FENCE),
        (52, TilePriority.HOUSE),
        (80, TilePriority.HOUSE),
    ],
)
def test_priority_of_known_groups(tile_id, expected):
    assert priority_of(tile_id) == expected


def test_house_blocks_outrank_fence_and_decor_ids_inside_them():
    # 56/58 (fence sides) and 57 sit in the 48-67 block, 83 in the 72-91 block
    for tile_id in (56, 57, 58, 83):
        assert priority_of(tile_id) == TilePriority.HOUSE, tile_id

    assert not can_overwrite(45, 56)
    assert not can_overwrite(40, 57)


def test_unknown_ids_fall_back_to_grass():
    assert priority_of(9999) == TilePriority.GRASS
    assert priority_of(-2) == TilePriority.GRASS


def test_ties_go_to_the_newer_write():
    assert can_overwrite(45, 46)
    assert can_overwrite(0, 1)


def test_force_ignores_priority():
    assert not can_overwrite(0, 52)
    assert can_overwrite(0, 52, force=True)


def test_overwrite_is_monotonic_in_priority():
    sample = [-1, 0, 1, 4, 27, 57, 94, 40, 43, 44, 45, 69, 52, 66, 77]
    for a, b in itertools.permutations(sample, 2):
        if priority_of(a) > priority_of(b):
            assert can_overwrite(a, b), (a, b)
            assert not can_overwrite(b, a), (a, b)
