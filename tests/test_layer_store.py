"""Tests for LayerStore: reads, named-layer lifecycle, flatten and load."""

import random

import pytest

from tileforge.layers import (
    ROOT_NAME,
    DuplicateRegionError,
    LayerStore,
    LayerStoreCorruptionError,
    Rect,
    RegionNotFoundError,
)


def make_store(width: int = 10, height: int = 8) -> LayerStore:
    return LayerStore(width, height, base=[[0] * width for _ in range(height)])


def rect(x: int, y: int, w: int, h: int) -> Rect:
    return Rect(x=x, y=y, width=w, height=h)


def combined(store: LayerStore):
    return [[store.read_combined(x, y) for x in range(store.width)] for y in range(store.height)]


def test_random_base_uses_ground_tiles_only():
    store = LayerStore(15, 9, rng=random.Random(3))

    assert {tile for row in store.base for tile in row} <= {0, 1, 2}
    assert store.feature == [[-1] * 15 for _ in range(9)]


def test_read_combined_layers_and_off_grid():
    store = make_store()
    store.set_feature(3, 3, 40)

    assert store.read_combined(3, 3) == 40
    assert store.read_combined(4, 3) == 0
    assert store.read_combined(-1, 0) == -1
    assert store.read_combined(0, 8) == -1


def test_naming_a_selection_moves_feature_tiles_into_the_layer():
    store = make_store()
    store.set_feature(1, 1, 45)
    store.set_feature(6, 6, 40)

    yard = store.create_named_layer("yard", rect(0, 0, 4, 4))

    assert store.feature_at(1, 1) == -1
    assert yard.get(1, 1) == 45
    assert store.read_combined(1, 1) == 45
    # Outside the rectangle nothing moves
    assert store.feature_at(6, 6) == 40
    assert store.tree.parent_of("yard") == ROOT_NAME


def test_new_layer_is_parented_under_enclosing_region():
    store = make_store()
    store.create_named_layer("farm", rect(0, 0, 8, 6))
    store.create_named_layer("barn", rect(1, 1, 2, 2))

    assert store.tree.parent_of("barn") == "farm"


def test_create_rejects_duplicates_and_clips_to_grid():
    store = make_store()
    store.create_named_layer("yard", rect(0, 0, 4, 4))

    with pytest.raises(DuplicateRegionError):
        store.create_named_layer("yard", rect(5, 5, 2, 2))
    with pytest.raises(ValueError):
        store.create_named_layer("void", rect(20, 20, 2, 2))
    with pytest.raises(RegionNotFoundError):
        store.create_named_layer("pond", rect(5, 5, 2, 2), parent="nowhere")

    edge = store.create_named_layer("edge", rect(8, 6, 5, 5))
    assert edge.bounds == rect(8, 6, 2, 2)


def test_overlap_resolves_by_insertion_order_and_flatten_agrees():
    store = make_store()
    first = store.create_named_layer("first", rect(0, 0, 5, 5))
    second = store.create_named_layer("second", rect(3, 3, 5, 5))
    first.set(4, 4, 40)
    second.set(4, 4, 45)
    second.set(3, 3, 52)

    assert store.read_combined(4, 4) == 40
    # An empty cell in the first layer lets the second show through
    assert store.read_combined(3, 3) == 52
    assert store.flatten() == combined(store)


def test_rename_keeps_enumeration_position():
    store = make_store()
    store.create_named_layer("a", rect(0, 0, 2, 2))
    store.create_named_layer("b", rect(4, 4, 2, 2))

    store.rename_named_layer("a", "z")

    assert [layer.name for layer in store.named_layers()] == ["z", "b"]
    assert store.tree.find("z") is not None
    with pytest.raises(DuplicateRegionError):
        store.rename_named_layer("z", "b")
    with pytest.raises(RegionNotFoundError):
        store.rename_named_layer("missing", "c")


def _nested_store() -> LayerStore:
    store = make_store()
    parent = store.create_named_layer("parent", rect(0, 0, 6, 6))
    child = store.create_named_layer("child", rect(1, 1, 2, 2))
    parent.set(0, 0, 45)
    parent.set(1, 1, 40)
    child.set(2, 2, 52)
    return store


def test_non_cascading_delete_keeps_children_and_tiles():
    store = _nested_store()
    before = store.flatten()

    deleted = store.delete_named_layer("parent")

    assert deleted == ["parent"]
    assert store.get_layer("child") is not None
    assert store.tree.parent_of("child") == ROOT_NAME
    assert store.feature_at(0, 0) == 45
    # The child now claims the cell the parent used to render
    assert store.get_layer("child").get(1, 1) == 40
    assert store.flatten() == before


def test_cascading_delete_removes_subtree_and_keeps_tiles():
    store = _nested_store()
    before = store.flatten()

    deleted = store.delete_named_layer("parent", cascade=True)

    assert deleted == ["child", "parent"]
    assert store.named_layers() == []
    assert len(store.tree) == 0
    assert store.flatten() == before


def test_discarding_delete_drops_tiles():
    store = _nested_store()

    store.delete_named_layer("parent", cascade=True, discard_tiles=True)

    assert store.read_combined(0, 0) == 0
    assert store.read_combined(2, 2) == 0
    assert store.feature_at(0, 0) == -1


def test_delete_unknown_layer_raises():
    store = make_store()
    with pytest.raises(RegionNotFoundError):
        store.delete_named_layer("ghost")


def test_clear_cell_removes_every_overlay():
    store = _nested_store()
    store.clear_cell(1, 1)
    store.clear_cell(2, 2)

    assert store.read_combined(1, 1) == 0
    assert store.read_combined(2, 2) == 0


def test_flatten_refuses_corrupted_layer_before_writing():
    store = _nested_store()
    store.get_layer("child").tiles.pop()

    with pytest.raises(LayerStoreCorruptionError) as excinfo:
        store.flatten()
    assert excinfo.value.name == "child"
    assert excinfo.value.expected == (2, 2)


def test_flatten_returns_independent_copy():
    store = make_store()
    grid = store.flatten()
    grid[0][0] = 52

    assert store.read_combined(0, 0) == 0


def test_load_grid_splits_ground_and_features_and_resets_layers():
    store = _nested_store()
    grid = [[1] * 10 for _ in range(8)]
    grid[2][3] = 45
    grid[4][4] = -1

    store.load_grid(grid)

    assert store.named_layers() == []
    assert len(store.tree) == 0
    assert store.base_at(3, 2) == 0
    assert store.feature_at(3, 2) == 45
    assert store.base_at(5, 5) == 1
    assert store.read_combined(3, 2) == 45


def test_flatten_load_round_trip_preserves_combined_read():
    store = LayerStore(10, 8, rng=random.Random(11))
    store.set_feature(9, 7, 57)
    yard = store.create_named_layer("yard", rect(0, 0, 5, 5))
    yard.set(2, 2, 44)
    expected = combined(store)

    fresh = LayerStore(10, 8, rng=random.Random(99))
    fresh.load_grid(store.flatten())

    assert combined(fresh) == expected
