"""Tests for the selection model (drag, programmatic selection, clamp, lock)."""

from tileforge.layers import Rect
from tileforge.selection import SelectionModel


def test_empty_selection_defaults():
    selection = SelectionModel(10, 8)

    assert not selection.is_active
    assert selection.rect is None
    assert selection.top_left == (0, 0)
    assert (selection.width, selection.height) == (0, 0)


def test_drag_in_any_direction_normalises_rect():
    selection = SelectionModel(10, 8)

    assert selection.begin_drag(5, 5)
    selection.update_drag(2, 3)
    result = selection.end_drag()

    assert result == Rect(x=2, y=3, width=4, height=3)
    assert selection.top_left == (2, 3)
    assert not selection.dragging


def test_drag_end_is_clamped_to_grid():
    selection = SelectionModel(10, 8)
    selection.begin_drag(4, 4)
    selection.update_drag(-5, 100)

    assert selection.end == (0, 7)


def test_drag_refused_off_grid_or_when_locked():
    selection = SelectionModel(10, 8)

    assert not selection.begin_drag(10, 0)
    selection.lock()
    assert not selection.begin_drag(1, 1)
    selection.unlock()
    assert selection.begin_drag(1, 1)


def test_active_layer_clamp_confines_drag():
    selection = SelectionModel(10, 8)
    selection.set_active_layer_bounds(Rect(x=2, y=2, width=3, height=3))

    assert not selection.begin_drag(0, 0)
    assert selection.begin_drag(3, 3)
    selection.update_drag(9, 9)
    assert selection.end == (4, 4)

    selection.set_active_layer_bounds(None)
    selection.update_drag(9, 7)
    assert selection.end == (9, 7)


def test_set_rect_validates_corners(capsys):
    selection = SelectionModel(10, 8)

    assert selection.set_rect(1, 2, 3, 4)
    assert selection.rect == Rect(x=1, y=2, width=3, height=4)

    assert not selection.set_rect(8, 0, 3, 1)
    assert not selection.set_rect(0, 0, 0, 1)
    assert "Invalid selection coordinates" in capsys.readouterr().out
    # A rejected request leaves the previous selection alone
    assert selection.rect == Rect(x=1, y=2, width=3, height=4)


def test_clear_resets_selection():
    selection = SelectionModel(10, 8)
    selection.set_rect(0, 0, 2, 2)
    selection.clear()

    assert not selection.is_active
