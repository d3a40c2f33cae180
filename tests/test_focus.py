from __future__ import annotations

import pytest
from conftest import task

from fractalmap.tree import Direction, FocusNavigator, build_forest
from fractalmap.tree.focus import focus_target


@pytest.fixture
def forest():
    # Children deliberately listed out of id order.
    return build_forest(
        [task(1), task(4, 1), task(2, 1), task(3, 1), task(5, 2), task(6, 2), task(9)]
    )


def test_unset_focus_starts_at_first_root(forest) -> None:
    nav = FocusNavigator()

    assert nav.move(forest, Direction.DOWN)
    assert nav.focused_id == 1


def test_up_and_down(forest) -> None:
    nav = FocusNavigator(2)

    assert nav.move(forest, Direction.DOWN)
    assert nav.focused_id == 5
    assert not nav.move(forest, Direction.DOWN)
    assert nav.move(forest, Direction.UP)
    assert nav.focused_id == 2
    assert nav.move(forest, Direction.UP)
    assert nav.focused_id == 1
    assert not nav.move(forest, Direction.UP)
    assert nav.focused_id == 1


def test_down_picks_lowest_id_child(forest) -> None:
    assert focus_target(forest, 1, Direction.DOWN) == 2


def test_siblings_follow_id_order(forest) -> None:
    nav = FocusNavigator(2)

    assert nav.move(forest, "right")
    assert nav.focused_id == 3
    assert nav.move(forest, Direction.RIGHT)
    assert nav.focused_id == 4
    assert not nav.move(forest, Direction.RIGHT)
    assert nav.move(forest, Direction.LEFT)
    assert nav.focused_id == 3


def test_first_sibling_cannot_move_left(forest) -> None:
    nav = FocusNavigator(2)

    assert not nav.move(forest, Direction.LEFT)
    assert nav.focused_id == 2


def test_roots_are_siblings(forest) -> None:
    nav = FocusNavigator(1)

    assert nav.move(forest, Direction.RIGHT)
    assert nav.focused_id == 9


def test_up_then_down_lands_on_a_child_of_the_parent(forest) -> None:
    nav = FocusNavigator(3)

    nav.move(forest, Direction.UP)
    nav.move(forest, Direction.DOWN)

    assert forest.parent_of(nav.focused_id) == 1
    assert nav.focused_id == 2


def test_reconcile_resets_missing_focus(forest) -> None:
    nav = FocusNavigator(404)

    assert nav.reconcile(forest)
    assert nav.focused_id == 1
    assert not nav.reconcile(forest)


def test_move_on_empty_forest_is_noop() -> None:
    nav = FocusNavigator()

    assert not nav.move(build_forest([]), Direction.UP)
    assert nav.focused_id is None


def test_parse_rejects_unknown_direction() -> None:
    assert Direction.parse("UP") is Direction.UP
    with pytest.raises(ValueError, match="invalid direction"):
        Direction.parse("sideways")
