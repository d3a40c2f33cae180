from __future__ import annotations

import logging

import pytest
from conftest import task

from fractalmap.tree import Direction, Emphasis, TreeState, TreeView


def _ids(state: TreeState) -> list[int]:
    return [styled.id for styled in state.visible_nodes]


def _edges(state: TreeState) -> list[tuple[int, int]]:
    return [(s.edge.source, s.edge.target) for s in state.visible_edges]


def _loaded(records) -> TreeState:
    state = TreeState()
    state.load_records(records)
    return state


def test_first_load_starts_fully_collapsed(sample_records) -> None:
    state = _loaded(sample_records)

    assert _ids(state) == [1]
    assert _edges(state) == []
    assert state.folded == {1, 2, 3, 4, 5, 6}
    assert state.focused_id == 1
    assert state.is_focused(1)


def test_small_scenario_progress_and_fold() -> None:
    state = _loaded([task(1), task(2, 1, done=True), task(3, 1)])

    assert state.progress_for(1) == 50.0
    assert state.progress_for(2) == 100.0
    assert state.progress_for(3) == 0.0
    assert state.progress_for(404) is None
    assert _ids(state) == [1]

    assert state.toggle_fold(1) is False
    assert _ids(state) == [1, 2, 3]
    assert state.toggle_fold(1) is True
    assert _ids(state) == [1]
    assert _edges(state) == []


def test_refresh_keeps_user_fold_choices(sample_records) -> None:
    state = _loaded(sample_records)
    state.toggle_fold(1)
    state.toggle_fold(2)

    state.load_records(sample_records + [task(7, 2), task(8, 3)])

    assert not state.is_folded(1)
    assert not state.is_folded(2)
    assert state.is_folded(3)
    assert not state.is_folded(7)
    assert _ids(state) == [1, 2, 3, 4, 5, 7]


def test_refresh_drops_deleted_ids_from_fold_set(sample_records) -> None:
    state = _loaded(sample_records)

    state.load_records([r for r in sample_records if r.id not in {2, 4, 5}])

    assert state.folded == {1, 3, 6}


def test_empty_first_load_seeds_on_next_load(sample_records) -> None:
    state = _loaded([])
    assert state.visible_nodes == ()
    assert state.folded == frozenset()

    state.load_records(sample_records)

    assert _ids(state) == [1]
    assert state.folded == {1, 2, 3, 4, 5, 6}


def test_refresh_after_expanding_everything_stays_expanded(sample_records) -> None:
    state = _loaded(sample_records)
    state.expand_all()

    state.load_records(sample_records + [task(7, 3)])

    assert state.folded == frozenset()
    assert _ids(state) == [1, 2, 3, 4, 5, 6, 7]


def test_expand_and_collapse_all(sample_records) -> None:
    state = _loaded(sample_records)

    state.expand_all()
    assert _ids(state) == [1, 2, 3, 4, 5, 6]

    state.collapse_all()
    assert _ids(state) == [1]


def test_hoist_and_unhoist(sample_records) -> None:
    state = _loaded(sample_records)
    state.expand_all()

    assert state.set_hoist(2)
    assert _ids(state) == [2, 4, 5]
    assert (1, 2) not in _edges(state)
    assert state.view.hoisted_id == 2

    assert state.set_hoist(None)
    assert _ids(state)[0] == 1


def test_hover_styles_without_changing_membership(sample_records) -> None:
    state = _loaded(sample_records)
    state.expand_all()
    before = _ids(state)

    state.set_hover(4)

    assert _ids(state) == before
    assert state.view.highlighted == {1, 2, 4}
    assert state.is_highlighted(2)
    dimmed = [s.id for s in state.visible_nodes if s.emphasis is Emphasis.DIMMED]
    assert dimmed == [3, 5, 6]

    state.set_hover(None)
    assert all(s.emphasis is Emphasis.NEUTRAL for s in state.visible_nodes)


def test_noop_inputs_do_not_republish(sample_records) -> None:
    state = _loaded(sample_records)
    generation = state.generation

    assert not state.set_hover(None)
    assert not state.set_hoist(None)
    assert not state.move_focus(Direction.UP)
    assert not state.set_focus(404)

    assert state.generation == generation


def test_focus_moves_into_folded_subtrees(sample_records) -> None:
    state = _loaded(sample_records)

    assert state.move_focus(Direction.DOWN)
    assert state.focused_id == 2
    assert state.move_focus("down")
    assert state.focused_id == 4
    assert _ids(state) == [1]
    assert state.view.focused_id == 4


def test_every_change_publishes_one_consistent_view(sample_records) -> None:
    state = TreeState()
    seen: list[TreeView] = []
    unsubscribe = state.subscribe(seen.append)

    state.load_records(sample_records)
    state.toggle_fold(1)
    state.set_hover(3)

    assert [view.generation for view in seen] == [1, 2, 3]
    for view in seen:
        visible = set(view.node_ids)
        assert all({s.edge.source, s.edge.target} <= visible for s in view.edges)
        assert set(view.positions) == visible

    unsubscribe()
    state.toggle_fold(2)
    assert len(seen) == 3
    assert state.generation == 4


def test_stale_load_is_discarded(sample_records) -> None:
    state = TreeState()
    older = state.begin_load()
    newer = state.begin_load()

    assert state.load_records(sample_records, token=newer)
    assert not state.load_records([task(1)], token=older)

    assert len(state.records) == 6
    assert state.generation == 1


def test_older_load_applies_when_newer_has_not_finished(sample_records) -> None:
    state = TreeState()
    older = state.begin_load()
    newer = state.begin_load()

    assert state.load_records([task(1)], token=older)
    assert state.load_records(sample_records, token=newer)
    assert len(state.records) == 6


def test_vanished_hoist_hover_and_focus_are_reset(sample_records) -> None:
    state = _loaded(sample_records)
    state.set_hoist(2)
    state.set_hover(5)
    state.set_focus(5)

    state.load_records([r for r in sample_records if r.id not in {2, 4, 5}])

    assert state.hoisted_id is None
    assert state.hovered_id is None
    assert state.focused_id == 1


def test_pending_toggle_is_overwritten_by_refresh() -> None:
    records = [task(1), task(2, 1)]
    state = _loaded(records)
    state.toggle_fold(1)

    assert state.mark_pending(2, True)
    pending = state.view.node(2).node
    assert pending.pending and pending.is_completed
    assert state.record(2).is_completed is False

    state.load_records([task(1), task(2, 1, done=True)])
    refreshed = state.view.node(2).node
    assert not refreshed.pending and refreshed.is_completed
    assert state.progress_for(1) == 100.0


def test_discard_pending_restores_record_state() -> None:
    state = _loaded([task(1), task(2, 1)])
    state.toggle_fold(1)
    assert not state.discard_pending()

    state.mark_pending(2, True)
    assert state.discard_pending()

    node = state.view.node(2).node
    assert not node.pending and not node.is_completed


def test_set_fold_is_idempotent(sample_records) -> None:
    state = _loaded(sample_records)

    assert not state.set_fold(1, True)
    assert state.set_fold(1, False)
    assert not state.set_fold(1, False)
    assert _ids(state) == [1, 2, 3]
    assert state.set_fold(1, True)
    assert _ids(state) == [1]


def test_pending_on_hidden_node_is_noop(sample_records) -> None:
    state = _loaded(sample_records)

    assert not state.mark_pending(4, False)


def test_integrity_warnings_are_logged_on_load(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="fractalmap")
    state = TreeState()

    state.load_records([task(1), task(2, 99)])

    assert "missing parent 99" in caplog.text
    assert [w.kind for w in state.view.warnings] == ["orphan"]
    assert _ids(state) == [1, 2]


def test_empty_state_outputs() -> None:
    state = TreeState()

    assert state.visible_nodes == ()
    assert state.visible_edges == ()
    assert state.focused_id is None
    assert not state.is_folded(1)
