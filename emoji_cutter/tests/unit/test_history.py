"""Unit tests for the selection undo/redo log."""

import pytest
from emoji_cutter.domain.entities.region import RegionType, SelectionRegion
from emoji_cutter.domain.services.history import ActionType, SelectionHistory
from emoji_cutter.domain.value_objects.geometry import BoundingBox


def sel(name, x=0):
    return SelectionRegion(id=name, type=RegionType.RECTANGLE, bounding_box=BoundingBox(x, 0, 10, 10))


def ids(state):
    return [s.id for s in state]


class TestSelectionHistory:
    """Tests for cursor movement and truncation."""

    def test_empty(self):
        history = SelectionHistory()
        assert not history.can_undo
        assert not history.can_redo
        assert history.undo() is None
        assert history.redo() is None
        assert history.index == -1

    def test_undo_redo(self):
        history = SelectionHistory()
        history.push(ActionType.ADD, [], [sel("a")])
        history.push(ActionType.ADD, [sel("a")], [sel("a"), sel("b")])

        assert ids(history.undo()) == ["a"]
        assert ids(history.undo()) == []
        assert history.undo() is None
        assert ids(history.redo()) == ["a"]
        assert ids(history.redo()) == ["a", "b"]
        assert history.redo() is None

    def test_push_discards_redo_branch(self):
        history = SelectionHistory()
        history.push(ActionType.ADD, [], [sel("a")])
        history.push(ActionType.ADD, [sel("a")], [sel("a"), sel("b")])
        history.undo()
        history.push(ActionType.ADD, [sel("a")], [sel("a"), sel("c")])

        assert len(history) == 2
        assert not history.can_redo
        assert ids(history.undo()) == ["a"]

    def test_bounded(self):
        history = SelectionHistory(max_size=3)
        for i in range(5):
            history.push(ActionType.MODIFY, [sel("s", i)], [sel("s", i + 1)])

        assert len(history) == 3
        assert history.index == 2
        states = [history.undo()[0].bounding_box.x for _ in range(3)]
        assert states == [4, 3, 2]
        assert history.undo() is None

    def test_snapshots_are_detached(self):
        history = SelectionHistory()
        live = sel("a")
        history.push(ActionType.ADD, [], [live])
        live.is_selected = True

        assert history.actions[0].new_state[0].is_selected is False
        restored = history.undo()
        restored.append(sel("x"))
        assert len(history.actions[0].previous_state) == 0

    def test_action_records_type(self):
        history = SelectionHistory()
        action = history.push(ActionType.CLEAR, [sel("a")], [])
        assert action.type == ActionType.CLEAR
        assert action.timestamp > 0

    def test_clear(self):
        history = SelectionHistory()
        history.push(ActionType.ADD, [], [sel("a")])
        history.clear()
        assert len(history) == 0
        assert not history.can_undo

    @pytest.mark.parametrize("size", [0, -5])
    def test_invalid_size(self, size):
        with pytest.raises(ValueError):
            SelectionHistory(max_size=size)
