"""Tests for snapshot undo/redo."""

import pytest

from floorsurvey.builders import build_polygon_from_points
from floorsurvey.config import HISTORY_DEPTH
from floorsurvey.editing import rename_polygon
from floorsurvey.floorplan import FloorPlan
from floorsurvey.history import History, Snapshot
from floorsurvey.models import Point


def _plan(name="Room"):
    poly = build_polygon_from_points([Point(0, 0), Point(100, 0), Point(0, 100)], "r", name=name)
    return FloorPlan([poly])


class TestHistory:
    def test_undo_restores_previous(self):
        history = History()
        before = Snapshot(_plan(), ("r",))
        history.push(before)
        after = Snapshot(rename_polygon(before.plan, "r", "Kitchen").plan)

        restored = history.undo(after)
        assert restored is before
        assert restored.plan.polygon("r").name == "Room"
        assert restored.selection == ("r",)
        assert history.can_redo

    def test_redo_reapplies(self):
        history = History()
        before = Snapshot(_plan())
        after = Snapshot(_plan("Kitchen"))
        history.push(before)
        history.undo(after)
        assert history.redo(before) is after
        assert history.can_undo
        assert not history.can_redo

    def test_push_clears_redo(self):
        history = History()
        history.push(Snapshot(_plan()))
        history.undo(Snapshot(_plan("B")))
        history.push(Snapshot(_plan("C")))
        assert not history.can_redo

    def test_empty_stacks_return_none(self):
        history = History()
        current = Snapshot(_plan())
        assert history.undo(current) is None
        assert history.redo(current) is None
        assert len(history) == 0

    def test_depth_is_bounded(self):
        history = History()
        plan = _plan()
        for _ in range(HISTORY_DEPTH + 10):
            history.push(Snapshot(plan))
        assert len(history) == HISTORY_DEPTH

    def test_clear(self):
        history = History(depth=3)
        history.push(Snapshot(_plan()))
        history.clear()
        assert not history.can_undo

    def test_invalid_depth(self):
        with pytest.raises(ValueError):
            History(depth=0)
