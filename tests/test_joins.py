"""Tests for alignment, connectivity and the join orchestrator."""

import math
import random
from dataclasses import replace

import pytest

from floorsurvey.algorithms import (
    connected_components,
    connected_group,
    link_adjacency,
    recalculate_groups,
)
from floorsurvey.alignment import (
    compute_transform,
    edge_midpoint,
    outward_normal,
    projected_offset,
)
from floorsurvey.diagnostics import group_consistency_errors
from floorsurvey.floorplan import FloorPlan
from floorsurvey.geometry import distance, edge_endpoints, rotate_polygon
from floorsurvey.joins import (
    JoinError,
    JoinStatus,
    apply_join,
    join_in_place,
    request_join,
    resolve_conflict,
    unlink,
    update_offset,
    update_thickness,
)
from floorsurvey.models import DIAGONAL, Edge, Polygon, Vertex


def _square(pid, x0=0.0, y0=0.0, size=200.0, locked=True, clockwise=False):
    """Axis-aligned square.

    Counter-clockwise edges: e0 bottom, e1 right, e2 top, e3 left.
    Clockwise edges: e0 left, e1 top, e2 right, e3 bottom.
    """
    corners = [(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)]
    if clockwise:
        corners = [corners[0], corners[3], corners[2], corners[1]]
    vertices = [
        Vertex(f"{pid}-v{i}", x, y, label=chr(65 + i), solved=locked)
        for i, (x, y) in enumerate(corners)
    ]
    side = size / 100.0
    edges = [
        Edge(f"{pid}-e{i}", (vertices[i].id, vertices[(i + 1) % 4].id), side)
        for i in range(4)
    ]
    edges.append(Edge(f"{pid}-d0", (vertices[0].id, vertices[2].id), math.hypot(side, side),
                      kind=DIAGONAL))
    return Polygon(pid, pid.upper(), vertices, edges, is_locked=locked,
                   area=side * side if locked else None)


def _pair(**kwargs):
    return FloorPlan([_square("a"), _square("b", 400.0, 0.0, **kwargs)])


def _assert_point(p, x, y, tol=1e-9):
    assert abs(p.x - x) < tol and abs(p.y - y) < tol, (p, x, y)


def _assert_group_invariant(plan: FloorPlan):
    seen_groups = set()
    for component in connected_components(plan):
        groups = {plan.polygon(pid).group_id for pid in component}
        if len(component) == 1:
            assert groups == {None}
            continue
        assert len(groups) == 1 and None not in groups
        group = groups.pop()
        assert group not in seen_groups
        seen_groups.add(group)


# ═══════════════════════════════════════════════════════════════════
# Alignment
# ═══════════════════════════════════════════════════════════════════

class TestOutwardNormal:
    def test_counter_clockwise(self):
        sq = _square("a")
        nx, ny = outward_normal(sq, "a-e1")
        assert nx == pytest.approx(1.0)
        assert ny == pytest.approx(0.0, abs=1e-12)

    def test_clockwise(self):
        sq = _square("a", clockwise=True)
        nx, ny = outward_normal(sq, "a-e2")
        assert nx == pytest.approx(1.0)
        assert ny == pytest.approx(0.0, abs=1e-12)
        nx, ny = outward_normal(sq, "a-e0")
        assert nx == pytest.approx(-1.0)


class TestComputeTransform:
    def test_facing_edges_need_no_rotation(self):
        t = compute_transform(_square("b", 400.0), "b-e3", _square("a"), "a-e1")
        assert math.cos(t.rotation) == pytest.approx(1.0)
        assert t.dx == pytest.approx(-200.0)
        assert t.dy == pytest.approx(0.0, abs=1e-9)

    def test_gap_and_slide(self):
        t = compute_transform(_square("b", 400.0), "b-e3", _square("a"), "a-e1",
                              slide_offset=0.5, gap=0.1)
        _assert_point(t.apply_to_point(edge_midpoint(_square("b", 400.0), "b-e3")), 210.0, 150.0)

    def test_projected_offset(self):
        a = _square("a")
        b = _square("b", 400.0, 50.0)
        offset = projected_offset(edge_endpoints(b, "b-e3"), edge_endpoints(a, "a-e1"))
        assert offset == pytest.approx(0.5)

    def test_projected_offset_degenerate_target(self):
        v = Vertex("x", 10, 10)
        assert projected_offset((v, v), (v, v)) == 0.0


# ═══════════════════════════════════════════════════════════════════
# Connectivity
# ═══════════════════════════════════════════════════════════════════

class TestConnectivity:
    def _chain(self):
        plan = FloorPlan([_square("a"), _square("b", 400.0), _square("c", 800.0)])
        plan = request_join(plan, "b-e3", "a-e1").plan
        return request_join(plan, "c-e3", "b-e1").plan

    def test_link_adjacency(self):
        adj = link_adjacency(self._chain())
        assert adj == {"a": ["b"], "b": ["a", "c"], "c": ["b"]}

    def test_connected_group(self):
        plan = self._chain()
        assert connected_group("a", plan) == {"a", "b", "c"}
        assert connected_group("c", plan, exclude="b") == {"c"}
        assert connected_group("b", plan, exclude="a") == {"b", "c"}

    def test_components(self):
        plan = self._chain().add_polygon(_square("d", 0.0, 900.0))
        comps = connected_components(plan)
        assert {"a", "b", "c"} in comps
        assert {"d"} in comps

    def test_recalculate_clears_singletons(self):
        plan = FloorPlan([replace(_square("a"), group_id="stale")])
        assert recalculate_groups(plan).polygon("a").group_id is None

    def test_recalculate_splits_after_link_removal(self):
        plan = self._chain()
        b = plan.polygon("b").with_edge("b-e1", linked_edge_id=None)
        c = plan.polygon("c").with_edge("c-e3", linked_edge_id=None)
        split = recalculate_groups(plan.with_polygons([b, c]))
        assert split.polygon("a").group_id == split.polygon("b").group_id
        assert split.polygon("a").group_id is not None
        assert split.polygon("c").group_id is None
        _assert_group_invariant(split)


# ═══════════════════════════════════════════════════════════════════
# Joins
# ═══════════════════════════════════════════════════════════════════

class TestRequestJoin:
    def test_square_scenario(self):
        result = request_join(_pair(), "b-e3", "a-e1")
        assert result.status is JoinStatus.APPLIED
        plan = result.plan
        a, b = plan.polygon("a"), plan.polygon("b")

        _assert_point(edge_midpoint(b, "b-e3"), 210.0, 100.0)
        _assert_point(b.centroid, 310.0, 100.0)
        assert [v.point for v in a.vertices] == [v.point for v in _square("a").vertices]

        assert a.edge("a-e1").linked_edge_id == "b-e3"
        assert b.edge("b-e3").linked_edge_id == "a-e1"
        assert b.edge("b-e3").alignment_offset == 0.0
        assert a.edge("a-e1").alignment_offset is None
        assert a.edge("a-e1").thickness == b.edge("b-e3").thickness == 10.0
        assert a.group_id is not None and a.group_id == b.group_id
        assert plan.validate() == []

    @pytest.mark.parametrize("a_cw", [False, True])
    @pytest.mark.parametrize("b_cw", [False, True])
    def test_winding_invariance(self, a_cw, b_cw):
        plan = FloorPlan([_square("a", clockwise=a_cw), _square("b", 400.0, clockwise=b_cw)])
        target = "a-e2" if a_cw else "a-e1"
        source = "b-e0" if b_cw else "b-e3"
        b = request_join(plan, source, target).plan.polygon("b")
        _assert_point(edge_midpoint(b, source), 210.0, 100.0)
        _assert_point(b.centroid, 310.0, 100.0)

    def test_rotated_source_is_turned_to_face_target(self):
        b = rotate_polygon(_square("b", 400.0), math.pi / 2)
        plan = FloorPlan([_square("a"), b])
        joined = request_join(plan, "b-e3", "a-e1").plan.polygon("b")
        _assert_point(edge_midpoint(joined, "b-e3"), 210.0, 100.0)
        nx, ny = outward_normal(joined, "b-e3")
        assert nx == pytest.approx(-1.0)
        assert ny == pytest.approx(0.0, abs=1e-9)
        for e in joined.perimeter_edges():
            p, q = edge_endpoints(joined, e.id)
            assert distance(p, q) == pytest.approx(200.0)

    def test_slide_offset(self):
        b = request_join(_pair(), "b-e3", "a-e1", slide_offset=0.5).plan.polygon("b")
        _assert_point(edge_midpoint(b, "b-e3"), 210.0, 150.0)
        assert b.edge("b-e3").alignment_offset == 0.5

    def test_source_group_peers_follow(self):
        plan = FloorPlan([_square("a"), _square("b", 400.0), _square("c", -600.0)])
        plan = request_join(plan, "b-e3", "a-e1").plan
        plan = request_join(plan, "a-e3", "c-e1").plan
        a, b, c = (plan.polygon(pid) for pid in "abc")
        _assert_point(edge_midpoint(a, "a-e3"), -390.0, 100.0)
        gap = distance(edge_midpoint(b, "b-e3"), edge_midpoint(a, "a-e1"))
        assert gap == pytest.approx(10.0)
        assert a.group_id == b.group_id == c.group_id
        _assert_group_invariant(plan)

    def test_target_group_is_absorbed(self):
        plan = FloorPlan([_square("a"), _square("b", 400.0), _square("c", 0.0, 600.0),
                          _square("d", 400.0, 600.0)])
        plan = request_join(plan, "b-e3", "a-e1").plan
        plan = request_join(plan, "d-e3", "c-e1").plan
        assert plan.polygon("a").group_id != plan.polygon("c").group_id
        plan = request_join(plan, "c-e0", "a-e2").plan
        groups = {p.group_id for p in plan}
        assert len(groups) == 1
        assert group_consistency_errors(plan) == []

    def test_target_never_moves(self):
        before = _pair()
        after = request_join(before, "b-e3", "a-e1").plan
        assert [v.point for v in after.polygon("a").vertices] == \
            [v.point for v in before.polygon("a").vertices]


class TestJoinRejections:
    def test_self_join(self):
        plan = _pair()
        result = request_join(plan, "a-e0", "a-e1")
        assert result.status is JoinStatus.REJECTED
        assert result.error is JoinError.SELF_JOIN
        assert result.plan is plan

    def test_unlocked_source(self):
        plan = FloorPlan([_square("a"), _square("b", 400.0, locked=False)])
        result = request_join(plan, "b-e3", "a-e1")
        assert result.error is JoinError.SOURCE_UNLOCKED
        assert result.plan is plan

    def test_unlocked_target(self):
        plan = FloorPlan([_square("a", locked=False), _square("b", 400.0)])
        result = request_join(plan, "b-e3", "a-e1")
        assert result.error is JoinError.TARGET_UNLOCKED

    def test_already_linked(self):
        plan = request_join(_pair(), "b-e3", "a-e1").plan
        result = request_join(plan, "b-e0", "a-e2")
        assert result.error is JoinError.ALREADY_LINKED
        result = request_join(plan, "a-e2", "b-e0")
        assert result.error is JoinError.ALREADY_LINKED
        assert result.plan is plan

    def test_linked_edge_cannot_join_a_third_polygon(self):
        plan = FloorPlan([_square("a"), _square("b", 400.0), _square("c", 0.0, 600.0)])
        plan = request_join(plan, "a-e1", "b-e3").plan
        for source, target in (("a-e1", "c-e0"), ("c-e0", "b-e3")):
            result = request_join(plan, source, target)
            assert result.status is JoinStatus.REJECTED
            assert result.error is JoinError.ALREADY_LINKED
            assert result.plan is plan
        assert plan.validate() == []

        plan = unlink(plan, "a-e1").plan
        assert [p.group_id for p in plan] == [None, None, None]
        assert plan.validate() == []

    def test_apply_join_checks_existing_links(self):
        plan = FloorPlan([_square("a"), _square("b", 400.0), _square("c", 0.0, 600.0)])
        plan = request_join(plan, "a-e1", "b-e3").plan
        result = apply_join(plan, "a-e1", "c-e0", 10.0)
        assert result.error is JoinError.ALREADY_LINKED
        assert result.plan is plan

    def test_resolving_a_stale_conflict_is_rejected(self):
        plan = FloorPlan([_square("a"), _square("b", 400.0), _square("c", 0.0, 600.0)])
        plan = plan.with_polygons([plan.polygon("c").with_edge("c-e0", thickness=20.0)])
        conflict = request_join(plan, "a-e1", "c-e0").conflict
        assert conflict is not None
        plan = request_join(plan, "a-e1", "b-e3").plan
        result = resolve_conflict(plan, conflict, 20.0)
        assert result.error is JoinError.ALREADY_LINKED
        assert plan.validate() == []

    def test_unknown_edge_raises(self):
        with pytest.raises(KeyError):
            request_join(_pair(), "nope", "a-e1")

    def test_non_positive_thickness_raises(self):
        with pytest.raises(ValueError):
            apply_join(_pair(), "b-e3", "a-e1", 0.0)


class TestThicknessConflict:
    def _conflicting(self):
        plan = _pair()
        a = plan.polygon("a").with_edge("a-e1", thickness=20.0)
        return plan.with_polygons([a])

    def test_conflict_leaves_plan_untouched(self):
        plan = self._conflicting()
        result = request_join(plan, "b-e3", "a-e1", slide_offset=0.25)
        assert result.status is JoinStatus.CONFLICT
        assert result.error is JoinError.THICKNESS_CONFLICT
        assert result.plan is plan
        assert result.conflict.source_thickness == 10.0
        assert result.conflict.target_thickness == 20.0
        assert result.conflict.slide_offset == 0.25
        assert not plan.polygon("b").linked_edges()

    def test_resolve_applies_chosen_thickness(self):
        plan = self._conflicting()
        conflict = request_join(plan, "b-e3", "a-e1").conflict
        result = resolve_conflict(plan, conflict, 20.0)
        assert result.applied
        a, b = result.plan.polygon("a"), result.plan.polygon("b")
        _assert_point(edge_midpoint(b, "b-e3"), 220.0, 100.0)
        assert a.edge("a-e1").thickness == b.edge("b-e3").thickness == 20.0

    def test_missing_thickness_defaults_to_ten(self):
        plan = _pair()
        b = plan.polygon("b").with_edge("b-e3", thickness=10.0)
        result = request_join(plan.with_polygons([b]), "b-e3", "a-e1")
        assert result.applied


class TestJoinInPlace:
    def test_keeps_current_slide(self):
        plan = FloorPlan([_square("a"), _square("b", 400.0, 50.0)])
        result = join_in_place(plan, "b-e3", "a-e1")
        b = result.plan.polygon("b")
        _assert_point(edge_midpoint(b, "b-e3"), 210.0, 150.0)
        assert b.edge("b-e3").alignment_offset == pytest.approx(0.5)


class TestLinkMaintenance:
    def test_unlink_round_trip(self):
        joined = request_join(_pair(), "b-e3", "a-e1").plan
        result = unlink(joined, "a-e1")
        assert result.applied
        plan = result.plan
        a, b = plan.polygon("a"), plan.polygon("b")
        assert a.edge("a-e1").linked_edge_id is None
        assert b.edge("b-e3").linked_edge_id is None
        assert b.edge("b-e3").alignment_offset is None
        assert a.group_id is None and b.group_id is None
        assert b.vertices == joined.polygon("b").vertices
        assert plan.validate() == []

    def test_unlink_unlinked_edge(self):
        plan = _pair()
        result = unlink(plan, "a-e1")
        assert result.status is JoinStatus.REJECTED
        assert result.error is JoinError.NOT_LINKED
        assert result.plan is plan

    def test_update_offset_moves_source_side_only(self):
        plan = FloorPlan([_square("a"), _square("b", 400.0), _square("c", 800.0)])
        plan = request_join(plan, "b-e3", "a-e1").plan
        plan = request_join(plan, "c-e3", "b-e1").plan
        result = update_offset(plan, "b-e3", 0.5)
        a, b, c = (result.plan.polygon(pid) for pid in "abc")
        assert a.vertices == plan.polygon("a").vertices
        _assert_point(edge_midpoint(b, "b-e3"), 210.0, 150.0)
        assert b.edge("b-e3").alignment_offset == 0.5
        gap = distance(edge_midpoint(c, "c-e3"), edge_midpoint(b, "b-e1"))
        assert gap == pytest.approx(10.0)

    def test_update_offset_on_unlinked_edge(self):
        result = update_offset(_pair(), "b-e3", 1.0)
        assert result.error is JoinError.NOT_LINKED

    def test_update_thickness_linked(self):
        plan = request_join(_pair(), "b-e3", "a-e1", slide_offset=0.5).plan
        result = update_thickness(plan, "b-e3", 30.0)
        a, b = result.plan.polygon("a"), result.plan.polygon("b")
        _assert_point(edge_midpoint(b, "b-e3"), 230.0, 150.0)
        assert a.edge("a-e1").thickness == 30.0
        assert b.edge("b-e3").thickness == 30.0
        assert a.vertices == plan.polygon("a").vertices

    def test_update_thickness_unlinked(self):
        plan = _pair()
        result = update_thickness(plan, "a-e0", 25.0)
        assert result.plan.polygon("a").edge("a-e0").thickness == 25.0
        assert result.plan.polygon("a").vertices == plan.polygon("a").vertices

    def test_update_thickness_rejects_non_positive(self):
        with pytest.raises(ValueError):
            update_thickness(_pair(), "a-e0", -1.0)


class TestGroupInvariantFuzz:
    @pytest.mark.parametrize("seed", range(5))
    def test_random_joins_and_unlinks(self, seed):
        rng = random.Random(seed)
        plan = FloorPlan(
            [_square(f"p{i}", 1000.0 * (i % 3), 1000.0 * (i // 3)) for i in range(6)]
        )
        for _ in range(40):
            linked = [e.id for p in plan for e in p.linked_edges()]
            if linked and rng.random() < 0.3:
                plan = unlink(plan, rng.choice(linked)).plan
            else:
                src, tgt = rng.sample(list(plan.polygons), 2)
                free_src = [e.id for e in plan.polygon(src).perimeter_edges()
                            if e.linked_edge_id is None]
                free_tgt = [e.id for e in plan.polygon(tgt).perimeter_edges()
                            if e.linked_edge_id is None]
                if not free_src or not free_tgt:
                    continue
                result = request_join(plan, rng.choice(free_src), rng.choice(free_tgt))
                assert result.status is not JoinStatus.CONFLICT
                plan = result.plan
            _assert_group_invariant(plan)
            assert plan.validate() == []
            assert group_consistency_errors(plan) == []
