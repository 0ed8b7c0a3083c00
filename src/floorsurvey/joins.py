"""Joining solved polygons into rigid assemblies.

A join snaps a *source* polygon's edge against a *target* polygon's
edge, separated by the wall thickness, and records the link on both
edges.  The source polygon and the rest of its previous group move;
the target side never moves.

Each attempt follows::

    requested ─┬─ thickness match ─────────────────────────┬─ applied
               ├─ thickness conflict ── resolve_conflict ──┘
               └─ rejected

Every function is pure: it returns a :class:`JoinResult` carrying a new
:class:`~floorsurvey.floorplan.FloorPlan`.  Rejections and conflicts
return the input plan unchanged.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Optional

from .algorithms import connected_group, mint_group_id, recalculate_groups
from .alignment import align_polygon_to_edge, projected_offset
from .config import DEFAULT_SOLVER_CONFIG, SolverConfig
from .floorplan import FloorPlan
from .geometry import edge_endpoints, translate_polygon
from .models import Polygon

logger = logging.getLogger(__name__)


class JoinError(str, enum.Enum):
    SELF_JOIN = "self_join"
    SOURCE_UNLOCKED = "source_unlocked"
    TARGET_UNLOCKED = "target_unlocked"
    ALREADY_LINKED = "already_linked"
    THICKNESS_CONFLICT = "thickness_conflict"
    NOT_LINKED = "not_linked"


class JoinStatus(str, enum.Enum):
    APPLIED = "applied"
    CONFLICT = "conflict"
    REJECTED = "rejected"


@dataclass(frozen=True)
class JoinConflict:
    """A join held back because the two walls disagree on thickness.

    Pass it to :func:`resolve_conflict` together with the chosen
    thickness to complete the join.
    """

    source_polygon_id: str
    target_polygon_id: str
    source_edge_id: str
    target_edge_id: str
    source_thickness: float
    target_thickness: float
    slide_offset: float = 0.0


@dataclass(frozen=True)
class JoinResult:
    plan: FloorPlan
    status: JoinStatus
    error: Optional[JoinError] = None
    conflict: Optional[JoinConflict] = None
    message: str = ""

    @property
    def applied(self) -> bool:
        return self.status is JoinStatus.APPLIED


# ═══════════════════════════════════════════════════════════════════
# Join requests
# ═══════════════════════════════════════════════════════════════════

def request_join(
    plan: FloorPlan,
    source_edge_id: str,
    target_edge_id: str,
    slide_offset: float = 0.0,
    config: SolverConfig | None = None,
) -> JoinResult:
    """Validate and, when the wall thicknesses agree, apply a join."""
    cfg = config or DEFAULT_SOLVER_CONFIG
    source = plan.polygon_for_edge(source_edge_id)
    target = plan.polygon_for_edge(target_edge_id)

    rejection = _check_preconditions(plan, source, target, source_edge_id, target_edge_id)
    if rejection is not None:
        return rejection

    s_thick = _thickness(source.edge(source_edge_id).thickness, cfg)
    t_thick = _thickness(target.edge(target_edge_id).thickness, cfg)
    if s_thick != t_thick:
        conflict = JoinConflict(
            source_polygon_id=source.id,
            target_polygon_id=target.id,
            source_edge_id=source_edge_id,
            target_edge_id=target_edge_id,
            source_thickness=s_thick,
            target_thickness=t_thick,
            slide_offset=slide_offset,
        )
        logger.info(
            "join %s -> %s waiting on thickness (%s vs %s cm)",
            source_edge_id, target_edge_id, s_thick, t_thick,
        )
        return JoinResult(
            plan, JoinStatus.CONFLICT, JoinError.THICKNESS_CONFLICT, conflict,
            f"Wall thickness differs ({s_thick:g} cm vs {t_thick:g} cm). Choose one.",
        )

    return apply_join(plan, source_edge_id, target_edge_id, s_thick, slide_offset, cfg)


def join_in_place(
    plan: FloorPlan,
    source_edge_id: str,
    target_edge_id: str,
    config: SolverConfig | None = None,
) -> JoinResult:
    """Join two edges keeping their current relative slide.

    Used when the user has already positioned both polygons by hand, so
    the join only closes the gap instead of re-centring the edges.
    """
    source = plan.polygon_for_edge(source_edge_id)
    target = plan.polygon_for_edge(target_edge_id)
    offset = projected_offset(
        edge_endpoints(source, source_edge_id),
        edge_endpoints(target, target_edge_id),
        config,
    )
    return request_join(plan, source_edge_id, target_edge_id, offset, config)


def resolve_conflict(
    plan: FloorPlan,
    conflict: JoinConflict,
    chosen_thickness: float,
    config: SolverConfig | None = None,
) -> JoinResult:
    """Complete a join held back by :class:`JoinConflict`."""
    return apply_join(
        plan, conflict.source_edge_id, conflict.target_edge_id,
        chosen_thickness, conflict.slide_offset, config,
    )


def apply_join(
    plan: FloorPlan,
    source_edge_id: str,
    target_edge_id: str,
    thickness: float,
    slide_offset: float = 0.0,
    config: SolverConfig | None = None,
) -> JoinResult:
    """Snap the source edge onto the target edge and merge the groups.

    The source polygon is rotated and translated into place; the other
    members of its previous group follow by the same translation.  The
    target polygon and its group stay put.  The usual join checks run
    first, so a rejected join returns the plan unchanged.
    """
    if thickness <= 0:
        raise ValueError("thickness must be > 0")

    source = plan.polygon_for_edge(source_edge_id)
    target = plan.polygon_for_edge(target_edge_id)
    rejection = _check_preconditions(plan, source, target, source_edge_id, target_edge_id)
    if rejection is not None:
        return rejection

    source = source.with_edge(source_edge_id, thickness=thickness)
    target = target.with_edge(target_edge_id, thickness=thickness)

    aligned = align_polygon_to_edge(
        source, source_edge_id, target, target_edge_id,
        slide_offset=slide_offset, gap=thickness / 100.0, config=config,
    )
    dx = aligned.vertices[0].x - source.vertices[0].x
    dy = aligned.vertices[0].y - source.vertices[0].y

    old_source_group = source.group_id
    old_target_group = target.group_id
    if old_source_group is not None:
        group_id = old_source_group
    elif old_target_group is not None:
        group_id = old_target_group
    else:
        group_id = mint_group_id(p.group_id for p in plan if p.group_id is not None)

    final_source = replace(
        aligned.with_edge(source_edge_id, linked_edge_id=target_edge_id,
                          alignment_offset=slide_offset),
        group_id=group_id,
    )
    final_target = replace(
        target.with_edge(target_edge_id, linked_edge_id=source_edge_id),
        group_id=group_id,
    )

    updated = []
    for poly in plan:
        if poly.id == final_source.id:
            updated.append(final_source)
        elif poly.id == final_target.id:
            updated.append(final_target)
        elif old_source_group is not None and poly.group_id == old_source_group:
            updated.append(replace(translate_polygon(poly, dx, dy), group_id=group_id))
        elif old_target_group is not None and poly.group_id == old_target_group:
            updated.append(replace(poly, group_id=group_id))
        else:
            updated.append(poly)

    logger.info(
        "joined %s/%s to %s/%s (thickness %g cm, offset %g m, group %s)",
        source.id, source_edge_id, target.id, target_edge_id,
        thickness, slide_offset, group_id,
    )
    return JoinResult(
        FloorPlan(updated, dict(plan.metadata)),
        JoinStatus.APPLIED,
        message="Polygons joined and grouped.",
    )


# ═══════════════════════════════════════════════════════════════════
# Link maintenance
# ═══════════════════════════════════════════════════════════════════

def unlink(plan: FloorPlan, edge_id: str) -> JoinResult:
    """Remove the link on *edge_id* (both sides) and rebuild all groups.

    The alignment offset is cleared on both edges as well.  Positions are
    left where the join put them.
    """
    poly = plan.polygon_for_edge(edge_id)
    edge = poly.edge(edge_id)
    if edge.linked_edge_id is None:
        return JoinResult(plan, JoinStatus.REJECTED, JoinError.NOT_LINKED,
                          message="Edge is not linked.")

    partner_id = edge.linked_edge_id
    updated = [poly.with_edge(edge_id, linked_edge_id=None, alignment_offset=None)]
    partner_owner = plan.owner_of(partner_id)
    if partner_owner is not None:
        partner_poly = plan.polygon(partner_owner)
        updated.append(
            partner_poly.with_edge(partner_id, linked_edge_id=None, alignment_offset=None)
        )

    logger.info("unlinked %s <-> %s", edge_id, partner_id)
    return JoinResult(
        recalculate_groups(plan.with_polygons(updated)),
        JoinStatus.APPLIED,
        message="Edges unlinked. Groups updated.",
    )


def update_offset(
    plan: FloorPlan,
    edge_id: str,
    offset: float,
    config: SolverConfig | None = None,
) -> JoinResult:
    """Slide a linked polygon along its partner edge to *offset* metres.

    Only the cluster on the source side of the link moves.
    """
    cfg = config or DEFAULT_SOLVER_CONFIG
    source = plan.polygon_for_edge(edge_id)
    edge = source.edge(edge_id)
    if edge.linked_edge_id is None:
        return JoinResult(plan, JoinStatus.REJECTED, JoinError.NOT_LINKED,
                          message="Edge is not linked.")
    target = plan.polygon_for_edge(edge.linked_edge_id)

    aligned = align_polygon_to_edge(
        source, edge_id, target, edge.linked_edge_id,
        slide_offset=offset, gap=_thickness(edge.thickness, cfg) / 100.0, config=cfg,
    )
    aligned = aligned.with_edge(edge_id, alignment_offset=offset)
    return JoinResult(
        _move_source_side(plan, source, aligned, target),
        JoinStatus.APPLIED,
        message="Alignment offset updated.",
    )


def update_thickness(
    plan: FloorPlan,
    edge_id: str,
    thickness: float,
    config: SolverConfig | None = None,
) -> JoinResult:
    """Change a wall's thickness, re-spacing the join when it is linked."""
    if thickness <= 0:
        raise ValueError("thickness must be > 0")
    source = plan.polygon_for_edge(edge_id)
    edge = source.edge(edge_id)

    if edge.linked_edge_id is None:
        return JoinResult(
            plan.with_polygons([source.with_edge(edge_id, thickness=thickness)]),
            JoinStatus.APPLIED,
            message="Thickness updated.",
        )

    target = plan.polygon_for_edge(edge.linked_edge_id)
    aligned = align_polygon_to_edge(
        source, edge_id, target, edge.linked_edge_id,
        slide_offset=edge.alignment_offset or 0.0, gap=thickness / 100.0, config=config,
    )
    dx = aligned.vertices[0].x - source.vertices[0].x
    dy = aligned.vertices[0].y - source.vertices[0].y
    moved = translate_polygon(source, dx, dy).with_edge(edge_id, thickness=thickness)

    plan = plan.with_polygons([target.with_edge(edge.linked_edge_id, thickness=thickness)])
    return JoinResult(
        _move_source_side(plan, source, moved, target),
        JoinStatus.APPLIED,
        message="Thickness updated.",
    )


# ═══════════════════════════════════════════════════════════════════
# Private helpers
# ═══════════════════════════════════════════════════════════════════

def _thickness(value: Optional[float], cfg: SolverConfig) -> float:
    return cfg.default_thickness if not value else value


def _check_preconditions(
    plan: FloorPlan,
    source: Polygon,
    target: Polygon,
    source_edge_id: str,
    target_edge_id: str,
) -> Optional[JoinResult]:
    error: Optional[JoinError] = None
    message = ""
    if source.id == target.id:
        error, message = JoinError.SELF_JOIN, "Cannot join a polygon to itself."
    elif not source.is_locked:
        error, message = JoinError.SOURCE_UNLOCKED, "Source polygon is not solved (locked)."
    elif not target.is_locked:
        error, message = JoinError.TARGET_UNLOCKED, "Target polygon is not solved (locked)."
    elif any(plan.owner_of(e.linked_edge_id) == target.id for e in source.linked_edges()):
        error, message = (
            JoinError.ALREADY_LINKED,
            "Polygons are already joined by another edge. Only one join allowed.",
        )
    elif (source.edge(source_edge_id).linked_edge_id is not None
          or target.edge(target_edge_id).linked_edge_id is not None):
        error, message = (
            JoinError.ALREADY_LINKED,
            "Edge is already joined. Unlink it first.",
        )
    if error is None:
        return None
    logger.warning("join %s -> %s rejected: %s", source.id, target.id, error.value)
    return JoinResult(plan, JoinStatus.REJECTED, error, message=message)


def _move_source_side(
    plan: FloorPlan, source: Polygon, moved: Polygon, target: Polygon,
) -> FloorPlan:
    """Replace *source* by *moved* and translate its side of the link alike."""
    dx = moved.vertices[0].x - source.vertices[0].x
    dy = moved.vertices[0].y - source.vertices[0].y
    cluster = connected_group(source.id, plan, exclude=target.id)
    updated = [moved]
    for pid in cluster:
        if pid != source.id:
            updated.append(translate_polygon(plan.polygon(pid), dx, dy))
    return plan.with_polygons(updated)
