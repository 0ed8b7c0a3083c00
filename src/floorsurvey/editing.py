"""Structural and positional edits on a floor plan.

Every operation returns an :class:`EditResult`.  A rejected edit comes
back with ``ok=False``, an :class:`EditError` code and the input plan
unchanged.  Edits that change measurements or structure unlock the
polygon, since its solved geometry no longer matches the data.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Set, Tuple

from .algorithms import recalculate_groups
from .alignment import AlignmentTransform, apply_transform
from .config import DEFAULT_FEATURE_WIDTHS, DEFAULT_SOLVER_CONFIG, SolverConfig
from .floorplan import FloorPlan
from .geometry import (
    distance,
    midpoint,
    mirror_polygon as mirror_shape,
    segments_intersect,
    translate_polygon,
)
from .models import DIAGONAL, FEATURE_KINDS, Edge, Polygon, Vertex

logger = logging.getLogger(__name__)

# Offset (world units) applied to both axes of a duplicated polygon.
DUPLICATE_OFFSET = 50.0


class EditError(str, enum.Enum):
    POLYGON_LOCKED = "polygon_locked"
    NOT_PERIMETER = "not_perimeter"
    PERIMETER_NOT_DELETABLE = "perimeter_not_deletable"
    TOO_FEW_VERTICES = "too_few_vertices"
    SELF_CONNECTION = "self_connection"
    ALREADY_CONNECTED = "already_connected"
    CROSSES_EDGE = "crosses_edge"
    FEATURE_DOES_NOT_FIT = "feature_does_not_fit"


@dataclass(frozen=True)
class EditResult:
    plan: FloorPlan
    ok: bool = True
    error: Optional[EditError] = None
    message: str = ""


def _rejected(plan: FloorPlan, error: EditError, message: str) -> EditResult:
    logger.warning("edit rejected: %s", message)
    return EditResult(plan, ok=False, error=error, message=message)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _measured(p1, p2, cfg: SolverConfig) -> float:
    """Sketch distance in metres, rounded to the centimetre."""
    return round(cfg.to_meters(distance(p1, p2)), 2)


def _replace_dropping_links(
    plan: FloorPlan, updated: Polygon, removed: Iterable[Edge],
) -> FloorPlan:
    """Put *updated* in the plan after *removed* edges left it.

    Partners of removed linked edges are unlinked and groups rebuilt.
    """
    partners: dict = {}
    for edge in removed:
        if edge.linked_edge_id is None:
            continue
        owner = plan.owner_of(edge.linked_edge_id)
        if owner is None or owner == updated.id:
            continue
        partner = partners.get(owner) or plan.polygon(owner)
        partners[owner] = partner.with_edge(
            edge.linked_edge_id, linked_edge_id=None, alignment_offset=None,
        )
    if not partners:
        return plan.with_polygons([updated])
    logger.info("%s lost %d join(s) to removed edges", updated.id, len(partners))
    return recalculate_groups(plan.with_polygons([updated, *partners.values()]))


# ═══════════════════════════════════════════════════════════════════
# Measurements
# ═══════════════════════════════════════════════════════════════════

def update_edge_length(plan: FloorPlan, edge_id: str, length: float) -> EditResult:
    """Set an edge's measured length (metres) and unlock its polygon.

    A door or window that no longer fits is pulled back inside the wall,
    or dropped when it is wider than the new length.
    """
    if length <= 0:
        raise ValueError("length must be > 0")
    poly = plan.polygon_for_edge(edge_id)
    changes = {"length": length}
    edge = poly.edge(edge_id)
    if edge.feature is not None:
        changes.update(_refit_feature(edge, length))
    updated = replace(poly.with_edge(edge_id, **changes), is_locked=False)
    return EditResult(plan.with_polygons([updated]))


def set_vertex_angle(plan: FloorPlan, vertex_id: str, angle: Optional[float]) -> EditResult:
    """Fix (or clear, with ``None``) the interior angle at a vertex.

    Fixing an angle removes every diagonal touching that vertex; the
    angle replaces them as the vertex's rigidity constraint.
    """
    poly = plan.polygon_for_vertex(vertex_id)
    vertices = [replace(v, fixed_angle=angle) if v.id == vertex_id else v for v in poly.vertices]
    edges = poly.edges
    if angle is not None:
        edges = tuple(e for e in edges if e.is_perimeter or not e.touches(vertex_id))
    updated = replace(poly, vertices=tuple(vertices), edges=edges, is_locked=False)
    return EditResult(plan.with_polygons([updated]))


def connection_error(
    polygon: Polygon, v1_id: str, v2_id: str,
) -> Optional[Tuple[EditError, str]]:
    """Why *v1_id* and *v2_id* cannot be joined by a new diagonal.

    Returns ``(error, message)``, or ``None`` when the connection is allowed.
    """
    if v1_id == v2_id:
        return EditError.SELF_CONNECTION, "Cannot connect vertex to itself."
    for edge in polygon.edges:
        if edge.connects(v1_id, v2_id):
            msg = ("Points are already connected (perimeter)."
                   if edge.is_perimeter else "Diagonal already exists.")
            return EditError.ALREADY_CONNECTED, msg

    v1 = polygon.vertex(v1_id)
    v2 = polygon.vertex(v2_id)
    for edge in polygon.edges:
        if edge.touches(v1_id) or edge.touches(v2_id):
            continue
        a = polygon.vertex(edge.start_vertex_id)
        b = polygon.vertex(edge.end_vertex_id)
        if segments_intersect(v1, v2, a, b):
            return EditError.CROSSES_EDGE, "Cannot connect: lines would intersect."
    return None


def add_diagonal(
    plan: FloorPlan,
    v1_id: str,
    v2_id: str,
    config: SolverConfig | None = None,
) -> EditResult:
    """Add a diagonal between two vertices of one polygon.

    Its length starts as the current sketch distance.
    """
    cfg = config or DEFAULT_SOLVER_CONFIG
    poly = plan.polygon_for_vertex(v1_id)
    if poly.is_locked:
        return _rejected(plan, EditError.POLYGON_LOCKED,
                         "Cannot add diagonal to a locked polygon. Edit a length to unlock.")
    problem = connection_error(poly, v1_id, v2_id)
    if problem is not None:
        return _rejected(plan, *problem)

    edge = Edge(
        id=_new_id(f"{poly.id}-e"),
        vertex_ids=(v1_id, v2_id),
        length=_measured(poly.vertex(v1_id), poly.vertex(v2_id), cfg),
        kind=DIAGONAL,
    )
    return EditResult(plan.with_polygons([replace(poly, edges=poly.edges + (edge,))]))


def delete_edge(plan: FloorPlan, edge_id: str) -> EditResult:
    poly = plan.polygon_for_edge(edge_id)
    if poly.is_locked:
        return _rejected(plan, EditError.POLYGON_LOCKED, "Cannot delete edge of a locked polygon.")
    if poly.edge(edge_id).is_perimeter:
        return _rejected(plan, EditError.PERIMETER_NOT_DELETABLE, "Cannot delete perimeter edges.")
    edges = tuple(e for e in poly.edges if e.id != edge_id)
    updated = replace(poly, edges=edges)
    return EditResult(_replace_dropping_links(plan, updated, [poly.edge(edge_id)]))


# ═══════════════════════════════════════════════════════════════════
# Doors and windows
# ═══════════════════════════════════════════════════════════════════

def set_edge_feature(
    plan: FloorPlan,
    edge_id: str,
    feature: Optional[str],
    width: Optional[float] = None,
    distance: Optional[float] = None,
) -> EditResult:
    """Place a door or window on a wall, or clear it with ``feature=None``.

    *width* and *distance* are metres; *distance* runs from the edge's
    start vertex.  A missing width keeps the current one when the kind is
    unchanged and otherwise takes the kind's default.  A missing distance
    keeps the current one, or centres the opening.

    Openings do not constrain the solver, so the lock state is kept.
    """
    poly = plan.polygon_for_edge(edge_id)
    edge = poly.edge(edge_id)
    if feature is None:
        cleared = poly.with_edge(edge_id, feature=None, feature_width=None, feature_distance=None)
        return EditResult(plan.with_polygons([cleared]), message="Feature removed.")
    if feature not in FEATURE_KINDS:
        raise ValueError(f"feature must be one of {FEATURE_KINDS}")
    if not edge.is_perimeter:
        return _rejected(plan, EditError.NOT_PERIMETER,
                         "Doors and windows can only be placed on perimeter walls.")

    if width is None:
        same_kind = edge.feature == feature and edge.feature_width
        width = edge.feature_width if same_kind else DEFAULT_FEATURE_WIDTHS[feature]
    if width <= 0:
        raise ValueError("width must be > 0")
    if distance is None:
        if edge.feature_distance is not None:
            distance = edge.feature_distance
        else:
            distance = (edge.length - width) / 2
    if distance < 0 or distance + width > edge.length:
        return _rejected(plan, EditError.FEATURE_DOES_NOT_FIT,
                         f"A {width:g} m {feature} does not fit on a {edge.length:g} m wall.")

    updated = poly.with_edge(edge_id, feature=feature, feature_width=width,
                             feature_distance=distance)
    return EditResult(plan.with_polygons([updated]), message=f"{feature.capitalize()} placed.")


def _refit_feature(edge: Edge, length: float) -> dict:
    width = edge.feature_width or 0.0
    if width > length:
        logger.debug("%s on %s dropped: wider than %g m", edge.feature, edge.id, length)
        return {"feature": None, "feature_width": None, "feature_distance": None}
    start = edge.feature_distance or 0.0
    return {"feature_distance": min(start, length - width)}


# ═══════════════════════════════════════════════════════════════════
# Vertex structure
# ═══════════════════════════════════════════════════════════════════

def split_edge(
    plan: FloorPlan,
    edge_id: str,
    config: SolverConfig | None = None,
) -> EditResult:
    """Insert a vertex at the midpoint of a perimeter edge.

    The edge is replaced by two perimeter edges that inherit its
    thickness, measured from the sketch.
    """
    cfg = config or DEFAULT_SOLVER_CONFIG
    poly = plan.polygon_for_edge(edge_id)
    if poly.is_locked:
        return _rejected(plan, EditError.POLYGON_LOCKED,
                         "Cannot split edge on a locked polygon. Modify a length to unlock.")
    edge = poly.edge(edge_id)
    if not edge.is_perimeter:
        return _rejected(plan, EditError.NOT_PERIMETER, "Can only split perimeter edges.")

    start = poly.vertex(edge.start_vertex_id)
    end = poly.vertex(edge.end_vertex_id)
    mid = midpoint(start, end)
    new_vertex = Vertex(
        id=_new_id(f"{poly.id}-v"),
        x=mid.x,
        y=mid.y,
        label=chr(65 + len(poly.vertices) % 26),
        solved=True,
    )

    vertices: List[Vertex] = []
    for v in poly.vertices:
        vertices.append(v)
        if v.id == start.id:
            vertices.append(new_vertex)

    first = Edge(
        id=_new_id(f"{poly.id}-e"),
        vertex_ids=(start.id, new_vertex.id),
        length=_measured(start, new_vertex, cfg),
        thickness=edge.thickness,
    )
    second = Edge(
        id=_new_id(f"{poly.id}-e"),
        vertex_ids=(new_vertex.id, end.id),
        length=_measured(new_vertex, end, cfg),
        thickness=edge.thickness,
    )
    edges = tuple(e for e in poly.edges if e.id != edge_id) + (first, second)
    updated = replace(poly, vertices=tuple(vertices), edges=edges, is_locked=False)
    logger.debug("split %s at new vertex %s", edge_id, new_vertex.id)
    return EditResult(_replace_dropping_links(plan, updated, [edge]),
                      message="Edge split. Node added.")


def delete_vertex(
    plan: FloorPlan,
    vertex_id: str,
    config: SolverConfig | None = None,
) -> EditResult:
    """Remove a vertex and bridge its neighbours with a new perimeter edge."""
    cfg = config or DEFAULT_SOLVER_CONFIG
    poly = plan.polygon_for_vertex(vertex_id)
    if poly.is_locked:
        return _rejected(plan, EditError.POLYGON_LOCKED,
                         "Cannot delete vertex on a locked polygon.")
    n = len(poly.vertices)
    if n <= 3:
        return _rejected(plan, EditError.TOO_FEW_VERTICES,
                         "Cannot delete vertex: minimum 3 points required.")

    index = next(i for i, v in enumerate(poly.vertices) if v.id == vertex_id)
    prev_v = poly.vertices[(index - 1) % n]
    next_v = poly.vertices[(index + 1) % n]
    closing = Edge(
        id=_new_id(f"{poly.id}-e"),
        vertex_ids=(prev_v.id, next_v.id),
        length=_measured(prev_v, next_v, cfg),
        thickness=cfg.default_thickness,
    )
    vertices = tuple(v for v in poly.vertices if v.id != vertex_id)
    removed = [e for e in poly.edges if e.touches(vertex_id)]
    edges = tuple(e for e in poly.edges if not e.touches(vertex_id)) + (closing,)
    updated = replace(poly, vertices=vertices, edges=edges, is_locked=False)
    return EditResult(_replace_dropping_links(plan, updated, removed))


def move_vertex(plan: FloorPlan, vertex_id: str, x: float, y: float) -> EditResult:
    poly = plan.polygon_for_vertex(vertex_id)
    if poly.is_locked:
        return _rejected(plan, EditError.POLYGON_LOCKED, "Cannot move a vertex of a locked polygon.")
    vertices = [v.moved_to(x, y) if v.id == vertex_id else v for v in poly.vertices]
    return EditResult(plan.with_polygons([poly.with_vertices(vertices)]))


# ═══════════════════════════════════════════════════════════════════
# Rigid moves
# ═══════════════════════════════════════════════════════════════════

def _rigid_members(plan: FloorPlan, polygon_ids: Iterable[str]) -> Set[str]:
    """Expand *polygon_ids* to every polygon sharing a group with them."""
    ids = set(polygon_ids)
    groups = {plan.polygon(pid).group_id for pid in ids} - {None}
    ids.update(p.id for p in plan if p.group_id in groups)
    return ids


def move_polygon(plan: FloorPlan, polygon_ids, dx: float, dy: float) -> EditResult:
    """Translate polygons, dragging their whole rigid groups along.

    *polygon_ids* may be a single id or an iterable of ids (a multi-selection).
    """
    if isinstance(polygon_ids, str):
        polygon_ids = [polygon_ids]
    members = _rigid_members(plan, polygon_ids)
    moved = [translate_polygon(p, dx, dy) for p in plan if p.id in members]
    return EditResult(plan.with_polygons(moved))


def rotate_polygon(plan: FloorPlan, polygon_id: str, angle_rad: float) -> EditResult:
    """Rotate a polygon and its group about the polygon's own centroid."""
    handled = plan.polygon(polygon_id)
    members = _rigid_members(plan, [polygon_id])
    transform = AlignmentTransform(angle_rad, 0.0, 0.0, handled.centroid)
    moved = apply_transform((p for p in plan if p.id in members), transform)
    return EditResult(plan.with_polygons(moved))


def mirror_polygon(plan: FloorPlan, polygon_id: str, axis: str) -> EditResult:
    """Mirror a polygon and its group across an axis through its centroid."""
    handled = plan.polygon(polygon_id)
    pivot = handled.centroid
    members = _rigid_members(plan, [polygon_id])
    mirrored = [mirror_shape(p, axis, pivot) for p in plan if p.id in members]
    label = "horizontally" if axis == "X" else "vertically"
    return EditResult(plan.with_polygons(mirrored), message=f"Mirrored {label}.")


# ═══════════════════════════════════════════════════════════════════
# Whole polygons
# ═══════════════════════════════════════════════════════════════════

def duplicate_polygon(plan: FloorPlan, polygon_id: str) -> EditResult:
    """Append an offset copy of a polygon with fresh ids and no links."""
    source = plan.polygon(polygon_id)
    new_id = _new_id("poly")
    vertex_map = {v.id: f"{new_id}-v{i}" for i, v in enumerate(source.vertices)}
    vertices = tuple(
        replace(v, id=vertex_map[v.id], x=v.x + DUPLICATE_OFFSET, y=v.y + DUPLICATE_OFFSET)
        for v in source.vertices
    )
    edges = tuple(
        replace(
            e,
            id=f"{new_id}-e{i}",
            vertex_ids=(vertex_map[e.start_vertex_id], vertex_map[e.end_vertex_id]),
            linked_edge_id=None,
            alignment_offset=None,
        )
        for i, e in enumerate(source.edges)
    )
    copy = replace(
        source, id=new_id, name=f"{source.name} (copy)",
        vertices=vertices, edges=edges, group_id=None,
    )
    return EditResult(plan.add_polygon(copy), message="Polygon duplicated.")


def rename_polygon(plan: FloorPlan, polygon_id: str, name: str) -> EditResult:
    poly = plan.polygon(polygon_id)
    return EditResult(plan.with_polygons([replace(poly, name=name)]))


def delete_polygon(plan: FloorPlan, polygon_id: str) -> EditResult:
    """Remove a polygon, clear links pointing at it and rebuild groups."""
    doomed = plan.polygon(polygon_id)
    doomed_edges = {e.id for e in doomed.edges}
    remaining = plan.without_polygon(polygon_id)

    cleared = []
    for poly in remaining:
        stale = [e.id for e in poly.linked_edges() if e.linked_edge_id in doomed_edges]
        for edge_id in stale:
            poly = poly.with_edge(edge_id, linked_edge_id=None, alignment_offset=None)
        if stale:
            cleared.append(poly)

    logger.info("deleted polygon %s (%d partner links cleared)", polygon_id, len(cleared))
    return EditResult(recalculate_groups(remaining.with_polygons(cleared)))
