"""Rigid transforms that snap one polygon's edge against another's.

Two edges are *aligned* when they face each other: the source edge's
outward normal points exactly opposite the target edge's outward
normal, the source midpoint sits *gap* metres out from the target
midpoint along the target normal, and *slide_offset* metres along the
target edge's direction.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .config import DEFAULT_SOLVER_CONFIG, SolverConfig
from .geometry import (
    edge_endpoints,
    midpoint,
    rotate_point,
    rotate_polygon,
    signed_area,
    translate_polygon,
)
from .models import Point, Polygon

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlignmentTransform:
    """Rotate by *rotation* radians around *pivot*, then shift by (dx, dy)."""

    rotation: float
    dx: float
    dy: float
    pivot: Point

    def apply(self, polygon: Polygon) -> Polygon:
        rotated = rotate_polygon(polygon, self.rotation, self.pivot)
        return translate_polygon(rotated, self.dx, self.dy)

    def apply_to_point(self, p) -> Point:
        r = rotate_point(p, self.pivot, self.rotation)
        return Point(r.x + self.dx, r.y + self.dy)


# ═══════════════════════════════════════════════════════════════════
# Edge geometry
# ═══════════════════════════════════════════════════════════════════

def is_counter_clockwise(polygon: Polygon) -> bool:
    return signed_area(polygon.vertices) > 0


def edge_tangent(polygon: Polygon, edge_id: str) -> Tuple[float, float]:
    """Unit vector from the edge's start vertex to its end vertex."""
    a, b = edge_endpoints(polygon, edge_id)
    dx = b.x - a.x
    dy = b.y - a.y
    length = math.hypot(dx, dy) or 1.0
    return dx / length, dy / length


def outward_normal(polygon: Polygon, edge_id: str) -> Tuple[float, float]:
    """Unit outward-pointing normal of an edge.

    The interior lies to the left of each edge of a counter-clockwise
    ring, so its outward normal is the tangent turned −90°; clockwise
    rings use +90°.
    """
    tx, ty = edge_tangent(polygon, edge_id)
    if is_counter_clockwise(polygon):
        return ty, -tx
    return -ty, tx


def edge_midpoint(polygon: Polygon, edge_id: str) -> Point:
    a, b = edge_endpoints(polygon, edge_id)
    return midpoint(a, b)


# ═══════════════════════════════════════════════════════════════════
# Transform computation
# ═══════════════════════════════════════════════════════════════════

def compute_transform(
    source: Polygon,
    source_edge_id: str,
    target: Polygon,
    target_edge_id: str,
    slide_offset: float = 0.0,
    gap: float = 0.0,
    config: SolverConfig | None = None,
) -> AlignmentTransform:
    """Transform that brings *source_edge_id* face-to-face with *target_edge_id*.

    *slide_offset* and *gap* are in metres.  The rotation pivot is the
    source polygon's centroid.
    """
    cfg = config or DEFAULT_SOLVER_CONFIG

    snx, sny = outward_normal(source, source_edge_id)
    tnx, tny = outward_normal(target, target_edge_id)
    rotation = math.atan2(tny, tnx) + math.pi - math.atan2(sny, snx)

    pivot = source.centroid
    rotated_mid = rotate_point(edge_midpoint(source, source_edge_id), pivot, rotation)

    tux, tuy = edge_tangent(target, target_edge_id)
    t_mid = edge_midpoint(target, target_edge_id)
    gap_w = cfg.to_world(gap)
    slide_w = cfg.to_world(slide_offset)
    goal_x = t_mid.x + gap_w * tnx + slide_w * tux
    goal_y = t_mid.y + gap_w * tny + slide_w * tuy

    transform = AlignmentTransform(
        rotation=rotation,
        dx=goal_x - rotated_mid.x,
        dy=goal_y - rotated_mid.y,
        pivot=pivot,
    )
    logger.debug(
        "align %s/%s -> %s/%s: rot=%.4f dx=%.3f dy=%.3f",
        source.id, source_edge_id, target.id, target_edge_id,
        transform.rotation, transform.dx, transform.dy,
    )
    return transform


def align_polygon_to_edge(
    source: Polygon,
    source_edge_id: str,
    target: Polygon,
    target_edge_id: str,
    slide_offset: float = 0.0,
    gap: float = 0.0,
    config: SolverConfig | None = None,
) -> Polygon:
    """Return *source* rotated about its centroid and translated into place."""
    transform = compute_transform(
        source, source_edge_id, target, target_edge_id, slide_offset, gap, config,
    )
    return transform.apply(source)


def apply_transform(
    polygons: Iterable[Polygon],
    transform: AlignmentTransform,
) -> List[Polygon]:
    """Move several polygons as one rigid body.

    Every polygon rotates about the transform's shared pivot rather than
    its own centroid, so relative placements are preserved.
    """
    return [transform.apply(poly) for poly in polygons]


def projected_offset(
    source_endpoints: Sequence,
    target_endpoints: Sequence,
    config: SolverConfig | None = None,
) -> float:
    """Slide offset (metres) that reproduces the current edge placement.

    The vector between the two edge midpoints is projected onto the
    target edge's unit tangent.
    """
    cfg = config or DEFAULT_SOLVER_CONFIG
    s1, s2 = source_endpoints
    t1, t2 = target_endpoints
    s_mid = midpoint(s1, s2)
    t_mid = midpoint(t1, t2)
    tx = t2.x - t1.x
    ty = t2.y - t1.y
    length = math.hypot(tx, ty)
    if length == 0:
        return 0.0
    along = ((s_mid.x - t_mid.x) * tx + (s_mid.y - t_mid.y) * ty) / length
    return cfg.to_meters(along)
