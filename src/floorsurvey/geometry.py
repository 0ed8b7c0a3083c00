"""Geometry helper functions used across the package."""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, Sequence, Tuple

from .config import WORLD_UNITS_PER_METER
from .models import Edge, Point, Polygon, Vertex


def distance(p1, p2) -> float:
    """Euclidean distance between two objects with ``x``/``y``."""
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


def midpoint(p1, p2) -> Point:
    return Point((p1.x + p2.x) / 2, (p1.y + p2.y) / 2)


def centroid(points: Iterable) -> Point:
    """Mean of the given positions (vertex average, not area centroid)."""
    pts = list(points)
    if not pts:
        return Point(0.0, 0.0)
    return Point(sum(p.x for p in pts) / len(pts), sum(p.y for p in pts) / len(pts))


def signed_area(points: Sequence) -> float:
    """Signed area of a closed ring via the shoelace formula.

    Positive when the ring is wound counter-clockwise in a y-up frame,
    negative when clockwise.  Fewer than 3 points give ``0.0``.
    """
    n = len(points)
    if n < 3:
        return 0.0
    area = 0.0
    for i in range(n):
        x1, y1 = points[i].x, points[i].y
        x2, y2 = points[(i + 1) % n].x, points[(i + 1) % n].y
        area += x1 * y2 - x2 * y1
    return area / 2.0


def polygon_area_m2(points: Sequence, scale: float = WORLD_UNITS_PER_METER) -> float:
    """Unsigned area in square metres."""
    return abs(signed_area(points)) / (scale * scale)


def rotate_point(p, center, angle: float) -> Point:
    """Rotate *p* by *angle* radians around *center*."""
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    dx = p.x - center.x
    dy = p.y - center.y
    return Point(center.x + dx * cos_a - dy * sin_a,
                 center.y + dx * sin_a + dy * cos_a)


def _ccw(p1, p2, p3) -> bool:
    return (p3.y - p1.y) * (p2.x - p1.x) > (p2.y - p1.y) * (p3.x - p1.x)


def segments_intersect(p1, p2, p3, p4) -> bool:
    """True when segment p1–p2 properly crosses segment p3–p4."""
    return (_ccw(p1, p3, p4) != _ccw(p2, p3, p4)
            and _ccw(p1, p2, p3) != _ccw(p1, p2, p4))


def law_of_cosines(a: float, b: float, angle_deg: float) -> float:
    """Length of the side opposite *angle_deg* given the two enclosing sides."""
    angle = math.radians(angle_deg)
    c_sq = a * a + b * b - 2 * a * b * math.cos(angle)
    return math.sqrt(max(0.0, c_sq))


def edge_endpoints(polygon: Polygon, edge_id: str) -> Tuple[Vertex, Vertex]:
    edge = polygon.edge(edge_id)
    return polygon.vertex(edge.start_vertex_id), polygon.vertex(edge.end_vertex_id)


def feature_endpoints(
    polygon: Polygon, edge: Edge, scale: float = WORLD_UNITS_PER_METER,
) -> Tuple[Point, Point]:
    """World positions where an edge's door or window opening starts and ends."""
    a = polygon.vertex(edge.start_vertex_id)
    b = polygon.vertex(edge.end_vertex_id)
    d = distance(a, b)
    if d == 0:
        return Point(a.x, a.y), Point(a.x, a.y)
    ux, uy = (b.x - a.x) / d, (b.y - a.y) / d
    start = (edge.feature_distance or 0.0) * scale
    end = start + (edge.feature_width or 0.0) * scale
    return (Point(a.x + ux * start, a.y + uy * start),
            Point(a.x + ux * end, a.y + uy * end))


# ═══════════════════════════════════════════════════════════════════
# Polygon transforms
# ═══════════════════════════════════════════════════════════════════

def translate_polygon(polygon: Polygon, dx: float, dy: float) -> Polygon:
    """Return a copy with all vertex positions shifted."""
    return polygon.with_vertices(v.moved_to(v.x + dx, v.y + dy) for v in polygon.vertices)


def rotate_polygon(polygon: Polygon, angle_rad: float, center=None) -> Polygon:
    """Return a copy rotated *angle_rad* around *center* (default: own centroid)."""
    pivot = polygon.centroid if center is None else center
    new_verts = []
    for v in polygon.vertices:
        r = rotate_point(v, pivot, angle_rad)
        new_verts.append(v.moved_to(r.x, r.y))
    return polygon.with_vertices(new_verts)


def mirror_polygon(polygon: Polygon, axis: str, pivot=None) -> Polygon:
    """Reflect a polygon across a horizontal or vertical line through *pivot*.

    ``axis="X"`` flips horizontally (x mirrored), ``axis="Y"`` flips
    vertically.  The vertex order is reversed so that the mirrored
    polygon keeps the same winding as the original, and door or window
    positions are re-measured from the new start vertex.
    """
    if axis not in ("X", "Y"):
        raise ValueError("axis must be 'X' or 'Y'")
    center = polygon.centroid if pivot is None else pivot
    new_verts = []
    for v in polygon.vertices:
        if axis == "X":
            new_verts.append(v.moved_to(2 * center.x - v.x, v.y))
        else:
            new_verts.append(v.moved_to(v.x, 2 * center.y - v.y))
    new_verts.reverse()
    edges = tuple(_reversed_edge(e) for e in polygon.edges)
    return replace(polygon, vertices=tuple(new_verts), edges=edges)


def _reversed_edge(edge: Edge) -> Edge:
    distance_along = edge.feature_distance
    if edge.feature is not None and distance_along is not None:
        distance_along = edge.length - (edge.feature_width or 0.0) - distance_along
    return replace(
        edge,
        vertex_ids=(edge.end_vertex_id, edge.start_vertex_id),
        feature_distance=distance_along,
    )
