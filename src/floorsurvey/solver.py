"""Measurement-driven reconstruction of a polygon's true geometry.

The solver turns a rough sketch plus real-world measurements into exact
vertex positions:

1. **Angle substitution** — every vertex with a fixed interior angle is
   replaced by a virtual diagonal between its two perimeter neighbours,
   whose length follows from the law of cosines.
2. **Seeding** — the first usable edge is pinned, keeping its on-screen
   direction but taking its measured length.
3. **Wavefront propagation** — any unsolved vertex with two measured
   edges to solved vertices is placed by circle–circle intersection,
   choosing the branch nearest its sketched position.  This repeats
   until a pass makes no progress.

Failures are reported through :class:`SolveResult`, never raised.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple, Union

from .config import DEFAULT_SOLVER_CONFIG, SolverConfig
from .floorplan import FloorPlan
from .geometry import distance, law_of_cosines, polygon_area_m2
from .models import DIAGONAL, Edge, Point, Polygon, Vertex

logger = logging.getLogger(__name__)


class SolveError(str, enum.Enum):
    SEPARATED = "separated"
    CONTAINED = "contained"
    UNDERCONSTRAINED = "underconstrained"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class Intersection:
    point: Point
    approximated: bool = False


@dataclass(frozen=True)
class SolveResult:
    """Outcome of one solver run.

    *polygon* always carries the updated vertex positions and ``solved``
    flags; it is locked (with ``area`` set) only when *error* is ``None``.
    """

    polygon: Polygon
    error: Optional[SolveError] = None
    message: str = ""
    approximated: bool = False
    overdetermined: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


# ═══════════════════════════════════════════════════════════════════
# Circle–circle intersection
# ═══════════════════════════════════════════════════════════════════

def circle_intersection(
    p1,
    r1: float,
    p2,
    r2: float,
    original,
    tolerance: float = DEFAULT_SOLVER_CONFIG.tolerance,
) -> Union[Intersection, SolveError]:
    """Intersect circle (*p1*, *r1*) with circle (*p2*, *r2*).

    Of the two exact solutions the one nearest *original* is returned.
    Circles that miss each other by no more than *tolerance* produce an
    approximated point on the line of centres; larger misses return
    :attr:`SolveError.SEPARATED` or :attr:`SolveError.CONTAINED`.
    When *original* is equidistant from both branches the first branch
    wins; that tie is inherent to the sketch and is left as is.
    """
    d = distance(p1, p2)

    if d == 0:
        return SolveError.CONTAINED

    if d > r1 + r2:
        if d <= r1 + r2 + tolerance:
            ratio = r1 / (r1 + r2)
            return Intersection(
                Point(p1.x + (p2.x - p1.x) * ratio, p1.y + (p2.y - p1.y) * ratio),
                approximated=True,
            )
        return SolveError.SEPARATED

    if d < abs(r1 - r2):
        if d >= abs(r1 - r2) - tolerance:
            # Project from the larger circle's centre through the smaller one.
            if r1 > r2:
                k = r1 / d
                point = Point(p1.x + (p2.x - p1.x) * k, p1.y + (p2.y - p1.y) * k)
            else:
                k = r2 / d
                point = Point(p2.x + (p1.x - p2.x) * k, p2.y + (p1.y - p2.y) * k)
            return Intersection(point, approximated=True)
        return SolveError.CONTAINED

    a = (r1 * r1 - r2 * r2 + d * d) / (2 * d)
    h = max(0.0, r1 * r1 - a * a) ** 0.5

    bx = p1.x + a * (p2.x - p1.x) / d
    by = p1.y + a * (p2.y - p1.y) / d

    first = Point(bx + h * (p2.y - p1.y) / d, by - h * (p2.x - p1.x) / d)
    second = Point(bx - h * (p2.y - p1.y) / d, by + h * (p2.x - p1.x) / d)

    if distance(second, original) < distance(first, original):
        return Intersection(second)
    return Intersection(first)


# ═══════════════════════════════════════════════════════════════════
# Constraint preparation
# ═══════════════════════════════════════════════════════════════════

def effective_edges(polygon: Polygon) -> List[Edge]:
    """Measured edges plus one virtual diagonal per fixed-angle vertex.

    A fixed angle at V with perimeter neighbours N1, N2 becomes a
    diagonal N1–N2 of length ``sqrt(a² + b² − 2ab·cos θ)``; any real
    diagonal already joining N1 and N2 is dropped in its favour
    (perimeter edges are always kept).
    Vertices without exactly two perimeter edges are skipped.
    """
    edges = list(polygon.edges)
    for v in polygon.vertices:
        if v.fixed_angle is None:
            continue
        incident = [e for e in polygon.edges if e.is_perimeter and e.touches(v.id)]
        if len(incident) != 2:
            logger.debug("fixed angle at %s ignored: %d perimeter edges", v.id, len(incident))
            continue
        e1, e2 = incident
        n1 = e1.other_end(v.id)
        n2 = e2.other_end(v.id)
        chord = round(law_of_cosines(e1.length, e2.length, v.fixed_angle), 4)
        edges = [e for e in edges if e.is_perimeter or not e.connects(n1, n2)]
        edges.append(Edge(id=f"virtual-{v.id}", vertex_ids=(n1, n2), length=chord, kind=DIAGONAL))
    return edges


def constraint_count(polygon: Polygon) -> Tuple[int, int]:
    """Return ``(constraints, needed)`` for a polygon.

    Constraints are real diagonals plus fixed angles; a polygon with
    *n* vertices needs ``max(0, n − 3)`` of them to be rigid.
    """
    diagonals = len(polygon.diagonal_edges())
    fixed = sum(1 for v in polygon.vertices if v.fixed_angle is not None)
    return diagonals + fixed, max(0, len(polygon.vertices) - 3)


# ═══════════════════════════════════════════════════════════════════
# Solver
# ═══════════════════════════════════════════════════════════════════

def solve_polygon(polygon: Polygon, config: SolverConfig | None = None) -> SolveResult:
    """Reconstruct *polygon* from its measurements.

    The returned polygon is locked with its area (m²) when every vertex
    was placed; otherwise it is unlocked and the error explains why.
    """
    cfg = config or DEFAULT_SOLVER_CONFIG

    if len(polygon.vertices) < 3:
        return _failed(
            polygon, list(polygon.vertices), set(),
            SolveError.UNDERCONSTRAINED,
            f"Polygon {polygon.name} needs at least 3 vertices.",
        )

    edges = effective_edges(polygon)
    positions: Dict[str, Vertex] = {v.id: v for v in polygon.vertices}

    seed = next(
        (e for e in edges if e.start_vertex_id in positions and e.end_vertex_id in positions),
        None,
    )
    if seed is None:
        return _failed(
            polygon, list(polygon.vertices), set(),
            SolveError.UNDERCONSTRAINED,
            f"Polygon {polygon.name} has no usable measurement to start from.",
        )

    v0 = positions[seed.start_vertex_id]
    v1 = positions[seed.end_vertex_id]
    positions[v1.id] = _place_along(v0, v1, cfg.to_world(seed.length))
    solved = {v0.id, v1.id}
    logger.debug("seed edge %s: %s -> %s", seed.id, v0.id, v1.id)

    approximated = False
    hard_error: Optional[SolveError] = None
    hard_message = ""

    progress = True
    while progress:
        progress = False
        for vertex in polygon.vertices:
            if vertex.id in solved:
                continue
            anchors = [
                (positions[e.other_end(vertex.id)], cfg.to_world(e.length))
                for e in edges
                if e.touches(vertex.id) and e.other_end(vertex.id) in solved
            ]
            if len(anchors) < 2:
                continue

            (a1, r1), (a2, r2) = anchors[0], anchors[1]
            result = circle_intersection(a1, r1, a2, r2, positions[vertex.id], cfg.tolerance)
            if isinstance(result, SolveError):
                hard_error = result
                hard_message = (
                    f"Measurement error: edges do not meet at vertex "
                    f"{vertex.label or vertex.id}."
                )
                logger.debug("vertex %s: %s", vertex.id, result.value)
                continue

            approximated = approximated or result.approximated
            positions[vertex.id] = positions[vertex.id].moved_to(result.point.x, result.point.y)
            solved.add(vertex.id)
            progress = True
            logger.debug(
                "vertex %s placed at (%.3f, %.3f)%s",
                vertex.id, result.point.x, result.point.y,
                " approx" if result.approximated else "",
            )

    placed = [positions[v.id] for v in polygon.vertices]

    if hard_error is not None:
        return _failed(polygon, placed, solved, hard_error, hard_message, approximated)

    constraints, needed = constraint_count(polygon)
    if len(solved) < len(polygon.vertices):
        if constraints < needed:
            return _failed(
                polygon, placed, solved, SolveError.UNDERCONSTRAINED,
                f"Unstable geometry: found {constraints} constraints, need {needed}.",
                approximated,
            )
        return _failed(
            polygon, placed, solved, SolveError.UNREACHABLE,
            "Unstable geometry: connectivity issue. Ensure the shape is rigid.",
            approximated,
        )

    final = [replace(v, solved=True) for v in placed]
    area = polygon_area_m2(final, cfg.scale)
    overdetermined = constraints > needed

    message = "Geometry reconstructed"
    notes = []
    if overdetermined:
        notes.append("over-determined")
    if approximated:
        notes.append("approx. applied")
    if notes:
        message += f" ({', '.join(notes)})"
    message += f". Area: {area:.2f} m²"

    logger.info("polygon %s solved, area %.3f m2%s", polygon.id, area,
                " (approximated)" if approximated else "")
    return SolveResult(
        polygon=replace(polygon, vertices=tuple(final), area=area, is_locked=True),
        message=message,
        approximated=approximated,
        overdetermined=overdetermined,
    )


def reconstruct(
    plan: FloorPlan,
    polygon_id: str,
    config: SolverConfig | None = None,
) -> Tuple[FloorPlan, SolveResult]:
    """Solve one polygon of *plan* and write the result back."""
    result = solve_polygon(plan.polygon(polygon_id), config)
    return plan.with_polygons([result.polygon]), result


def _place_along(anchor: Vertex, toward: Vertex, length: float) -> Vertex:
    """Move *toward* to sit *length* from *anchor* along their current direction."""
    d = distance(anchor, toward)
    if d == 0:
        ux, uy = 1.0, 0.0
    else:
        ux, uy = (toward.x - anchor.x) / d, (toward.y - anchor.y) / d
    return toward.moved_to(anchor.x + ux * length, anchor.y + uy * length)


def _failed(
    polygon: Polygon,
    placed: List[Vertex],
    solved: set,
    error: SolveError,
    message: str,
    approximated: bool = False,
) -> SolveResult:
    logger.info("polygon %s not solved: %s", polygon.id, error.value)
    vertices = tuple(replace(v, solved=v.id in solved) for v in placed)
    return SolveResult(
        polygon=replace(polygon, vertices=vertices, is_locked=False, area=None),
        error=error,
        message=message,
        approximated=approximated,
    )
