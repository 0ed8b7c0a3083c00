from __future__ import annotations

import math
from typing import List, Optional, Sequence

from .config import DEFAULT_SOLVER_CONFIG, SolverConfig
from .geometry import distance
from .models import DIAGONAL, Edge, Polygon, Vertex

# Circumradius (world units) of generated template shapes.
TEMPLATE_RADIUS = 150.0


def _label(index: int) -> str:
    return chr(65 + index % 26)


def _perimeter(vertices: Sequence[Vertex], id_base: str, cfg: SolverConfig) -> List[Edge]:
    edges = []
    n = len(vertices)
    for i in range(n):
        v1 = vertices[i]
        v2 = vertices[(i + 1) % n]
        edges.append(
            Edge(
                id=f"{id_base}-e-p{i}",
                vertex_ids=(v1.id, v2.id),
                length=round(cfg.to_meters(distance(v1, v2)), 2),
                thickness=cfg.default_thickness,
            )
        )
    return edges


def build_regular_polygon(
    center,
    sides: int,
    id_base: str,
    name: Optional[str] = None,
    config: SolverConfig | None = None,
) -> Polygon:
    """Build a regular template polygon, fan-triangulated from vertex 0.

    Fewer than 3 sides are raised to 3.  Squares start at −45° so they
    sit axis-aligned; every other shape starts pointing up (−90°).
    Lengths are rounded to the centimetre.
    """
    cfg = config or DEFAULT_SOLVER_CONFIG
    sides = max(3, sides)
    start = -math.pi / 4 if sides == 4 else -math.pi / 2

    vertices = []
    for i in range(sides):
        angle = start + i * 2 * math.pi / sides
        vertices.append(
            Vertex(
                id=f"{id_base}-v{i}",
                x=center.x + TEMPLATE_RADIUS * math.cos(angle),
                y=center.y + TEMPLATE_RADIUS * math.sin(angle),
                label=_label(i),
                solved=True,
            )
        )

    edges = _perimeter(vertices, id_base, cfg)
    for i in range(2, sides - 1):
        edges.append(
            Edge(
                id=f"{id_base}-e-d{i}",
                vertex_ids=(vertices[0].id, vertices[i].id),
                length=round(cfg.to_meters(distance(vertices[0], vertices[i])), 2),
                kind=DIAGONAL,
            )
        )

    return Polygon(
        id=id_base,
        name=name or f"Polygon {sides}",
        vertices=tuple(vertices),
        edges=tuple(edges),
    )


def build_polygon_from_points(
    points: Sequence,
    id_base: str,
    name: Optional[str] = None,
    config: SolverConfig | None = None,
) -> Polygon:
    """Turn a hand-drawn point sequence into an unlocked polygon.

    Only perimeter edges are created; measured lengths start as the
    sketched distances.
    """
    if len(points) < 3:
        raise ValueError("a polygon needs at least 3 points")
    cfg = config or DEFAULT_SOLVER_CONFIG
    vertices = [
        Vertex(id=f"{id_base}-v{i}", x=float(p.x), y=float(p.y), label=_label(i))
        for i, p in enumerate(points)
    ]
    return Polygon(
        id=id_base,
        name=name or f"Room {id_base}",
        vertices=tuple(vertices),
        edges=tuple(_perimeter(vertices, id_base, cfg)),
    )
