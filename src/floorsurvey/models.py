from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, NamedTuple, Optional, Tuple

PERIMETER = "perimeter"
DIAGONAL = "diagonal"
EDGE_KINDS = (PERIMETER, DIAGONAL)

DOOR = "door"
WINDOW = "window"
FEATURE_KINDS = (DOOR, WINDOW)


class Point(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class Vertex:
    id: str
    x: float
    y: float
    label: str = ""
    solved: bool = False
    fixed_angle: Optional[float] = None

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)

    def moved_to(self, x: float, y: float) -> "Vertex":
        return replace(self, x=x, y=y)


@dataclass(frozen=True)
class Edge:
    """A measured segment between two vertices of one polygon.

    *length* is the real-world measurement in metres.  *thickness* is
    the wall thickness in centimetres.  *linked_edge_id* names the edge
    of another polygon this one is snapped to, and *alignment_offset*
    (metres) records the slide along the partner edge on the side that
    was moved when the join was made.

    A perimeter edge may carry a door or window *feature*: an opening
    *feature_width* metres wide starting *feature_distance* metres from
    the start vertex.
    """

    id: str
    vertex_ids: Tuple[str, str]
    length: float
    kind: str = PERIMETER
    thickness: Optional[float] = None
    linked_edge_id: Optional[str] = None
    alignment_offset: Optional[float] = None
    feature: Optional[str] = None
    feature_width: Optional[float] = None
    feature_distance: Optional[float] = None

    @property
    def start_vertex_id(self) -> str:
        return self.vertex_ids[0]

    @property
    def end_vertex_id(self) -> str:
        return self.vertex_ids[1]

    @property
    def is_perimeter(self) -> bool:
        return self.kind == PERIMETER

    def touches(self, vertex_id: str) -> bool:
        return vertex_id in self.vertex_ids

    def other_end(self, vertex_id: str) -> str:
        a, b = self.vertex_ids
        return b if a == vertex_id else a

    def connects(self, a: str, b: str) -> bool:
        return self.vertex_ids in ((a, b), (b, a))


@dataclass(frozen=True)
class Polygon:
    """One room: an ordered vertex cycle plus its measured edges.

    Vertices are stored in perimeter order.  The perimeter edges form
    the closed boundary; diagonal edges are extra length constraints.
    """

    id: str
    name: str
    vertices: Tuple[Vertex, ...] = field(default_factory=tuple)
    edges: Tuple[Edge, ...] = field(default_factory=tuple)
    is_locked: bool = False
    group_id: Optional[str] = None
    area: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "vertices", tuple(self.vertices))
        object.__setattr__(self, "edges", tuple(self.edges))

    @property
    def centroid(self) -> Point:
        if not self.vertices:
            return Point(0.0, 0.0)
        n = len(self.vertices)
        return Point(
            sum(v.x for v in self.vertices) / n,
            sum(v.y for v in self.vertices) / n,
        )

    def vertex(self, vertex_id: str) -> Vertex:
        for v in self.vertices:
            if v.id == vertex_id:
                return v
        raise KeyError(f"Polygon {self.id} has no vertex {vertex_id!r}")

    def edge(self, edge_id: str) -> Edge:
        for e in self.edges:
            if e.id == edge_id:
                return e
        raise KeyError(f"Polygon {self.id} has no edge {edge_id!r}")

    def has_edge(self, edge_id: str) -> bool:
        return any(e.id == edge_id for e in self.edges)

    def perimeter_edges(self) -> list[Edge]:
        return [e for e in self.edges if e.is_perimeter]

    def diagonal_edges(self) -> list[Edge]:
        return [e for e in self.edges if not e.is_perimeter]

    def linked_edges(self) -> list[Edge]:
        return [e for e in self.edges if e.linked_edge_id is not None]

    def with_vertices(self, vertices: Iterable[Vertex]) -> "Polygon":
        return replace(self, vertices=tuple(vertices))

    def with_edge(self, edge_id: str, **changes) -> "Polygon":
        """Return a copy with the fields of one edge replaced."""
        self.edge(edge_id)
        return replace(
            self,
            edges=tuple(replace(e, **changes) if e.id == edge_id else e for e in self.edges),
        )

    def validate_polygon(self) -> list[str]:
        errors: list[str] = []
        vertex_ids = [v.id for v in self.vertices]
        if len(set(vertex_ids)) != len(vertex_ids):
            errors.append(f"Polygon {self.id} has repeated vertex ids")
        edge_ids = [e.id for e in self.edges]
        if len(set(edge_ids)) != len(edge_ids):
            errors.append(f"Polygon {self.id} has repeated edge ids")
        known = set(vertex_ids)
        for edge in self.edges:
            if edge.kind not in EDGE_KINDS:
                errors.append(f"Edge {edge.id} has unknown kind {edge.kind!r}")
            for vid in edge.vertex_ids:
                if vid not in known:
                    errors.append(f"Edge {edge.id} references missing vertex {vid}")
            if edge.feature is not None:
                errors.extend(_feature_errors(edge))
        return errors


def _feature_errors(edge: Edge) -> list[str]:
    if edge.feature not in FEATURE_KINDS:
        return [f"Edge {edge.id} has unknown feature {edge.feature!r}"]
    if not edge.is_perimeter:
        return [f"Edge {edge.id} carries a {edge.feature} but is not a wall"]
    width = edge.feature_width or 0.0
    start = edge.feature_distance or 0.0
    if width <= 0 or start < 0 or start + width > edge.length + 1e-9:
        return [f"Edge {edge.id} {edge.feature} does not fit on the wall"]
    return []
