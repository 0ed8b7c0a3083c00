from __future__ import annotations

from typing import Dict, List

from .config import DEFAULT_SOLVER_CONFIG, SolverConfig
from .floorplan import FloorPlan
from .geometry import segments_intersect, signed_area
from .models import Polygon
from .solver import constraint_count


def length_residuals(polygon: Polygon, config: SolverConfig | None = None):
    """Per-edge ``|measured - actual|`` in metres, as a numpy array.

    Order follows ``polygon.edges``.  A fully solved polygon without
    approximations has residuals at floating-point noise level.
    """
    try:
        import numpy as np
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "Residuals require numpy. Install with `pip install numpy`."
        ) from exc

    cfg = config or DEFAULT_SOLVER_CONFIG
    if not polygon.edges:
        return np.zeros(0, dtype=float)

    index = {v.id: i for i, v in enumerate(polygon.vertices)}
    xy = np.array([(v.x, v.y) for v in polygon.vertices], dtype=float)
    starts = np.array([index[e.start_vertex_id] for e in polygon.edges])
    ends = np.array([index[e.end_vertex_id] for e in polygon.edges])
    measured = np.array([e.length for e in polygon.edges], dtype=float)

    actual = np.linalg.norm(xy[ends] - xy[starts], axis=1) / cfg.scale
    return np.abs(measured - actual)


def has_edge_crossings(polygon: Polygon) -> bool:
    """True when two perimeter edges that share no vertex cross."""
    edges = polygon.perimeter_edges()
    for i, edge_a in enumerate(edges):
        a1, a2 = edge_a.vertex_ids
        for edge_b in edges[i + 1 :]:
            b1, b2 = edge_b.vertex_ids
            if len({a1, a2, b1, b2}) < 4:
                continue
            if segments_intersect(
                polygon.vertex(a1), polygon.vertex(a2),
                polygon.vertex(b1), polygon.vertex(b2),
            ):
                return True
    return False


def solve_report(polygon: Polygon, config: SolverConfig | None = None) -> Dict[str, object]:
    """Build a structured quality report suitable for JSON export."""
    constraints, needed = constraint_count(polygon)
    residuals = length_residuals(polygon, config)
    return {
        "polygon": polygon.id,
        "vertices": len(polygon.vertices),
        "solved_vertices": sum(1 for v in polygon.vertices if v.solved),
        "locked": polygon.is_locked,
        "constraints": constraints,
        "needed": needed,
        "overdetermined": constraints > needed,
        "clockwise": signed_area(polygon.vertices) < 0,
        "edge_crossings": has_edge_crossings(polygon),
        "max_residual": float(residuals.max()) if residuals.size else 0.0,
        "mean_residual": float(residuals.mean()) if residuals.size else 0.0,
    }


def group_consistency_errors(plan: FloorPlan) -> List[str]:
    """Check group ids against the link graph's connected components.

    Independent of :mod:`floorsurvey.algorithms`: components come from
    ``scipy.sparse.csgraph``.  Polygons in one component must share one
    group id (none for singletons) and distinct components must not
    share ids.
    """
    try:
        import numpy as np
        import scipy.sparse as sp
        from scipy.sparse.csgraph import connected_components
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "Group checks require numpy and scipy. Install with `pip install numpy scipy`."
        ) from exc

    polys = list(plan)
    if not polys:
        return []
    index = {p.id: i for i, p in enumerate(polys)}

    rows: list[int] = []
    cols: list[int] = []
    for poly in polys:
        for edge in poly.linked_edges():
            owner = plan.owner_of(edge.linked_edge_id)
            if owner is not None:
                rows.append(index[poly.id])
                cols.append(index[owner])
    n = len(polys)
    graph = sp.coo_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n)).tocsr()
    _, labels = connected_components(graph, directed=False)

    errors: list[str] = []
    component_group: Dict[int, set] = {}
    for poly, label in zip(polys, labels):
        component_group.setdefault(int(label), set()).add(poly.group_id)

    sizes = np.bincount(labels)
    group_owner: Dict[str, int] = {}
    for label, groups in sorted(component_group.items()):
        if sizes[label] == 1:
            if groups != {None}:
                errors.append(f"Unlinked polygon carries group {next(iter(groups))}")
            continue
        if len(groups) != 1 or None in groups:
            errors.append(f"Linked component {label} has group ids {sorted(map(str, groups))}")
            continue
        group_id = next(iter(groups))
        if group_id in group_owner:
            errors.append(f"Group {group_id} spans disconnected components")
        group_owner[group_id] = label
    return errors
