from __future__ import annotations

from pathlib import Path

from .floorplan import FloorPlan
from .geometry import feature_endpoints
from .models import DOOR, Polygon


def render_png(
    plan: FloorPlan,
    output_path: str | Path,
    face_alpha: float = 0.15,
    wall_color: str = "#2b2b2b",
    diagonal_color: str = "#9a9a9a",
    linked_color: str = "#d1495b",
    locked_color: str = "#5aa9e6",
    unlocked_color: str = "#f4a259",
    door_color: str = "#8c564b",
    window_color: str = "#17becf",
    padding: float = 50.0,
    dpi: int = 150,
    show_labels: bool = True,
) -> None:
    """Render a floor plan to PNG.

    Solved polygons are filled blue, unsolved ones orange.  Linked walls
    are drawn in red, diagonals dashed.  Door and window openings are
    overdrawn on their walls.  The sketch frame is y-down, so
    the y axis is inverted.

    Requires matplotlib; imported lazily to keep core package lightweight.
    """
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from matplotlib.patches import Polygon as MplPolygon
    except ImportError as exc:  # pragma: no cover - requires optional dep
        raise RuntimeError(
            "matplotlib is required for rendering. Install with `pip install matplotlib`."
        ) from exc

    polygons = list(plan)
    if not any(p.vertices for p in polygons):
        raise ValueError("Nothing to render: the plan has no vertices.")

    fig, ax = plt.subplots()

    for poly in polygons:
        _draw_polygon(
            ax,
            poly,
            MplPolygon,
            locked_color if poly.is_locked else unlocked_color,
            face_alpha,
            wall_color,
            diagonal_color,
            linked_color,
        )
        _draw_features(ax, poly, door_color, window_color)
        if show_labels:
            _draw_labels(ax, poly)

    xs = [v.x for p in polygons for v in p.vertices]
    ys = [v.y for p in polygons for v in p.vertices]

    ax.set_aspect("equal", "box")
    ax.set_xlim(min(xs) - padding, max(xs) + padding)
    ax.set_ylim(max(ys) + padding, min(ys) - padding)
    ax.axis("off")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=dpi, bbox_inches="tight", pad_inches=0)
    plt.close(fig)


def _draw_polygon(
    ax,
    poly: Polygon,
    polygon_cls,
    face_color: str,
    face_alpha: float,
    wall_color: str,
    diagonal_color: str,
    linked_color: str,
) -> None:
    if len(poly.vertices) >= 3:
        points = [(v.x, v.y) for v in poly.vertices]
        ax.add_patch(polygon_cls(points, closed=True, facecolor=face_color, alpha=face_alpha))

    for edge in poly.edges:
        a = poly.vertex(edge.start_vertex_id)
        b = poly.vertex(edge.end_vertex_id)
        if not edge.is_perimeter:
            ax.plot([a.x, b.x], [a.y, b.y], color=diagonal_color,
                    linewidth=0.8, linestyle=(0, (3, 3)))
        elif edge.linked_edge_id is not None:
            ax.plot([a.x, b.x], [a.y, b.y], color=linked_color, linewidth=2.0)
        else:
            ax.plot([a.x, b.x], [a.y, b.y], color=wall_color, linewidth=1.2)


def _draw_features(ax, poly: Polygon, door_color: str, window_color: str) -> None:
    for edge in poly.perimeter_edges():
        if edge.feature is None:
            continue
        start, end = feature_endpoints(poly, edge)
        color = door_color if edge.feature == DOOR else window_color
        ax.plot([start.x, end.x], [start.y, end.y], color=color, linewidth=4.0,
                solid_capstyle="butt", zorder=2)


def _draw_labels(ax, poly: Polygon) -> None:
    for vertex in poly.vertices:
        ax.scatter(vertex.x, vertex.y, s=8.0, c="#2b2b2b", zorder=3)
        if vertex.label:
            ax.annotate(vertex.label, (vertex.x, vertex.y), fontsize=6,
                        xytext=(3, 3), textcoords="offset points")
    if poly.vertices:
        c = poly.centroid
        ax.text(c.x, c.y, _title(poly), fontsize=7, ha="center", va="center")


def _title(poly: Polygon) -> str:
    if poly.area is None:
        return poly.name
    return f"{poly.name}\n{poly.area:.2f} m²"
