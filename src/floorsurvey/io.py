from __future__ import annotations

import json
from io import StringIO
from pathlib import Path
from typing import Tuple, Union

from .config import DEFAULT_SOLVER_CONFIG, SolverConfig
from .floorplan import FloorPlan
from .geometry import feature_endpoints
from .models import DOOR


PathLike = Union[str, Path]


def export_json(plan: FloorPlan, indent: int = 2) -> str:
    return plan.to_json(indent=indent)


def load_json(path: PathLike) -> FloorPlan:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return FloorPlan.from_dict(data)


def save_json(plan: FloorPlan, path: PathLike) -> None:
    Path(path).write_text(export_json(plan), encoding="utf-8")


# ═══════════════════════════════════════════════════════════════════
# DXF
# ═══════════════════════════════════════════════════════════════════

WALL_LAYER = "WALLS"
DIAGONAL_LAYER = "DIAGONALS"
LABEL_LAYER = "LABELS"
DOOR_LAYER = "DOORS"
WINDOW_LAYER = "WINDOWS"
WALL_COLOR = 7
DIAGONAL_COLOR = 252
LABEL_COLOR = 3
DOOR_COLOR = 30
WINDOW_COLOR = 5
LABEL_HEIGHT = 0.2


def build_dxf(plan: FloorPlan, config: SolverConfig | None = None):
    """Build an ezdxf drawing holding every edge and vertex label.

    Perimeter edges go to the WALLS layer, diagonals to DIAGONALS and
    labels to LABELS.  Door and window openings are drawn as segments
    on DOORS and WINDOWS.  Entities take their colour from the layer.
    Coordinates are metres rounded to four decimals, with y negated
    because CAD drawings are y-up while the sketch frame is y-down.

    Requires ezdxf; imported lazily like the plotting backend.
    """
    try:
        import ezdxf
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "DXF export requires ezdxf. Install with `pip install ezdxf`."
        ) from exc

    cfg = config or DEFAULT_SOLVER_CONFIG

    def coord(x: float, y: float) -> Tuple[float, float]:
        return round(cfg.to_meters(x), 4) + 0.0, round(cfg.to_meters(-y), 4) + 0.0

    doc = ezdxf.new("R2010")
    doc.layers.add(WALL_LAYER, color=WALL_COLOR)
    doc.layers.add(DIAGONAL_LAYER, color=DIAGONAL_COLOR)
    doc.layers.add(LABEL_LAYER, color=LABEL_COLOR)
    doc.layers.add(DOOR_LAYER, color=DOOR_COLOR)
    doc.layers.add(WINDOW_LAYER, color=WINDOW_COLOR)
    msp = doc.modelspace()

    for poly in plan:
        for edge in poly.edges:
            v1 = poly.vertex(edge.start_vertex_id)
            v2 = poly.vertex(edge.end_vertex_id)
            layer = WALL_LAYER if edge.is_perimeter else DIAGONAL_LAYER
            msp.add_line(coord(v1.x, v1.y), coord(v2.x, v2.y), dxfattribs={"layer": layer})
            if edge.feature is not None:
                start, end = feature_endpoints(poly, edge, cfg.scale)
                opening = DOOR_LAYER if edge.feature == DOOR else WINDOW_LAYER
                msp.add_line(coord(start.x, start.y), coord(end.x, end.y),
                             dxfattribs={"layer": opening})
        for v in poly.vertices:
            msp.add_text(
                v.label,
                height=LABEL_HEIGHT,
                dxfattribs={"layer": LABEL_LAYER, "insert": coord(v.x, v.y)},
            )
    return doc


def export_dxf(plan: FloorPlan, config: SolverConfig | None = None) -> str:
    """Return the plan as ASCII DXF text."""
    stream = StringIO()
    build_dxf(plan, config).write(stream)
    return stream.getvalue()


def save_dxf(plan: FloorPlan, path: PathLike, config: SolverConfig | None = None) -> None:
    build_dxf(plan, config).saveas(str(path))
