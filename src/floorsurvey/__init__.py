"""floorsurvey — measurement-driven floor-plan reconstruction.

Public API is organised into layers:

- **Core** — models, document container, configuration, geometry, I/O
- **Solving** — constraint solver that turns measurements into positions
- **Assembly** — edge alignment, link connectivity, joins
- **Editing** — structural edits, template builders, undo history
- **Rendering** — visualisation (requires matplotlib)
- **Diagnostics** — quality checks and reports (requires numpy and scipy)
"""

# ── Core ────────────────────────────────────────────────────────────
from .models import DIAGONAL, DOOR, PERIMETER, WINDOW, Edge, Point, Polygon, Vertex
from .floorplan import FloorPlan
from .config import (
    DEFAULT_SOLVER_CONFIG,
    DEFAULT_WALL_THICKNESS_CM,
    HISTORY_DEPTH,
    SOLVER_TOLERANCE,
    WORLD_UNITS_PER_METER,
    SolverConfig,
)
from .geometry import (
    distance,
    law_of_cosines,
    polygon_area_m2,
    segments_intersect,
    signed_area,
)
from .io import build_dxf, export_dxf, export_json, load_json, save_dxf, save_json

# ── Solving ─────────────────────────────────────────────────────────
from .solver import (
    Intersection,
    SolveError,
    SolveResult,
    circle_intersection,
    constraint_count,
    effective_edges,
    reconstruct,
    solve_polygon,
)

# ── Assembly ────────────────────────────────────────────────────────
from .alignment import (
    AlignmentTransform,
    align_polygon_to_edge,
    apply_transform,
    compute_transform,
    outward_normal,
    projected_offset,
)
from .algorithms import (
    connected_components,
    connected_group,
    link_adjacency,
    mint_group_id,
    recalculate_groups,
)
from .joins import (
    JoinConflict,
    JoinError,
    JoinResult,
    JoinStatus,
    apply_join,
    join_in_place,
    request_join,
    resolve_conflict,
    unlink,
    update_offset,
    update_thickness,
)

# ── Editing ─────────────────────────────────────────────────────────
from .editing import (
    EditError,
    EditResult,
    add_diagonal,
    delete_edge,
    delete_polygon,
    delete_vertex,
    duplicate_polygon,
    mirror_polygon,
    move_polygon,
    move_vertex,
    rename_polygon,
    rotate_polygon,
    set_edge_feature,
    set_vertex_angle,
    split_edge,
    update_edge_length,
)
from .builders import build_polygon_from_points, build_regular_polygon
from .history import History, Snapshot

# ── Rendering ───────────────────────────────────────────────────────
from .render import render_png

# ── Diagnostics ─────────────────────────────────────────────────────
from .diagnostics import (
    group_consistency_errors,
    has_edge_crossings,
    length_residuals,
    solve_report,
)

__all__ = [
    # Core
    "Point",
    "Vertex",
    "Edge",
    "Polygon",
    "PERIMETER",
    "DIAGONAL",
    "DOOR",
    "WINDOW",
    "FloorPlan",
    "SolverConfig",
    "DEFAULT_SOLVER_CONFIG",
    "WORLD_UNITS_PER_METER",
    "SOLVER_TOLERANCE",
    "DEFAULT_WALL_THICKNESS_CM",
    "HISTORY_DEPTH",
    "distance",
    "law_of_cosines",
    "polygon_area_m2",
    "segments_intersect",
    "signed_area",
    "load_json",
    "save_json",
    "export_json",
    "build_dxf",
    "export_dxf",
    "save_dxf",
    # Solving
    "Intersection",
    "SolveError",
    "SolveResult",
    "circle_intersection",
    "constraint_count",
    "effective_edges",
    "solve_polygon",
    "reconstruct",
    # Assembly
    "AlignmentTransform",
    "compute_transform",
    "align_polygon_to_edge",
    "apply_transform",
    "outward_normal",
    "projected_offset",
    "link_adjacency",
    "connected_group",
    "connected_components",
    "mint_group_id",
    "recalculate_groups",
    "JoinError",
    "JoinStatus",
    "JoinConflict",
    "JoinResult",
    "request_join",
    "join_in_place",
    "resolve_conflict",
    "apply_join",
    "unlink",
    "update_offset",
    "update_thickness",
    # Editing
    "EditError",
    "EditResult",
    "update_edge_length",
    "set_vertex_angle",
    "set_edge_feature",
    "add_diagonal",
    "delete_edge",
    "split_edge",
    "delete_vertex",
    "move_vertex",
    "move_polygon",
    "rotate_polygon",
    "mirror_polygon",
    "duplicate_polygon",
    "rename_polygon",
    "delete_polygon",
    "build_regular_polygon",
    "build_polygon_from_points",
    "History",
    "Snapshot",
    # Rendering
    "render_png",
    # Diagnostics
    "length_residuals",
    "solve_report",
    "has_edge_crossings",
    "group_consistency_errors",
]
