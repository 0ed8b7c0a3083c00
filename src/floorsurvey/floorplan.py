from __future__ import annotations

import json
from typing import Dict, Iterable, Iterator, List, Optional

from .models import PERIMETER, Edge, Polygon, Vertex


class FloorPlan:
    """In-memory document: the ordered set of polygons being surveyed.

    Polygons reference each other only by id.  An explicit
    edge-id → owning-polygon-id index resolves ``linked_edge_id`` values,
    so deleting a polygon never leaves a dangling object reference.

    Instances are treated as values: every operation in the package
    returns a new :class:`FloorPlan` and leaves its input untouched.
    """

    VERSION = "1.0"

    def __init__(
        self,
        polygons: Iterable[Polygon] = (),
        metadata: Optional[dict] = None,
    ) -> None:
        self.polygons: Dict[str, Polygon] = {p.id: p for p in polygons}
        self.metadata = metadata or {}
        self.edge_owner: Dict[str, str] = {}
        for poly in self.polygons.values():
            for edge in poly.edges:
                self.edge_owner.setdefault(edge.id, poly.id)

    def __len__(self) -> int:
        return len(self.polygons)

    def __iter__(self) -> Iterator[Polygon]:
        return iter(self.polygons.values())

    def __contains__(self, polygon_id: object) -> bool:
        return polygon_id in self.polygons

    def __repr__(self) -> str:
        return f"FloorPlan({len(self.polygons)} polygons)"

    # ── Lookups ─────────────────────────────────────────────────────

    def polygon(self, polygon_id: str) -> Polygon:
        try:
            return self.polygons[polygon_id]
        except KeyError:
            raise KeyError(f"No polygon {polygon_id!r}") from None

    def polygon_for_edge(self, edge_id: str) -> Polygon:
        """Return the polygon that owns *edge_id*, or raise ``KeyError``."""
        owner = self.edge_owner.get(edge_id)
        if owner is None:
            raise KeyError(f"No polygon owns edge {edge_id!r}")
        return self.polygons[owner]

    def owner_of(self, edge_id: str) -> Optional[str]:
        return self.edge_owner.get(edge_id)

    def polygon_for_vertex(self, vertex_id: str) -> Polygon:
        for poly in self.polygons.values():
            if any(v.id == vertex_id for v in poly.vertices):
                return poly
        raise KeyError(f"No polygon owns vertex {vertex_id!r}")

    def edge(self, edge_id: str) -> Edge:
        return self.polygon_for_edge(edge_id).edge(edge_id)

    def group_members(self, group_id: str) -> List[Polygon]:
        return [p for p in self.polygons.values() if p.group_id == group_id]

    # ── Value-style updates ─────────────────────────────────────────

    def with_polygons(self, updated: Iterable[Polygon]) -> "FloorPlan":
        """Return a new plan with the given polygons replaced by id.

        Polygons not already present are appended.
        """
        changes = {p.id: p for p in updated}
        merged = [changes.pop(p.id, p) for p in self.polygons.values()]
        merged.extend(changes.values())
        return FloorPlan(merged, dict(self.metadata))

    def add_polygon(self, polygon: Polygon) -> "FloorPlan":
        if polygon.id in self.polygons:
            raise ValueError(f"Polygon {polygon.id!r} already exists")
        return self.with_polygons([polygon])

    def without_polygon(self, polygon_id: str) -> "FloorPlan":
        self.polygon(polygon_id)
        return FloorPlan(
            (p for p in self.polygons.values() if p.id != polygon_id),
            dict(self.metadata),
        )

    # ── Validation ──────────────────────────────────────────────────

    def validate(self) -> list[str]:
        errors: list[str] = []
        seen_edges: Dict[str, str] = {}

        for poly in self.polygons.values():
            errors.extend(poly.validate_polygon())
            for edge in poly.edges:
                if edge.id in seen_edges and seen_edges[edge.id] != poly.id:
                    errors.append(
                        f"Edge {edge.id} is owned by both {seen_edges[edge.id]} and {poly.id}"
                    )
                seen_edges.setdefault(edge.id, poly.id)

        for poly in self.polygons.values():
            for edge in poly.linked_edges():
                partner_owner = self.edge_owner.get(edge.linked_edge_id)
                if partner_owner is None:
                    errors.append(f"Edge {edge.id} links to missing edge {edge.linked_edge_id}")
                    continue
                if partner_owner == poly.id:
                    errors.append(f"Edge {edge.id} links to its own polygon {poly.id}")
                partner = self.polygons[partner_owner].edge(edge.linked_edge_id)
                if partner.linked_edge_id != edge.id:
                    errors.append(
                        f"Edge {edge.id} links to {partner.id} but the link is not mutual"
                    )
            if poly.group_id is not None and not poly.linked_edges():
                errors.append(f"Polygon {poly.id} has group {poly.group_id} but no links")

        return errors

    # ── Serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict:
        polygons_payload = []
        for poly in self.polygons.values():
            vertices_payload = []
            for v in poly.vertices:
                payload = {"id": v.id, "x": v.x, "y": v.y, "label": v.label, "solved": v.solved}
                if v.fixed_angle is not None:
                    payload["fixed_angle"] = v.fixed_angle
                vertices_payload.append(payload)

            edges_payload = []
            for e in poly.edges:
                payload = {
                    "id": e.id,
                    "vertices": list(e.vertex_ids),
                    "length": e.length,
                    "kind": e.kind,
                }
                if e.thickness is not None:
                    payload["thickness"] = e.thickness
                if e.linked_edge_id is not None:
                    payload["linked_edge"] = e.linked_edge_id
                if e.alignment_offset is not None:
                    payload["alignment_offset"] = e.alignment_offset
                if e.feature is not None:
                    payload["feature"] = {
                        "kind": e.feature,
                        "width": e.feature_width,
                        "distance": e.feature_distance,
                    }
                edges_payload.append(payload)

            poly_data = {
                "id": poly.id,
                "name": poly.name,
                "locked": poly.is_locked,
                "vertices": vertices_payload,
                "edges": edges_payload,
            }
            if poly.group_id is not None:
                poly_data["group"] = poly.group_id
            if poly.area is not None:
                poly_data["area"] = poly.area
            polygons_payload.append(poly_data)

        return {
            "version": self.VERSION,
            "metadata": self.metadata,
            "polygons": polygons_payload,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "FloorPlan":
        polygons = []
        for poly in payload.get("polygons", []):
            vertices = [
                Vertex(
                    id=v["id"],
                    x=float(v["x"]),
                    y=float(v["y"]),
                    label=v.get("label", ""),
                    solved=bool(v.get("solved", False)),
                    fixed_angle=v.get("fixed_angle"),
                )
                for v in poly.get("vertices", [])
            ]
            edges = []
            for e in poly.get("edges", []):
                feature = e.get("feature") or {}
                edges.append(
                    Edge(
                        id=e["id"],
                        vertex_ids=tuple(e["vertices"]),
                        length=float(e["length"]),
                        kind=e.get("kind", PERIMETER),
                        thickness=e.get("thickness"),
                        linked_edge_id=e.get("linked_edge"),
                        alignment_offset=e.get("alignment_offset"),
                        feature=feature.get("kind"),
                        feature_width=feature.get("width"),
                        feature_distance=feature.get("distance"),
                    )
                )
            polygons.append(
                Polygon(
                    id=poly["id"],
                    name=poly.get("name", poly["id"]),
                    vertices=tuple(vertices),
                    edges=tuple(edges),
                    is_locked=bool(poly.get("locked", False)),
                    group_id=poly.get("group"),
                    area=poly.get("area"),
                )
            )
        return cls(polygons, payload.get("metadata", {}))

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_data: str) -> "FloorPlan":
        return cls.from_dict(json.loads(json_data))
