"""Tests for template and sketch polygon builders."""

import math

import pytest

from floorsurvey.builders import TEMPLATE_RADIUS, build_polygon_from_points, build_regular_polygon
from floorsurvey.geometry import distance, signed_area
from floorsurvey.models import Point


class TestRegularPolygon:
    def test_square_is_axis_aligned(self):
        poly = build_regular_polygon(Point(500, 500), 4, "sq")
        first = poly.vertices[0]
        offset = TEMPLATE_RADIUS / math.sqrt(2)
        assert first.x == pytest.approx(500 + offset)
        assert first.y == pytest.approx(500 - offset)
        assert poly.name == "Polygon 4"

    def test_square_edges(self):
        poly = build_regular_polygon(Point(0, 0), 4, "sq")
        assert [e.id for e in poly.perimeter_edges()] == [f"sq-e-p{i}" for i in range(4)]
        assert [e.id for e in poly.diagonal_edges()] == ["sq-e-d2"]
        assert all(e.length == 2.12 for e in poly.perimeter_edges())
        assert poly.edge("sq-e-d2").length == 3.0
        assert all(e.thickness == 10.0 for e in poly.perimeter_edges())

    def test_hexagon_fan(self):
        poly = build_regular_polygon(Point(0, 0), 6, "hx", name="Hall")
        diagonals = poly.diagonal_edges()
        assert len(diagonals) == 3
        assert all(e.start_vertex_id == "hx-v0" for e in diagonals)
        assert poly.name == "Hall"

    def test_too_few_sides_become_triangle(self):
        poly = build_regular_polygon(Point(0, 0), 1, "t")
        assert len(poly.vertices) == 3
        assert poly.diagonal_edges() == []

    def test_starts_unlocked_with_sketch_vertices_solved(self):
        poly = build_regular_polygon(Point(0, 0), 5, "p")
        assert not poly.is_locked
        assert all(v.solved for v in poly.vertices)
        assert [v.label for v in poly.vertices] == ["A", "B", "C", "D", "E"]
        assert signed_area(poly.vertices) > 0
        assert poly.validate_polygon() == []


class TestPolygonFromPoints:
    def test_perimeter_only(self):
        pts = [Point(0, 0), Point(300, 0), Point(300, 150), Point(0, 150)]
        poly = build_polygon_from_points(pts, "r")
        assert len(poly.edges) == 4
        assert poly.diagonal_edges() == []
        assert poly.name == "Room r"
        assert [e.length for e in poly.edges] == [3.0, 1.5, 3.0, 1.5]
        assert not any(v.solved for v in poly.vertices)

    def test_lengths_are_sketch_distances(self):
        pts = [Point(0, 0), Point(123, 45), Point(10, 210)]
        poly = build_polygon_from_points(pts, "t")
        e = poly.edge("t-e-p0")
        assert e.length == round(distance(pts[0], pts[1]) / 100.0, 2)

    def test_rejects_two_points(self):
        with pytest.raises(ValueError):
            build_polygon_from_points([Point(0, 0), Point(1, 1)], "bad")
