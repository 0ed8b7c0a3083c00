#!/usr/bin/env python3
"""Build, solve and join a small floor plan, then export it.

Usage:
    python scripts/demo_floorplan.py [--out DIR] [--dpi N]

Produces:
    plan.json   the joined document
    plan.dxf    walls, diagonals and vertex labels in metres
    plan.png    rendered overview
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from floorsurvey.builders import build_regular_polygon
from floorsurvey.diagnostics import group_consistency_errors, solve_report
from floorsurvey.editing import set_edge_feature
from floorsurvey.floorplan import FloorPlan
from floorsurvey.io import save_dxf, save_json
from floorsurvey.joins import JoinStatus, request_join, resolve_conflict
from floorsurvey.models import DOOR, WINDOW, Point
from floorsurvey.render import render_png
from floorsurvey.solver import reconstruct


def main() -> None:
    parser = argparse.ArgumentParser(description="Floor plan demo")
    parser.add_argument("--out", default="exports", help="Output directory")
    parser.add_argument("--dpi", type=int, default=150)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    plan = FloorPlan([
        build_regular_polygon(Point(0, 0), 4, "hall", name="Hall"),
        build_regular_polygon(Point(600, 0), 4, "bath", name="Bath"),
        build_regular_polygon(Point(300, 600), 6, "study", name="Study"),
    ])

    print("Solving …")
    for pid in list(plan.polygons):
        plan, result = reconstruct(plan, pid)
        print(f"  {pid}: {result.message}")

    # The study wall is thicker than the hall wall it meets.
    study = plan.polygon("study").with_edge("study-e-p0", thickness=20.0)
    plan = plan.with_polygons([study])

    print("Joining …")
    result = request_join(plan, "bath-e-p2", "hall-e-p0", 0.5)
    print(f"  bath -> hall: {result.message}")
    plan = result.plan

    result = request_join(plan, "study-e-p0", "hall-e-p1")
    print(f"  study -> hall: {result.message}")
    if result.status is JoinStatus.CONFLICT:
        result = resolve_conflict(plan, result.conflict, 15.0)
        print(f"  resolved at 15 cm: {result.message}")
    plan = result.plan

    plan = set_edge_feature(plan, "hall-e-p3", DOOR).plan
    plan = set_edge_feature(plan, "bath-e-p1", WINDOW, width=1.0).plan

    errors = plan.validate() + group_consistency_errors(plan)
    print(f"Validation: {'OK' if not errors else errors}")
    for poly in plan:
        report = solve_report(poly)
        print(f"  {poly.name}: area {poly.area:.2f} m², "
              f"max residual {report['max_residual']:.2e} m, group {poly.group_id}")

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    save_json(plan, out_dir / "plan.json")
    save_dxf(plan, out_dir / "plan.dxf")
    render_png(plan, out_dir / "plan.png", dpi=args.dpi)
    print(f"Wrote {out_dir}/plan.json, plan.dxf, plan.png")


if __name__ == "__main__":
    main()
