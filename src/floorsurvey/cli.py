"""floorsurvey command-line interface."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from .io import load_json, save_dxf, save_json

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="floorsurvey CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate a floor plan document")
    validate.add_argument("--in", dest="input_path", required=True)
    validate.add_argument("--out", dest="output_path")
    validate.add_argument("--groups", action="store_true",
                          help="Also cross-check group ids against the link graph")

    solve = sub.add_parser("solve", help="Reconstruct polygon geometry from measurements")
    solve.add_argument("--in", dest="input_path", required=True)
    solve.add_argument("--out", dest="output_path")
    solve.add_argument("--polygon", dest="polygon_ids", action="append",
                       help="Polygon id to solve (repeatable; default: all)")
    solve.add_argument("--report", dest="report_path",
                       help="Write a JSON quality report per solved polygon")

    join = sub.add_parser("join", help="Join two solved polygons edge to edge")
    join.add_argument("--in", dest="input_path", required=True)
    join.add_argument("--out", dest="output_path")
    join.add_argument("--source", required=True, help="Edge id on the polygon that moves")
    join.add_argument("--target", required=True, help="Edge id on the polygon that stays")
    join.add_argument("--offset", type=float, default=0.0, help="Slide along the target (m)")
    join.add_argument("--in-place", action="store_true",
                      help="Keep the current slide instead of centring the edges")
    join.add_argument("--thickness", type=float,
                      help="Wall thickness (cm) used when the two walls disagree")

    unlink = sub.add_parser("unlink", help="Remove the join on an edge")
    unlink.add_argument("--in", dest="input_path", required=True)
    unlink.add_argument("--out", dest="output_path")
    unlink.add_argument("--edge", required=True)

    render = sub.add_parser("render", help="Render a floor plan to PNG")
    render.add_argument("--in", dest="input_path", required=True)
    render.add_argument("--out", dest="output_path", required=True)
    render.add_argument("--dpi", type=int, default=150)
    render.add_argument("--no-labels", action="store_true")

    dxf = sub.add_parser("export-dxf", help="Export walls, diagonals and labels as DXF")
    dxf.add_argument("--in", dest="input_path", required=True)
    dxf.add_argument("--out", dest="output_path", required=True)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "validate":
        _cmd_validate(args)

    elif args.command == "solve":
        _cmd_solve(args)

    elif args.command == "join":
        _cmd_join(args)

    elif args.command == "unlink":
        _cmd_unlink(args)

    elif args.command == "render":
        from .render import render_png
        plan = load_json(args.input_path)
        render_png(plan, args.output_path, dpi=args.dpi, show_labels=not args.no_labels)
        print(f"Saved {args.output_path}")

    elif args.command == "export-dxf":
        save_dxf(load_json(args.input_path), args.output_path)
        print(f"Saved {args.output_path}")


def _cmd_validate(args) -> None:
    plan = load_json(args.input_path)
    errors = plan.validate()
    if args.groups:
        from .diagnostics import group_consistency_errors
        errors.extend(group_consistency_errors(plan))
    if errors:
        for error in errors:
            print(error)
        raise SystemExit(1)
    if args.output_path:
        save_json(plan, args.output_path)
    print("OK")


def _cmd_solve(args) -> None:
    from .diagnostics import solve_report
    from .solver import reconstruct

    plan = load_json(args.input_path)
    polygon_ids = args.polygon_ids or list(plan.polygons)
    failed = False
    reports = {}
    for pid in polygon_ids:
        plan, result = reconstruct(plan, pid)
        print(f"{pid}: {result.message}")
        if result.ok:
            reports[pid] = solve_report(result.polygon)
        else:
            failed = True

    _save(plan, args.output_path or args.input_path)
    if args.report_path:
        Path(args.report_path).write_text(json.dumps(reports, indent=2), encoding="utf-8")
    if failed:
        raise SystemExit(1)


def _cmd_join(args) -> None:
    from .joins import JoinStatus, join_in_place, request_join, resolve_conflict

    plan = load_json(args.input_path)
    if args.in_place:
        result = join_in_place(plan, args.source, args.target)
    else:
        result = request_join(plan, args.source, args.target, args.offset)

    if result.status is JoinStatus.CONFLICT and args.thickness is not None:
        logger.info("resolving thickness conflict with %s cm", args.thickness)
        result = resolve_conflict(plan, result.conflict, args.thickness)

    print(result.message)
    if not result.applied:
        raise SystemExit(1)
    _save(result.plan, args.output_path or args.input_path)


def _cmd_unlink(args) -> None:
    from .joins import unlink

    result = unlink(load_json(args.input_path), args.edge)
    print(result.message)
    if not result.applied:
        raise SystemExit(1)
    _save(result.plan, args.output_path or args.input_path)


def _save(plan, path) -> None:
    save_json(plan, path)
    print(f"Saved {path}")


if __name__ == "__main__":
    main()
