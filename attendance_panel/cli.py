#!/usr/bin/env python3
"""Command-line interface over the attendance panel."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
import traceback
from pathlib import Path
from typing import Any, Dict

from . import reports
from .config import get_settings
from .log import setup_logger
from .models import ALL
from .panel import AttendancePanel
from .sessions import PathUpload


def _load_panel(args: argparse.Namespace) -> AttendancePanel:
    panel = AttendancePanel()
    result = asyncio.run(panel.ingest_batch([PathUpload(Path(p)) for p in args.csv]))
    for name, err in result.failed:
        print(f"skipped {name}: {err}", file=sys.stderr)
    panel.set_filters(sede=args.sede, area=args.area)
    return panel


def handle_report(args: argparse.Namespace) -> Dict[str, Any]:
    panel = _load_panel(args)
    sessions = panel.get_filtered_sessions()
    return {
        "ok": True,
        "filters": {"sede": panel.filters.sede, "area": panel.filters.area},
        "summary": reports.summary(panel.get_student_metrics(), sessions),
        "students": [s.to_dict() for s in panel.get_student_metrics().values()],
    }


def handle_ranking(args: argparse.Namespace) -> Dict[str, Any]:
    panel = _load_panel(args)
    if args.session is None:
        return {"ok": True, "ranking": [r.to_dict() for r in panel.global_ranking()]}
    session = panel.get_session(args.session)
    if session is None:
        raise ValueError(f"Unknown session id: {args.session}")
    return {"ok": True, "session": session.to_dict(),
            "ranking": [c.to_dict() for c in panel.compute_class_scores(session)]}


def handle_export(args: argparse.Namespace) -> Dict[str, Any]:
    panel = _load_panel(args)
    prefix = get_settings().export_filename_prefix
    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    metrics = panel.get_student_metrics()
    sessions = panel.get_filtered_sessions()
    if args.format == "csv":
        path = out_dir / reports.export_filename(prefix, panel.filters, "csv")
        path.write_text(reports.export_csv(metrics, len(sessions), panel.followups), encoding="utf-8")
    else:
        path = out_dir / reports.export_filename(prefix, panel.filters, "xlsx")
        path.write_bytes(reports.export_workbook(metrics, sessions, panel.filters,
                                                 panel.followups, panel.excluded_accounts))
    return {"ok": True, "path": str(path), "students": len(metrics)}


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("csv", nargs="+", help="Attendance export CSV file(s)")
    p.add_argument("--sede", default=ALL, help="Sede filter: todas, SG, IETAC or OTRO")
    p.add_argument("--area", default=ALL, help="Area filter, e.g. 'Matemáticas'")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Attendance panel CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_report = subparsers.add_parser("report", help="Per-student metrics as JSON")
    _add_common(p_report)

    p_ranking = subparsers.add_parser("ranking", help="Global or per-class ranking")
    _add_common(p_ranking)
    p_ranking.add_argument("--session", type=int, help="Session id for a class ranking")

    p_export = subparsers.add_parser("export", help="Write a CSV or Excel report")
    _add_common(p_export)
    p_export.add_argument("--format", choices=("csv", "xlsx"), default="xlsx")
    p_export.add_argument("--out-dir", default=".", help="Output directory")

    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logger(settings.log_level, settings.log_file)

    try:
        if args.command == "report":
            payload = handle_report(args)
        elif args.command == "ranking":
            payload = handle_ranking(args)
        elif args.command == "export":
            payload = handle_export(args)
        else:
            raise ValueError(f"Unsupported command: {args.command}")
        print(json.dumps(payload, ensure_ascii=False))
        return 0
    except Exception as exc:
        err_payload = {
            "ok": False,
            "error": str(exc),
            "traceback": traceback.format_exc(),
        }
        print(json.dumps(err_payload))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
