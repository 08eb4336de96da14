"""
Command-line interface: parse a saved AISIS paste or page source and export to file.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .curriculum_html import parse_curriculum
from .export import FORMATS, export
from .grades import parse_grades
from .logging_utils import get_logger
from .models import ERROR
from .schedule_table import parse_schedule_table
from .weekly_schedule import parse_weekly_schedule


def read_input(path: str) -> str:
    """Read a paste from ``path``; ``-`` reads stdin."""
    if path == "-":
        return sys.stdin.read()
    p = Path(path)
    if not p.exists():
        raise ValueError(f"Input file not found: {p}")
    return p.read_text(encoding="utf-8", errors="replace")


def _parse(args, text: str):
    if args.command == "curriculum":
        return parse_curriculum(text)
    if args.command == "schedule":
        return parse_weekly_schedule(text)
    if args.command == "table":
        return parse_schedule_table(text, term_code=args.term_code, department=args.department)
    return parse_grades(text)


def _print_report(result) -> None:
    for e in result.errors:
        where = f" (line {e.line})" if e.line else ""
        print(f"  [{e.type}] {e.message}{where}", file=sys.stderr)
    metadata = getattr(result, "metadata", None)
    if metadata is not None:
        print(
            f"Mode: {metadata.mode}, strategy: {metadata.strategy or '-'}, "
            f"lines: {metadata.lines_processed}, skipped: {metadata.rows_skipped}",
            file=sys.stderr,
        )
        for row in metadata.skipped_rows[:20]:
            print(f"  skipped line {row.line_no}: {row.reason}", file=sys.stderr)
        if metadata.rows_skipped > 20:
            print(f"  ... {metadata.rows_skipped - 20} more", file=sys.stderr)


def _output_path(output: str, fmt: str) -> Path:
    ext = f".{fmt}"
    return Path(output).with_suffix(ext) if Path(output).suffix else Path(output + ext)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aisis-extract",
        description=(
            "Extract structured records from text or HTML copied out of AISIS "
            "and export them to JSON / CSV / ICS."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log per-row decisions (DEBUG).")

    sub = parser.add_subparsers(dest="command", required=True)
    helps = {
        "curriculum": "Official Curriculum page (pasted text or page source HTML)",
        "schedule": "My Class Schedule weekly grid",
        "table": "Department Class Schedule table",
        "grades": "My Grades listing",
    }
    for name, help_text in helps.items():
        p = sub.add_parser(name, help=help_text)
        p.add_argument("input", metavar="INPUT", help="Text/HTML file with the paste, or - for stdin.")
        p.add_argument(
            "-o",
            "--output",
            default=f"aisis_{name}",
            help=f"Output path (without extension). Default: aisis_{name}",
        )
        p.add_argument(
            "-f",
            "--format",
            choices=FORMATS,
            default="json",
            help="Export format. Default: json (ics only for schedule/table)",
        )
        if name in ("schedule", "table"):
            p.add_argument("--term-start", metavar="YYYY-MM-DD", help="(ics) First class day of the term.")
            p.add_argument("--term-end", metavar="YYYY-MM-DD", help="(ics) Last class day of the term.")
        if name == "table":
            p.add_argument("--term-code", help='Term override, e.g. "2024-2025-First Semester".')
            p.add_argument("--department", help="Department override when auto-detection fails.")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    get_logger("aisis_extract", logging.DEBUG if args.verbose else logging.WARNING)

    try:
        text = read_input(args.input)
        result = _parse(args, text)
        _print_report(result)
        out_path = _output_path(args.output, args.format)
        count = export(
            result,
            out_path,
            args.format,
            term_start=getattr(args, "term_start", None),
            term_end=getattr(args, "term_end", None),
        )
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Exported {count} record(s) to {out_path}")
    return 1 if count == 0 and any(e.type == ERROR for e in result.errors) else 0


if __name__ == "__main__":
    sys.exit(main())
