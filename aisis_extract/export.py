"""
Export parse results to JSON, CSV, and ICS.

- JSON: the whole result including diagnostics (``to_dict()``).
- CSV: one row per record (course, schedule block, section meeting, grade).
- ICS: weekly-recurring events for schedule records, between the first and
  last day of the term. Untimed (TBA) records have no slot and are skipped.
"""
from __future__ import annotations

import csv
import hashlib
import json
import logging
from dataclasses import asdict
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, NamedTuple

import icalendar
import pytz

from .models import (
    AISISSchedule,
    GradesResult,
    ParseResult,
    ScheduleBlock,
    ScheduleTableResult,
    WeeklyScheduleResult,
)

logger = logging.getLogger(__name__)

# Ateneo de Manila is on Philippine time
TZ_MANILA = "Asia/Manila"

FORMATS = ("json", "csv", "ics")


# ──────────────────────────────────────────────────────────────────
#  Flattening
# ──────────────────────────────────────────────────────────────────

def _flat(value):
    if isinstance(value, (list, tuple)):
        return ";".join(str(v) for v in value)
    return "" if value is None else value


def result_rows(result) -> list[dict]:
    """One flat dict per record, lists joined with ``;``."""
    if isinstance(result, ParseResult):
        rows = []
        for term in result.terms:
            for course in term.courses:
                row = {"program_code": result.program_code or "", "term": term.label}
                row.update(asdict(course))
                rows.append(row)
    elif isinstance(result, WeeklyScheduleResult):
        rows = [asdict(b) for b in result.blocks]
    elif isinstance(result, ScheduleTableResult):
        rows = [asdict(s) for s in result.schedules]
    elif isinstance(result, GradesResult):
        rows = [asdict(g) for g in result.courses]
    else:
        raise ValueError(f"Cannot export object of type {type(result).__name__}")
    return [{k: _flat(v) for k, v in row.items()} for row in rows]


# ──────────────────────────────────────────────────────────────────
#  ICS
# ──────────────────────────────────────────────────────────────────

class Meeting(NamedTuple):
    summary: str
    location: str
    description: str
    weekday: int  # 1 = Mon ... 7 = Sun
    start_time: str
    end_time: str


def _parse_clock(time_str: str) -> tuple[int, int]:
    """``"08:00"`` or ``"08:00:00"`` -> ``(8, 0)``."""
    parts = time_str.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Bad time: {time_str!r}")
    return int(parts[0]), int(parts[1])


def _parse_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def first_date_for_weekday(start: date, weekday: int) -> date:
    """First date on/after ``start`` falling on ``weekday`` (1 = Mon ... 7 = Sun)."""
    offset = (weekday - 1 - start.weekday()) % 7
    return start + timedelta(days=offset)


def _meetings(result) -> Iterator[Meeting]:
    if isinstance(result, WeeklyScheduleResult):
        for b in result.blocks:
            yield from _block_meetings(b)
    elif isinstance(result, ScheduleTableResult):
        for s in result.schedules:
            yield from _schedule_meetings(s)
    else:
        raise ValueError("ICS export needs schedule records (weekly schedule or schedule table)")


def _block_meetings(b: ScheduleBlock) -> Iterator[Meeting]:
    summary = f"{b.course_code} {b.section}".strip()
    for day in b.days:
        yield Meeting(summary, b.room, f"Section: {b.section}", day, b.start_time, b.end_time)


def _schedule_meetings(s: AISISSchedule) -> Iterator[Meeting]:
    if s.is_untimed:
        logger.debug("Skipping untimed %s %s", s.subject_code, s.section)
        return
    summary = f"{s.subject_code} {s.section}"
    desc = f"{s.course_title}\nInstructor: {s.instructor or 'TBA'}"
    if s.delivery_mode:
        desc += f"\nMode: {s.delivery_mode}"
    for day in s.days_of_week:
        yield Meeting(summary, s.room, desc, day, s.start_time, s.end_time)


def export_ics(result, out_path: str | Path, term_start: date | str, term_end: date | str) -> int:
    """
    Write weekly-recurring events for every timed meeting between
    ``term_start`` and ``term_end`` (inclusive). Returns the event count.
    """
    if not term_start or not term_end:
        raise ValueError("ICS export needs --term-start and --term-end (YYYY-MM-DD)")
    start_day = _parse_date(term_start)
    end_day = _parse_date(term_end)
    if end_day < start_day:
        raise ValueError(f"Term end {end_day} is before term start {start_day}")

    tz = pytz.timezone(TZ_MANILA)
    until = datetime(end_day.year, end_day.month, end_day.day, 23, 59, 59, tzinfo=timezone.utc)

    cal = icalendar.Calendar()
    cal.add("prodid", "-//AISIS Extract//EN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("x-wr-calname", "AISIS Schedule")
    cal.add("x-wr-timezone", TZ_MANILA)

    count = 0
    for m in _meetings(result):
        first = first_date_for_weekday(start_day, m.weekday)
        if first > end_day:
            continue
        try:
            sh, sm = _parse_clock(m.start_time)
            eh, em = _parse_clock(m.end_time)
        except ValueError:
            logger.debug("Skipping %s: unparseable time %s-%s", m.summary, m.start_time, m.end_time)
            continue
        start = datetime(first.year, first.month, first.day, sh, sm)
        end = datetime(first.year, first.month, first.day, eh, em)

        event = icalendar.Event()
        uid_hash = hashlib.md5(f"{m.summary}-{m.weekday}-{start.isoformat()}".encode("utf-8")).hexdigest()
        event.add("uid", f"{uid_hash}@aisis-extract")
        event.add("summary", m.summary)
        event.add("description", m.description)
        event.add("location", m.location)
        event.add("dtstart", tz.localize(start))
        event.add("dtend", tz.localize(end))
        event.add("dtstamp", datetime.now(timezone.utc))
        event.add("rrule", {"freq": "weekly", "until": until})
        cal.add_component(event)
        count += 1

    Path(out_path).write_text(cal.to_ical().decode("utf-8"), encoding="utf-8")
    return count


# ──────────────────────────────────────────────────────────────────
#  CSV / JSON
# ──────────────────────────────────────────────────────────────────

def export_csv(result, out_path: str | Path) -> int:
    rows = result_rows(result)
    if not rows:
        Path(out_path).write_text("", encoding="utf-8")
        return 0
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=list(rows[0].keys()), extrasaction="ignore")
        w.writeheader()
        w.writerows(rows)
    return len(rows)


def export_json(result, out_path: str | Path) -> int:
    Path(out_path).write_text(
        json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
    )
    return len(result_rows(result))


def export(result, out_path: str | Path, fmt: str, term_start=None, term_end=None) -> int:
    """Export to the given format: json, csv, or ics. Returns the number of records/events written."""
    fmt = fmt.lower()
    if fmt == "ics":
        return export_ics(result, out_path, term_start, term_end)
    if fmt == "csv":
        return export_csv(result, out_path)
    if fmt == "json":
        return export_json(result, out_path)
    raise ValueError(f"Unsupported format: {fmt}. Use json, csv, or ics.")
