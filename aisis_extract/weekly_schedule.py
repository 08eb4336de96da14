"""
Parse the AISIS "My Class Schedule" weekly grid (copied as text) into
:class:`~aisis_extract.models.ScheduleBlock` entries.

The grid has a ``Time Mon Tue Wed Thur Fri Sat`` header and one row per
half-hour slot. A copied slot often spans several physical lines: the first
carries the time and the course codes, the following ones the
"section room (mode)" details, shifted left because empty day cells vanish::

    0800-0830<TAB><TAB>MATH 10<TAB><TAB>CS 21
    A SEC-A210 (FULLY ONSITE)<TAB>B F-113

Every cell is assigned to a "lane" (course header plus its details), lanes
are mapped back to day columns, and consecutive slots of the same class are
merged into one block. The full decision trail lands in ``result.debug``.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .models import (
    ColumnExtraction,
    CommonIssue,
    DebugInfo,
    LaneEvent,
    ParseError,
    ScheduleBlock,
    ValidationResult,
    WeeklyScheduleResult,
    ERROR,
    WARNING,
)
from .tokenizer import Line, LineKind, is_page_footer, is_schedule_header, normalize_cell, tokenize

logger = logging.getLogger(__name__)

# "700-730", "0800-0930"
TIME_RX = re.compile(r"^\s*(\d{3,4})-(\d{3,4})")

# "MATH 10", "SocSc 11", "MATH 31.1", "CS 101A"
COURSE_CODE_RX = re.compile(r"^[A-Z][A-Za-z]*(?:\s+[A-Z][A-Za-z]*)*\s+\d+(?:\.\d+)?[A-Za-z]?$")

# Applied only after COURSE_CODE_RX matched.
REJECT_PATTERNS = (
    re.compile(r"^[A-Z]?\d+$"),             # A3, 307
    re.compile(r"^[A-Z]-\d+$"),             # F-113
    re.compile(r"^[A-Z]{2,3}-[A-Z]?\d+$"),  # SEC-A210, CTC-114
    re.compile(r"^COVERED\s+COURT", re.I),
    re.compile(r"^\([^)]+\)$"),             # (FULLY ONSITE)
    re.compile(r"^[A-Z]$"),
)

_ROOM_CODE_RX = re.compile(r"^[A-Z]{2,3}-[A-Z]?\d+$")

DAY_LABELS = ("Mon", "Tue", "Wed", "Thur", "Fri", "Sat")
COLUMNS = len(DAY_LABELS) + 1  # time + days
MAX_LANES = 20


def is_valid_course_code(text: str) -> bool:
    if not COURSE_CODE_RX.match(text):
        return False
    return not any(rx.match(text) for rx in REJECT_PATTERNS)


def reject_reason(text: str) -> str:
    if not COURSE_CODE_RX.match(text):
        return "Does not match COURSE_CODE_RX pattern"
    for rx in REJECT_PATTERNS:
        if rx.match(text):
            return f"Matched reject pattern: {rx.pattern}"
    return "Matched COURSE_CODE_RX and passed reject filters"


def to_hh_mm(hhmm: str) -> str:
    """``"800"`` -> ``"08:00"``."""
    p = hhmm.zfill(4)
    return f"{p[:2]}:{p[2:]}"


def parse_course_info(text: str) -> Tuple[str, str]:
    """
    "A SEC-A210 (FULLY ONSITE)" -> ("A", "SEC-A210 (FULLY ONSITE)")

    Section is the first token; the rest is the room with the trailing
    delivery mode re-attached. Missing room falls back to the mode, then "TBD".
    """
    m = re.search(r"\(([^)]+)\)\s*$", text)
    mode = m.group(1) if m else ""
    before = re.sub(r"\([^)]+\)\s*$", "", text).strip()
    parts = before.split()
    if not parts:
        return "N/A", mode or "TBD"
    section = parts[0]
    room = " ".join(parts[1:]).strip()
    if room:
        return section, f"{room} ({mode})" if mode else room
    return section, mode or "TBD"


# ──────────────────────────────────────────────────────────────────
#  Lane collapse
# ──────────────────────────────────────────────────────────────────

@dataclass
class _Lane:
    header: str
    details: List[str] = field(default_factory=list)
    open: bool = True


def _find_open_lane(lanes: Dict[int, _Lane], pos: int) -> Optional[int]:
    top = max(lanes) if lanes else -1
    for k in range(pos, top + 1):
        if k in lanes and lanes[k].open:
            return k
    for k in range(top, -1, -1):
        if k in lanes and lanes[k].open:
            return k
    return None


def collapse_row_group(lines: List[str], extraction: Optional[ColumnExtraction] = None) -> List[str]:
    """
    Collapse the physical lines of one time slot into ``[time, Mon, ..., Sat]``.

    A course-code cell opens a lane at the first free position at or after
    its column; any other cell is a detail for the nearest open lane, which
    it then closes. Explicit empty cells with no lane become gaps that
    consume a day when lanes are mapped back to columns.
    """
    out = [""] * COLUMNS
    if not lines:
        return out

    lanes: Dict[int, _Lane] = {}
    gaps = set()
    completed = 0
    events: List[LaneEvent] = extraction.lane_events if extraction is not None else []

    for li, raw in enumerate(lines):
        if is_page_footer(raw):
            if extraction is not None:
                extraction.end_of_table_tripped = True
            break

        cells = [normalize_cell(c) for c in raw.split("\t")]
        if TIME_RX.match(cells[0]):
            if li > 0:
                logger.debug("Second time cell inside one slot group: %r", raw)
                break
            cells = cells[1:]

        base = completed
        for cj, text in enumerate(cells):
            pos = base + cj
            if not text:
                if pos not in lanes:
                    gaps.add(pos)
                events.append(LaneEvent(li, cj, "gap", "", pos))
                continue

            if is_valid_course_code(text):
                k = pos
                while k in lanes and k < MAX_LANES:
                    k += 1
                lanes[k] = _Lane(text)
                events.append(LaneEvent(li, cj, "header", text, k))
                continue

            k = _find_open_lane(lanes, pos)
            if k is None:
                events.append(LaneEvent(li, cj, "detail_orphan", text, note="no open lane"))
                continue
            lane = lanes[k]
            if text not in lane.details:
                lane.details.append(text)
            lane.open = False
            completed += 1
            events.append(LaneEvent(li, cj, "detail", text, k))

    m = TIME_RX.match(lines[0])
    out[0] = m.group(0).strip() if m else ""

    day = 1
    max_pos = max(list(lanes) + list(gaps) + [-1])
    for pos in range(min(max_pos, MAX_LANES) + 1):
        if day >= COLUMNS:
            if pos in lanes:
                events.append(LaneEvent(-1, -1, "detail_orphan", lanes[pos].header,
                                        note=f"Alignment overflow: lane {pos} past Sat"))
            continue
        if pos in gaps and pos not in lanes:
            day += 1
            continue
        lane = lanes.get(pos)
        if lane is None:
            continue
        out[day] = "\n".join([lane.header] + lane.details).strip()
        day += 1

    return out


# ──────────────────────────────────────────────────────────────────
#  Parser
# ──────────────────────────────────────────────────────────────────

def group_time_slots(lines: List[Line]) -> Tuple[List[List[str]], int]:
    """Group classified lines into time slots of raw text; returns ``(groups, footer_lines_ignored)``."""
    groups: List[List[str]] = []
    current: Optional[List[str]] = None
    footer_lines = 0
    for line in lines:
        if line.kind is LineKind.FOOTER or is_page_footer(line.raw):
            footer_lines += 1
            continue
        if line.kind is LineKind.BLANK:
            continue
        if TIME_RX.match(line.raw):
            if current:
                groups.append(current)
            current = [line.raw]
        elif current is not None:
            current.append(line.raw)
    if current:
        groups.append(current)
    return groups, footer_lines


@dataclass
class _Active:
    course_code: str
    section: str
    room: str
    start: str
    last_end: str

    def close(self, day: int) -> ScheduleBlock:
        return ScheduleBlock(self.course_code, self.section, self.room, [day], self.start, self.last_end)


def _parse_cell(cell: str) -> Optional[Tuple[str, str, str]]:
    cell_lines = [s.strip() for s in cell.split("\n") if s.strip()]
    if not cell_lines or not is_valid_course_code(cell_lines[0]):
        return None
    if len(cell_lines) > 1:
        section, room = parse_course_info(" ".join(cell_lines[1:]))
    else:
        section, room = "N/A", "TBD"
    return cell_lines[0], section, room


def _validate_cell(cell: str, day_name: str, time_range: str) -> ValidationResult:
    cell_lines = [s.strip() for s in cell.split("\n") if s.strip()]
    if not cell_lines:
        return ValidationResult(day_name, time_range, "", "empty", "No content in cell")
    first = cell_lines[0]
    if is_valid_course_code(first):
        return ValidationResult(day_name, time_range, first, "accepted", reject_reason(first), first)
    return ValidationResult(day_name, time_range, first, "rejected", reject_reason(first))


def merge_adjacent(blocks: List[ScheduleBlock]) -> List[ScheduleBlock]:
    """Join blocks of the same class on the same day whose times touch exactly."""
    ordered = sorted(
        blocks,
        key=lambda b: (b.days[0], b.start_time, b.course_code + b.section + b.room),
    )
    out: List[ScheduleBlock] = []
    for b in ordered:
        last = out[-1] if out else None
        if (
            last is not None
            and last.days == b.days
            and last.course_code == b.course_code
            and last.section == b.section
            and last.room == b.room
            and last.end_time == b.start_time
        ):
            last.end_time = b.end_time
        else:
            out.append(ScheduleBlock(b.course_code, b.section, b.room, list(b.days), b.start_time, b.end_time))
    return out


def _common_issues(debug: DebugInfo) -> List[CommonIssue]:
    issues: List[CommonIssue] = []

    room_rejects = [
        v for v in debug.validation_results
        if v.result == "rejected" and _ROOM_CODE_RX.match(v.cell_content)
    ]
    if room_rejects:
        issues.append(CommonIssue(
            "regex", WARNING, f"{len(room_rejects)} cells rejected as room codes (e.g., SEC-A210)"
        ))

    orphaned = [
        e for e in debug.column_extractions
        if any(ev.type == "detail_orphan" and not (ev.note or "").startswith("Alignment overflow")
               for ev in e.lane_events)
    ]
    if orphaned:
        issues.append(CommonIssue(
            "alignment", ERROR,
            f"{len(orphaned)} time slots have detail lines with no open course lane",
        ))

    if debug.footer_lines_ignored:
        issues.append(CommonIssue(
            "footer", "info",
            f'{debug.footer_lines_ignored} footer lines were ignored (e.g., "Home", "Privacy Policy")',
        ))

    overflow = [
        e for e in debug.column_extractions
        if any((ev.note or "").startswith("Alignment overflow") for ev in e.lane_events)
    ]
    if overflow:
        issues.append(CommonIssue(
            "alignment", WARNING,
            f"{len(overflow)} time slots had more than 6 day columns (alignment overflow)",
        ))
    return issues


def parse_weekly_schedule(text: str) -> WeeklyScheduleResult:
    """
    Parse the weekly class-schedule grid.

    A missing header is a warning (parsing starts at line 0); a paste with
    no time slots at all is an error.
    """
    result = WeeklyScheduleResult()
    debug = result.debug
    lines = tokenize(text or "", header_test=is_schedule_header)

    debug.total_lines = len(lines)
    debug.uses_tab_separator = any("\t" in l.raw for l in lines)

    header = next((i for i, l in enumerate(lines) if l.kind is LineKind.HEADER), -1)
    debug.header_line = lines[header].index if header >= 0 else -1
    debug.header_content = lines[header].raw if header >= 0 else "Not found"
    if header == -1:
        result.errors.append(ParseError(
            WARNING,
            "Couldn't find schedule header (Time Mon Tue Wed Thur Fri Sat); "
            "parsing from the first line",
        ))

    groups, debug.footer_lines_ignored = group_time_slots(lines[header + 1:])
    debug.time_slot_groups = len(groups)
    if not groups:
        result.errors.append(ParseError(
            ERROR,
            "No time slots found (e.g., '800-830'). Make sure you copied the full "
            "schedule table from AISIS.",
        ))
        return result

    active: Dict[int, _Active] = {}
    blocks: List[ScheduleBlock] = []

    for group in groups:
        extraction = ColumnExtraction(time_slot="", raw_lines=list(group), collapsed_columns=[], cells_with_content=[])
        cols = collapse_row_group(group, extraction)
        extraction.collapsed_columns = cols
        extraction.cells_with_content = [i for i, c in enumerate(cols) if c.strip()]
        extraction.time_slot = cols[0]
        debug.column_extractions.append(extraction)

        tm = TIME_RX.match(cols[0])
        if not tm:
            continue
        start, end = to_hh_mm(tm.group(1)), to_hh_mm(tm.group(2))
        time_range = f"{start}-{end}"

        for d, day_name in enumerate(DAY_LABELS, start=1):
            cell = cols[d]
            debug.validation_results.append(_validate_cell(cell, day_name, time_range))
            parsed = _parse_cell(cell)
            a = active.get(d)

            if parsed is None:
                if a is not None:
                    blocks.append(a.close(d))
                    del active[d]
                continue

            code, section, room = parsed
            if a is not None and a.course_code == code and a.section == section and a.last_end == start:
                if a.room == "TBD" and room != "TBD":
                    a.room = room
                a.last_end = end
                continue
            if a is not None:
                blocks.append(a.close(d))
            active[d] = _Active(code, section, room, start, end)

    for d, a in active.items():
        blocks.append(a.close(d))

    debug.common_issues = _common_issues(debug)
    result.blocks = merge_adjacent(blocks)
    logger.info(
        "Weekly schedule: %d slots, %d blocks, %d issues",
        len(groups), len(result.blocks), len(debug.common_issues),
    )
    return result
