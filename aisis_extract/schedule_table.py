"""
Parse the AISIS department "Class Schedule" table into one record per
teaching session.

Input is whatever the user copied from the page: either the tab-separated
table (possibly with wrapped cells split over several lines) or a
space-separated plain-text rendering. Strategies are tried in order and the
one that produced records is recorded in ``metadata.strategy``:

1. ``table``      -- bucket reconstruction over tab-separated lines (rows.py)
2. ``plain-text`` -- token heuristics over space-separated lines

Rows whose time is TBA/TUTORIAL/unparseable are kept as explicit
zero-duration placeholders (no days, 00:00:00-00:00:00).

Both strategies read tokenized lines, so navigation noise never reaches a
row. Term, department and mode detection scan the raw lines because they
look at the preamble and count tabs.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .models import (
    AISISSchedule,
    ParseError,
    ScheduleTableMetadata,
    ScheduleTableResult,
    SkippedRow,
    ERROR,
    WARNING,
)
from .rows import Bucket, reconstruct_rows, TIME_COLUMN
from .time_pattern import parse_time_segments, placeholder_segment
from .tokenizer import Line, LineKind, find_header, is_table_header, normalize_cell, split_lines, tokenize

logger = logging.getLogger(__name__)

MODE_TABLE = "table"
MODE_PLAIN_TEXT = "plain-text"

TBA_REMARK = "[TBA SCHEDULE]"

GENERIC_DEPARTMENTS = (
    "ALL INTERDISCIPLINARY ELECTIVES",
    "ALL DEPARTMENTS",
    "INTERDISCIPLINARY",
)

DEPARTMENT_PREFIXES = {
    "BIO": "BIOLOGY",
    "MATH": "MATHEMATICS",
    "CS": "COMPUTER SCIENCE",
    "ENLIT": "ENGLISH LITERATURE",
    "FILI": "FILIPINO",
    "HISTO": "HISTORY",
    "DECSC": "DECISION SCIENCES",
    "INTACT": "INTERDISCIPLINARY",
    "PEPC": "PHYSICAL EDUCATION",
    "SOCSC": "SOCIAL SCIENCE",
    "SCIED": "SCIENCE EDUCATION",
    "PHYS": "PHYSICS",
    "CHEM": "CHEMISTRY",
    "ECON": "ECONOMICS",
    "MGMT": "MANAGEMENT",
    "ACCTG": "ACCOUNTING",
    "LAWS": "LAW",
    "PHILO": "PHILOSOPHY",
    "THEO": "THEOLOGY",
    "MATSE": "MATERIALS SCIENCE AND ENGINEERING",
    "CHEMED": "CHEMISTRY EDUCATION",
}

# Delivery modes that leak into the subject cell; qualifiers like (ROTC) stay.
_SUBJECT_DM_LEAK_RX = re.compile(
    r"\s*\((?:FULLY\s+ON[- ]?SITE|FULLY\s+ONLINE|ONLINE|ONSITE|HYBRID|BLENDED|"
    r"SYNCHRONOUS|ASYNCHRONOUS)\)\s*$",
    re.I,
)

# "NSTP 11(ROTC) A ..." / "MATH 31.1 K1 ..." at the start of a plain-text line
_PLAIN_SUBJECT_RX = re.compile(
    r"^([A-Z][A-Z0-9 ]{1,15})\s+(\d+(?:\.\d+)?[A-Za-z]?)(?:\s*\(([A-Z0-9/&+\- ]{1,30})\))?\s+",
    re.I,
)

_TERM_RX = re.compile(r"\d{4}-\d{4}-(First|Second|Intersession)", re.I)


# ──────────────────────────────────────────────────────────────────
#  Term / department detection
# ──────────────────────────────────────────────────────────────────

def detect_term_code(lines: List[str]) -> Optional[str]:
    """Value following the "School Year and Term" label, e.g. "2024-2025-First Semester"."""
    for i, raw in enumerate(lines):
        line = raw.strip()
        if "School Year and Term" not in line and "School Year - Term" not in line:
            continue
        for nxt in lines[i + 1:i + 5]:
            nxt = nxt.strip()
            if nxt and "\t" not in nxt and len(nxt) > 5 and _TERM_RX.search(nxt):
                return normalize_cell(nxt)
    return None


def detect_department(lines: List[str]) -> Optional[str]:
    for i, raw in enumerate(lines):
        if raw.strip() != "Department":
            continue
        for nxt in lines[i + 1:i + 5]:
            nxt = normalize_cell(nxt)
            if nxt and nxt not in ("Cat. No.", "ALL"):
                return nxt.upper()
    return None


def should_extract_from_subject_code(department: Optional[str]) -> bool:
    if not department:
        return True
    return any(generic in department for generic in GENERIC_DEPARTMENTS)


def department_for_subject(subject_code: str) -> str:
    m = re.match(r"^([A-Z]+)", subject_code.upper())
    if not m:
        return "UNKNOWN"
    return DEPARTMENT_PREFIXES.get(m.group(1), m.group(1))


def detect_mode(text: str, lines: List[str]) -> str:
    """``table`` for HTML or when >= 2 of the first 80 data lines carry >= 6 tabs."""
    if "<table" in text:
        return MODE_TABLE
    header_idx = find_header(lines, is_table_header)
    if header_idx != -1:
        sample = lines[header_idx + 1:header_idx + 81]
        if sum(1 for l in sample if l.count("\t") >= 6) >= 2:
            return MODE_TABLE
    return MODE_PLAIN_TEXT


# ──────────────────────────────────────────────────────────────────
#  Field helpers
# ──────────────────────────────────────────────────────────────────

def strip_boilerplate_pairs(tokens: List[str]) -> List[str]:
    """Drop trailing "S P" / "N N" flag pairs from a remarks token list."""
    tokens = list(tokens)
    while len(tokens) >= 2 and tokens[-2] in ("S", "N") and tokens[-1] in ("P", "N"):
        del tokens[-2:]
    return tokens


def clean_remarks(text: str) -> Optional[str]:
    remarks = " ".join(strip_boilerplate_pairs(text.split())).strip()
    return remarks if remarks and remarks != "-" else None


def _parse_units(text: str, default: float = 3.0) -> float:
    try:
        return float(text)
    except (TypeError, ValueError):
        return default


def _parse_int(text: str) -> Optional[int]:
    text = (text or "").strip()
    if re.match(r"^-?\d+$", text):
        return int(text)
    return None


@dataclass
class PlainRow:
    subject_code: str
    section: str
    course_title: str
    units: float
    time_pattern: str
    room: str
    instructor: Optional[str]
    max_capacity: Optional[int]
    language: Optional[str]
    level: Optional[str]
    remarks: Optional[str]
    line_no: int


@dataclass
class RowDetails:
    room: str = "TBA"
    instructor: Optional[str] = None
    max_capacity: Optional[int] = None
    language: Optional[str] = None
    level: Optional[str] = None
    remarks: Optional[str] = None


def parse_detail_tokens(details: str) -> RowDetails:
    """
    Pull room, instructor, capacity, language, level and remarks out of the
    space-separated second line of a plain-text row::

        "CTC 105 DELA CRUZ, JUAN 40 ENG U 12 - S P"
    """
    out = RowDetails()
    tokens = details.split()
    if not tokens:
        return out

    # Room is one token ("SEC-B305A") or building + number ("CTC 105").
    out.room = tokens[0]
    if (
        len(tokens) > 1
        and re.match(r"^[A-Z-]+$", tokens[0])
        and (re.match(r"^\d", tokens[1]) or re.match(r"^[A-Z0-9-]+$", tokens[1]))
    ):
        out.room = f"{tokens[0]} {tokens[1]}"
        tokens = tokens[2:]
    else:
        tokens = tokens[1:]

    lang_idx = next(
        (j for j, t in enumerate(tokens) if re.match(r"^[A-Z]{3}$", t) and t != "TBA"), -1
    )
    lang_span = 1
    if lang_idx == -1:
        # bilingual "E / F"
        for j in range(len(tokens) - 2):
            if (
                re.match(r"^[A-Z]{1,3}$", tokens[j])
                and tokens[j + 1] == "/"
                and re.match(r"^[A-Z]{1,3}$", tokens[j + 2])
            ):
                lang_idx, lang_span = j, 3
                out.language = " ".join(tokens[j:j + 3])
                break
    if lang_idx == -1:
        return out

    if lang_span == 1:
        out.language = tokens[lang_idx]
    if lang_idx > 0:
        out.max_capacity = _parse_int(tokens[lang_idx - 1])
    if lang_idx + lang_span < len(tokens):
        out.level = tokens[lang_idx + lang_span]

    instr_end = lang_idx - (2 if out.max_capacity is not None else 1)
    if instr_end >= 0:
        instructor = " ".join(tokens[:instr_end + 1]).replace(", -", "").strip()
        out.instructor = instructor or None

    # after level: optional free-slots number, then lone "-" fillers
    r = lang_idx + lang_span + 1
    if r < len(tokens) and _parse_int(tokens[r]) is not None:
        r += 1
    while r < len(tokens) and tokens[r] == "-":
        r += 1
    if r < len(tokens):
        out.remarks = clean_remarks(" ".join(tokens[r:]))
    return out


def reconstruct_plain_text_rows(
    lines: List[Line], skipped: Optional[List[SkippedRow]] = None
) -> List[PlainRow]:
    """Rows from a space-separated paste: one subject line plus an optional "(MODE) details" line."""
    rows: List[PlainRow] = []
    header_idx = next((k for k, l in enumerate(lines) if l.kind is LineKind.HEADER), -1)
    i = header_idx + 1

    while i < len(lines):
        line = lines[i].text
        line_no = lines[i].line_no
        kind = lines[i].kind
        i += 1
        if kind in (LineKind.BLANK, LineKind.FOOTER, LineKind.HEADER) or len(line) < 10:
            continue
        m = _PLAIN_SUBJECT_RX.match(line)
        if not m:
            continue

        prefix = re.sub(r"\s+", " ", m.group(1)).strip()
        qualifier = f"({m.group(3)})" if m.group(3) else ""
        subject_code = f"{prefix} {m.group(2)}{qualifier}"

        tokens = line[m.end():].split()
        units_idx = next((j for j, t in enumerate(tokens) if t.isdigit()), -1)
        if units_idx == -1:
            if skipped is not None:
                skipped.append(SkippedRow(line_no, f"No units value after {subject_code}", line[:100]))
            continue

        delivery_mode = ""
        details = ""
        if i < len(lines) and lines[i].text.startswith("("):
            details = lines[i].text
            dm = re.match(r"^\(([^)]+)\)", details)
            if dm:
                delivery_mode = dm.group(1)
                details = details[dm.end():].strip()
            i += 1

        time_part = " ".join(tokens[units_idx + 1:])
        info = parse_detail_tokens(details)
        rows.append(PlainRow(
            subject_code=subject_code,
            section=tokens[0],
            course_title=" ".join(tokens[1:units_idx]),
            units=float(tokens[units_idx]),
            time_pattern=time_part + (f" ({delivery_mode})" if delivery_mode else ""),
            room=info.room,
            instructor=info.instructor,
            max_capacity=info.max_capacity,
            language=info.language,
            level=info.level,
            remarks=info.remarks,
            line_no=line_no,
        ))
    return rows


# ──────────────────────────────────────────────────────────────────
#  Parser
# ──────────────────────────────────────────────────────────────────

class ScheduleTableParser:
    """One parse of one paste. Holds the diagnostics while strategies run."""

    def __init__(self, text: str, term_code: Optional[str] = None, department: Optional[str] = None):
        self.text = text or ""
        self.lines = split_lines(self.text)
        self.tokens = tokenize(self.text, header_test=is_table_header)
        self.detected_term = detect_term_code(self.lines)
        self.detected_department = detect_department(self.lines)
        self.term_code = term_code or self.detected_term
        self.department = department or self.detected_department
        self.per_row_department = should_extract_from_subject_code(self.department)
        self.errors: List[ParseError] = []
        self.skipped_rows: List[SkippedRow] = []

    def _department(self, subject_code: str) -> str:
        if self.per_row_department:
            return department_for_subject(subject_code)
        return self.department or "UNKNOWN"

    def _records(
        self,
        *,
        subject_code: str,
        section: str,
        course_title: str,
        units: float,
        time_pattern: str,
        room: str,
        instructor: Optional[str],
        max_capacity: Optional[int],
        language: Optional[str],
        level: Optional[str],
        remarks: Optional[str],
        line_no: int,
    ) -> List[AISISSchedule]:
        segments = parse_time_segments(time_pattern)
        if not segments:
            self.errors.append(ParseError(
                WARNING,
                f'TBA/unparseable time "{time_pattern}" for {subject_code} {section} '
                f"- creating entry with placeholder schedule",
                line_no,
            ))
            segments = [placeholder_segment()]
            remarks = f"{remarks or ''} {TBA_REMARK}".strip()

        department = self._department(subject_code)
        return [
            AISISSchedule(
                term_code=self.term_code or "",
                subject_code=subject_code,
                section=section,
                course_title=course_title,
                units=units,
                time_pattern=time_pattern,
                room=room,
                instructor=instructor,
                max_capacity=max_capacity,
                language=language,
                level=level,
                delivery_mode=seg.delivery_mode,
                remarks=remarks,
                days_of_week=list(seg.days),
                start_time=seg.start_time,
                end_time=seg.end_time,
                department=department,
            )
            for seg in segments
        ]

    # ── table strategy ───────────────────────────────────────────

    def _bucket_records(self, bucket: Bucket) -> List[AISISSchedule]:
        cells = [c.strip() for c in bucket.cells] + [""] * max(0, 11 - len(bucket.cells))
        subject_raw, section, title, units_s, time_s, room, instructor, cap_s, lang, level, _free = cells[:11]
        subject_code = _SUBJECT_DM_LEAK_RX.sub("", subject_raw).strip()

        if not subject_code or not section or not title:
            self.skipped_rows.append(SkippedRow(
                bucket.line_no,
                "Missing essential field (subject/section/title)",
                "\t".join(bucket.cells)[:60],
            ))
            return []

        if not bucket.has_time_column:
            self.errors.append(ParseError(
                WARNING,
                f"Row for {subject_code} {section} has no time column "
                f"(expected at index {TIME_COLUMN}); treating schedule as TBA",
                bucket.line_no,
            ))

        return self._records(
            subject_code=subject_code,
            section=section,
            course_title=title,
            units=_parse_units(units_s),
            time_pattern=time_s or "TBA",
            room=room or "TBA",
            instructor=instructor if instructor and instructor != "TBA" else None,
            max_capacity=_parse_int(cap_s),
            language=lang or None,
            level=level or None,
            remarks=clean_remarks(" ".join(cells[11:])),
            line_no=bucket.line_no,
        )

    def _run_table(self) -> List[AISISSchedule]:
        out: List[AISISSchedule] = []

        def emit(bucket: Bucket) -> bool:
            try:
                records = self._bucket_records(bucket)
            except (ValueError, IndexError, TypeError, AttributeError) as exc:
                logger.debug("Row at line %d failed", bucket.line_no, exc_info=True)
                self.skipped_rows.append(SkippedRow(
                    bucket.line_no, f"Row extraction failed: {exc}", "\t".join(bucket.cells)[:60]
                ))
                return False
            out.extend(records)
            return bool(records)

        recon = reconstruct_rows(self.text, emit)
        self.skipped_rows.extend(recon.skipped_rows)
        return out

    # ── plain-text strategy ──────────────────────────────────────

    def _run_plain_text(self) -> List[AISISSchedule]:
        out: List[AISISSchedule] = []
        for row in reconstruct_plain_text_rows(self.tokens, self.skipped_rows):
            try:
                out.extend(self._records(
                    subject_code=row.subject_code,
                    section=row.section,
                    course_title=row.course_title,
                    units=row.units,
                    time_pattern=row.time_pattern,
                    room=row.room or "TBA",
                    instructor=row.instructor,
                    max_capacity=row.max_capacity,
                    language=row.language,
                    level=row.level,
                    remarks=row.remarks,
                    line_no=row.line_no,
                ))
            except (ValueError, IndexError, TypeError, AttributeError) as exc:
                self.skipped_rows.append(SkippedRow(row.line_no, f"Row extraction failed: {exc}", row.subject_code))
        return out

    # ── driver ───────────────────────────────────────────────────

    def _strategies(self, mode: str) -> List[Tuple[str, Callable[[], List[AISISSchedule]]]]:
        chain = [(MODE_TABLE, self._run_table), (MODE_PLAIN_TEXT, self._run_plain_text)]
        return chain if mode == MODE_TABLE else chain[1:]

    def _metadata(self, mode: str, strategy: Optional[str], total: int) -> ScheduleTableMetadata:
        return ScheduleTableMetadata(
            department=self.department or "MULTIPLE",
            term=self.term_code or "",
            total_courses=total,
            detected_term=self.detected_term,
            detected_department=self.detected_department,
            mode=mode,
            strategy=strategy,
            lines_processed=len(self.lines),
            rows_skipped=len(self.skipped_rows),
            skipped_rows=list(self.skipped_rows),
        )

    def parse(self) -> ScheduleTableResult:
        mode = detect_mode(self.text, self.lines)

        if not self.term_code:
            self.errors.append(ParseError(ERROR, "Could not detect term code. Please provide it manually."))
            return ScheduleTableResult([], self.errors, self._metadata(mode, None, 0))

        logger.info("Schedule table mode detection: %s", mode)
        schedules: List[AISISSchedule] = []
        strategy: Optional[str] = None
        for name, run in self._strategies(mode):
            if name != mode:
                logger.warning("%s mode found 0 schedules, retrying as %s", mode, name)
            mode = name
            schedules = run()
            if schedules:
                strategy = name
                break

        if not schedules and not self.errors:
            self.errors.append(ParseError(
                WARNING,
                f"No courses parsed. Detected mode: {mode}. Processed {len(self.lines)} lines, "
                f"skipped {len(self.skipped_rows)} rows. Please check your paste format.",
            ))

        unique = dedupe_schedules(schedules)
        self._log_summary(unique)
        return ScheduleTableResult(unique, self.errors, self._metadata(mode, strategy, len(unique)))

    def _log_summary(self, schedules: List[AISISSchedule]) -> None:
        logger.info(
            "Schedule table complete: %d schedules, %d errors, %d skipped",
            len(schedules), len(self.errors), len(self.skipped_rows),
        )
        reasons: Dict[str, int] = {}
        for row in self.skipped_rows:
            reasons[row.reason] = reasons.get(row.reason, 0) + 1
        if reasons:
            logger.info("Skip reasons: %s", reasons)


def dedupe_schedules(schedules: List[AISISSchedule]) -> List[AISISSchedule]:
    seen = set()
    out: List[AISISSchedule] = []
    for s in schedules:
        key = (
            s.subject_code, s.section, tuple(s.days_of_week),
            s.start_time, s.end_time, s.room, s.instructor or "",
        )
        if key in seen:
            continue
        seen.add(key)
        out.append(s)
    return out


def parse_schedule_table(
    text: str,
    term_code: Optional[str] = None,
    department: Optional[str] = None,
) -> ScheduleTableResult:
    """
    Parse a pasted AISIS class-schedule table.

    :param text: Raw paste (tab-separated table, plain text, or page HTML source).
    :param term_code: Override for the term, e.g. "2024-2025-First Semester".
    :param department: Override for the department name.
    """
    return ScheduleTableParser(text, term_code, department).parse()
