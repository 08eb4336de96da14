"""
Parse a copy-pasted AISIS "Official Curriculum" page (plain text) into a
:class:`~aisis_extract.models.ParseResult`.

Expected shape of the paste::

    (BS ME) BACHELOR OF SCIENCE IN MANAGEMENT ENGINEERING (Ver Sem 1, Ver Year 2020)
    First Year
    First Semester - 21.0 Units
    Cat No<TAB>Course Title<TAB>Units<TAB>Prerequisites<TAB>Category
    MATH 31.1<TAB>MATHEMATICAL ANALYSIS I<TAB>3<TAB>None<TAB>M
    ...

Courses are grouped into terms labelled ``"Y{year} {semester}"``.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Set, Tuple

from .models import (
    DuplicateCourse,
    ParseError,
    ParseResult,
    ParsedCourse,
    ParsedTerm,
    ERROR,
    WARNING,
)
from .program import (
    VERSION_RX,
    ElectiveCounter,
    generate_placeholder_code,
    infer_school,
    is_placeholder_course,
    is_valid_catalog_code,
    normalize_course_code,
    parse_code_and_track,
    parse_version,
    parse_year_level,
)
from .tokenizer import Line, LineKind, tokenize

logger = logging.getLogger(__name__)

SEMESTER_LABELS = {
    "first semester": "1st Sem",
    "second semester": "2nd Sem",
}

TERM_RX = re.compile(
    r"^(?:(First|Second)\s+Semester|Intersession|Summer|"
    r"(First|Second|Third|Fourth|Fifth|Sixth)\s+Year)\s*-\s*([\d.]+)\s*Units?",
    re.I,
)

_PROGRAM_CODE_LINE_RX = re.compile(r"^\([A-Z]+(?:[\s/\-][A-Z]+)*\)", re.I)
_PROGRAM_CODE_RX = re.compile(r"^\(([A-Z]+(?:[\s/\-][A-Z]+)*(?:-H)?)\)", re.I)
_BACHELOR_RX = re.compile(r"BACHELOR OF (?:SCIENCE|ARTS) IN ([A-Z\s]+?)(?:\(|$)", re.I)
_SEMESTER_SY_RX = re.compile(r"^\d+\w{2}\s+Semester,\s+SY\s+\d{4}-\d{4}$")
_PREREQ_SPLIT_RX = re.compile(r",(?=\s*[A-Z])|;")

MAX_UNITS = 12
DUPLICATE_SUMMARY_LIMIT = 5


def is_curriculum_header(line: str) -> bool:
    low = line.lower()
    return "cat no" in low or "course title" in low or "subject code" in low


def _is_summary(text: str) -> bool:
    low = text.lower()
    return (
        ("category" in low and "requirements" in low)
        or "total units" in low
        or "summary of courses" in low
    )


def split_prerequisites(text: str) -> Tuple[str, ...]:
    """
    "MATH 31.1, CS 21; ENGL 11" -> ("MATH 31.1", "CS 21", "ENGL 11")

    Only a comma followed by a capital letter separates codes, so commas
    inside descriptive text ("Junior standing, or consent") stay put.
    """
    out = []
    for part in _PREREQ_SPLIT_RX.split(text or ""):
        code = normalize_course_code(part)
        if code and code.lower() != "none" and code != "-":
            out.append(code)
    return tuple(out)


# ──────────────────────────────────────────────────────────────────
#  Program header
# ──────────────────────────────────────────────────────────────────

def _infer_code_from_name(line: str) -> Optional[str]:
    m = _BACHELOR_RX.search(line)
    if not m:
        return None
    words = [w for w in m.group(1).split() if len(w) > 2]
    return "".join(w[0] for w in words) or None


def _find_program_line(lines: List[Line]) -> int:
    """
    Index of the program line, scanning back from the first year header and
    preferring a line that starts with an explicit "(CODE)".
    """
    first_year = next(
        (i for i, l in enumerate(lines) if parse_year_level(l.text) is not None), -1
    )
    program_idx = 0
    for i in range(first_year - 1, -1, -1):
        text = lines[i].text
        if _PROGRAM_CODE_LINE_RX.match(text):
            return i
        if re.match(r"^[A-Z][A-Z\s]+OF\s+[A-Z\s]+", text, re.I) or "BACHELOR" in text or "MASTER" in text:
            program_idx = i
    return program_idx


def _apply_program_header(result: ParseResult, lines: List[Line]) -> None:
    idx = _find_program_line(lines)
    program_line = lines[idx].text
    next_line = lines[idx + 1].text if idx + 1 < len(lines) else ""
    if parse_year_level(program_line) is not None:
        result.errors.append(ParseError(WARNING, "No program name found before the first year header"))
        return

    m = _PROGRAM_CODE_RX.match(program_line)
    code = m.group(1).strip().upper() if m else _infer_code_from_name(program_line)

    name = re.sub(r"^\([^)]+\)\s*", "", program_line)
    name = re.sub(r"\(Ver[^)]+\)\s*$", "", name)
    result.program_name = name.strip()

    vm = VERSION_RX.search(program_line) or VERSION_RX.search(next_line)
    if vm:
        result.version = vm.group(0)
        info = parse_version(result.version)
        result.version_year, result.version_sem = info.year, info.sem

    result.school = infer_school(result.program_name)
    split = parse_code_and_track(code, result.program_name)
    result.program_code = split.base_code or None
    result.track_code = split.track_suffix


# ──────────────────────────────────────────────────────────────────
#  Body
# ──────────────────────────────────────────────────────────────────

class _CurriculumBuilder:
    """Mutable state of one parse: current year/term, seen keys, elective numbering."""

    def __init__(self, result: ParseResult):
        self.result = result
        self.errors = result.errors
        self.counter = ElectiveCounter()
        self.year = 0
        self.term_label = ""
        self.term_units = 0.0
        self.courses: List[ParsedCourse] = []
        self.seen: Set[Tuple[str, str, str]] = set()
        self._by_label: Dict[str, ParsedTerm] = {}

    def save_term(self) -> None:
        if not self.term_label or not self.courses:
            return
        existing = self._by_label.get(self.term_label)
        if existing is not None:
            logger.debug("Merging repeated term %s", self.term_label)
            existing.courses.extend(self.courses)
        else:
            term = ParsedTerm(self.term_label, self.term_units, self.courses)
            self._by_label[self.term_label] = term
            self.result.terms.append(term)
        self.courses = []

    def start_year(self, year) -> None:
        self.save_term()
        if self.year > 0 and year > self.year + 1:
            self.errors.append(ParseError(
                WARNING,
                f"Unexpected year jump from Year {self.year} to Year {year} "
                f"- possible AISIS labeling error",
            ))
        self.year = year

    def start_term(self, m: re.Match, text: str) -> None:
        self.save_term()
        semester, year_word, units = m.group(1), m.group(2), float(m.group(3))
        self.term_units = units
        if semester:
            self.term_label = f"Y{self.year} {SEMESTER_LABELS[semester.lower() + ' semester']}"
        elif re.match(r"^(?:Intersession|Summer)\b", text, re.I):
            self.term_label = f"Y{self.year} Intersession"
        elif year_word:
            self.term_label = f"Y{self.year} Intersession"
            self.errors.append(ParseError(
                WARNING,
                f'Detected mislabeled term "{text[:40]}..." - treating as Year {self.year} Intersession',
            ))

    def add_course(self, cells: List[str], line_no: int) -> None:
        raw_code, title, units_s = cells[0], cells[1], cells[2]
        prereq_s = cells[3] if len(cells) > 3 else ""
        category = cells[4] if len(cells) > 4 else ""

        catalog_no = normalize_course_code(raw_code)
        needs_review = False
        if len(catalog_no) < 2:
            if not is_placeholder_course(title, raw_code):
                self.errors.append(ParseError(
                    WARNING, f'Skipped invalid course code: "{raw_code}" → "{title}"', line_no
                ))
                return
            catalog_no = generate_placeholder_code(title, category, self.counter)
            if not catalog_no:
                self.errors.append(ParseError(
                    WARNING, f'Skipped elective "{title}": category "{category}" cannot name a course', line_no
                ))
                return
            needs_review = True

        key = (catalog_no, category, self.term_label)
        if key in self.seen:
            self.result.duplicates_skipped.append(
                DuplicateCourse(catalog_no, title, category, self.term_label)
            )
            return

        try:
            units = float(units_s)
        except ValueError:
            units = -1.0
        if not 0 <= units <= MAX_UNITS:
            self.errors.append(ParseError(WARNING, f"Invalid units value for {catalog_no}: {units_s}", line_no))
            return

        if not self.term_label:
            self.errors.append(ParseError(ERROR, f"Course {catalog_no} has no year/semester context", line_no))
            return
        if not title:
            self.errors.append(ParseError(ERROR, f"Course {catalog_no} missing title", line_no))
            return

        self.seen.add(key)
        self.courses.append(ParsedCourse(
            catalog_no=catalog_no,
            title=title,
            units=units,
            prerequisites=split_prerequisites(prereq_s),
            category=category,
            is_placeholder=is_placeholder_course(title, catalog_no),
            is_creditable=units > 0,
            needs_review=needs_review or not is_valid_catalog_code(catalog_no),
        ))


def _summarize_duplicates(result: ParseResult) -> None:
    dups = result.duplicates_skipped
    if not dups:
        return
    summary = ", ".join(f"{d.code} ({d.category}) in {d.term}" for d in dups[:DUPLICATE_SUMMARY_LIMIT])
    more = "..." if len(dups) > DUPLICATE_SUMMARY_LIMIT else ""
    result.errors.append(ParseError(
        WARNING, f"Skipped {len(dups)} duplicate course(s) in same term: {summary}{more}"
    ))


def parse_curriculum_text(text: str) -> ParseResult:
    """
    Parse the plain-text curriculum paste.

    Never raises on malformed input: problems are reported in
    ``result.errors`` and an empty ``terms`` list always comes with an
    ``error`` entry.
    """
    result = ParseResult(strategy="text")
    lines = [
        l for l in tokenize(text or "", header_test=is_curriculum_header)
        if l.kind is not LineKind.BLANK
    ]
    if not lines:
        result.errors.append(ParseError(ERROR, "No program name found"))
        result.errors.append(ParseError(ERROR, "No valid courses found in the input"))
        return result

    _apply_program_header(result, lines)
    builder = _CurriculumBuilder(result)

    for line in lines:
        text_ = line.text
        if line.kind in (LineKind.HEADER, LineKind.FOOTER):
            continue
        if text_ in (result.program_name, result.version) or text_.startswith("*"):
            continue
        if "CLASS SCHEDULE" in text_ or _SEMESTER_SY_RX.match(text_):
            continue

        year = parse_year_level(text_)
        if year is not None:
            builder.start_year(year)
            continue

        m = TERM_RX.match(text_)
        if m:
            builder.start_term(m, text_)
            continue

        if _is_summary(text_) or len(line.cells) < 3:
            continue

        try:
            builder.add_course(line.cells, line.line_no)
        except (ValueError, IndexError, TypeError, AttributeError) as exc:
            logger.debug("Course row at line %d failed", line.line_no, exc_info=True)
            result.errors.append(ParseError(WARNING, f"Row extraction failed: {exc}", line.line_no))

    builder.save_term()

    if not result.terms:
        result.errors.append(ParseError(ERROR, "No valid courses found in the input"))
    _summarize_duplicates(result)

    logger.info(
        "Curriculum %s: %d terms, %d courses, %d duplicates skipped",
        result.program_code, len(result.terms),
        sum(len(t.courses) for t in result.terms), len(result.duplicates_skipped),
    )
    return result
