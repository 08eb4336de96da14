"""
Parse the AISIS "My Grades" listing.

Tab-separated rows come in two layouts::

    2024-2025  1  BS CS  CS 211  DATA STRUCTURES  3  A     (7 columns)
    2024-2025  1  CS21   Computer Science 1       3  A     (6 columns)

Lines without tabs go through a looser regex pass.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from .models import GradeRecord, GradesResult, ParseError, ERROR, WARNING
from .program import normalize_aisis_course_code
from .tokenizer import LineKind, is_grades_header, tokenize

logger = logging.getLogger(__name__)

SEMESTERS = {
    "1": "1st Sem",
    "2": "2nd Sem",
    "3": "Intercession",
}

_PROGRAM_RX = re.compile(r"^[A-Z]{2,4}\s*[A-Z]{2,4}$")
_SCHOOL_YEAR_RX = re.compile(r"(\d{4}[-/]\d{4}|\d{4}[-/]\d{2})")
_SEMESTER_RX = re.compile(r"(1st\s+Sem|2nd\s+Sem|Intercession|Summer)", re.I)
_COURSE_CODE_RX = re.compile(r"\b([A-Z]{2,6})\s*(\d+(?:\.\d+)?)(\d{4})?\b")
_UNITS_RX = re.compile(r"\b(\d+(?:\.\d+)?)\b")
_GRADE_RX = re.compile(r"\b([A-F][+-]?|[IWSDAU]{1,3})(?!\w)")
_TITLE_RX = re.compile(r"[A-Za-z\s:&-]+")


def semester_label(raw: str) -> str:
    return SEMESTERS.get(raw.strip(), raw.strip())


def _parse_units(text: str) -> Optional[int]:
    m = re.match(r"^\s*(\d+)", text or "")
    return int(m.group(1)) if m else None


def parse_tab_row(cells: List[str]) -> Optional[GradeRecord]:
    """One tab-separated row, or ``None`` if it does not have the shape of a graded course."""
    cols = [c for c in cells if c]
    if len(cols) >= 7:
        year, sem, _program, code, title, units_s, grade = cols[:7]
    elif len(cols) == 6:
        year, sem, code, title, units_s, grade = cols
    else:
        return None

    course_code = normalize_aisis_course_code(code)
    units = _parse_units(units_s)
    if not course_code or not grade or units is None or units <= 0:
        return None
    return GradeRecord(
        school_year=year,
        semester=semester_label(sem),
        course_code=course_code,
        course_title=title,
        units=units,
        grade=grade,
    )


def _extract_title(line: str, code_text: str) -> str:
    _, sep, after = line.partition(code_text)
    if sep:
        m = _TITLE_RX.search(re.sub(r"\t+", " ", after).strip())
        if m and m.group(0).strip():
            return re.sub(r"\s+", " ", m.group(0)).strip()
    return "Course Title"


def parse_loose_line(line: str) -> Optional[GradeRecord]:
    """Regex pass for rows that lost their tabs."""
    code_m = _COURSE_CODE_RX.search(line)
    if not code_m:
        return None
    grade_m = _GRADE_RX.search(line[code_m.end():]) or _GRADE_RX.search(line)
    if not grade_m:
        return None

    units = 0
    for m in _UNITS_RX.finditer(line[code_m.end():]):
        value = float(m.group(1))
        if 0 < value <= 12 and len(m.group(1)) <= 2:
            units = int(value)
            break
    if units <= 0:
        return None

    year_m = _SCHOOL_YEAR_RX.search(line)
    sem_m = _SEMESTER_RX.search(line)
    return GradeRecord(
        school_year=year_m.group(0) if year_m else "Unknown",
        semester=sem_m.group(0) if sem_m else "Unknown",
        course_code=normalize_aisis_course_code(f"{code_m.group(1)} {code_m.group(2)}"),
        course_title=_extract_title(line, code_m.group(0)),
        units=units,
        grade=grade_m.group(0),
    )


def parse_grades(text: str) -> GradesResult:
    """Parse a pasted grades listing into :class:`GradeRecord` entries."""
    result = GradesResult()
    for line in tokenize(text or "", header_test=is_grades_header):
        if line.kind in (LineKind.BLANK, LineKind.HEADER, LineKind.FOOTER):
            continue
        if line.text.startswith("*"):
            continue
        try:
            if "\t" in line.raw:
                record = parse_tab_row(line.cells)
                cols = [c for c in line.cells if c]
                if record is not None and len(cols) >= 7 and result.detected_program is None:
                    if _PROGRAM_RX.match(cols[2]):
                        result.detected_program = cols[2]
                if record is None:
                    record = parse_loose_line(line.text)
            else:
                record = parse_loose_line(line.text)
        except (ValueError, IndexError, TypeError, AttributeError) as exc:
            logger.debug("Grades row at line %d failed", line.line_no, exc_info=True)
            result.errors.append(ParseError(WARNING, f"Row extraction failed: {exc}", line.line_no))
            continue
        if record is None:
            logger.debug("Line %d is not a grade row", line.line_no)
            continue
        result.courses.append(record)

    if not result.courses:
        result.errors.append(ParseError(ERROR, "No grade rows found in the input"))
    logger.info("Grades: %d courses, program %s", len(result.courses), result.detected_program)
    return result
