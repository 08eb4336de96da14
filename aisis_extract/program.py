"""
Helpers shared by the curriculum text and HTML extractors: program code and
track splitting, curriculum version labels, year ordinals, school inference,
course-code normalisation and placeholder (elective) code generation.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Optional


# ──────────────────────────────────────────────────────────────────
#  Year levels
# ──────────────────────────────────────────────────────────────────

_ORDINALS = {
    "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5,
    "sixth": 6, "seventh": 7, "eighth": 8, "ninth": 9, "tenth": 10,
}


def parse_year_level(text: str, exact: bool = True) -> Optional[float]:
    """
    "First Year" -> 1, "Fifth Year" -> 5, "4.5 Year" -> 4.5, "5th Year" -> 5.

    With ``exact`` the whole line must be the year label (text paste); without
    it the label may be embedded in longer text (HTML headers).
    """
    low = (text or "").lower().strip()
    for word, num in _ORDINALS.items():
        label = f"{word} year"
        if (low == label) if exact else (label in low):
            return num

    rx = r"(\d+(?:\.\d+)?)\s*(?:st|nd|rd|th)?\s+year"
    m = re.match(rf"^{rx}$", low) if exact else re.search(rx, low)
    if m:
        value = float(m.group(1))
        return int(value) if value.is_integer() else value
    return None


# ──────────────────────────────────────────────────────────────────
#  Program code / track
# ──────────────────────────────────────────────────────────────────

HONORS_RX = re.compile(r"\(?\s*HONOU?RS?\s+PROGRAM\s*\)?", re.I)

TRACK_NAMES = {
    "AC": "Arts & Culture Track",
    "B": "Business Track",
    "S": "Science Track",
    "DA": "Data Analytics Track",
    "CS": "Cyber Security Track",
    "GD": "Game Development Track",
}


@dataclass
class CodeAndTrack:
    base_code: str
    track_suffix: Optional[str]
    full_code: str


def is_honors_program(program_name: Optional[str]) -> bool:
    return bool(program_name) and bool(HONORS_RX.search(program_name))


def parse_code_and_track(code: Optional[str], program_name: Optional[str] = None) -> CodeAndTrack:
    """
    Split a trailing hyphenated suffix off a program code.

    The same ``-H`` means "Honors" when the program name says it is an honors
    program (kept as part of the base code), and a track otherwise::

        "AB EC-H"   + "... (HONORS PROGRAM)" -> ("AB EC-H", None)
        "AB EC-H-AC"+ "... (HONORS PROGRAM)" -> ("AB EC-H", "AC")
        "AB ChnS-H"                          -> ("AB CHNS", "H")
    """
    if not code:
        return CodeAndTrack("", None, "")

    full = code.strip().upper()

    if is_honors_program(program_name) and re.search(r"[-–—]H$", full):
        return CodeAndTrack(full, None, full)

    if is_honors_program(program_name):
        m = re.match(r"^(.+?[-–—]H)[-–—]([A-Z]+)$", full)
        if m:
            return CodeAndTrack(m.group(1).strip(), m.group(2).strip(), full)

    m = re.match(r"^(.+?)[-–—]([A-Z]+)$", full)
    if m:
        return CodeAndTrack(m.group(1).strip(), m.group(2).strip(), full)
    return CodeAndTrack(full, None, full)


def infer_track_name(track_code: str) -> str:
    return TRACK_NAMES.get(track_code.upper(), f"{track_code} Track")


# ──────────────────────────────────────────────────────────────────
#  Curriculum version
# ──────────────────────────────────────────────────────────────────

VERSION_RX = re.compile(r"\(Ver[^)]+\)")


@dataclass
class VersionInfo:
    year: Optional[int]
    sem: Optional[int]
    label: str


def parse_version(label: str) -> VersionInfo:
    """
    "(Ver Sem 1, Ver Year 2020)" -> (2020, 1)
    "(Ver Sem 1, Ver Year 18IR)" -> (2018, 1)
    """
    if not label:
        return VersionInfo(None, None, label or "")

    year: Optional[int] = None
    m = re.search(r"Ver\s+Year\s+(\d{4})", label, re.I)
    if m:
        year = int(m.group(1))
    else:
        m = re.search(r"Ver\s+Year\s+(\d{2})", label, re.I)
        if m:
            year = 2000 + int(m.group(1))

    m = re.search(r"Ver\s+Sem\s+(\d+)", label, re.I)
    sem = int(m.group(1)) if m else None
    return VersionInfo(year, sem, label)


# ──────────────────────────────────────────────────────────────────
#  School inference
# ──────────────────────────────────────────────────────────────────

# Checked in order; more specific keywords come first.
SCHOOL_KEYWORDS = (
    ("art management", "School of Humanities"),
    ("management engineering", "John Gokongwei School of Management"),
    ("management", "John Gokongwei School of Management"),
    ("engineering", "School of Science and Engineering"),
    ("communication", "School of Humanities"),
    ("psychology", "School of Social Sciences"),
    ("diplomacy", "School of Social Sciences"),
    ("international relations", "School of Social Sciences"),
    ("political science", "School of Social Sciences"),
    ("economics", "School of Social Sciences"),
    ("sociology", "School of Social Sciences"),
    ("history", "School of Social Sciences"),
    ("development studies", "School of Social Sciences"),
    ("chinese studies", "School of Social Sciences"),
    ("european studies", "School of Social Sciences"),
)

DEFAULT_SCHOOL = "School of Humanities"


def infer_school(program_name: str) -> str:
    low = (program_name or "").lower()
    for keyword, school in SCHOOL_KEYWORDS:
        if keyword in low:
            return school
    return DEFAULT_SCHOOL


# ──────────────────────────────────────────────────────────────────
#  Course codes
# ──────────────────────────────────────────────────────────────────

def normalize_course_code(code: str) -> str:
    """Dashes become spaces, spacing collapsed, uppercased; dots kept (MATH 31.1)."""
    code = re.sub(r"\s*[-–—]\s*", " ", (code or "").strip())
    return re.sub(r"\s+", " ", code).strip().upper()


def normalize_aisis_course_code(code: str) -> str:
    """
    Strip the AISIS catalogue-year suffix from a grades-page subject code.

        "ENLIT 1212018" -> "ENLIT 12"
        "MATH 31.112018" -> "MATH 31.11"
        "SocSc 1112018" -> "SOCSC 11"
    """
    if not code:
        return ""
    normalized = re.sub(r"\s+", " ", code.upper().strip())
    normalized = re.sub(r"^([A-Z]+)\s+(\d+(?:\.\d+)?)\d{4}$", r"\1 \2", normalized)
    if "." not in normalized:
        m = re.match(r"^([A-Z]+)\s+(\d{2})(\d)$", normalized)
        if m:
            normalized = f"{m.group(1)} {m.group(2)}"
    return normalized


# ──────────────────────────────────────────────────────────────────
#  Placeholder / elective courses
# ──────────────────────────────────────────────────────────────────

def is_placeholder_course(title: str, code: str) -> bool:
    title_low = (title or "").lower()
    code_low = (code or "").lower()
    return (
        "elective" in title_low
        or "elec" in code_low
        or "placeholder" in title_low
        or "placeholder" in code_low
    )


@dataclass
class ElectiveCounter:
    """Per-parse numbering for unnumbered elective slots, keyed by category."""

    counts: Dict[str, int] = field(default_factory=dict)

    def next(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]


def _sanitize_category(category: str) -> str:
    s = re.sub(r"\s+", "_", (category or "").strip())
    s = re.sub(r"[^A-Za-z0-9_]", "", s)[:10].upper()
    return s if len(s) >= 2 else "GEN"


def generate_placeholder_code(title: str, category: str, counter: ElectiveCounter) -> str:
    """
    Synthesize a code for an elective slot without a catalog number:
    sanitized category plus the number in the title ("ME ELECTIVE 2" -> "ME2"),
    or plus a per-category counter ("ME_ELEC1").

    Returns ``""`` for TRACK/COURSE categories; the caller skips the row.
    """
    if re.search(r"TRACK|COURSE", category or "", re.I):
        return ""

    prefix = _sanitize_category(category)
    m = re.search(r"(\d+)", title or "")
    if m:
        return f"{prefix}{m.group(1)}"
    return f"{prefix}_ELEC{counter.next(prefix)}"


_GENERIC_PLACEHOLDER_RX = re.compile(r"^(TRACK\s+COURSE|[A-Z]\s+TRACK|ELECTIVE|COURSE\s+ELECTIVE)$", re.I)
_CATALOG_CODE_RX = re.compile(r"^[A-Z]+[\s_-]+[\dA-Z.\s-]+$")


def is_valid_catalog_code(code: str) -> bool:
    """
    Loose shape check for a storable catalog code: "DEPT NN", "DEPT NN.NN",
    "DEPT_ELECN", "CHNS-H TRACK COURSE". Bare generic slots ("ELECTIVE",
    "TRACK COURSE") fail. Heuristic: some non-codes still pass.
    """
    trimmed = (code or "").strip()
    if not trimmed or _GENERIC_PLACEHOLDER_RX.match(trimmed):
        return False
    if re.search(r"\s{2,}", trimmed):
        return False
    return bool(_CATALOG_CODE_RX.match(trimmed))
