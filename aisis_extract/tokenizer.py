"""
Split pasted AISIS text into cleaned, classified lines.

Every parser goes through :func:`tokenize` once and then works only with the
:class:`LineKind` tags it produced, so "is this a header / footer / noise /
new record" is decided in one place.

Normalisation rules:
- U+00A0 (non-breaking space) becomes a normal space, U+200B is dropped.
- Tab is the authoritative column separator. Whitespace runs are collapsed
  inside a cell only; empty cells are kept so column positions survive.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional


class LineKind(enum.Enum):
    BLANK = "blank"
    NOISE = "noise"
    FOOTER = "footer"
    HEADER = "header"
    RECORD_START = "record_start"
    CONTINUATION = "continuation"
    DELIVERY_MODE = "delivery_mode"


# Case-insensitive substrings of navigation / page chrome.
NOISE_MARKERS = (
    "terms & conditions",
    "privacy policy",
    "contact us",
    "copyright",
    "all rights reserved",
    "ateneo integrated student information system",
    "ateneo de manila university",
    "welcome to the",
    "welcome to aisis",
    "user identified as",
    "view official curriculum",
    "view advisory grades",
    "faculty attendance",
    "my individual program of study",
    "print tuition receipt",
    "official curriculum",
    "update student information",
    "my currently enrolled classes",
    "my grades",
    "my hold orders",
    "print saa",
    "my class schedule",
    "change password",
    "click here for",
    "aisis online",
    "select a degree",
)

# Markers that end a table once data has been seen (anchored at line start).
FOOTER_PATTERNS = (
    re.compile(r"^Home\s*:", re.I),
    re.compile(r"^Terms\s*&\s*Conditions", re.I),
    re.compile(r"^Privacy\s*Policy", re.I),
    re.compile(r"^\(c\)\s*Copyright", re.I),
    re.compile(r"^Copyright", re.I),
    re.compile(r"^version\s+\d{4}", re.I),
    re.compile(r"^Contact\s*Us", re.I),
)

# Page footer fragments that may appear anywhere on a line of the weekly grid.
PAGE_FOOTER_PATTERNS = (
    re.compile(r"Home\s*:", re.I),
    re.compile(r"Privacy Policy", re.I),
    re.compile(r"Terms & Conditions", re.I),
    re.compile(r"Ateneo Integrated Student Information System", re.I),
    re.compile(r"Contact Us", re.I),
    re.compile(r"Copyright.*Ateneo", re.I),
)

# A lone parenthetical cell such as "(FULLY ONSITE)" or "(~)".
DELIVERY_MODE_RX = re.compile(r"^\([^)]{1,30}\)$")

_WS_RX = re.compile(r"\s+")


# ──────────────────────────────────────────────────────────────────
#  Normalisation
# ──────────────────────────────────────────────────────────────────

def normalize_cell(text: Optional[str]) -> str:
    if not text:
        return ""
    text = text.replace("\u00a0", " ").replace("\u200b", "")
    return _WS_RX.sub(" ", text).strip()


def split_cells(line: str) -> List[str]:
    """Split a physical line on tabs, normalising each cell and keeping empties."""
    return [normalize_cell(c) for c in line.split("\t")]


def split_lines(text: str) -> List[str]:
    return re.split(r"\r?\n", text or "")


# ──────────────────────────────────────────────────────────────────
#  Line tests
# ──────────────────────────────────────────────────────────────────

def is_noise(line: str) -> bool:
    low = normalize_cell(line).lower()
    if not low:
        return False
    if "home" in low and "sign out" in low:
        return True
    return any(marker in low for marker in NOISE_MARKERS)


def is_footer(line: str) -> bool:
    text = normalize_cell(line)
    return any(p.search(text) for p in FOOTER_PATTERNS)


def is_page_footer(line: str) -> bool:
    return any(p.search(line) for p in PAGE_FOOTER_PATTERNS)


def is_delivery_mode_cell(cell: str) -> bool:
    return bool(cell) and bool(DELIVERY_MODE_RX.match(cell))


def is_schedule_header(line: str) -> bool:
    return bool(re.search(r"Time", line, re.I)) and bool(re.search(r"\bMon\b", line, re.I))


def is_grades_header(line: str) -> bool:
    return "School Year" in line and "Subject Code" in line


def is_table_header(line: str) -> bool:
    return "Subject Code" in line and "Section" in line


def find_header(lines: List[str], test: Callable[[str], bool]) -> int:
    """Index of the first header line, or -1 (callers then start at line 0)."""
    for i, line in enumerate(lines):
        if test(line):
            return i
    return -1


# ──────────────────────────────────────────────────────────────────
#  Classified lines
# ──────────────────────────────────────────────────────────────────

@dataclass
class Line:
    index: int  # 0-based position in the original paste
    raw: str
    cells: List[str] = field(default_factory=list)
    kind: LineKind = LineKind.CONTINUATION

    @property
    def line_no(self) -> int:
        return self.index + 1

    @property
    def text(self) -> str:
        return normalize_cell(self.raw)

    @property
    def first_cell(self) -> str:
        return self.cells[0] if self.cells else ""


def classify(
    raw: str,
    cells: List[str],
    header_test: Optional[Callable[[str], bool]] = None,
    record_test: Optional[Callable[[List[str]], bool]] = None,
) -> LineKind:
    if not any(cells):
        return LineKind.BLANK
    if is_footer(raw):
        return LineKind.FOOTER
    if is_noise(raw):
        return LineKind.NOISE
    if header_test is not None and header_test(raw):
        return LineKind.HEADER
    if record_test is not None and record_test(cells):
        return LineKind.RECORD_START
    if any(is_delivery_mode_cell(c) for c in cells):
        return LineKind.DELIVERY_MODE
    return LineKind.CONTINUATION


def tokenize(
    text: str,
    header_test: Optional[Callable[[str], bool]] = None,
    record_test: Optional[Callable[[List[str]], bool]] = None,
) -> List[Line]:
    """
    Split ``text`` into :class:`Line` objects tagged with a :class:`LineKind`.

    Noise lines are removed; everything else is kept (blank lines included)
    so callers can reason about line numbers and blank-line separation.
    """
    out: List[Line] = []
    for i, raw in enumerate(split_lines(text)):
        cells = split_cells(raw)
        kind = classify(raw, cells, header_test, record_test)
        if kind is LineKind.NOISE:
            continue
        out.append(Line(index=i, raw=raw, cells=cells, kind=kind))
    return out
