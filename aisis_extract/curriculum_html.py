"""
Parse the HTML source of the AISIS "Official Curriculum" page.

Some curriculum pages copy badly as text but keep a regular DOM:

- program: ``select[name=degCode] option[selected]`` ("(CODE) NAME (Ver ...)"),
  else the ``.header06`` element split on ``<br>``
- each year starts at a ``.text06`` cell; the rows after it (until the next
  year marker) hold nested ``table[border=0][cellpadding=2]`` tables, one per
  term, whose ``.text04`` cell is the term header
- course rows have exactly five ``td`` cells, at least one ``td.text02``

:func:`parse_curriculum` is the entry point that accepts either form.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup  # type: ignore[import]

from .curriculum import parse_curriculum_text, split_prerequisites
from .models import ParseError, ParseResult, ParsedCourse, ParsedTerm, ERROR, WARNING
from .program import (
    VERSION_RX,
    infer_school,
    is_placeholder_course,
    normalize_course_code,
    parse_code_and_track,
    parse_version,
    parse_year_level,
)
from .tokenizer import normalize_cell

logger = logging.getLogger(__name__)

_NAV_MARKERS = (
    "terms & conditions",
    "privacy policy",
    "copyright",
    "view advisory grades",
    "faculty attendance",
    "my individual program",
    "print tuition",
    "user identified as",
    "welcome to the",
)

_HTML_RX = re.compile(r"<\s*(?:html|body|table|select|tr|td)\b", re.I)


def looks_like_html(text: str) -> bool:
    return bool(_HTML_RX.search(text or ""))


def _text(node) -> str:
    return normalize_cell(node.get_text(" ", strip=True)) if node is not None else ""


def is_navigation_or_footer(node) -> bool:
    text = node.get_text(" ", strip=True).lower()
    if "home" in text and "sign out" in text:
        return True
    if any(marker in text for marker in _NAV_MARKERS):
        return True
    return "ateneo integrated student information system" in text and len(text) < 200


# ──────────────────────────────────────────────────────────────────
#  Program header
# ──────────────────────────────────────────────────────────────────

def _split_on_br(node) -> List[str]:
    parts: List[str] = []
    current: List[str] = []
    for child in node.children:
        if getattr(child, "name", None) == "br":
            parts.append(" ".join(current))
            current = []
        elif getattr(child, "name", None) is None:
            current.append(str(child))
        else:
            current.append(child.get_text(" "))
    parts.append(" ".join(current))
    return [p for p in (normalize_cell(x) for x in parts) if p]


def _program_header(soup: BeautifulSoup) -> Tuple[str, str, str]:
    """(program_code, program_name, version) from the degree dropdown or the page title block."""
    code = name = version = ""

    option = soup.select_one('select[name="degCode"] option[selected]')
    if option is not None:
        text = _text(option)
        m = re.match(r"^\(([^)]+)\)", text)
        if m:
            code = m.group(1).strip()
        cleaned = re.sub(r"^\([^)]+\)\s*", "", text)
        name = re.sub(r"\(Ver[^)]+\)\s*$", "", cleaned).strip()
        vm = VERSION_RX.search(text)
        if vm:
            version = vm.group(0)

    if not name:
        title = soup.select_one(".header06")
        if title is not None:
            parts = _split_on_br(title)
            if parts:
                name = parts[0]
            if not version and len(parts) >= 2:
                vm = re.search(r"\(Ver Sem \d+, Ver Year \d+\)", parts[1])
                if vm:
                    version = vm.group(0)
    return code, name, version


# ──────────────────────────────────────────────────────────────────
#  Terms
# ──────────────────────────────────────────────────────────────────

def _semester_label(header_text: str, year_level) -> Optional[str]:
    nested = parse_year_level(header_text, exact=False)
    if nested is not None and nested != year_level:
        return "Special Term"
    if "First Semester" in header_text:
        return "1st Sem"
    if "Second Semester" in header_text:
        return "2nd Sem"
    if "Intersession" in header_text or "Summer" in header_text:
        return "Intercession"
    return None


def _is_course_row(tr) -> bool:
    cells = tr.find_all("td")
    if len(cells) != 5:
        return False
    if tr.select_one("td.text04") is not None:
        return False
    first = _text(cells[0])
    if not first or "Cat No" in first:
        return False
    return tr.select_one("td.text02") is not None


def _course_from_row(tr) -> Optional[ParsedCourse]:
    cells = [_text(td) for td in tr.find_all("td")]
    catalog_no, title, units_s, prereq_s, category = cells
    if not catalog_no or not title:
        return None
    try:
        units = float(units_s or 0)
    except ValueError:
        units = 0.0
    prerequisites = split_prerequisites(prereq_s)
    return ParsedCourse(
        catalog_no=normalize_course_code(catalog_no),
        title=title,
        units=units,
        prerequisites=prerequisites,
        category=category,
        is_placeholder=is_placeholder_course(title, catalog_no),
        is_creditable=units > 0,
        needs_review=not prerequisites and bool(prereq_s) and prereq_s not in ("-", "None"),
    )


def _term_tables(year_row) -> list:
    tables = []
    row = year_row.find_next_sibling()
    while row is not None:
        if row.select_one(".text06") is not None:
            break
        for table in row.find_all("table", attrs={"border": "0", "cellpadding": "2"}):
            if is_navigation_or_footer(table):
                continue
            if table.select_one(".text04") is not None:
                tables.append(table)
        row = row.find_next_sibling()
    return tables


def _parse_term_table(table, year_level) -> Optional[ParsedTerm]:
    header_text = _text(table.select_one(".text04"))
    semester = _semester_label(header_text, year_level)
    if semester is None:
        logger.debug("Unrecognised term header %r", header_text)
        return None

    m = re.search(r"(\d+(?:\.\d+)?)\s+Units", header_text)
    total_units = float(m.group(1)) if m else 0.0

    courses = []
    for tr in table.find_all("tr"):
        if not _is_course_row(tr):
            continue
        course = _course_from_row(tr)
        if course is not None:
            courses.append(course)
    if not courses:
        return None
    return ParsedTerm(f"Y{year_level} {semester}", total_units, courses)


def parse_curriculum_html(html: str) -> ParseResult:
    """Parse curriculum page HTML (as from "View Page Source")."""
    soup = BeautifulSoup(html or "", "html.parser")
    result = ParseResult(strategy="html")

    code, name, version = _program_header(soup)
    result.program_name = name
    result.version = version
    if not name:
        result.errors.append(ParseError(ERROR, "Could not find program name in HTML"))
    if not version:
        result.errors.append(ParseError(WARNING, "Could not determine curriculum version year"))
    else:
        info = parse_version(version)
        result.version_year, result.version_sem = info.year, info.sem

    by_label = {}
    for marker in soup.select(".text06"):
        year_level = parse_year_level(_text(marker), exact=False)
        if year_level is None:
            continue
        year_row = marker.find_parent("tr")
        if year_row is None:
            continue
        for table in _term_tables(year_row):
            term = _parse_term_table(table, year_level)
            if term is None:
                continue
            existing = by_label.get(term.label)
            if existing is not None:
                logger.debug("Merging repeated term %s", term.label)
                existing.courses.extend(term.courses)
            else:
                by_label[term.label] = term
                result.terms.append(term)

    split = parse_code_and_track(code or None, name)
    result.program_code = split.base_code or None
    result.track_code = split.track_suffix
    result.school = infer_school(name) if name else ""

    if not result.terms:
        result.errors.append(ParseError(ERROR, "No curriculum terms found in HTML"))
    logger.info("Curriculum HTML %s: %d terms", result.program_code, len(result.terms))
    return result


# ──────────────────────────────────────────────────────────────────
#  Strategy chain
# ──────────────────────────────────────────────────────────────────

def html_to_text(html: str) -> str:
    """
    Flatten curriculum HTML into the tab-separated text the text parser
    reads: the program line first, then one line per innermost table row.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    lines = []
    option = soup.select_one('select[name="degCode"] option[selected]')
    if option is not None:
        lines.append(_text(option))
    for tr in soup.find_all("tr"):
        if tr.find("tr") is not None:
            continue
        cells = [_text(td) for td in tr.find_all(["td", "th"])]
        if any(cells):
            lines.append("\t".join(cells))
    return "\n".join(lines)


Strategy = Tuple[str, Callable[[str], ParseResult]]

HTML_STRATEGIES: List[Strategy] = [
    ("html", parse_curriculum_html),
    ("html-as-text", lambda html: parse_curriculum_text(html_to_text(html))),
]
TEXT_STRATEGIES: List[Strategy] = [
    ("text", parse_curriculum_text),
]


def parse_curriculum(text: str) -> ParseResult:
    """
    Parse a curriculum paste, HTML source or plain text.

    Strategies are tried in order; the first result with at least one term is
    returned with ``strategy`` naming it. If none succeeds the first
    strategy's result (with its errors) is returned.
    """
    strategies = HTML_STRATEGIES if looks_like_html(text) else TEXT_STRATEGIES
    first: Optional[ParseResult] = None
    for name, parse in strategies:
        result = parse(text)
        result.strategy = name
        if result.terms:
            return result
        logger.warning("Curriculum strategy %s found no terms", name)
        if first is None:
            first = result
    return first
