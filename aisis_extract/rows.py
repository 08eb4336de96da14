"""
Rebuild logical table rows ("buckets") from physically wrapped lines.

AISIS renders one department-schedule row as a ``<tr>`` whose cells may
contain ``<br>``. Copy-paste turns that into one line that starts the record
followed by zero or more continuation lines, e.g.::

    ArtAp 10<TAB>A<TAB>ART APPRECIATION<TAB>3<TAB>M-TH 0800-0930
    (FULLY ONSITE)<TAB>INNOVATION 202<TAB>DELA CRUZ, JUAN<TAB>40<TAB>ENG<TAB>U<TAB>12<TAB>-

The reconstructor merges these back into one positional bucket.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .models import SkippedRow
from .tokenizer import (
    Line,
    LineKind,
    is_delivery_mode_cell,
    is_table_header,
    tokenize,
)

logger = logging.getLogger(__name__)

# Column that holds the time pattern in the AISIS "Class Schedule" table
# (subject, section, title, units, time, room, ...). Format-version-specific:
# if AISIS reorders its columns this constant has to follow.
TIME_COLUMN = 4

# "MATH 31.1", "NSTP 11", "ArtAp 10", "FIN/ACC 101.03A"
SUBJECT_CELL_RX = re.compile(r"^[A-Z][A-Z0-9 .\/&-]{1,25}\s+\d+(?:\.\d+)*[A-Za-z]?", re.I)

_SECTION_RX = re.compile(r"^[A-Za-z0-9-]{1,8}$")
_UNITS_RX = re.compile(r"^\d{1,2}$")
_TIME_OR_TBA_RX = re.compile(
    r"^(?:M|T|W|TH|F|SAT|SUN)(?:[-/,\s]+(?:M|T|W|TH|F|SAT|SUN))*\s+\d{4}-\d{4}$|^TBA$|^TUTORIAL$",
    re.I,
)

STRATEGY_SUBJECT = "subject-code"
STRATEGY_STRUCTURAL = "structural"
STRATEGY_RECOVERED = "recovered"


def is_subject_cell(cell: str) -> bool:
    return bool(cell) and bool(SUBJECT_CELL_RX.match(cell))


def is_probably_subject_row(cells: List[str]) -> bool:
    """Row shape test for lines whose course-code cell was lost in rendering."""
    if len(cells) < 5:
        return False
    return (
        bool(_SECTION_RX.match(cells[1]))
        and bool(_UNITS_RX.match(cells[3]))
        and bool(_TIME_OR_TBA_RX.match(cells[TIME_COLUMN]))
    )


def is_record_start(cells: List[str]) -> bool:
    first = cells[0] if cells else ""
    return is_subject_cell(first) or is_probably_subject_row(cells)


def _pad(cells: List[str], size: int) -> List[str]:
    if len(cells) < size:
        cells = cells + [""] * (size - len(cells))
    return cells


def _append(existing: str, value: str) -> str:
    return f"{existing} {value}" if existing else value


def merge_into_bucket(bucket: List[str], cells: List[str]) -> List[str]:
    """
    Merge one physical line into an open bucket.

    A lone parenthetical cell (delivery mode) is realigned onto
    :data:`TIME_COLUMN` and the cells around it shift with it; any other line
    merges position by position. Non-empty content is appended with a space.
    """
    paren_idx = next((i for i, c in enumerate(cells) if is_delivery_mode_cell(c)), -1)
    if paren_idx != -1:
        offset = TIME_COLUMN - paren_idx
        bucket = _pad(list(bucket), max(len(bucket), len(cells) + max(0, offset)))
        for k, value in enumerate(cells):
            target = k + offset
            if not value or target < 0:
                continue
            bucket[target] = _append(bucket[target], value)
        return bucket

    bucket = _pad(list(bucket), max(len(bucket), len(cells)))
    for i, value in enumerate(cells):
        if value:
            bucket[i] = _append(bucket[i], value)
    return bucket


@dataclass
class Bucket:
    cells: List[str]
    line_no: int
    strategy: str = STRATEGY_SUBJECT

    @property
    def has_time_column(self) -> bool:
        return len(self.cells) > TIME_COLUMN


@dataclass
class Reconstruction:
    buckets: List[Bucket] = field(default_factory=list)
    skipped_rows: List[SkippedRow] = field(default_factory=list)
    header_line: int = -1
    footer_line: Optional[int] = None
    lines_processed: int = 0


# Returns True when the bucket produced at least one output record.
EmitFn = Callable[[Bucket], bool]


class RowReconstructor:
    """
    Drive bucket reconstruction over a pasted table.

    ``emit`` is called for every completed bucket; its return value tells the
    reconstructor whether a record came out of it, which arms the footer
    guard (footer text before the first record must not end the table).
    """

    def __init__(
        self,
        text: str,
        emit: Optional[EmitFn] = None,
        record_test: Callable[[List[str]], bool] = is_record_start,
    ):
        self.lines: List[Line] = tokenize(
            text,
            header_test=is_table_header,
            record_test=record_test,
        )
        self.emit = emit or (lambda bucket: True)
        self.result = Reconstruction(lines_processed=len(self.lines))
        self._current: Optional[Bucket] = None
        self._produced = False

    # ── bucket lifecycle ─────────────────────────────────────────

    def _open(self, line: Line, strategy: str) -> None:
        self._flush()
        self._current = Bucket(merge_into_bucket([], line.cells), line.line_no, strategy)

    def _flush(self) -> None:
        if self._current is None:
            return
        bucket, self._current = self._current, None
        self.result.buckets.append(bucket)
        if self.emit(bucket):
            self._produced = True

    def _skip(self, line: Line, reason: str) -> None:
        logger.debug("Line %d skipped: %s", line.line_no, reason)
        self.result.skipped_rows.append(SkippedRow(line.line_no, reason, line.text[:100]))

    # ── helpers over the line list ───────────────────────────────

    @staticmethod
    def _is_blank(line: Line) -> bool:
        return line.kind is LineKind.BLANK or len(line.text) < 2

    def _previous_content_line(self, pos: int) -> Optional[Line]:
        p = pos - 1
        while p >= 0 and self._is_blank(self.lines[p]):
            p -= 1
        return self.lines[p] if p >= 0 else None

    def _lookahead_delivery_mode(self, pos: int) -> Optional[int]:
        # One blank line may sit between a record start and its delivery mode.
        for ahead in (1, 2):
            if pos + ahead >= len(self.lines):
                return None
            cand = self.lines[pos + ahead]
            if self._is_blank(cand):
                continue
            return pos + ahead if cand.kind is LineKind.DELIVERY_MODE else None
        return None

    # ── orphan handling ──────────────────────────────────────────

    def _recover(self, pos: int, line: Line) -> bool:
        prev = self._previous_content_line(pos)
        if prev is None or not is_subject_cell(prev.first_cell):
            return False
        self._current = Bucket(merge_into_bucket([], prev.cells), prev.line_no, STRATEGY_RECOVERED)
        self._current.cells = merge_into_bucket(self._current.cells, line.cells)
        logger.debug("Recovered row from line %d + %d", prev.line_no, line.line_no)
        return True

    def _orphan_reason(self, pos: int, line: Line) -> str:
        if line.kind is LineKind.DELIVERY_MODE:
            if line.index == 0:
                return "Orphan: Delivery mode at start of file (no previous line)"
            p = pos - 1
            while p >= 0 and self.lines[p].kind is LineKind.BLANK:
                p -= 1
            if p < 0:
                return "Orphan: Delivery mode after blank lines (no valid previous line)"
            prev = self.lines[p]
            if not prev.first_cell:
                return "Orphan: Delivery mode after blank line"
            if not is_subject_cell(prev.first_cell):
                return f'Orphan: Delivery mode after non-subject line ("{prev.first_cell[:20]}")'
            return "Orphan: Delivery mode but recovery failed"

        first = line.first_cell
        if first.startswith("("):
            return f'Orphan: Parenthetical but not standard delivery mode ("{first[:30]}")'
        if len(line.cells) == 1:
            return f'Orphan: Single-column continuation ("{first[:30]}")'
        return f'Orphan: Multi-column continuation, no open row (first: "{first[:20]}")'

    # ── main loop ────────────────────────────────────────────────

    def run(self) -> Reconstruction:
        header_pos = next(
            (i for i, l in enumerate(self.lines) if l.kind is LineKind.HEADER), -1
        )
        if header_pos != -1:
            self.result.header_line = self.lines[header_pos].line_no
        start = header_pos + 1 if header_pos != -1 else 0

        i = start
        while i < len(self.lines):
            line = self.lines[i]

            if line.kind is LineKind.FOOTER:
                self._flush()
                if self._produced:
                    self.result.footer_line = line.line_no
                    logger.debug("Footer at line %d ends the table", line.line_no)
                    break
                self._skip(line, "Footer marker before any record (ignored)")
                i += 1
                continue

            if self._is_blank(line) or line.kind is LineKind.HEADER:
                i += 1
                continue

            if line.kind is LineKind.RECORD_START:
                strategy = STRATEGY_SUBJECT if is_subject_cell(line.first_cell) else STRATEGY_STRUCTURAL
                self._open(line, strategy)
                dm_pos = self._lookahead_delivery_mode(i)
                if dm_pos is not None:
                    self._current.cells = merge_into_bucket(self._current.cells, self.lines[dm_pos].cells)
                    i = dm_pos
                i += 1
                continue

            if self._current is not None:
                self._current.cells = merge_into_bucket(self._current.cells, line.cells)
            elif not (line.kind is LineKind.DELIVERY_MODE and self._recover(i, line)):
                self._skip(line, self._orphan_reason(i, line))
            i += 1

        self._flush()
        return self.result


def reconstruct_rows(
    text: str,
    emit: Optional[EmitFn] = None,
    record_test: Callable[[List[str]], bool] = is_record_start,
) -> Reconstruction:
    return RowReconstructor(text, emit, record_test).run()
