"""
Record and diagnostic types shared by every AISIS parser.

All parsers return plain dataclasses; ``to_dict()`` gives the JSON-ready
shape that the exporter and any persistence layer consume verbatim.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import List, Optional, Tuple


ERROR = "error"
WARNING = "warning"


@dataclass
class ParseError:
    type: str  # "error" | "warning"
    message: str
    line: Optional[int] = None


def has_error(errors: List[ParseError]) -> bool:
    return any(e.type == ERROR for e in errors)


# ──────────────────────────────────────────────────────────────────
#  Curriculum
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ParsedCourse:
    catalog_no: str
    title: str
    units: float
    prerequisites: Tuple[str, ...] = ()
    category: str = ""
    is_placeholder: bool = False
    is_creditable: bool = True
    needs_review: bool = False


@dataclass
class ParsedTerm:
    label: str  # "Y1 1st Sem", "Y2 Intersession", ...
    total_units: float = 0.0
    courses: List[ParsedCourse] = field(default_factory=list)


@dataclass
class DuplicateCourse:
    code: str
    title: str
    category: str
    term: str


@dataclass
class ParseResult:
    program_name: str = ""
    program_code: Optional[str] = None
    track_code: Optional[str] = None
    version: str = ""
    school: str = ""
    terms: List[ParsedTerm] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    version_year: Optional[int] = None
    version_sem: Optional[int] = None
    duplicates_skipped: List[DuplicateCourse] = field(default_factory=list)
    strategy: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


# ──────────────────────────────────────────────────────────────────
#  Personal weekly schedule
# ──────────────────────────────────────────────────────────────────

@dataclass
class ScheduleBlock:
    course_code: str
    section: str
    room: str
    days: List[int]  # 1 = Mon ... 7 = Sun
    start_time: str  # "HH:MM"
    end_time: str


@dataclass
class LaneEvent:
    line_index: int
    cell_index: int
    type: str  # header | detail | gap | detail_orphan
    text: str
    pos_assigned: Optional[int] = None
    note: Optional[str] = None


@dataclass
class ColumnExtraction:
    time_slot: str
    raw_lines: List[str]
    collapsed_columns: List[str]
    cells_with_content: List[int]
    lane_events: List[LaneEvent] = field(default_factory=list)
    end_of_table_tripped: bool = False


@dataclass
class ValidationResult:
    day_name: str
    time_range: str
    cell_content: str
    result: str  # accepted | rejected | empty
    reason: str
    course_code: Optional[str] = None


@dataclass
class CommonIssue:
    type: str  # alignment | regex | format | footer
    severity: str  # error | warning | info
    message: str
    line_numbers: List[int] = field(default_factory=list)


@dataclass
class DebugInfo:
    total_lines: int = 0
    header_line: int = -1
    header_content: str = ""
    time_slot_groups: int = 0
    uses_tab_separator: bool = False
    footer_lines_ignored: int = 0
    column_extractions: List[ColumnExtraction] = field(default_factory=list)
    validation_results: List[ValidationResult] = field(default_factory=list)
    common_issues: List[CommonIssue] = field(default_factory=list)


@dataclass
class WeeklyScheduleResult:
    blocks: List[ScheduleBlock] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    debug: DebugInfo = field(default_factory=DebugInfo)

    def to_dict(self) -> dict:
        return asdict(self)


# ──────────────────────────────────────────────────────────────────
#  Bulk department schedule table
# ──────────────────────────────────────────────────────────────────

@dataclass
class AISISSchedule:
    term_code: str
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
    delivery_mode: Optional[str]
    remarks: Optional[str]
    days_of_week: List[int]
    start_time: str  # "HH:MM:SS"
    end_time: str
    department: str

    @property
    def is_untimed(self) -> bool:
        return not self.days_of_week and self.start_time == self.end_time == "00:00:00"


@dataclass
class SkippedRow:
    line_no: int
    reason: str
    data: str


@dataclass
class ScheduleTableMetadata:
    department: str = "UNKNOWN"
    term: str = ""
    total_courses: int = 0
    detected_term: Optional[str] = None
    detected_department: Optional[str] = None
    mode: str = "table"  # table | plain-text
    strategy: Optional[str] = None
    lines_processed: int = 0
    rows_skipped: int = 0
    skipped_rows: List[SkippedRow] = field(default_factory=list)


@dataclass
class ScheduleTableResult:
    schedules: List[AISISSchedule] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    metadata: ScheduleTableMetadata = field(default_factory=ScheduleTableMetadata)

    def to_dict(self) -> dict:
        return asdict(self)


# ──────────────────────────────────────────────────────────────────
#  Grades
# ──────────────────────────────────────────────────────────────────

@dataclass
class GradeRecord:
    school_year: str
    semester: str
    course_code: str
    course_title: str
    units: int
    grade: str


@dataclass
class GradesResult:
    courses: List[GradeRecord] = field(default_factory=list)
    detected_program: Optional[str] = None
    errors: List[ParseError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)
