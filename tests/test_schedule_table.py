"""Tests for schedule_table.py – department class-schedule table."""
from aisis_extract.models import ERROR, WARNING
from aisis_extract.schedule_table import (
    MODE_PLAIN_TEXT,
    MODE_TABLE,
    TBA_REMARK,
    department_for_subject,
    detect_department,
    detect_mode,
    detect_term_code,
    parse_detail_tokens,
    parse_schedule_table,
    strip_boilerplate_pairs,
)

PREAMBLE = [
    "School Year and Term",
    "2024-2025-First Semester",
    "Department",
    "MATHEMATICS",
]

TABLE_HEADER = (
    "Subject Code\tSection\tCourse Title\tUnits\tTime\tRoom\tInstructor\t"
    "Max No\tLang\tLevel\tFree Slots\tRemarks\tS\tP"
)

TABLE = "\n".join(PREAMBLE + [
    TABLE_HEADER,
    "MATH 10\tA\tCALCULUS\t3\tM-TH 0800-0930\tSEC-A210\tDELA CRUZ, JUAN\t40\tENG\tU\t12\t-\tS\tP",
    "MATH 21\tB\tALGEBRA\t3\tTBA\tTBA\tTBA\t30\tENG\tU\t5\t-",
    "MATH 31.1\tC\tANALYSIS\t3\tSAT 0800-1200; W 0800-1200",
    "(FULLY ONLINE)\tONLINE\tSANTOS, ANA\t35\tENG\tU\t10\tFor majors",
    "Home : Terms & Conditions",
])

PLAIN = "\n".join([
    "School Year and Term",
    "2024-2025-Second Semester",
    "Subject Code Section Course Title Units Time Room Instructor",
    "ArtAp 10 A ART APPRECIATION 3 M-TH 0800-0930",
    "(FULLY ONSITE) CTC 105 DELA CRUZ, JUAN 40 ENG U 12 - S P",
    "NSTP 11(ROTC) B NATIONAL SERVICE TRAINING 3 TBA",
])

SHORT_HEADER = "Subject Code\tSection\tCourse Title\tUnits\tTime\tRoom\tInstructor"


def _table(*rows, preamble=PREAMBLE):
    return "\n".join(list(preamble) + [SHORT_HEADER] + list(rows))


def _by_subject(result):
    out = {}
    for s in result.schedules:
        out.setdefault(s.subject_code, []).append(s)
    return out


# ── Table mode ─────────────────────────────────────────────────

class TestTableMode:
    def test_metadata(self):
        r = parse_schedule_table(TABLE)
        md = r.metadata
        assert md.mode == MODE_TABLE
        assert md.strategy == MODE_TABLE
        assert md.term == md.detected_term == "2024-2025-First Semester"
        assert md.department == md.detected_department == "MATHEMATICS"
        assert md.total_courses == 4
        assert [e.type for e in r.errors] == [WARNING]

    def test_single_session_row(self):
        [math] = _by_subject(parse_schedule_table(TABLE))["MATH 10"]
        assert math.days_of_week == [1, 4]
        assert (math.start_time, math.end_time) == ("08:00:00", "09:30:00")
        assert math.room == "SEC-A210"
        assert math.instructor == "DELA CRUZ, JUAN"
        assert math.max_capacity == 40
        assert (math.language, math.level) == ("ENG", "U")
        assert math.remarks is None
        assert math.department == "MATHEMATICS"
        assert math.term_code == "2024-2025-First Semester"

    def test_tba_row_is_one_placeholder(self):
        [tba] = _by_subject(parse_schedule_table(TABLE))["MATH 21"]
        assert tba.days_of_week == []
        assert tba.start_time == tba.end_time == "00:00:00"
        assert tba.is_untimed
        assert tba.remarks == TBA_REMARK
        assert tba.instructor is None

    def test_wrapped_multi_session_row(self):
        sessions = _by_subject(parse_schedule_table(TABLE))["MATH 31.1"]
        assert [s.days_of_week for s in sessions] == [[6], [3]]
        assert all(s.delivery_mode == "FULLY ONLINE" for s in sessions)
        assert all(s.room == "ONLINE" and s.instructor == "SANTOS, ANA" for s in sessions)
        assert sessions[0].remarks == "For majors"
        assert sessions[0].max_capacity == 35

    def test_subject_delivery_mode_leak_removed(self):
        r = parse_schedule_table(_table(
            "MATH 10 (FULLY ONSITE)\tA\tCALCULUS\t3\tM 0800-0900\tSEC-A210\tX, Y",
            "NSTP 11 (ROTC)\tB\tNSTP\t3\tSAT 0800-1200\tFIELD\tX, Y",
        ))
        assert [s.subject_code for s in r.schedules] == ["MATH 10", "NSTP 11 (ROTC)"]

    def test_navigation_line_inside_table_dropped(self):
        r = parse_schedule_table(_table(
            "MATH 10\tA\tCALCULUS\t3\tM 0800-0900\tSEC-A210\tX, Y",
            "Click here for the enrollment advisory",
            "CS 21\tB\tCOMPUTING\t3\tT 0800-0900\tF-113\tX, Y",
        ))
        assert r.metadata.mode == MODE_TABLE
        assert [s.subject_code for s in r.schedules] == ["MATH 10", "CS 21"]
        assert r.metadata.skipped_rows == []

    def test_unparseable_units_default(self):
        r = parse_schedule_table(_table(
            "MATH 10\tA\tCALCULUS\tx\tM 0800-0900\tSEC-A210\tX, Y",
            "CS 21\tB\tCOMPUTING\t3\tT 0800-0900\tF-113\tX, Y",
        ))
        assert [s.units for s in r.schedules] == [3.0, 3.0]

    def test_missing_essential_field_skipped(self):
        r = parse_schedule_table(_table(
            "\tA\tCALCULUS\t3\tM 0800-0900\tSEC-A210\tX, Y",
            "MATH 10\tA\tCALCULUS\t3\tM 0800-0900\tSEC-A210\tX, Y",
        ))
        assert len(r.schedules) == 1
        reasons = [row.reason for row in r.metadata.skipped_rows]
        assert "Missing essential field (subject/section/title)" in reasons

    def test_row_without_time_column_warns(self):
        r = parse_schedule_table(_table(
            "MATH 10\tA\tCALCULUS",
            "CS 21\tB\tCOMPUTING\t3\tT 0800-0900\tF-113\tX, Y",
            "CS 22\tB\tCOMPUTING II\t3\tF 0800-0900\tF-113\tX, Y",
        ))
        assert any("has no time column" in e.message for e in r.errors)
        assert _by_subject(r)["MATH 10"][0].is_untimed

    def test_duplicate_rows_collapsed(self):
        row = "MATH 10\tA\tCALCULUS\t3\tM 0800-0900\tSEC-A210\tX, Y"
        r = parse_schedule_table(_table(row, row))
        assert len(r.schedules) == 1


# ── Term / department ──────────────────────────────────────────

class TestTermAndDepartment:
    def test_missing_term_is_error(self):
        r = parse_schedule_table(_table(
            "MATH 10\tA\tCALCULUS\t3\tM 0800-0900\tSEC-A210\tX, Y", preamble=[],
        ))
        assert r.schedules == []
        assert [(e.type, e.message) for e in r.errors] == [
            (ERROR, "Could not detect term code. Please provide it manually.")
        ]

    def test_term_override(self):
        r = parse_schedule_table(
            _table(
                "MATH 10\tA\tCALCULUS\t3\tM 0800-0900\tSEC-A210\tX, Y",
                "CS 21\tB\tCOMPUTING\t3\tT 0800-0900\tF-113\tX, Y",
                preamble=[],
            ),
            term_code="2025-2026-Intersession",
            department="MATHEMATICS",
        )
        s = r.schedules[0]
        assert len(r.schedules) == 2
        assert s.term_code == "2025-2026-Intersession"
        assert s.department == "MATHEMATICS"
        assert r.metadata.detected_term is None

    def test_generic_department_resolved_per_row(self):
        r = parse_schedule_table(_table(
            "MATH 10\tA\tCALCULUS\t3\tM 0800-0900\tSEC-A210\tX, Y",
            "XYZ 10\tA\tSOMETHING\t3\tT 0800-0900\tSEC-A210\tX, Y",
            preamble=["School Year and Term", "2024-2025-First Semester",
                      "Department", "ALL INTERDISCIPLINARY ELECTIVES"],
        ))
        assert [s.department for s in r.schedules] == ["MATHEMATICS", "XYZ"]

    def test_detect_term_code(self):
        assert detect_term_code(PREAMBLE) == "2024-2025-First Semester"
        assert detect_term_code(["School Year and Term", "Cat. No.\tx"]) is None

    def test_detect_department(self):
        assert detect_department(["Department", "", "ALL", "Mathematics"]) == "MATHEMATICS"
        assert detect_department(["Departments"]) is None

    def test_department_for_subject(self):
        assert department_for_subject("SocSc 11") == "SOCIAL SCIENCE"
        assert department_for_subject("ArtAp 10") == "ARTAP"
        assert department_for_subject("11") == "UNKNOWN"


# ── Plain-text mode ────────────────────────────────────────────

class TestPlainTextMode:
    def test_detected(self):
        r = parse_schedule_table(PLAIN)
        assert r.metadata.mode == MODE_PLAIN_TEXT
        assert r.metadata.strategy == MODE_PLAIN_TEXT
        assert r.metadata.department == "MULTIPLE"

    def test_rows(self):
        by = _by_subject(parse_schedule_table(PLAIN))
        [art] = by["ArtAp 10"]
        assert art.section == "A"
        assert art.course_title == "ART APPRECIATION"
        assert art.days_of_week == [1, 4]
        assert art.delivery_mode == "FULLY ONSITE"
        assert art.room == "CTC 105"
        assert art.instructor == "DELA CRUZ, JUAN"
        assert art.max_capacity == 40
        assert art.remarks is None
        assert art.department == "ARTAP"

        [nstp] = by["NSTP 11(ROTC)"]
        assert nstp.is_untimed
        assert nstp.room == "TBA"
        assert nstp.department == "NSTP"

    def test_navigation_line_between_row_and_details(self):
        lines = PLAIN.split("\n")
        lines.insert(4, "Click here for the enrollment advisory")
        [art] = _by_subject(parse_schedule_table("\n".join(lines)))["ArtAp 10"]
        assert art.delivery_mode == "FULLY ONSITE"
        assert art.room == "CTC 105"
        assert art.instructor == "DELA CRUZ, JUAN"

    def test_table_falls_back_to_plain_text(self):
        r = parse_schedule_table(_table("x\ty\tz\tw\tv\tu\tt", "x\ty\tz\tw\tv\tu\tt"))
        assert r.schedules == []
        assert r.metadata.mode == MODE_PLAIN_TEXT
        assert r.metadata.strategy is None
        assert r.metadata.rows_skipped == 2
        [warning] = r.errors
        assert warning.message.startswith("No courses parsed. Detected mode: plain-text.")


# ── Helpers ────────────────────────────────────────────────────

def test_detect_mode():
    lines = TABLE.split("\n")
    assert detect_mode(TABLE, lines) == MODE_TABLE
    assert detect_mode(PLAIN, PLAIN.split("\n")) == MODE_PLAIN_TEXT
    assert detect_mode("<table><tr><td>x</td></tr></table>", []) == MODE_TABLE


def test_strip_boilerplate_pairs():
    assert strip_boilerplate_pairs(["For", "majors", "S", "P", "N", "N"]) == ["For", "majors"]
    assert strip_boilerplate_pairs(["S"]) == ["S"]


class TestDetailTokens:
    def test_two_token_room(self):
        info = parse_detail_tokens("CTC 105 DELA CRUZ, JUAN 40 ENG U 12 - For majors S P")
        assert info.room == "CTC 105"
        assert info.instructor == "DELA CRUZ, JUAN"
        assert info.remarks == "For majors"

    def test_bilingual_language(self):
        info = parse_detail_tokens("SEC-B305A SANTOS, MARIA 30 E / F U 5")
        assert info.room == "SEC-B305A"
        assert info.language == "E / F"
        assert info.max_capacity == 30
        assert info.level == "U"
        assert info.instructor == "SANTOS, MARIA"

    def test_empty(self):
        info = parse_detail_tokens("")
        assert info.room == "TBA"
        assert info.language is None
