"""Tests for curriculum.py – plain-text Official Curriculum paste."""
from aisis_extract.curriculum import parse_curriculum_text, split_prerequisites
from aisis_extract.models import ERROR, WARNING, has_error

SAMPLE = "\n".join([
    "Select a degree program",
    "(BS ME) BACHELOR OF SCIENCE IN MANAGEMENT ENGINEERING (Ver Sem 1, Ver Year 2020)",
    "First Year",
    "First Semester - 21.0 Units",
    "Cat No\tCourse Title\tUnits\tPrerequisites\tCategory",
    "MATH 31.1\tMATHEMATICAL ANALYSIS I\t3\tNone\tM",
    "ENGL 11\tTHE AESTHETIC EXPERIENCE\t3\t\tC",
    "\tFree Elective\t3\t\tFREE",
    "Second Semester - 18.0 Units",
    "MATH 31.2\tMATHEMATICAL ANALYSIS II\t3\tMATH 31.1, MATH 30.23\tM",
    "Second Year",
    "Intersession - 3.0 Units",
    "NSTP 11\tNATIONAL SERVICE\t3\t-\tNSTP",
])


def _body(*rows):
    return "\n".join(["First Year", "First Semester - 6.0 Units", *rows])


def _warnings(result):
    return [e.message for e in result.errors if e.type == WARNING]


# ── Program header ─────────────────────────────────────────────

class TestHeader:
    def test_program_fields(self):
        r = parse_curriculum_text(SAMPLE)
        assert r.program_code == "BS ME"
        assert r.track_code is None
        assert r.program_name == "BACHELOR OF SCIENCE IN MANAGEMENT ENGINEERING"
        assert r.version == "(Ver Sem 1, Ver Year 2020)"
        assert (r.version_year, r.version_sem) == (2020, 1)
        assert r.school == "John Gokongwei School of Management"
        assert r.strategy == "text"

    def test_honors_program_keeps_suffix(self):
        text = "\n".join([
            "(AB EC-H) BACHELOR OF ARTS IN ECONOMICS (HONORS PROGRAM) (Ver Sem 1, Ver Year 2018)",
            "First Year",
            "First Semester - 3.0 Units",
            "ECON 110\tPRINCIPLES OF ECONOMICS\t3\tNone\tM",
        ])
        r = parse_curriculum_text(text)
        assert r.program_code == "AB EC-H"
        assert r.track_code is None
        assert r.program_name == "BACHELOR OF ARTS IN ECONOMICS (HONORS PROGRAM)"
        assert r.school == "School of Social Sciences"

    def test_code_inferred_from_name(self):
        text = "\n".join([
            "BACHELOR OF SCIENCE IN COMPUTER SCIENCE (Ver Sem 1, Ver Year 2020)",
            "First Year",
            "First Semester - 3.0 Units",
            "CS 11\tINTRODUCTION TO COMPUTING\t3\tNone\tM",
        ])
        assert parse_curriculum_text(text).program_code == "CS"

    def test_missing_program_line_warns(self):
        r = parse_curriculum_text(_body("MATH 10\tCALCULUS\t3\tNone\tM"))
        assert "No program name found before the first year header" in _warnings(r)
        assert len(r.terms) == 1


# ── Terms and courses ──────────────────────────────────────────

class TestTerms:
    def test_labels_and_units(self):
        r = parse_curriculum_text(SAMPLE)
        assert [t.label for t in r.terms] == ["Y1 1st Sem", "Y1 2nd Sem", "Y2 Intersession"]
        assert [t.total_units for t in r.terms] == [21.0, 18.0, 3.0]
        assert not has_error(r.errors)

    def test_courses(self):
        first = parse_curriculum_text(SAMPLE).terms[0]
        math = first.courses[0]
        assert math.catalog_no == "MATH 31.1"
        assert math.title == "MATHEMATICAL ANALYSIS I"
        assert math.units == 3.0
        assert math.prerequisites == ()
        assert math.category == "M"
        assert not math.is_placeholder
        assert not math.needs_review

    def test_prerequisites_split(self):
        r = parse_curriculum_text(SAMPLE)
        assert r.terms[1].courses[0].prerequisites == ("MATH 31.1", "MATH 30.23")
        assert r.terms[2].courses[0].prerequisites == ()

    def test_placeholder_elective(self):
        elective = parse_curriculum_text(SAMPLE).terms[0].courses[2]
        assert elective.catalog_no == "FREE_ELEC1"
        assert elective.is_placeholder
        assert elective.needs_review

    def test_repeated_label_merges(self):
        text = "\n".join([
            "First Year",
            "First Semester - 3.0 Units",
            "MATH 10\tCALCULUS\t3\tNone\tM",
            "First Semester - 3.0 Units",
            "CS 11\tCOMPUTING\t3\tNone\tM",
        ])
        r = parse_curriculum_text(text)
        assert [t.label for t in r.terms] == ["Y1 1st Sem"]
        assert [c.catalog_no for c in r.terms[0].courses] == ["MATH 10", "CS 11"]

    def test_mislabeled_year_becomes_intersession(self):
        text = "\n".join([
            "Second Year",
            "Third Year - 6.0 Units",
            "ITMGT 45\tINTERNSHIP\t6\tNone\tM",
        ])
        r = parse_curriculum_text(text)
        assert [t.label for t in r.terms] == ["Y2 Intersession"]
        assert any("mislabeled term" in w for w in _warnings(r))

    def test_summer_header_is_intersession(self):
        text = "\n".join([
            "Second Year",
            "Summer - 3.0 Units",
            "NSTP 11\tNATIONAL SERVICE\t3\tNone\tNSTP",
        ])
        r = parse_curriculum_text(text)
        assert [t.label for t in r.terms] == ["Y2 Intersession"]
        assert r.terms[0].total_units == 3.0
        assert not any("mislabeled term" in w for w in _warnings(r))

    def test_year_jump_warns(self):
        text = "\n".join([
            "First Year",
            "First Semester - 3.0 Units",
            "MATH 10\tCALCULUS\t3\tNone\tM",
            "Third Year",
            "First Semester - 3.0 Units",
            "MATH 20\tCALCULUS II\t3\tNone\tM",
        ])
        r = parse_curriculum_text(text)
        assert any("Unexpected year jump from Year 1 to Year 3" in w for w in _warnings(r))
        assert [t.label for t in r.terms] == ["Y1 1st Sem", "Y3 1st Sem"]


# ── Row validation ─────────────────────────────────────────────

class TestRows:
    def test_duplicate_in_same_term_skipped(self):
        r = parse_curriculum_text(_body(
            "MATH 10\tCALCULUS\t3\tNone\tM",
            "MATH 10\tCALCULUS\t3\tNone\tM",
        ))
        assert len(r.terms[0].courses) == 1
        [dup] = r.duplicates_skipped
        assert (dup.code, dup.category, dup.term) == ("MATH 10", "M", "Y1 1st Sem")
        assert any(w.startswith("Skipped 1 duplicate course(s) in same term") for w in _warnings(r))

    def test_same_code_different_category_kept(self):
        r = parse_curriculum_text(_body(
            "MATH 10\tCALCULUS\t3\tNone\tM",
            "MATH 10\tCALCULUS\t3\tNone\tC",
        ))
        assert len(r.terms[0].courses) == 2
        assert r.duplicates_skipped == []

    def test_same_code_different_term_kept(self):
        text = "\n".join([
            "First Year",
            "First Semester - 3.0 Units",
            "PHYED 1\tPHYSICAL EDUCATION\t2\tNone\tPE",
            "Second Semester - 3.0 Units",
            "PHYED 1\tPHYSICAL EDUCATION\t2\tNone\tPE",
        ])
        r = parse_curriculum_text(text)
        assert [len(t.courses) for t in r.terms] == [1, 1]
        assert r.duplicates_skipped == []

    def test_invalid_units_skipped(self):
        r = parse_curriculum_text(_body("MATH 10\tCALCULUS\t15\tNone\tM"))
        assert "Invalid units value for MATH 10: 15" in _warnings(r)

    def test_zero_units_not_creditable(self):
        r = parse_curriculum_text(_body("INTACT 11\tINTERDISCIPLINARY\t0\tNone\tC"))
        assert not r.terms[0].courses[0].is_creditable

    def test_missing_title_is_error(self):
        r = parse_curriculum_text(_body("MATH 10\t\t3"))
        assert any(e.type == ERROR and "missing title" in e.message for e in r.errors)

    def test_course_without_term_is_error(self):
        r = parse_curriculum_text("\n".join([
            "(BS ME) BACHELOR OF SCIENCE IN MANAGEMENT ENGINEERING (Ver Sem 1, Ver Year 2020)",
            "MATH 10\tCALCULUS\t3\tNone\tM",
        ]))
        assert any("has no year/semester context" in e.message for e in r.errors)

    def test_unnamed_non_elective_skipped(self):
        r = parse_curriculum_text(_body("\tCALCULUS\t3\tNone\tM"))
        assert any(w.startswith("Skipped invalid course code") for w in _warnings(r))

    def test_track_course_without_category_name_skipped(self):
        r = parse_curriculum_text(_body("\tTrack Elective 1\t3\tNone\tTrack Course"))
        assert any(w.startswith('Skipped elective "Track Elective 1"') for w in _warnings(r))


# ── Whole-document behaviour ───────────────────────────────────

def test_empty_input_reports_error():
    r = parse_curriculum_text("")
    assert r.terms == []
    assert any(e.type == ERROR and e.message == "No valid courses found in the input" for e in r.errors)


def test_no_courses_reports_error():
    r = parse_curriculum_text("Welcome to the AISIS\nnothing useful here")
    assert r.terms == []
    assert has_error(r.errors)


def test_parse_is_idempotent():
    # elective numbering starts over on every call
    assert parse_curriculum_text(SAMPLE).to_dict() == parse_curriculum_text(SAMPLE).to_dict()


def test_split_prerequisites():
    assert split_prerequisites("MATH 31.1, CS 21; ENGL 11") == ("MATH 31.1", "CS 21", "ENGL 11")
    assert split_prerequisites("Junior standing, or consent") == ("JUNIOR STANDING, OR CONSENT",)
    assert split_prerequisites("None") == ()
    assert split_prerequisites("") == ()
