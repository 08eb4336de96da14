"""Tests for grades.py – the "My Grades" listing."""
from aisis_extract.grades import parse_grades, parse_loose_line, parse_tab_row, semester_label
from aisis_extract.models import ERROR, GradeRecord

HEADER = "School Year\tSem\tProgram\tSubject Code\tCourse Title\tUnits\tFinal Grade"


def test_six_column_row():
    r = parse_grades("2024-2025\t1\tCS21\tComputer Science 1\t3\tA")
    assert r.courses == [GradeRecord("2024-2025", "1st Sem", "CS21", "Computer Science 1", 3, "A")]
    assert r.errors == []


def test_seven_column_layout_detects_program():
    text = "\n".join([
        "My Grades",
        HEADER,
        "2023-2024\t1\tBS CS\tCS 2112018\tDATA STRUCTURES\t3\tB+",
        "2023-2024\t3\tBS CS\tENLIT 1212018\tLITERATURE\t3\tA",
    ])
    r = parse_grades(text)
    assert r.detected_program == "BS CS"
    assert [(c.course_code, c.semester, c.grade) for c in r.courses] == [
        ("CS 21", "1st Sem", "B+"),
        ("ENLIT 12", "Intercession", "A"),
    ]


def test_loose_line_without_tabs():
    r = parse_grades("2023-2024 2nd Sem MATH 10 CALCULUS 3 B+")
    [c] = r.courses
    assert (c.school_year, c.semester) == ("2023-2024", "2nd Sem")
    assert (c.course_code, c.course_title, c.units, c.grade) == ("MATH 10", "CALCULUS", 3, "B+")


def test_tab_row_with_bad_units_falls_back_to_loose_pass():
    assert parse_tab_row(["2024-2025", "1", "CS21", "Computer Science 1", "0", "A"]) is None
    assert parse_tab_row(["2024-2025", "1", "CS21"]) is None


def test_loose_line_needs_units():
    assert parse_loose_line("MATH 10 CALCULUS A") is None
    assert parse_loose_line("no course here") is None


def test_semester_label():
    assert semester_label("2") == "2nd Sem"
    assert semester_label(" Summer ") == "Summer"


def test_empty_input_is_error():
    r = parse_grades("")
    assert r.courses == []
    assert [e.type for e in r.errors] == [ERROR]
