"""Tests for tokenizer.py – normalisation and line classification."""
from aisis_extract.tokenizer import (
    LineKind,
    find_header,
    is_footer,
    is_noise,
    is_schedule_header,
    is_table_header,
    normalize_cell,
    split_cells,
    tokenize,
)


class TestNormalize:
    def test_nbsp_and_zero_width(self):
        assert normalize_cell("MATH\u00a031.1\u200b") == "MATH 31.1"

    def test_collapses_whitespace_inside_cell(self):
        assert normalize_cell("  DELA   CRUZ,  JUAN ") == "DELA CRUZ, JUAN"

    def test_none(self):
        assert normalize_cell(None) == ""

    def test_split_cells_keeps_empty_columns(self):
        assert split_cells("A\t\tB \t") == ["A", "", "B", ""]


class TestLineTests:
    def test_noise(self):
        assert is_noise("Welcome to the AISIS Online")
        assert is_noise("Home | Sign Out")
        assert is_noise("VIEW ADVISORY GRADES")
        assert not is_noise("MATH 31.1\tMATHEMATICAL ANALYSIS I")

    def test_footer_anchored(self):
        assert is_footer("Home : Terms & Conditions")
        assert is_footer("(c) Copyright 2024")
        assert is_footer("version 2024.1")
        assert not is_footer("ENGL 11\tCopyright law and you")

    def test_headers(self):
        assert is_schedule_header("Time\tMon\tTue\tWed\tThur\tFri\tSat")
        assert not is_schedule_header("Timetable Monday")
        assert is_table_header("Subject Code\tSection\tCourse Title")

    def test_find_header_absent(self):
        assert find_header(["a", "b"], is_table_header) == -1


class TestTokenize:
    def test_kinds(self):
        text = "\n".join([
            "Subject Code\tSection",
            "MATH 10\tA",
            "(FULLY ONSITE)\tCTC 105",
            "extra",
            "",
            "Terms & Conditions",
            "Welcome to the AISIS",
        ])
        lines = tokenize(
            text,
            header_test=is_table_header,
            record_test=lambda cells: cells[0].startswith("MATH"),
        )
        kinds = [l.kind for l in lines]
        assert kinds == [
            LineKind.HEADER,
            LineKind.RECORD_START,
            LineKind.DELIVERY_MODE,
            LineKind.CONTINUATION,
            LineKind.BLANK,
            LineKind.FOOTER,
        ]
        # noise removed but line numbers preserved
        assert [l.line_no for l in lines] == [1, 2, 3, 4, 5, 6]

    def test_noise_only(self):
        assert tokenize("Welcome to the AISIS\nClick here for the enrollment advisory") == []

    def test_crlf(self):
        lines = tokenize("a\r\nb")
        assert [l.text for l in lines] == ["a", "b"]
