"""
Tests for the tabular readers.

Covers:
- Kind and delimiter detection
- Quote-aware line scanning
- Delimited text parsing (blank lines, ragged rows, trimming, BOM)
- First-sheet workbook reading
- Preview
"""

import io

import pytest

from table_nova.models import DelimiterHint, FileOptions, TabularData
from table_nova.tabular import (
    TabularParseError,
    decode_text,
    detect_delimiter_from_line,
    detect_tabular_type,
    load_tabular,
    parse_delimited_text,
    parse_line,
    preview_tabular,
)


# ========== Detection ==========

class TestDetection:
    def test_tabular_type_by_extension(self):
        assert detect_tabular_type("people.csv") == "csv"
        assert detect_tabular_type("notes.TXT") == "csv"
        assert detect_tabular_type("data.tsv") == "tsv"
        assert detect_tabular_type("Book1.XLSX") == "xlsx"
        assert detect_tabular_type("legacy.xls") == "xlsx"
        assert detect_tabular_type("archive.zip") == "unknown"
        assert detect_tabular_type("") == "unknown"

    def test_delimiter_prefers_comma_on_tie(self):
        assert detect_delimiter_from_line("a,b") == ","
        assert detect_delimiter_from_line("a\tb") == "\t"
        assert detect_delimiter_from_line("a\tb,c") == ","
        assert detect_delimiter_from_line("a\tb\tc,d") == "\t"
        assert detect_delimiter_from_line("") == ","


# ========== Line scanning ==========

class TestParseLine:
    def test_plain_fields(self):
        assert parse_line("a,b,c", ",") == ["a", "b", "c"]

    def test_fields_are_not_trimmed(self):
        assert parse_line(" a , b ", ",") == [" a ", " b "]

    def test_quoted_delimiter(self):
        assert parse_line('"Lovelace, Ada",1815', ",") == ["Lovelace, Ada", "1815"]

    def test_doubled_quote_is_literal(self):
        assert parse_line('"say ""hi""",x', ",") == ['say "hi"', "x"]

    def test_empty_fields(self):
        assert parse_line(",,", ",") == ["", "", ""]

    def test_tab_delimiter_ignores_commas(self):
        assert parse_line("a,b\tc", "\t") == ["a,b", "c"]


# ========== Delimited text ==========

class TestParseDelimitedText:
    def test_header_and_rows(self):
        tabular = parse_delimited_text("first,last\nAda,Lovelace\n")
        assert tabular.header == ["first", "last"]
        assert tabular.rows == [["Ada", "Lovelace"]]

    def test_empty_input(self):
        tabular = parse_delimited_text("")
        assert tabular.header is None
        assert tabular.rows == []
        assert tabular.is_empty

    def test_line_endings_normalized(self):
        tabular = parse_delimited_text("a,b\r\n1,2\r3,4")
        assert tabular.rows == [["1", "2"], ["3", "4"]]

    def test_zero_length_lines_skipped(self):
        tabular = parse_delimited_text("a,b\n\n1,2\n\n")
        assert tabular.rows == [["1", "2"]]

    def test_whitespace_line_kept_as_row(self):
        tabular = parse_delimited_text("a,b\n   \n1,2")
        assert tabular.rows == [[""], ["1", "2"]]

    def test_cells_trimmed(self):
        tabular = parse_delimited_text(" a , b \n 1 , 2 ")
        assert tabular.header == ["a", "b"]
        assert tabular.rows == [["1", "2"]]

    def test_ragged_rows_kept(self):
        tabular = parse_delimited_text("a,b,c\n1\n1,2,3,4")
        assert tabular.rows == [["1"], ["1", "2", "3", "4"]]

    def test_tab_detected(self):
        tabular = parse_delimited_text("a\tb\n1\t2")
        assert tabular.header == ["a", "b"]
        assert tabular.rows == [["1", "2"]]

    def test_detection_uses_first_non_blank_line(self):
        tabular = parse_delimited_text("   \na\tb\n1\t2")
        assert tabular.rows[-1] == ["1", "2"]

    def test_explicit_delimiter_wins(self):
        tabular = parse_delimited_text("a\tb,c", ",")
        assert tabular.header == ["a\tb", "c"]


class TestDecode:
    def test_bom_stripped(self):
        assert decode_text("\ufeffa,b".encode("utf-8")) == "a,b"

    def test_str_passthrough(self):
        assert decode_text("a,b") == "a,b"

    def test_invalid_utf8_raises(self):
        with pytest.raises(TabularParseError) as exc:
            decode_text(b"\xff\xfe\x00bad", "broken.csv")
        assert exc.value.source == "broken.csv"


# ========== Dispatch ==========

class TestLoadTabular:
    def test_csv_bytes(self):
        tabular = load_tabular("people.csv", b"first,last\nAda,Lovelace\n")
        assert tabular.header == ["first", "last"]

    def test_tsv_defaults_to_tab(self):
        # more commas than tabs, but the .tsv extension wins
        tabular = load_tabular("notes.tsv", b"a,b\tc,d\n1,2\t3,4")
        assert tabular.header == ["a,b", "c,d"]

    def test_delimiter_hint(self):
        options = FileOptions(delimiter_hint=DelimiterHint.TAB)
        tabular = load_tabular("odd.csv", b"a,b\tc\n1,2\t3", options)
        assert tabular.header == ["a,b", "c"]

    def test_unknown_kind_parsed_as_text(self):
        tabular = load_tabular("export.dat", b"x;y,z\n1,2")
        assert tabular.header == ["x;y", "z"]

    def test_workbook_rejects_text(self):
        with pytest.raises(TabularParseError):
            load_tabular("book.xlsx", "a,b")

    def test_unreadable_workbook(self):
        with pytest.raises(TabularParseError) as exc:
            load_tabular("book.xlsx", b"this is not a zip archive")
        assert "book.xlsx" in str(exc.value)


class TestSpreadsheet:
    @pytest.fixture
    def workbook_bytes(self):
        openpyxl = pytest.importorskip("openpyxl")
        wb = openpyxl.Workbook()
        first = wb.active
        first.title = "People"
        first.append(["name", "city"])
        first.append(["Ada", "London"])
        first.append(["  Alan  ", "Wilmslow"])
        second = wb.create_sheet("Ignored")
        second.append(["other", "sheet"])
        buf = io.BytesIO()
        wb.save(buf)
        return buf.getvalue()

    def test_first_sheet_only(self, workbook_bytes):
        tabular = load_tabular("people.xlsx", workbook_bytes)
        assert tabular.header == ["name", "city"]
        assert tabular.rows == [["Ada", "London"], ["Alan", "Wilmslow"]]


# ========== Preview ==========

class TestPreview:
    def test_limit(self):
        tabular = TabularData(header=["a"], rows=[[str(i)] for i in range(10)])
        preview = preview_tabular(tabular, limit=3)
        assert preview.header == ["a"]
        assert preview.rows == [["0"], ["1"], ["2"]]

    def test_copy_is_independent(self):
        tabular = TabularData(header=["a"], rows=[["1"]])
        preview = preview_tabular(tabular)
        preview.rows[0][0] = "changed"
        assert tabular.rows == [["1"]]

    def test_negative_limit(self):
        tabular = TabularData(header=["a"], rows=[["1"]])
        assert preview_tabular(tabular, limit=-1).rows == []
