"""
Tests for the delimited-text tokenizer.
"""

import pytest

from drawdata.utils.delimited import render, render_field, tokenize, tokenize_records, zip_row


class TestTokenize:
    """Tests for tokenize()."""

    def test_simple_rows(self):
        assert tokenize("a,b,c\n1,2,3\n") == [["a", "b", "c"], ["1", "2", "3"]]

    def test_quoted_field_with_delimiter_and_doubled_quote(self):
        text = 'name,notes\nElk,"Bull only, ""trophy"" unit"\n'
        assert tokenize(text)[1] == ["Elk", 'Bull only, "trophy" unit']

    def test_quoted_field_spanning_lines(self):
        text = 'id,desc\n1,"first line\nsecond line"\n2,plain\n'
        rows = tokenize(text)
        assert rows == [["id", "desc"], ["1", "first line\nsecond line"], ["2", "plain"]]

    def test_crlf_and_lone_cr_end_rows(self):
        assert tokenize("a,b\r\n1,2\r3,4") == [["a", "b"], ["1", "2"], ["3", "4"]]

    def test_blank_rows_are_dropped(self):
        assert tokenize("a,b\n\n,\n1,2\n   \n") == [["a", "b"], ["1", "2"]]

    def test_unquoted_fields_are_trimmed_quoted_kept(self):
        assert tokenize('  x  ," y "\n') == [["x", " y "]]

    def test_trailing_empty_field_is_kept(self):
        assert tokenize("a,b,\n") == [["a", "b", ""]]

    def test_unterminated_quote_is_flushed(self):
        assert tokenize('a,"open') == [["a", "open"]]

    def test_stray_quote_inside_unquoted_field_is_literal(self):
        assert tokenize('5\'6",x\n') == [['5\'6"', "x"]]

    def test_alternate_delimiter(self):
        assert tokenize("a\tb\n1\t2", delimiter="\t") == [["a", "b"], ["1", "2"]]

    def test_empty_input(self):
        assert tokenize("") == []


class TestZipRow:
    """Tests for zip_row()."""

    def test_lowercases_and_strips_headers(self):
        assert zip_row([" Unit ", "Applicants"], ["1", "100"]) == {"unit": "1", "applicants": "100"}

    def test_missing_fields_default_to_empty(self):
        assert zip_row(["a", "b", "c"], ["1"]) == {"a": "1", "b": "", "c": ""}

    def test_extra_fields_ignored(self):
        assert zip_row(["a"], ["1", "2", "3"]) == {"a": "1"}

    def test_duplicate_header_last_wins(self):
        assert zip_row(["a", "A"], ["1", "2"]) == {"a": "2"}

    def test_tokenize_records(self):
        records = tokenize_records("Hunt,Tags\n201,5\n")
        assert records == [{"hunt": "201", "tags": "5"}]


class TestRender:
    """Tests for rendering rows back to delimited text."""

    def test_render_field_quotes_only_when_needed(self):
        assert render_field("plain") == "plain"
        assert render_field("a,b") == '"a,b"'
        assert render_field('say "hi"') == '"say ""hi"""'
        assert render_field(" padded") == '" padded"'

    def test_rendered_rows_tokenize_back(self):
        rows = [["unit", "notes"], ["1", 'has, comma and "quotes"\nand a newline']]
        assert tokenize(render(rows)) == rows

    @pytest.mark.parametrize(
        "rows,delimiter",
        [
            ([["a", "\r", "b"]], ","),
            ([["line one\r\nline two", "x"]], ","),
            ([[" x ", "y "], ["\tz", "w"]], ","),
            ([["a", "", "b"], ["a", ""]], ","),
            ([[","], ["only", ","]], ","),
            ([['"'], ['"', '""']], ","),
            ([["  ", "a"]], ","),
            ([["GMU 10", "a,b", 'say "hi"'], ["tab\there", " lead", "x"]], "\t"),
        ],
        ids=[
            "lone-cr",
            "crlf-in-field",
            "edge-whitespace",
            "empty-fields",
            "delimiter-only",
            "quote-only",
            "whitespace-only",
            "tab-delimited",
        ],
    )
    def test_round_trip(self, rows, delimiter):
        assert tokenize(render(rows, delimiter), delimiter) == rows
