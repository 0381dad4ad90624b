"""
Tests for the CSV parser shared by the sheet view and the sync job.

Run with: pytest tests/test_csv_parser.py -v
"""
import pytest

from core.csv_parser import is_blank_row, parse_csv, serialize_row, serialize_rows
from models import rows_from_parsed


class TestParseCsv:
    """Quoting, separators and blank rows."""

    def test_simple_rows(self):
        assert parse_csv("a,b,c\n1,2,3\n") == [["a", "b", "c"], ["1", "2", "3"]]

    def test_crlf_and_lf_both_end_rows(self):
        assert parse_csv("a,b\r\n1,2\n3,4") == [["a", "b"], ["1", "2"], ["3", "4"]]

    def test_comma_inside_quotes_is_kept(self):
        assert parse_csv('"x, y",z\n') == [["x, y", "z"]]

    def test_quoted_examples(self):
        assert parse_csv('a,"b,c",d') == [["a", "b,c", "d"]]
        assert parse_csv('a,"b""c",d') == [["a", 'b"c', "d"]]

    def test_escaped_quote(self):
        assert parse_csv('"say ""hi""",b\n') == [['say "hi"', "b"]]

    def test_newline_inside_quotes_is_kept(self):
        assert parse_csv('"line1\nline2",b\r\nc,d\r\n') == [["line1\nline2", "b"], ["c", "d"]]

    def test_crlf_inside_quotes_is_kept(self):
        assert parse_csv('"a\r\nb",c\n') == [["a\r\nb", "c"]]

    def test_cells_are_not_trimmed(self):
        assert parse_csv(" a , b \n") == [[" a ", " b "]]

    def test_blank_rows_dropped(self):
        text = "a,b\n,\n  , \n\n1,2\n"
        assert parse_csv(text) == [["a", "b"], ["1", "2"]]

    def test_trailing_row_without_newline(self):
        assert parse_csv("a,b\n1,2") == [["a", "b"], ["1", "2"]]

    def test_trailing_empty_cell(self):
        assert parse_csv("a,b,\n") == [["a", "b", ""]]

    def test_empty_input(self):
        assert parse_csv("") == []
        assert parse_csv("\n\r\n") == []

    def test_ragged_rows_are_not_padded(self):
        assert parse_csv("a,b,c\n1\n") == [["a", "b", "c"], ["1"]]

    def test_every_row_has_a_non_blank_cell(self):
        text = 'h1,h2\n" ",\n x ,\n,\t\n'
        for row in parse_csv(text):
            assert not is_blank_row(row)


class TestSerialize:
    """Writing rows back out as CSV."""

    def test_plain_cells_unquoted(self):
        assert serialize_row(["a", "b"]) == "a,b"

    def test_special_cells_quoted(self):
        assert serialize_row(['x,y', 'say "hi"', "l1\nl2"]) == '"x,y","say ""hi""","l1\nl2"'

    def test_plain_cells_round_trip(self):
        cells = ["alpha", "", "  spaced  ", "x-y_z"]
        assert parse_csv(serialize_row(cells)) == [cells]

    def test_serialized_rows_parse_back(self):
        rows = [["Email", "Notes"], ["a@x.com", 'quote " and, comma\nnewline']]
        assert parse_csv(serialize_rows(rows)) == rows


class TestRowsFromParsed:

    def test_header_split_and_numbering(self):
        headers, rows = rows_from_parsed(parse_csv("Email,Name\na@x.com,A\nb@x.com,B\n"))
        assert headers == ["Email", "Name"]
        assert [r.row_index for r in rows] == [1, 2]
        assert rows[1].owner == "b@x.com"

    def test_empty(self):
        assert rows_from_parsed([]) == ([], [])

    @pytest.mark.parametrize("idx,expected", [(0, "a@x.com"), (1, "A"), (5, ""), (-1, "")])
    def test_cell_out_of_range_is_empty(self, idx, expected):
        _, rows = rows_from_parsed([["Email", "Name"], ["a@x.com", "A"]])
        assert rows[0].cell(idx) == expected
