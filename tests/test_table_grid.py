import pytest

from html_sheet_extractor.style import HEADER_FILL_ARGB, CellFill
from html_sheet_extractor.table_grid import (
    MAX_COLSPAN,
    MAX_ROWSPAN,
    ImageValue,
    LinkValue,
    MergeRange,
    NumberValue,
    TextValue,
    build_column_definitions,
    detect_value,
    extract_table,
    parse_span,
)


def _columns(row):
    return [c.column for c in row.cells]


class TestExtractTable:
    def test_colspan_does_not_leak_into_next_row(self, make_soup):
        soup = make_soup("""
            <table>
              <tr><td colspan="2">A</td></tr>
              <tr><td>B</td><td>C</td></tr>
            </table>""")
        result = extract_table(soup.table)
        assert _columns(result.rows[0]) == [0]
        assert result.rows[0].cells[0].colspan == 2
        assert _columns(result.rows[1]) == [0, 1]
        assert result.merges == [MergeRange(start_row=1, start_col=1, end_row=1, end_col=2)]
        assert result.column_count == 2

    def test_cursor_skips_columns_held_by_rowspan(self, make_soup):
        soup = make_soup("""
            <table>
              <tr><td colspan="2" rowspan="2">A</td><td>B</td></tr>
              <tr><td>C</td></tr>
            </table>""")
        result = extract_table(soup.table)
        assert _columns(result.rows[0]) == [0, 2]
        assert _columns(result.rows[1]) == [2]
        assert result.merges == [MergeRange(start_row=1, start_col=1, end_row=2, end_col=2)]
        assert result.column_count == 3

    def test_cells_never_share_a_grid_position(self, make_soup):
        soup = make_soup("""
            <table>
              <tr><td rowspan="3">A</td><td>B</td><td rowspan="2">C</td></tr>
              <tr><td>D</td></tr>
              <tr><td colspan="2">E</td></tr>
            </table>""")
        result = extract_table(soup.table)
        seen = set()
        for r, row in enumerate(result.rows):
            for cell in row.cells:
                for dr in range(cell.rowspan):
                    for dc in range(cell.colspan):
                        pos = (r + dr, cell.column + dc)
                        assert pos not in seen
                        seen.add(pos)
        assert _columns(result.rows[1]) == [1]
        assert _columns(result.rows[2]) == [1]

    def test_sections_in_document_order(self, make_soup):
        soup = make_soup("""
            <table>
              <tfoot><tr><td>total</td></tr></tfoot>
              <thead><tr><th>head</th></tr></thead>
              <tbody><tr><td>body</td></tr></tbody>
            </table>""")
        result = extract_table(soup.table)
        assert [row.section for row in result.rows] == ["thead", "tbody", "tfoot"]
        assert [row.cells[0].value.text for row in result.rows] == ["head", "body", "total"]
        assert result.rows[0].cells[0].is_header

    def test_rows_directly_under_table_count_as_body(self, make_soup):
        soup = make_soup("<table><tr><td>x</td></tr><tbody><tr><td>y</td></tr></tbody></table>")
        result = extract_table(soup.table)
        assert [row.section for row in result.rows] == ["tbody", "tbody"]

    def test_nested_tables_are_not_flattened(self, make_soup):
        soup = make_soup("""
            <table id="outer"><tr><td><table><tr><td>in</td><td>in2</td></tr></table></td></tr></table>""")
        result = extract_table(soup.find(id="outer"))
        assert len(result.rows) == 1
        assert result.column_count == 1

    def test_rowspan_past_last_row_still_recorded(self, make_soup):
        soup = make_soup('<table><tr><td rowspan="3">A</td><td>B</td></tr></table>')
        result = extract_table(soup.table)
        assert result.merges == [MergeRange(start_row=1, start_col=1, end_row=3, end_col=1)]

    def test_empty_table(self, make_soup):
        result = extract_table(make_soup("<table></table>").table)
        assert result.rows == []
        assert result.merges == []
        assert result.column_count == 0

    def test_header_style_from_provider(self, make_soup, provider):
        soup = make_soup("""
            <table><thead><tr><th>H</th></tr></thead>
            <tbody><tr><td style="background-color:#ff0000; border: 2px solid blue; text-align: right">1</td></tr></tbody>
            </table>""")
        result = extract_table(soup.table, provider)
        header = result.rows[0].cells[0].style
        assert header.font.bold
        assert header.alignment.horizontal == "center"
        assert header.alignment.vertical == "middle"
        assert header.fill == CellFill(argb=HEADER_FILL_ARGB)

        body = result.rows[1].cells[0].style
        assert body.fill == CellFill(argb="FFFF0000")
        assert body.alignment.horizontal == "right"
        assert body.border.top.style == "medium"
        assert body.border.left.color == "FF0000FF"


class TestDetectValue:
    @pytest.mark.parametrize("html, expected", [
        ("<td>1,234.50</td>", 1234.5),
        ("<td> -3 </td>", -3.0),
        ("<td>12 345</td>", 12345.0),
    ])
    def test_numbers(self, make_soup, html, expected):
        value = detect_value(make_soup(f"<table><tr>{html}</tr></table>").td)
        assert isinstance(value, NumberValue)
        assert value.numeric == expected
        assert value.kind == "number"

    def test_image_wins_over_text(self, make_soup):
        value = detect_value(make_soup('<table><tr><td>logo <img src="a.png"></td></tr></table>').td)
        assert value == ImageValue(src="a.png")

    def test_link(self, make_soup):
        value = detect_value(make_soup('<table><tr><td><a href="https://x.test">go</a></td></tr></table>').td)
        assert isinstance(value, LinkValue)
        assert (value.text, value.href) == ("go", "https://x.test")

    def test_plain_text(self, make_soup):
        value = detect_value(make_soup("<table><tr><td>12 apples</td></tr></table>").td)
        assert value == TextValue(text="12 apples")


class TestColumnDefinitions:
    def test_colgroup_widths(self, make_soup, provider):
        soup = make_soup("""
            <table><colgroup><col style="width: 110px"><col width="40"><col></colgroup>
            <tr><td>a</td><td>b</td><td>c</td></tr></table>""")
        assert build_column_definitions(soup.table, provider) == [14.0, 8.0, 18.0]

    def test_header_widths_when_no_colgroup(self, make_soup, provider):
        soup = make_soup("""
            <table><thead><tr><th style="width:152px">a</th><th>b</th></tr></thead></table>""")
        assert build_column_definitions(soup.table, provider) == [20.0, 15.43]

    def test_nothing_to_measure(self, make_soup, provider):
        assert build_column_definitions(make_soup("<table><tr><td>x</td></tr></table>").table, provider) == []

    def test_parse_span_falls_back_to_one(self, make_soup):
        soup = make_soup('<table><tr><td colspan="abc" rowspan="0">x</td></tr></table>')
        assert parse_span(soup.td, "colspan") == 1
        assert parse_span(soup.td, "rowspan") == 1

    @pytest.mark.parametrize("raw, expected", [("2.5", 2), ("3px", 3), (" 4 ", 4), ("-2", 1)])
    def test_parse_span_reads_leading_digits(self, make_soup, raw, expected):
        soup = make_soup(f'<table><tr><td colspan="{raw}">x</td></tr></table>')
        assert parse_span(soup.td, "colspan") == expected

    def test_huge_spans_are_clamped(self, make_soup):
        soup = make_soup('<table><tr><td colspan="5000000" rowspan="4">x</td></tr></table>')
        assert parse_span(soup.td, "colspan") == MAX_COLSPAN
        soup = make_soup('<table><tr><td rowspan="9999999">x</td></tr></table>')
        assert parse_span(soup.td, "rowspan") == MAX_ROWSPAN

        result = extract_table(make_soup(
            '<table><tr><td colspan="5000000" rowspan="4">x</td><td>y</td></tr></table>').table)
        assert result.column_count <= MAX_COLSPAN + 1
        assert result.merges[0] == MergeRange(start_row=1, start_col=1, end_row=4, end_col=MAX_COLSPAN)
        assert _columns(result.rows[0]) == [0, MAX_COLSPAN]
