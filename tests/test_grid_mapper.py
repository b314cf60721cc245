from types import SimpleNamespace

from html_sheet_extractor.grid_mapper import GridCell, find_guide_index, map_elements_to_grid, map_to_grid
from html_sheet_extractor.guides import GuideSet, build_guides
from html_sheet_extractor.structures import Rect

COLS = GuideSet(values=(0.0, 100.0, 200.0))
ROWS = GuideSet(values=(0.0, 50.0, 120.0))


class TestFindGuideIndex:
    def test_match_within_tolerance(self):
        assert find_guide_index(COLS.values, 101.5, 2) == 1

    def test_insertion_point_between_guides(self):
        assert find_guide_index(COLS.values, 150, 2) == 2

    def test_beyond_last_guide_returns_last_index(self):
        assert find_guide_index(COLS.values, 999, 2) == 2

    def test_no_guides(self):
        assert find_guide_index((), 10, 2) is None


class TestMapToGrid:
    def test_single_interval(self):
        cell = map_to_grid(Rect(0, 0, 100, 50), COLS, ROWS, 2)
        assert cell == GridCell(col_start=0, col_end=0, row_start=0, row_end=0)
        assert not cell.is_merged
        assert cell.area == 1

    def test_spanning_rectangle_is_merged(self):
        cell = map_to_grid(Rect(0, 0, 200, 120), COLS, ROWS, 2, content="x")
        assert (cell.col_start, cell.col_end, cell.row_start, cell.row_end) == (0, 1, 0, 1)
        assert cell.is_merged
        assert cell.area == 4
        assert cell.content == "x"

    def test_edges_snap_within_tolerance(self):
        cell = map_to_grid(Rect(1, 1.5, 99, 51), COLS, ROWS, 2)
        assert (cell.col_start, cell.col_end, cell.row_start, cell.row_end) == (0, 0, 0, 0)

    def test_mapped_cell_indices_are_within_bounds(self):
        rects = [Rect(0, 0, 100, 50), Rect(100, 50, 200, 120), Rect(0, 0, 300, 300)]
        for rect in rects:
            cell = map_to_grid(rect, COLS, ROWS, 2)
            assert 0 <= cell.col_start <= cell.col_end < COLS.interval_count
            assert 0 <= cell.row_start <= cell.row_end < ROWS.interval_count

    def test_rectangle_inside_one_interval_is_degenerate(self):
        # 50..60 no alcanza ninguna guía: fin de columna < inicio
        assert map_to_grid(Rect(50, 0, 60, 50), COLS, ROWS, 2) is None

    def test_empty_guides_drop_everything(self):
        assert map_to_grid(Rect(0, 0, 10, 10), GuideSet(values=()), ROWS, 2) is None


class TestMapElementsToGrid:
    def test_unresolvable_elements_are_dropped(self):
        items = [
            SimpleNamespace(rect=Rect(0, 0, 100, 50), tag="p"),
            SimpleNamespace(rect=Rect(50, 0, 60, 50), tag="span"),
            SimpleNamespace(rect=Rect(100, 0, 200, 120), tag="div"),
        ]
        cells = map_elements_to_grid(items, COLS, ROWS, 2)
        assert [c.content.tag for c in cells] == ["p", "div"]
        assert cells[1].row_end == 1

    def test_content_does_not_take_part_in_equality(self):
        a = GridCell(0, 0, 0, 0, content="a")
        b = GridCell(0, 0, 0, 0, content="b")
        assert a == b


class TestMappingFollowsRectangleEdges:
    def test_cell_bounds_stay_within_tolerance_of_edges(self):
        tol = 2.0
        rects = [
            Rect(0, 0, 100, 50),
            Rect(102, 0, 200, 50),
            Rect(0, 50, 202, 120),
            Rect(49, 51, 151, 119),
        ]
        cols = build_guides([v for r in rects for v in (r.left, r.right)], tol)
        rows = build_guides([v for r in rects for v in (r.top, r.bottom)], tol)
        for r in rects:
            c = map_to_grid(r, cols, rows, tol)
            assert c is not None
            assert abs(cols[c.col_start] - r.left) <= tol
            assert abs(cols[c.col_end + 1] - r.right) <= tol
            assert abs(rows[c.row_start] - r.top) <= tol
            assert abs(rows[c.row_end + 1] - r.bottom) <= tol
