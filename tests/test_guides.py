import pytest

from html_sheet_extractor.guides import GuideSet, build_guides, normalize_guides, push_guide


class TestBuildGuides:
    def test_near_boundaries_collapse_into_one_guide(self):
        # tres rectángulos: [0,100], [102,200], [0,202]
        values = [0, 100, 102, 200, 0, 202]
        guides = build_guides(values, tolerance_px=2)
        assert guides.values == pytest.approx((0, 101, 201))
        assert len(guides) == 3
        assert guides.interval_count == 2

    def test_sorted_and_separated_by_more_than_tolerance(self):
        values = [310, 5, 7.5, 150, 149, 0, 300, 2]
        guides = build_guides(values, tolerance_px=2)
        assert list(guides) == sorted(guides)
        gaps = [b - a for a, b in zip(guides.values, guides.values[1:])]
        assert all(gap > 2 for gap in gaps)

    def test_second_pass_merges_what_insertion_order_left_apart(self):
        # 0 y 2.5 entran separadas; 1.5 arrastra la primera hasta 0.75
        guides = build_guides([0, 2.5, 1.5], tolerance_px=2)
        assert guides.values == pytest.approx((1.625,))

    def test_rebuilding_from_guides_is_idempotent(self):
        first = build_guides([0, 100, 102, 200, 0, 202, 55, 57], tolerance_px=2)
        second = build_guides(first.values, tolerance_px=2)
        assert second.values == pytest.approx(first.values)

    def test_empty_input_gives_empty_guide_set(self):
        guides = build_guides([], tolerance_px=2)
        assert len(guides) == 0
        assert guides.widths == []
        assert guides.interval_count == 0

    def test_zero_tolerance_keeps_distinct_values(self):
        guides = build_guides([10, 0, 10, 5], tolerance_px=0)
        assert guides.values == (0.0, 5.0, 10.0)


class TestGuideHelpers:
    def test_push_guide_averages_within_tolerance(self):
        guides = [0.0, 100.0]
        push_guide(guides, 102.0, 2.0)
        assert guides == [0.0, 101.0]

    def test_push_guide_appends_outside_tolerance(self):
        guides = [0.0]
        push_guide(guides, 3.0, 2.0)
        assert guides == [0.0, 3.0]

    def test_normalize_guides_sorts_and_merges_neighbours(self):
        assert normalize_guides([10.0, 0.0, 11.0], 2.0) == [0.0, 10.5]
        assert normalize_guides([], 2.0) == []

    def test_widths_between_consecutive_guides(self):
        guides = GuideSet(values=(0.0, 101.0, 201.0))
        assert guides.widths == [101.0, 100.0]
        assert guides[1] == 101.0
