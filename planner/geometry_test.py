"""Tests for grid <-> pixel conversion."""

import pytest

from planner.geometry import (
    CANVAS_SIZE,
    build_resolution,
    cell_size_px,
    clamp,
    px_delta_to_cells,
    px_to_cell,
    rect_to_px,
)


class TestCellSize:
    def test_default_grid(self):
        assert CANVAS_SIZE == 900
        assert cell_size_px(30) == pytest.approx(30.0)

    def test_fractional_cells(self):
        assert cell_size_px(7) == pytest.approx(900 / 7)

    def test_zero_resolution_rejected(self):
        with pytest.raises(ValueError):
            cell_size_px(0)

    def test_build_resolution_is_larger_axis(self):
        assert build_resolution(20, 45) == 45
        assert build_resolution(45, 20) == 45


class TestRectToPx:
    def test_scales_every_edge(self):
        assert rect_to_px(2, 3, 5, 4, 30) == pytest.approx(
            (60.0, 90.0, 210.0, 210.0)
        )


class TestDeltaToCells:
    def test_one_cell_right(self):
        """30px at 30 cells (30px per cell) is exactly one cell."""
        assert px_delta_to_cells(30, 0, 30) == (1, 0)

    def test_snaps_to_nearest(self):
        assert px_delta_to_cells(44, -46, 30) == (1, -2)

    def test_half_cell_ties_to_even(self):
        assert px_delta_to_cells(15, 45, 30) == (0, 2)

    def test_zoom_scales_cell_on_screen(self):
        """At 2x zoom a cell is 60 screen pixels."""
        assert px_delta_to_cells(60, 120, 30, zoom=2.0) == (1, 2)


class TestPxToCell:
    def test_inside_cell(self):
        assert px_to_cell(45, 89, 30) == (1, 2)

    def test_cell_edge_belongs_to_next_cell(self):
        assert px_to_cell(60, 0, 30) == (2, 0)


class TestClamp:
    def test_within(self):
        assert clamp(5, 0, 10) == 5

    def test_below_and_above(self):
        assert clamp(-3, 0, 10) == 0
        assert clamp(12, 0, 10) == 10

    def test_lower_bound_wins_when_empty_range(self):
        assert clamp(4, 0, -5) == 0
