"""Tests for candidate diff/merge and OptimizationPreview."""

import pytest

from planner.preview import (
    OptimizationPreview,
    diff_layout,
    merge_layout,
    normalize_origin,
)
from planner.types import (
    Department,
    DeptKind,
    DiffRow,
    OptimizationResult,
    Placement,
)


def _dept(name, x, y, w=2, h=2, **kw):
    return Department(
        id=kw.pop("id", f"dept_{name}"),
        name=name,
        x=x,
        y=y,
        width=w,
        height=h,
        grid_size=30,
        **kw,
    )


def _result(*placements, score=None):
    return OptimizationResult(
        placements=[Placement(*p) for p in placements], score=score
    )


# ---------------------------------------------------------------------------
# diff_layout
# ---------------------------------------------------------------------------


class TestDiff:
    def test_unchanged_and_unmatched_give_no_rows(self):
        current = [_dept("A", 0, 0)]
        candidate = _result(("A", 0, 0, 2, 2), ("B", 5, 5, 2, 2))
        assert diff_layout(current, candidate) == []

    def test_moved_department(self):
        current = [_dept("A", 0, 0), _dept("B", 4, 4)]
        candidate = _result(("A", 0, 0, 2, 2), ("B", 7, 1, 2, 2))
        assert diff_layout(current, candidate) == [
            DiffRow("B", (4, 4), (7, 1))
        ]

    def test_first_name_match_wins(self):
        current = [_dept("A", 1, 1, id="first"), _dept("A", 9, 9, id="second")]
        candidate = _result(("A", 9, 9, 2, 2))
        assert diff_layout(current, candidate) == [
            DiffRow("A", (1, 1), (9, 9))
        ]

    def test_row_wire_shape(self):
        row = DiffRow("B", (4, 4), (7, 1))
        assert row.to_dict() == {
            "name": "B",
            "from": {"x": 4, "y": 4},
            "to": {"x": 7, "y": 1},
        }


# ---------------------------------------------------------------------------
# merge_layout
# ---------------------------------------------------------------------------


class TestMerge:
    def test_preserves_lock_kind_and_id(self):
        current = [
            _dept("A", 0, 0, locked=True),
            _dept("Aisle", 3, 0, kind=DeptKind.VOID),
        ]
        merged = merge_layout(
            current,
            _result(("A", 4, 4, 3, 3), ("Aisle", 0, 0, 1, 8)),
            30,
        )
        a, aisle = merged
        assert (a.id, a.locked, a.kind) == ("dept_A", True, DeptKind.DEPT)
        assert (a.x, a.y, a.width, a.height) == (4, 4, 3, 3)
        assert aisle.kind is DeptKind.VOID

    def test_new_department_gets_defaults(self):
        merged = merge_layout([], _result(("New", 1, 2, 3, 4)), 40)
        (d,) = merged
        assert d.id.startswith("dept_")
        assert not d.locked
        assert d.kind is DeptKind.DEPT
        assert d.grid_size == 40

    def test_departments_missing_from_candidate_are_dropped(self):
        current = [_dept("A", 0, 0), _dept("B", 3, 3)]
        merged = merge_layout(current, _result(("A", 1, 1, 2, 2)), 30)
        assert [d.name for d in merged] == ["A"]

    def test_repeated_name_gets_fresh_id(self):
        current = [_dept("A", 0, 0, locked=True)]
        merged = merge_layout(
            current, _result(("A", 0, 0, 2, 2), ("A", 5, 5, 2, 2)), 30
        )
        first, second = merged
        assert first.id == "dept_A"
        assert second.id != first.id
        assert second.id.startswith("dept_")
        assert first.locked and second.locked

    def test_extent_fits_placements(self):
        merged = merge_layout(
            [], _result(("A", 50, 50, 2, 2), ("B", 0, 0, 40, 3)), 30, (30, 30)
        )
        a, b = merged
        assert (a.x, a.y, a.width, a.height) == (28, 28, 2, 2)
        assert (b.x, b.y, b.width, b.height) == (0, 0, 30, 3)


class TestNormalizeOrigin:
    def test_shifts_to_origin(self):
        shifted = normalize_origin([_dept("A", 3, 5), _dept("B", 6, 4)])
        assert [(d.x, d.y) for d in shifted] == [(0, 1), (3, 0)]

    def test_empty(self):
        assert normalize_origin([]) == []


# ---------------------------------------------------------------------------
# OptimizationPreview
# ---------------------------------------------------------------------------


class TestPreview:
    def test_inactive_by_default(self):
        preview = OptimizationPreview()
        assert not preview.active
        assert preview.candidate is None
        assert preview.score is None
        assert preview.diff([_dept("A", 0, 0)]) == []

    def test_select_candidate(self):
        preview = OptimizationPreview()
        first = _result(("A", 0, 0, 2, 2), score=10.0)
        second = _result(("A", 5, 5, 2, 2), score=7.5)
        preview.propose([first, second])
        assert preview.candidate is first
        assert preview.select(1) is second
        assert preview.score == 7.5
        with pytest.raises(IndexError):
            preview.select(2)

    def test_apply_clears_and_is_idempotent(self):
        current = [_dept("A", 0, 0)]
        preview = OptimizationPreview()
        preview.propose([_result(("A", 6, 6, 2, 2))])
        merged = preview.apply(current, 30)
        assert [(d.x, d.y) for d in merged] == [(6, 6)]
        assert not preview.active
        again = preview.apply(merged, 30)
        assert again == merged

    def test_discard(self):
        preview = OptimizationPreview()
        preview.propose([_result(("A", 0, 0, 2, 2))])
        preview.discard()
        assert not preview.active

    def test_apply_with_extent(self):
        preview = OptimizationPreview()
        preview.propose([_result(("A", 29, 0, 4, 4))])
        (d,) = preview.apply([_dept("A", 0, 0)], 30, (30, 30))
        assert (d.x, d.width) == (26, 4)
