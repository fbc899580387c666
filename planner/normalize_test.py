"""Tests for optimizer response normalization."""

import pytest

from planner.errors import PayloadError
from planner.normalize import (
    extract_layout_id,
    extract_project,
    normalize_candidates,
    normalize_placement,
    normalize_result,
)
from planner.types import Placement


class TestPlacement:
    def test_alias_keys(self):
        entry = {"department": "Paint", "x": 1, "y": 2, "w": 3, "h": 4}
        assert normalize_placement(entry) == Placement("Paint", 1, 2, 3, 4)

    def test_coordinates_rounded(self):
        entry = {"name": "A", "x": "2.6", "y": 0.4, "width": 2, "height": 2}
        assert normalize_placement(entry) == Placement("A", 3, 0, 2, 2)

    @pytest.mark.parametrize(
        "entry",
        [
            {"x": 0, "y": 0, "width": 1, "height": 1},
            {"name": "A", "y": 0, "width": 1, "height": 1},
            {"name": "A", "x": "abc", "y": 0, "width": 1, "height": 1},
            {"name": "A", "x": 0, "y": 0, "height": 1},
            "not a dict",
        ],
    )
    def test_malformed(self, entry):
        assert normalize_placement(entry) is None


class TestResult:
    def test_assignment_with_total_cost(self):
        payload = {
            "assignment": [{"name": "A", "x": 0, "y": 0, "width": 2, "height": 2}],
            "totalCost": 42,
        }
        result = normalize_result(payload)
        assert result.placements == [Placement("A", 0, 0, 2, 2)]
        assert result.score == 42.0

    def test_nested_paths(self):
        payload = {
            "result": {
                "placements": [
                    {"dept": "B", "x": 1, "y": 1, "w": 1, "h": 1},
                ],
                "totalDistance": "7.5",
            }
        }
        result = normalize_result(payload)
        assert result.placements[0].name == "B"
        assert result.score == 7.5

    def test_first_path_wins(self):
        payload = {
            "placements": [{"name": "first", "x": 0, "y": 0, "w": 1, "h": 1}],
            "data": {
                "placements": [
                    {"name": "second", "x": 0, "y": 0, "w": 1, "h": 1}
                ]
            },
        }
        assert normalize_result(payload).placements[0].name == "first"

    def test_malformed_entries_skipped(self):
        payload = {
            "departments": [
                {"name": "A", "x": 0, "y": 0, "w": 1, "h": 1},
                {"name": "B"},
            ]
        }
        assert [p.name for p in normalize_result(payload).placements] == ["A"]

    def test_missing_score(self):
        payload = {"placements": [{"name": "A", "x": 0, "y": 0, "w": 1, "h": 1}]}
        assert normalize_result(payload).score is None

    @pytest.mark.parametrize(
        "payload",
        [{}, {"assignment": []}, {"assignment": "nope"}, {"placements": [{}]}],
    )
    def test_no_placements(self, payload):
        with pytest.raises(PayloadError):
            normalize_result(payload)


class TestCandidates:
    def test_candidate_list(self):
        payload = {
            "candidates": [
                {"placements": [{"name": "A", "x": 0, "y": 0, "w": 1, "h": 1}],
                 "score": 3},
                {"placements": []},
                {"placements": [{"name": "A", "x": 2, "y": 0, "w": 1, "h": 1}],
                 "score": 5},
            ]
        }
        results = normalize_candidates(payload)
        assert [r.score for r in results] == [3.0, 5.0]

    def test_single_result(self):
        payload = {
            "data": {
                "assignment": [{"name": "A", "x": 0, "y": 0, "w": 1, "h": 1}]
            }
        }
        assert len(normalize_candidates(payload)) == 1

    def test_all_candidates_empty(self):
        with pytest.raises(PayloadError):
            normalize_candidates({"candidates": [{"placements": []}]})


class TestIds:
    @pytest.mark.parametrize(
        "payload",
        [
            {"layoutId": "L1"},
            {"layout_id": "L1"},
            {"layout": {"id": "L1"}},
            {"data": {"layout": {"id": "L1"}}},
            {"result": {"layoutId": "L1"}},
        ],
    )
    def test_layout_id_paths(self, payload):
        assert extract_layout_id(payload) == "L1"

    def test_numeric_id_is_stringified(self):
        assert extract_layout_id({"id": 17}) == "17"

    def test_missing_layout_id(self):
        with pytest.raises(PayloadError):
            extract_layout_id({"status": "ok"})

    def test_project(self):
        project = extract_project({"project": {"id": 5, "name": "Hall"}})
        assert (project.id, project.name) == ("5", "Hall")

    def test_project_fallback_name(self):
        project = extract_project({"id": "p1"}, "Plant Design")
        assert project.name == "Plant Design"

    def test_missing_project_id(self):
        with pytest.raises(PayloadError):
            extract_project({})
