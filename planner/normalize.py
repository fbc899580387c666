"""Normalize optimizer responses into typed results.

The optimizer service does not promise a single envelope, so every value is
looked up along an ordered list of key paths and the first hit wins. The
orders below are the documented fallback order:

  layout id:   layoutId, layout_id, id, layout.id, layout.layoutId,
               data.layoutId, data.id, data.layout.id, result.layoutId
  project:     id, projectId, project.id, data.id
  placements:  assignment, placements, result.assignment,
               result.placements, data.assignment, data.placements,
               layout.departments, departments
  score:       totalCost, totalDistance, score, result.totalCost,
               result.totalDistance, result.score, data.totalCost,
               data.totalDistance, data.score

Missing arrays are treated as empty. A response that yields no layout id,
or no placements at all, raises ``PayloadError``. Individual placement
entries missing a name or a coordinate are skipped.
"""

from __future__ import annotations

import logging
import math

from .errors import PayloadError
from .types import OptimizationResult, Placement, Project

logger = logging.getLogger(__name__)

LAYOUT_ID_PATHS = [
    "layoutId",
    "layout_id",
    "id",
    "layout.id",
    "layout.layoutId",
    "data.layoutId",
    "data.id",
    "data.layout.id",
    "result.layoutId",
]
PROJECT_ID_PATHS = ["id", "projectId", "project.id", "data.id"]
PLACEMENT_PATHS = [
    "assignment",
    "placements",
    "result.assignment",
    "result.placements",
    "data.assignment",
    "data.placements",
    "layout.departments",
    "departments",
]
SCORE_PATHS = [
    "totalCost",
    "totalDistance",
    "score",
    "result.totalCost",
    "result.totalDistance",
    "result.score",
    "data.totalCost",
    "data.totalDistance",
    "data.score",
]

_NAME_KEYS = ("name", "department", "dept")
_WIDTH_KEYS = ("width", "w")
_HEIGHT_KEYS = ("height", "h")

_MISSING = object()


def probe(payload, path: str):
    """Follow a dotted key path through nested dicts; ``_MISSING`` if absent."""
    node = payload
    for key in path.split("."):
        if not isinstance(node, dict) or key not in node:
            return _MISSING
        node = node[key]
    return node


def first_of(payload, paths: list[str]):
    for path in paths:
        value = probe(payload, path)
        if value is not _MISSING and value is not None:
            return value
    return None


def _first_key(entry: dict, keys):
    for k in keys:
        if entry.get(k) is not None:
            return entry[k]
    return None


def _as_int(value) -> int | None:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    return round(num)


def _as_score(value) -> float | None:
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def normalize_placement(entry) -> Placement | None:
    if not isinstance(entry, dict):
        return None
    name = _first_key(entry, _NAME_KEYS)
    x = _as_int(entry.get("x"))
    y = _as_int(entry.get("y"))
    w = _as_int(_first_key(entry, _WIDTH_KEYS))
    h = _as_int(_first_key(entry, _HEIGHT_KEYS))
    if not name or x is None or y is None or w is None or h is None:
        return None
    return Placement(name=str(name), x=x, y=y, width=w, height=h)


def normalize_result(payload) -> OptimizationResult:
    """One optimizer result (CRAFT result, or one build-mode candidate)."""
    entries = first_of(payload, PLACEMENT_PATHS)
    if not isinstance(entries, list):
        entries = []
    placements = []
    for entry in entries:
        p = normalize_placement(entry)
        if p is None:
            logger.debug("Skipping malformed placement entry: %r", entry)
            continue
        placements.append(p)
    if not placements:
        raise PayloadError("Optimizer response contained no placements")
    return OptimizationResult(
        placements=placements, score=_as_score(first_of(payload, SCORE_PATHS))
    )


def normalize_candidates(payload) -> list[OptimizationResult]:
    """Build-mode response: ``{candidates: [...]}`` or a single result."""
    candidates = first_of(payload, ["candidates", "data.candidates"])
    if isinstance(candidates, list) and candidates:
        results = []
        for c in candidates:
            try:
                results.append(normalize_result(c))
            except PayloadError:
                logger.info("Dropping candidate without placements")
        if not results:
            raise PayloadError("No candidate contained any placements")
        return results
    return [normalize_result(payload)]


def extract_layout_id(payload) -> str:
    value = first_of(payload, LAYOUT_ID_PATHS)
    if value is None or isinstance(value, (dict, list)):
        raise PayloadError("Optimizer response did not include a layout id")
    return str(value)


def extract_project(payload, fallback_name: str = "") -> Project:
    value = first_of(payload, PROJECT_ID_PATHS)
    if value is None or isinstance(value, (dict, list)):
        raise PayloadError("Optimizer response did not include a project id")
    name = first_of(payload, ["name", "project.name", "data.name"])
    return Project(id=str(value), name=str(name or fallback_name))
