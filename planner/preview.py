"""Optimizer candidate preview: diff against the live layout, and merge.

The optimizer knows nothing about client-side ids, so candidates are
reconciled with the live roster **by department name** (first match wins).

``diff_layout`` lists every matched department whose position would
change. Candidate entries with no matching department produce no row, and
departments the candidate does not mention are ignored.

``merge_layout`` builds the roster that accepting the candidate would
produce: geometry from the candidate, ``locked``/``kind`` (and the id) from
the matched department when there is one, defaults otherwise. Only
the first candidate entry for a name inherits its id, so ids stay
unique. Placements are fitted into the grid when an extent is given.
The result replaces the roster wholesale, so departments missing from
the candidate are dropped.

``normalize_origin`` shifts a roster so its bounding box starts at (0, 0);
requests are always sent that way regardless of where the user dragged
things on the canvas.
"""

from __future__ import annotations

from dataclasses import replace

from .stores import fit_department, new_id
from .types import Department, DeptKind, DiffRow, OptimizationResult


def _first_by_name(departments: list[Department]) -> dict[str, Department]:
    index: dict[str, Department] = {}
    for d in departments:
        index.setdefault(d.name, d)
    return index


def diff_layout(
    current: list[Department], candidate: OptimizationResult
) -> list[DiffRow]:
    by_name = _first_by_name(current)
    rows = []
    for p in candidate.placements:
        d = by_name.get(p.name)
        if d is None:
            continue
        if (d.x, d.y) != (p.x, p.y):
            rows.append(DiffRow(p.name, (d.x, d.y), (p.x, p.y)))
    return rows


def merge_layout(
    current: list[Department],
    candidate: OptimizationResult,
    grid_size: int,
    extent: tuple[int, int] | None = None,
) -> list[Department]:
    by_name = _first_by_name(current)
    claimed: set[str] = set()
    merged = []
    for p in candidate.placements:
        prev = by_name.get(p.name)
        # Only the first entry for a name inherits its id.
        if prev is not None and p.name not in claimed:
            dept_id = prev.id
            claimed.add(p.name)
        else:
            dept_id = new_id("dept")
        dept = Department(
            id=dept_id,
            name=p.name,
            x=p.x,
            y=p.y,
            width=p.width,
            height=p.height,
            grid_size=grid_size,
            kind=prev.kind if prev is not None else DeptKind.DEPT,
            locked=prev.locked if prev is not None else False,
        )
        if extent is not None:
            dept = fit_department(dept, extent, grid_size)
        merged.append(dept)
    return merged


def normalize_origin(departments: list[Department]) -> list[Department]:
    if not departments:
        return []
    min_x = min(d.x for d in departments)
    min_y = min(d.y for d in departments)
    return [replace(d, x=d.x - min_x, y=d.y - min_y) for d in departments]


class OptimizationPreview:
    """Holds the optimizer candidates until they are applied or discarded."""

    def __init__(self) -> None:
        self._candidates: list[OptimizationResult] = []
        self._selected = 0

    @property
    def active(self) -> bool:
        return bool(self._candidates)

    @property
    def candidates(self) -> list[OptimizationResult]:
        return list(self._candidates)

    @property
    def selected_index(self) -> int:
        return self._selected

    @property
    def candidate(self) -> OptimizationResult | None:
        if not self._candidates:
            return None
        return self._candidates[self._selected]

    @property
    def score(self) -> float | None:
        c = self.candidate
        return c.score if c is not None else None

    def propose(self, candidates: list[OptimizationResult]) -> None:
        self._candidates = list(candidates)
        self._selected = 0

    def select(self, index: int) -> OptimizationResult:
        if not 0 <= index < len(self._candidates):
            raise IndexError(f"No candidate {index}")
        self._selected = index
        return self._candidates[index]

    def diff(self, current: list[Department]) -> list[DiffRow]:
        c = self.candidate
        if c is None:
            return []
        return diff_layout(current, c)

    def apply(
        self,
        current: list[Department],
        grid_size: int,
        extent: tuple[int, int] | None = None,
    ) -> list[Department]:
        """Merge the selected candidate and clear the preview.

        Placements are fitted into ``extent`` when one is given. Returns
        the merged roster; the caller installs it in the store.
        """
        c = self.candidate
        if c is None:
            return list(current)
        merged = merge_layout(current, c, grid_size, extent)
        self.discard()
        return merged

    def discard(self) -> None:
        self._candidates = []
        self._selected = 0
