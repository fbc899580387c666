"""Flow and closeness matrices kept square with the active name roster.

Both matrices are ``N x N`` where ``N`` is the length of the current name
list (non-void department names in CRAFT mode, prototype names in the
build modes). Whenever ``N`` changes both matrices are rebuilt from
scratch: flow cells go back to 0, closeness cells to blank, and the
closeness diagonal to ``X``. Values are not carried across a size change,
even for names that survive it. When only the names change (same ``N``)
the cell values stay where they are. ``reset`` rebuilds unconditionally; the
session calls it when the roster source changes (mode switch, file load).

Cell writes never edit an array in place; a copy is modified and swapped
in so a reader holding the previous array keeps a stable snapshot.

Flow input is coerced: anything that is not a finite, non-negative number
becomes 0. Closeness input is upper-cased and kept only if it is one of
``A E I O U X`` or blank; anything else becomes blank. After every write
pass the closeness diagonal is forced back to ``X``.
"""

from __future__ import annotations

import math

import numpy as np

from .errors import ValidationError
from .types import CLOSENESS_LETTERS, Closeness


def coerce_flow(value) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip()
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(num) or num < 0:
        return 0.0
    return num


def coerce_closeness(value) -> str:
    if isinstance(value, Closeness):
        return value.value
    if not isinstance(value, str):
        return ""
    letter = value.upper()
    if letter in CLOSENESS_LETTERS:
        return letter
    return ""


def _blank_flow(n: int) -> np.ndarray:
    return np.zeros((n, n), dtype=float)


def _blank_closeness(n: int) -> np.ndarray:
    m = np.full((n, n), "", dtype="<U1")
    np.fill_diagonal(m, Closeness.X.value)
    return m


class RelationMatrixStore:
    def __init__(self, names: list[str] | None = None) -> None:
        self._names: list[str] = list(names or [])
        n = len(self._names)
        self._flow = _blank_flow(n)
        self._closeness = _blank_closeness(n)

    @property
    def size(self) -> int:
        return len(self._names)

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def sync_names(self, names: list[str]) -> bool:
        """Align with a new roster. Returns True if the matrices were rebuilt."""
        names = list(names)
        rebuilt = len(names) != len(self._names)
        self._names = names
        if rebuilt:
            n = len(names)
            self._flow = _blank_flow(n)
            self._closeness = _blank_closeness(n)
        return rebuilt

    def reset(self, names: list[str]) -> None:
        """Rebuild blank matrices for ``names`` whatever their length."""
        self._names = list(names)
        n = len(self._names)
        self._flow = _blank_flow(n)
        self._closeness = _blank_closeness(n)

    # -- cell access --

    def _check_index(self, i: int, j: int) -> None:
        n = self.size
        if not (0 <= i < n and 0 <= j < n):
            raise IndexError(f"Cell ({i}, {j}) outside {n}x{n} matrix")

    def flow(self, i: int, j: int) -> float:
        self._check_index(i, j)
        return float(self._flow[i, j])

    def closeness(self, i: int, j: int) -> str:
        self._check_index(i, j)
        return str(self._closeness[i, j])

    def set_flow_cell(self, i: int, j: int, value) -> float:
        self._check_index(i, j)
        m = self._flow.copy()
        m[i, j] = coerce_flow(value)
        self._flow = m
        return float(m[i, j])

    def set_closeness_cell(self, i: int, j: int, value) -> str:
        self._check_index(i, j)
        m = self._closeness.copy()
        m[i, j] = coerce_closeness(value)
        self._closeness = self._sanitized(m)
        return str(self._closeness[i, j])

    # -- bulk passes --

    def _check_rows(self, rows) -> None:
        n = self.size
        if len(rows) != n or any(len(r) != n for r in rows):
            raise ValidationError(
                f"Matrix must be {n}x{n} to match the department list"
            )

    def set_flow_matrix(self, rows) -> None:
        self._check_rows(rows)
        m = _blank_flow(self.size)
        for i, row in enumerate(rows):
            for j, value in enumerate(row):
                m[i, j] = coerce_flow(value)
        self._flow = m

    def set_closeness_matrix(self, rows) -> None:
        self._check_rows(rows)
        m = np.full((self.size, self.size), "", dtype="<U1")
        for i, row in enumerate(rows):
            for j, value in enumerate(row):
                m[i, j] = coerce_closeness(value)
        self._closeness = self._sanitized(m)

    @staticmethod
    def _sanitized(m: np.ndarray) -> np.ndarray:
        np.fill_diagonal(m, Closeness.X.value)
        return m

    # -- wire shape --

    def flow_rows(self) -> list[list[float]]:
        return self._flow.tolist()

    def closeness_rows(self) -> list[list[str]]:
        return self._closeness.tolist()

    def is_aligned(self, n: int) -> bool:
        """True if both matrices are ``n x n``."""
        return self._flow.shape == (n, n) and self._closeness.shape == (n, n)
