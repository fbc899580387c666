"""Data types matching the plantgrid wire schema.

Coordinates and sizes are integer grid cells. Wire dicts use the camelCase
keys the optimizer service speaks (``gridSize``, ``cellArea``, ...); the
dataclasses use snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DeptKind(str, Enum):
    DEPT = "dept"
    VOID = "void"


class Mode(str, Enum):
    CRAFT = "CRAFT"
    CORELAP = "CORELAP"
    ALDEP = "ALDEP"

    @property
    def is_build(self) -> bool:
        """True for the build-from-relations modes."""
        return self is not Mode.CRAFT


class Closeness(str, Enum):
    A = "A"
    E = "E"
    I = "I"  # noqa: E741
    O = "O"  # noqa: E741
    U = "U"
    X = "X"
    BLANK = ""


CLOSENESS_LETTERS = frozenset(c.value for c in Closeness)


class Metric(str, Enum):
    RECTILINEAR = "rectilinear"
    EUCLIDEAN = "euclidean"


@dataclass
class Department:
    id: str
    name: str
    x: int
    y: int
    width: int
    height: int
    grid_size: int
    kind: DeptKind = DeptKind.DEPT
    locked: bool = False

    @property
    def is_void(self) -> bool:
        return self.kind is DeptKind.VOID

    @staticmethod
    def from_dict(d: dict) -> Department:
        return Department(
            id=d["id"],
            name=d["name"],
            x=int(d["x"]),
            y=int(d["y"]),
            width=int(d["width"]),
            height=int(d["height"]),
            grid_size=int(d.get("gridSize", 0)),
            kind=DeptKind(d.get("type", DeptKind.DEPT.value)),
            locked=bool(d.get("locked", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "gridSize": self.grid_size,
            "type": self.kind.value,
            "locked": self.locked,
        }


@dataclass
class DepartmentPrototype:
    id: str
    name: str
    cell_area: int
    fixed: bool = False

    @staticmethod
    def from_dict(d: dict) -> DepartmentPrototype:
        return DepartmentPrototype(
            id=d["id"],
            name=d["name"],
            cell_area=int(d["cellArea"]),
            fixed=bool(d.get("fixed", False)),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "cellArea": self.cell_area,
            "fixed": self.fixed,
        }


@dataclass
class Placement:
    """One entry of an optimizer result."""

    name: str
    x: int
    y: int
    width: int
    height: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class OptimizationResult:
    placements: list[Placement] = field(default_factory=list)
    score: float | None = None

    def to_dict(self) -> dict:
        d: dict = {"placements": [p.to_dict() for p in self.placements]}
        if self.score is not None:
            d["score"] = self.score
        return d


@dataclass
class DiffRow:
    name: str
    from_xy: tuple[int, int]
    to_xy: tuple[int, int]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "from": {"x": self.from_xy[0], "y": self.from_xy[1]},
            "to": {"x": self.to_xy[0], "y": self.to_xy[1]},
        }


@dataclass
class Project:
    id: str
    name: str
