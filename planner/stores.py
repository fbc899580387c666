"""Entity stores: placed departments and unplaced prototypes.

Both stores keep an ordered list and never edit it in place: every
mutation builds a new list (and new entity objects via
``dataclasses.replace``) and swaps it in, so a renderer holding the old
list always sees a consistent snapshot.

Successful mutations notify subscribers with the new list. The session
uses this to keep the relation matrices aligned with the roster and to
push the live-edit sync; the stores themselves know nothing about either.

Validation failures raise ``ValidationError`` before anything changes.
"""

from __future__ import annotations

import itertools
import math
import time
from dataclasses import replace
from typing import Callable, Iterable, Iterator

from .errors import ValidationError
from .geometry import clamp
from .types import Department, DepartmentPrototype, DeptKind

Listener = Callable[[list], None]

_id_counter = itertools.count(1)


def new_id(prefix: str) -> str:
    """``<prefix>_<epoch-millis>_<n>``; the counter keeps same-ms ids apart."""
    return f"{prefix}_{int(time.time() * 1000)}_{next(_id_counter)}"


def parse_int(value, field_name: str) -> int:
    """Parse a form value (str or number) into an integer cell count.

    Blank, non-numeric, non-finite and non-integral values are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field_name} is required")
    try:
        num = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number") from None
    if not math.isfinite(num) or num != int(num):
        raise ValidationError(f"{field_name} must be a whole number of cells")
    return int(num)


def fit_department(
    dept: Department, extent: tuple[int, int], grid_size: int
) -> Department:
    """Shrink and shift ``dept`` so it lies inside ``extent``."""
    ext_w, ext_h = extent
    w = min(dept.width, ext_w)
    h = min(dept.height, ext_h)
    return replace(
        dept,
        x=clamp(dept.x, 0, ext_w - w),
        y=clamp(dept.y, 0, ext_h - h),
        width=w,
        height=h,
        grid_size=grid_size,
    )


class _Store:
    def __init__(self) -> None:
        self._items: list = []
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _commit(self, items: list) -> None:
        self._items = items
        for listener in self._listeners:
            listener(list(items))

    def __iter__(self) -> Iterator:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def all(self) -> list:
        return list(self._items)

    def get(self, item_id: str):
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def names(self) -> list[str]:
        return [item.name for item in self._items]

    def remove(self, item_id: str) -> bool:
        """Remove by id. Returns False (and changes nothing) if unknown."""
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            return False
        self._commit(remaining)
        return True


class DepartmentStore(_Store):
    """Ordered roster of placed departments and voids."""

    def add(
        self,
        name,
        width,
        height,
        x,
        y,
        grid_width: int,
        grid_height: int | None = None,
        kind: DeptKind = DeptKind.DEPT,
    ) -> Department:
        """Validate form values and append a new department.

        ``grid_height`` defaults to ``grid_width`` (the square CRAFT grid).
        The stored ``grid_size`` is the canvas resolution for that grid.
        """
        if grid_height is None:
            grid_height = grid_width
        name = "" if name is None else str(name).strip()
        if not name:
            raise ValidationError("Department name is required")
        w = parse_int(width, "Width")
        h = parse_int(height, "Height")
        px = parse_int(x, "X")
        py = parse_int(y, "Y")
        if px < 0 or py < 0 or w <= 0 or h <= 0:
            raise ValidationError(
                "Position must be non-negative and size must be positive"
            )
        if px + w > grid_width or py + h > grid_height:
            raise ValidationError(
                f"Department exceeds the {grid_width}x{grid_height} grid"
            )
        dept = Department(
            id=new_id("dept"),
            name=name,
            x=px,
            y=py,
            width=w,
            height=h,
            grid_size=max(grid_width, grid_height),
            kind=DeptKind(kind),
        )
        self._commit([*self._items, dept])
        return dept

    def replace_all(self, departments: Iterable[Department]) -> None:
        self._commit(list(departments))

    def toggle_lock(self, dept_id: str) -> Department | None:
        return self._update(dept_id, lambda d: replace(d, locked=not d.locked))

    def move(
        self, dept_id: str, x: int, y: int, extent: tuple[int, int]
    ) -> Department | None:
        """Move to ``(x, y)`` clamped into ``extent`` (cells per axis).

        Returns None without changing anything if the department is
        unknown or locked.
        """
        dept = self.get(dept_id)
        if dept is None or dept.locked:
            return None
        ext_w, ext_h = extent
        nx = clamp(x, 0, ext_w - dept.width)
        ny = clamp(y, 0, ext_h - dept.height)
        return self._update(dept_id, lambda d: replace(d, x=nx, y=ny))

    def fit_to(self, extent: tuple[int, int], grid_size: int) -> bool:
        """Bring every department inside a new grid. True if any changed.

        Locked departments are moved too: the grid bounds outrank the lock.
        """
        fitted = [fit_department(d, extent, grid_size) for d in self._items]
        if fitted == self._items:
            return False
        self._commit(fitted)
        return True

    def relation_names(self) -> list[str]:
        """Names feeding the relation matrices: voids are left out."""
        return [d.name for d in self._items if not d.is_void]

    def _update(self, dept_id, fn) -> Department | None:
        updated = None
        items = []
        for d in self._items:
            if d.id == dept_id:
                d = updated = fn(d)
            items.append(d)
        if updated is None:
            return None
        self._commit(items)
        return updated


class PrototypeStore(_Store):
    """Ordered list of unplaced departments used by the build modes."""

    def add(self, name, cell_area, fixed: bool = False) -> DepartmentPrototype:
        name = "" if name is None else str(name).strip()
        if not name:
            raise ValidationError("Department name is required")
        area = parse_int(cell_area, "Area")
        if area <= 0:
            raise ValidationError("Area must be a positive number of cells")
        proto = DepartmentPrototype(
            id=new_id("proto"), name=name, cell_area=area, fixed=bool(fixed)
        )
        self._commit([*self._items, proto])
        return proto

    def replace_all(self, prototypes: Iterable[DepartmentPrototype]) -> None:
        self._commit(list(prototypes))

    def toggle_fixed(self, proto_id: str) -> DepartmentPrototype | None:
        proto = self.get(proto_id)
        if proto is None:
            return None
        updated = replace(proto, fixed=not proto.fixed)
        self._commit(
            [updated if p.id == proto_id else p for p in self._items]
        )
        return updated

    def total_area(self) -> int:
        return sum(p.cell_area for p in self._items)
