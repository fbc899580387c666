"""Pointer-drag to grid-move conversion.

A drag ends with a pixel delta for one department. The delta is snapped to
whole cells, added to the department's position, clamped into the grid on
each axis independently and committed through the department store (which
notifies the live-edit sync). Locked or unknown departments are left alone,
as is everything in a build mode before a candidate has been applied.

Overlap with other departments is not checked: stacked placements are
allowed.
"""

from __future__ import annotations

from dataclasses import dataclass

from .geometry import px_delta_to_cells
from .modes import ModeController
from .stores import DepartmentStore
from .types import Department


@dataclass
class DragEnd:
    dept_id: str
    dx_px: float
    dy_px: float


class DragController:
    def __init__(self, store: DepartmentStore, modes: ModeController) -> None:
        self.store = store
        self.modes = modes

    def drag_end(self, event: DragEnd, zoom: float = 1.0) -> Department | None:
        """Apply a finished drag. Returns the moved department, or None."""
        if not self.modes.placeable:
            return None
        dept = self.store.get(event.dept_id)
        if dept is None or dept.locked:
            return None
        dx, dy = px_delta_to_cells(
            event.dx_px, event.dy_px, self.modes.resolution(), zoom
        )
        return self.store.move(
            dept.id, dept.x + dx, dept.y + dy, self.modes.extent()
        )
