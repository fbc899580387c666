"""Editor mode state machine and grid dimensions.

Three modes, switched only by explicit user selection:

  * ``CRAFT``: manual layout. One square ``grid_size``; relations are flow
    plus closeness over the placed (non-void) departments.
  * ``CORELAP`` / ``ALDEP``: build from relations. Independent
    ``grid_width`` and ``grid_height``; relations are closeness plus
    per-letter weights over the prototypes. Departments only appear on the
    canvas once an optimizer candidate has been applied, and are not
    draggable before that.

Listeners are called with ``(old_mode, new_mode)`` after each transition;
the session uses this to drop any pending preview.
"""

from __future__ import annotations

from typing import Callable

from . import config
from .errors import ValidationError
from .geometry import build_resolution
from .stores import parse_int
from .types import Mode

ModeListener = Callable[[Mode, Mode], None]


def grid_dimension(value, field_name: str) -> int:
    n = parse_int(value, field_name)
    if not config.GRID_SIZE_MIN <= n <= config.GRID_SIZE_MAX:
        raise ValidationError(
            f"{field_name} must be between {config.GRID_SIZE_MIN} "
            f"and {config.GRID_SIZE_MAX}"
        )
    return n


class ModeController:
    def __init__(self, grid_size: int = config.DEFAULT_GRID_SIZE) -> None:
        self.mode = Mode.CRAFT
        self.grid_size = grid_dimension(grid_size, "Grid size")
        self.grid_width = config.DEFAULT_GRID_SIZE
        self.grid_height = config.DEFAULT_GRID_SIZE
        self._build_applied = False
        self._listeners: list[ModeListener] = []

    def subscribe(self, listener: ModeListener) -> None:
        self._listeners.append(listener)

    def select(self, mode) -> bool:
        """Switch mode. Returns False if ``mode`` is already active."""
        mode = Mode(mode)
        if mode is self.mode:
            return False
        old = self.mode
        self.mode = mode
        self._build_applied = False
        for listener in self._listeners:
            listener(old, mode)
        return True

    def set_grid_size(self, value) -> int:
        self.grid_size = grid_dimension(value, "Grid size")
        return self.grid_size

    def set_build_grid(self, width, height) -> tuple[int, int]:
        w = grid_dimension(width, "Grid width")
        h = grid_dimension(height, "Grid height")
        self.grid_width, self.grid_height = w, h
        return w, h

    def resolution(self) -> int:
        """Cells per side of the square canvas."""
        if self.mode.is_build:
            return build_resolution(self.grid_width, self.grid_height)
        return self.grid_size

    def extent(self) -> tuple[int, int]:
        """Cells available on each axis ``(width, height)``."""
        if self.mode.is_build:
            return self.grid_width, self.grid_height
        return self.grid_size, self.grid_size

    def mark_applied(self) -> None:
        self._build_applied = True

    def clear_applied(self) -> None:
        self._build_applied = False

    @property
    def placeable(self) -> bool:
        """Whether departments on the canvas can be dragged."""
        return not self.mode.is_build or self._build_applied
