"""Grid-cell <-> display-pixel conversion.

The canvas is always rendered as a ``CANVAS_SIZE`` pixel square. A grid of
``resolution`` cells per side therefore has square cells of
``CANVAS_SIZE / resolution`` pixels. In the build modes the grid can have a
different cell count per axis; the canvas stays square and the resolution
is the larger of the two counts.

Pure functions only, shared by the renderer and by drag-delta conversion.
"""

from __future__ import annotations

CANVAS_SIZE = 900  # px


def cell_size_px(resolution: int) -> float:
    """Pixel size of one grid cell for a grid of ``resolution`` cells."""
    if resolution <= 0:
        raise ValueError(f"Grid resolution must be positive, got {resolution}")
    return CANVAS_SIZE / resolution


def build_resolution(grid_width: int, grid_height: int) -> int:
    """Canvas resolution for a build-mode grid of distinct axis counts."""
    return max(grid_width, grid_height)


def cells_to_px(cells: float, resolution: int) -> float:
    return cells * cell_size_px(resolution)


def rect_to_px(
    x: int, y: int, width: int, height: int, resolution: int
) -> tuple[float, float, float, float]:
    """Cell rectangle -> pixel bbox ``(left, top, right, bottom)``."""
    s = cell_size_px(resolution)
    return (x * s, y * s, (x + width) * s, (y + height) * s)


def px_delta_to_cells(
    dx_px: float, dy_px: float, resolution: int, zoom: float = 1.0
) -> tuple[int, int]:
    """Snap a pointer delta to the nearest whole number of cells.

    ``zoom`` is the on-screen scale of the canvas: a delta measured in
    screen pixels covers ``cell_size_px * zoom`` pixels per cell.
    Uses Python's ``round`` (ties to even) on both axes.
    """
    s = cell_size_px(resolution) * zoom
    return round(dx_px / s), round(dy_px / s)


def px_to_cell(px: float, py: float, resolution: int) -> tuple[int, int]:
    """Canvas pixel -> containing cell (used for hit testing)."""
    s = cell_size_px(resolution)
    return int(px // s), int(py // s)


def clamp(value: int, lo: int, hi: int) -> int:
    """Clamp to ``[lo, hi]``; the lower bound wins when ``hi < lo``."""
    return max(lo, min(value, hi))
