"""Pillow rendering of the plant layout canvas.

Kept free of tkinter so it can be used headlessly (thumbnails, saved PNGs,
tests). ``app.py`` wraps the image in an ``ImageTk.PhotoImage``.

Drawing order:

  1. Background, with the cells outside a non-square build grid shaded.
  2. Grid lines, one per cell.
  3. Departments (voids hatched), name labels, padlocks on locked ones.
  4. The optimizer preview as translucent "ghost" rectangles with dashed
     outlines, plus a line from each moved department's current position
     to its proposed one.
  5. Canvas border.
"""

from __future__ import annotations

from PIL import Image, ImageDraw

from planner.geometry import CANVAS_SIZE, cell_size_px
from planner.types import Department, DiffRow, Placement

# -- Visual constants --

CANVAS_BG = "#002b5c"
OUTSIDE_BG = "#001d3d"
GRID_COLOR = "#24476f"
BORDER_COLOR = "#0b1a2e"
DEPT_FILL = "#4ade80"
DEPT_OUTLINE = "#1e293b"
VOID_FILL = "#94a3b8"
VOID_HATCH = "#64748b"
LABEL_COLOR = "#002b5c"
HIGHLIGHT_COLOR = "#FFD700"
GHOST_FILL = (56, 189, 248, 90)
GHOST_OUTLINE = (14, 116, 144, 255)
MOVE_LINE = (251, 191, 36, 255)


class LayoutRenderer:
    """Renders departments and preview ghosts to a square Pillow image."""

    def __init__(self, resolution, extent=None, scale=1):
        self.resolution = resolution
        self.extent = extent or (resolution, resolution)
        self.scale = scale
        self.size = int(CANVAS_SIZE * scale)
        self.cell = cell_size_px(resolution) * scale

    def _lw(self, base_width):
        return max(1, round(base_width * self.scale))

    def _box(self, x, y, w, h):
        c = self.cell
        return [x * c, y * c, (x + w) * c - 1, (y + h) * c - 1]

    def _center(self, x, y, w, h):
        c = self.cell
        return ((x + w / 2) * c, (y + h / 2) * c)

    def render(
        self,
        departments: list[Department],
        ghosts: list[Placement] | None = None,
        moves: list[DiffRow] | None = None,
        highlight_id: str | None = None,
    ) -> Image.Image:
        img = Image.new("RGB", (self.size, self.size), CANVAS_BG)
        draw = ImageDraw.Draw(img)

        ext_w, ext_h = self.extent
        c = self.cell
        if ext_w < self.resolution:
            draw.rectangle(
                [ext_w * c, 0, self.size - 1, self.size - 1], fill=OUTSIDE_BG
            )
        if ext_h < self.resolution:
            draw.rectangle(
                [0, ext_h * c, self.size - 1, self.size - 1], fill=OUTSIDE_BG
            )

        glw = self._lw(1)
        for i in range(1, self.resolution):
            p = int(i * c)
            draw.line([(p, 0), (p, self.size - 1)], fill=GRID_COLOR, width=glw)
            draw.line([(0, p), (self.size - 1, p)], fill=GRID_COLOR, width=glw)

        for d in departments:
            self._draw_department(draw, d)
            if d.locked:
                self._draw_padlock(draw, d)

        if highlight_id is not None:
            for d in departments:
                if d.id == highlight_id:
                    draw.rectangle(
                        self._box(d.x, d.y, d.width, d.height),
                        outline=HIGHLIGHT_COLOR,
                        width=self._lw(3),
                    )
                    break

        if ghosts:
            img = self._draw_ghosts(img, ghosts, moves or [])
            draw = ImageDraw.Draw(img)

        draw.rectangle(
            [0, 0, self.size - 1, self.size - 1],
            outline=BORDER_COLOR,
            width=self._lw(3),
        )
        return img

    def _draw_department(self, draw, d: Department):
        box = self._box(d.x, d.y, d.width, d.height)
        if d.is_void:
            draw.rectangle(box, fill=VOID_FILL, outline=DEPT_OUTLINE)
            self._draw_hatch(draw, box)
        else:
            draw.rectangle(
                box, fill=DEPT_FILL, outline=DEPT_OUTLINE, width=self._lw(2)
            )
        cx, cy = self._center(d.x, d.y, d.width, d.height)
        left, top, right, bottom = draw.textbbox((0, 0), d.name)
        draw.text(
            (cx - (right - left) / 2, cy - (bottom - top) / 2),
            d.name,
            fill=LABEL_COLOR,
        )

    def _draw_hatch(self, draw, box):
        """Diagonal hatch lines clipped to the box."""
        x0, y0, x1, y1 = box
        step = max(4.0, self.cell / 2)
        lw = self._lw(1)
        t = step
        while t < (x1 - x0) + (y1 - y0):
            # Line x + y = x0 + y0 + t, clipped to the box.
            sx = x0 + min(t, x1 - x0)
            sy = y0 + t - (sx - x0)
            ey = y0 + min(t, y1 - y0)
            ex = x0 + t - (ey - y0)
            draw.line([(sx, sy), (ex, ey)], fill=VOID_HATCH, width=lw)
            t += step

    def _draw_padlock(self, draw, d: Department):
        """Padlock icon in the top-left cell of a locked department."""
        px, py = (d.x + 0.5) * self.cell, (d.y + 0.5) * self.cell
        s = self.cell * 0.3

        outline_color = "#333333"
        fill_color = "#ffffff"
        lw = max(1, int(s * 0.15))

        bw = s * 0.8
        bh = s * 0.7
        draw.rectangle(
            [px - bw, py, px + bw, py + bh],
            fill=fill_color,
            outline=outline_color,
            width=lw,
        )
        shackle_r = bw * 0.65
        draw.arc(
            [px - shackle_r, py - shackle_r, px + shackle_r, py + shackle_r],
            start=180,
            end=360,
            fill=outline_color,
            width=lw,
        )

    def _draw_dashed_rect(self, draw, box, fill, dash):
        x0, y0, x1, y1 = box
        lw = self._lw(2)
        for a, b, horizontal, fixed in (
            (x0, x1, True, y0),
            (x0, x1, True, y1),
            (y0, y1, False, x0),
            (y0, y1, False, x1),
        ):
            t = a
            while t < b:
                e = min(t + dash, b)
                if horizontal:
                    draw.line([(t, fixed), (e, fixed)], fill=fill, width=lw)
                else:
                    draw.line([(fixed, t), (fixed, e)], fill=fill, width=lw)
                t += 2 * dash

    def _draw_ghosts(self, img, ghosts, moves):
        overlay = Image.new("RGBA", img.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        dash = max(3.0, self.cell / 3)
        for p in ghosts:
            box = self._box(p.x, p.y, p.width, p.height)
            draw.rectangle(box, fill=GHOST_FILL)
            self._draw_dashed_rect(draw, box, GHOST_OUTLINE, dash)
        sizes = {p.name: (p.width, p.height) for p in reversed(ghosts)}
        for row in moves:
            w, h = sizes.get(row.name, (1, 1))
            start = self._center(*row.from_xy, w, h)
            end = self._center(*row.to_xy, w, h)
            draw.line([start, end], fill=MOVE_LINE, width=self._lw(2))
            r = self._lw(3)
            draw.ellipse(
                [end[0] - r, end[1] - r, end[0] + r, end[1] + r], fill=MOVE_LINE
            )
        return Image.alpha_composite(img.convert("RGBA"), overlay).convert("RGB")


def department_at(departments: list[Department], cx: int, cy: int):
    """Topmost department covering cell ``(cx, cy)``, or None."""
    for d in reversed(departments):
        if d.x <= cx < d.x + d.width and d.y <= cy < d.y + d.height:
            return d
    return None
