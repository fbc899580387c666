"""Tkinter GUI for plantgrid.

This is the desktop front end: it wires a ``planner.session.LayoutSession``
to a canvas, side-panel forms and dialogs. The major classes are:

  * ``Tooltip``: hover help for form fields.
  * ``ControlPanel``: the right sidebar with mode selection, grid dimensions,
    the add-department form (CRAFT) or add-prototype form (CORELAP/ALDEP),
    the roster list with delete/lock buttons, and Optimize/Save/Load.
  * ``RelationPanel``: the flow and closeness matrix editors (CRAFT) or
    closeness matrix plus letter weights (build modes). Rebuilt whenever
    the active name list changes.
  * ``PreviewPanel``: the pending optimizer candidate with score, the list of
    departments it would move, candidate selection, Accept/Discard.
  * ``App``: the top-level window. Renders the layout through
    ``render.LayoutRenderer``, converts mouse drags into
    ``LayoutSession.drag_end`` calls, and runs optimizer requests on a
    worker thread, handing results back to the Tk thread through a queue.

All session mutations happen on the Tk thread. Worker threads only run
``LayoutSession.execute`` and the live-edit sync, neither of which touches
session state.
"""

import argparse
import logging
import queue
import threading
import time
import tkinter as tk
from tkinter import filedialog, messagebox, ttk

from PIL import ImageTk

from planner import config
from planner.errors import PlannerError
from planner.session import LayoutSession
from planner.sync import SyncClient
from planner.types import DeptKind, Metric, Mode

from .layout_io import load_layout, save_layout_json, save_layout_png
from .render import LayoutRenderer, department_at

logger = logging.getLogger(__name__)

PANEL_BG = "#001d3d"
POLL_MS = 100
CLOSENESS_CHOICES = ("", "A", "E", "I", "O", "U", "X")


# ---------------------------------------------------------------------------
# Tooltip helper
# ---------------------------------------------------------------------------


class Tooltip:
    """Lightweight hover tooltip for any tkinter widget."""

    _DELAY_MS = 400

    def __init__(self, widget, text):
        self.widget = widget
        self.text = text
        self._tip_window = None
        self._after_id = None
        widget.bind("<Enter>", self._schedule, add="+")
        widget.bind("<Leave>", self._cancel, add="+")

    def _schedule(self, _event=None):
        self._cancel()
        self._after_id = self.widget.after(self._DELAY_MS, self._show)

    def _cancel(self, _event=None):
        if self._after_id:
            self.widget.after_cancel(self._after_id)
            self._after_id = None
        self._hide()

    def _show(self):
        if self._tip_window:
            return
        x = self.widget.winfo_rootx() + self.widget.winfo_width() + 4
        y = self.widget.winfo_rooty()
        tw = tk.Toplevel(self.widget)
        tw.wm_overrideredirect(True)
        tw.wm_geometry(f"+{x}+{y}")
        tk.Label(
            tw,
            text=self.text,
            background="#ffffe0",
            foreground="#000000",
            relief="solid",
            borderwidth=1,
            padx=4,
            pady=2,
            wraplength=300,
        ).pack()
        self._tip_window = tw

    def _hide(self):
        if self._tip_window:
            self._tip_window.destroy()
            self._tip_window = None


def _wheel_delta_y(event):
    """Normalise a wheel event to a DOM-style deltaY (positive = down)."""
    if getattr(event, "num", None) == 4:
        return -120
    if getattr(event, "num", None) == 5:
        return 120
    return -event.delta


def _format_score(score):
    if score is None:
        return "Score: --"
    return f"Score: {score:,.2f}"


def department_label(d):
    text = f"{d.name}  {d.width}x{d.height} @ ({d.x}, {d.y})"
    if d.is_void:
        text += "  [void]"
    if d.locked:
        text += "  [locked]"
    return text


def prototype_label(p):
    text = f"{p.name}  ({p.cell_area} cells)"
    if p.fixed:
        text += "  [fixed]"
    return text


# ---------------------------------------------------------------------------
# Control panel
# ---------------------------------------------------------------------------


class ControlPanel(ttk.Frame):
    """Sidebar with mode, grid, roster and action controls."""

    def __init__(
        self,
        parent,
        session,
        on_changed,
        on_optimize,
        on_save,
        on_load,
    ):
        super().__init__(parent, padding=10)
        self.session = session
        self.on_changed = on_changed
        self.on_optimize = on_optimize
        self.on_save = on_save
        self.on_load = on_load

        # -- tk variables --
        self.mode_var = tk.StringVar(value=session.mode.value)
        self.grid_size_var = tk.StringVar(value=str(session.modes.grid_size))
        self.grid_width_var = tk.StringVar(value=str(session.modes.grid_width))
        self.grid_height_var = tk.StringVar(
            value=str(session.modes.grid_height)
        )
        self.metric_var = tk.StringVar(value=session.metric.value)

        self.name_var = tk.StringVar()
        self.width_var = tk.StringVar()
        self.height_var = tk.StringVar()
        self.x_var = tk.StringVar()
        self.y_var = tk.StringVar()
        self.void_var = tk.BooleanVar(value=False)
        self.area_var = tk.StringVar()
        self.fixed_var = tk.BooleanVar(value=False)

        self.optimize_btn: ttk.Button = None
        self.roster_listbox: tk.Listbox = None
        self._roster_ids: list[str] = []
        self._craft_frame: ttk.Frame = None
        self._build_frame: ttk.Frame = None

        self._build()
        self.refresh()

    # -- layout --

    def _build(self):
        row = 0
        row = self._section(self, row, "Plant Design")
        lbl = ttk.Label(self, text="Mode:")
        lbl.grid(row=row, column=0, sticky="w", pady=2)
        combo = ttk.Combobox(
            self,
            textvariable=self.mode_var,
            values=[m.value for m in Mode],
            width=12,
            state="readonly",
        )
        combo.grid(row=row, column=1, sticky="w", pady=2, padx=(5, 0))
        combo.bind("<<ComboboxSelected>>", self._on_mode_selected)
        Tooltip(
            combo,
            "CRAFT improves a layout you place by hand; "
            "CORELAP/ALDEP build one from closeness ratings",
        )
        row += 1
        row = self._sep(self, row)

        # CRAFT: grid size, metric, department form
        self._craft_frame = ttk.Frame(self)
        self._craft_frame.grid(row=row, column=0, columnspan=2, sticky="ew")
        self._build_craft(self._craft_frame)

        # CORELAP / ALDEP: grid dims, prototype form
        self._build_frame = ttk.Frame(self)
        self._build_frame.grid(row=row, column=0, columnspan=2, sticky="ew")
        self._build_build(self._build_frame)
        row += 1

        row = self._sep(self, row)
        row = self._section(self, row, "Departments")
        list_frame = ttk.Frame(self)
        list_frame.grid(row=row, column=0, columnspan=2, sticky="nsew")
        scrollbar = ttk.Scrollbar(list_frame)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)
        self.roster_listbox = tk.Listbox(
            list_frame, height=8, yscrollcommand=scrollbar.set, font=("", 9)
        )
        self.roster_listbox.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        scrollbar.config(command=self.roster_listbox.yview)
        row += 1

        btns = ttk.Frame(self)
        btns.grid(row=row, column=0, columnspan=2, sticky="ew", pady=(4, 0))
        ttk.Button(btns, text="Delete", command=self._on_delete).pack(
            side=tk.LEFT
        )
        lock_btn = ttk.Button(btns, text="Lock / Fix", command=self._on_lock)
        lock_btn.pack(side=tk.LEFT, padx=(5, 0))
        Tooltip(
            lock_btn,
            "Locked departments cannot be dragged; fixed prototypes ask "
            "the optimizer not to move them",
        )
        row += 1

        row = self._sep(self, row)
        actions = ttk.Frame(self)
        actions.grid(row=row, column=0, columnspan=2, sticky="ew")
        self.optimize_btn = ttk.Button(
            actions, text="Optimize", command=self.on_optimize
        )
        self.optimize_btn.pack(side=tk.LEFT)
        ttk.Button(actions, text="Save", command=self.on_save).pack(
            side=tk.LEFT, padx=(5, 0)
        )
        ttk.Button(actions, text="Load", command=self.on_load).pack(
            side=tk.LEFT, padx=(5, 0)
        )

    def _build_craft(self, parent):
        row = 0
        row = self._field(
            parent,
            row,
            "Grid size:",
            self.grid_size_var,
            tooltip=(
                f"Cells per side "
                f"({config.GRID_SIZE_MIN}-{config.GRID_SIZE_MAX})"
            ),
        )
        ttk.Button(parent, text="Apply", command=self._on_grid_size).grid(
            row=row - 1, column=2, sticky="w", padx=(5, 0)
        )
        lbl = ttk.Label(parent, text="Metric:")
        lbl.grid(row=row, column=0, sticky="w", pady=2)
        combo = ttk.Combobox(
            parent,
            textvariable=self.metric_var,
            values=[m.value for m in Metric],
            width=12,
            state="readonly",
        )
        combo.grid(row=row, column=1, sticky="w", pady=2, padx=(5, 0))
        combo.bind(
            "<<ComboboxSelected>>",
            lambda _e: setattr(
                self.session, "metric", Metric(self.metric_var.get())
            ),
        )
        row += 1
        row = self._sep(parent, row)
        row = self._section(parent, row, "Add department")
        row = self._field(parent, row, "Name:", self.name_var)
        row = self._field(parent, row, "Width:", self.width_var)
        row = self._field(parent, row, "Height:", self.height_var)
        row = self._field(parent, row, "X:", self.x_var)
        row = self._field(parent, row, "Y:", self.y_var)
        chk = ttk.Checkbutton(parent, text="Void", variable=self.void_var)
        chk.grid(row=row, column=0, columnspan=2, sticky="w", pady=2)
        Tooltip(chk, "Voids take up floor space but have no relations")
        row += 1
        ttk.Button(
            parent, text="+ Add department", command=self._on_add_department
        ).grid(row=row, column=0, columnspan=2, sticky="ew", pady=(4, 0))

    def _build_build(self, parent):
        row = 0
        row = self._field(parent, row, "Grid width:", self.grid_width_var)
        row = self._field(parent, row, "Grid height:", self.grid_height_var)
        ttk.Button(parent, text="Apply", command=self._on_build_grid).grid(
            row=row - 1, column=2, sticky="w", padx=(5, 0)
        )
        row = self._sep(parent, row)
        row = self._section(parent, row, "Add department")
        row = self._field(parent, row, "Name:", self.name_var)
        row = self._field(
            parent,
            row,
            "Area (cells):",
            self.area_var,
            tooltip="Number of grid cells the department needs",
        )
        ttk.Checkbutton(parent, text="Fixed", variable=self.fixed_var).grid(
            row=row, column=0, columnspan=2, sticky="w", pady=2
        )
        row += 1
        ttk.Button(
            parent, text="+ Add department", command=self._on_add_prototype
        ).grid(row=row, column=0, columnspan=2, sticky="ew", pady=(4, 0))

    def _section(self, parent, row, title):
        ttk.Label(parent, text=title, font=("", 11, "bold")).grid(
            row=row, column=0, columnspan=2, pady=(8, 4), sticky="w"
        )
        return row + 1

    def _field(self, parent, row, label, var, tooltip=None):
        lbl = ttk.Label(parent, text=label)
        lbl.grid(row=row, column=0, sticky="w", pady=2)
        entry = ttk.Entry(parent, textvariable=var, width=14)
        entry.grid(row=row, column=1, sticky="w", pady=2, padx=(5, 0))
        if tooltip:
            Tooltip(lbl, tooltip)
            Tooltip(entry, tooltip)
        return row + 1

    def _sep(self, parent, row):
        ttk.Separator(parent, orient="horizontal").grid(
            row=row, column=0, columnspan=3, sticky="ew", pady=8
        )
        return row + 1

    # -- state --

    def refresh(self):
        """Sync widgets with the session (mode frames, roster list)."""
        build = self.session.mode.is_build
        self.mode_var.set(self.session.mode.value)
        self.grid_size_var.set(str(self.session.modes.grid_size))
        self.grid_width_var.set(str(self.session.modes.grid_width))
        self.grid_height_var.set(str(self.session.modes.grid_height))
        self.metric_var.set(self.session.metric.value)
        if build:
            self._craft_frame.grid_remove()
            self._build_frame.grid()
            items = [
                (p.id, prototype_label(p)) for p in self.session.prototypes
            ]
        else:
            self._build_frame.grid_remove()
            self._craft_frame.grid()
            items = [
                (d.id, department_label(d)) for d in self.session.departments
            ]
        self._roster_ids = [item_id for item_id, _ in items]
        self.roster_listbox.delete(0, tk.END)
        for _, text in items:
            self.roster_listbox.insert(tk.END, text)
        self.optimize_btn.config(
            state=tk.DISABLED if self.session.loading else tk.NORMAL
        )

    def _selected_id(self):
        selection = self.roster_listbox.curselection()
        if not selection or selection[0] >= len(self._roster_ids):
            return None
        return self._roster_ids[selection[0]]

    def _run(self, fn, *args):
        try:
            result = fn(*args)
        except PlannerError as e:
            messagebox.showerror("Invalid input", str(e))
            return None
        self.on_changed()
        return result

    # -- callbacks --

    def _on_mode_selected(self, _event=None):
        self._run(self.session.select_mode, self.mode_var.get())

    def _on_grid_size(self):
        self._run(self.session.set_grid_size, self.grid_size_var.get())

    def _on_build_grid(self):
        self._run(
            self.session.set_build_grid,
            self.grid_width_var.get(),
            self.grid_height_var.get(),
        )

    def _on_add_department(self):
        kind = DeptKind.VOID if self.void_var.get() else DeptKind.DEPT
        added = self._run(
            lambda: self.session.add_department(
                self.name_var.get(),
                self.width_var.get(),
                self.height_var.get(),
                self.x_var.get(),
                self.y_var.get(),
                kind=kind,
            )
        )
        if added is not None:
            for var in (
                self.name_var,
                self.width_var,
                self.height_var,
                self.x_var,
                self.y_var,
            ):
                var.set("")
            self.void_var.set(False)

    def _on_add_prototype(self):
        added = self._run(
            self.session.add_prototype,
            self.name_var.get(),
            self.area_var.get(),
            self.fixed_var.get(),
        )
        if added is not None:
            self.name_var.set("")
            self.area_var.set("")
            self.fixed_var.set(False)

    def _on_delete(self):
        item_id = self._selected_id()
        if item_id is None:
            return
        if self.session.mode.is_build:
            self._run(self.session.remove_prototype, item_id)
        else:
            self._run(self.session.remove_department, item_id)

    def _on_lock(self):
        item_id = self._selected_id()
        if item_id is None:
            return
        if self.session.mode.is_build:
            self._run(self.session.toggle_fixed, item_id)
        else:
            self._run(self.session.toggle_lock, item_id)


# ---------------------------------------------------------------------------
# Relation matrices
# ---------------------------------------------------------------------------


class RelationPanel(ttk.Frame):
    """Editable flow / closeness matrices and build-mode weights."""

    def __init__(self, parent, session, on_changed):
        super().__init__(parent, padding=10)
        self.session = session
        self.on_changed = on_changed
        self._shape = None
        self._flow_vars: dict = {}
        self._closeness_vars: dict = {}
        self._weight_vars: dict = {}
        self._body: ttk.Frame = None
        self.refresh()

    def refresh(self):
        """Rebuild the grids if names or mode changed, else just sync values."""
        shape = (self.session.mode, tuple(self.session.relations.names))
        if shape != self._shape:
            self._shape = shape
            self._rebuild()
        self._sync_values()

    def _rebuild(self):
        if self._body is not None:
            self._body.destroy()
        self._flow_vars = {}
        self._closeness_vars = {}
        self._weight_vars = {}
        self._body = ttk.Frame(self)
        self._body.pack(fill=tk.BOTH, expand=True)

        names = self.session.relations.names
        row = 0
        if not self.session.mode.is_build:
            row = self._matrix(row, "Flow", names, self._flow_entry)
        row = self._matrix(row, "Closeness", names, self._closeness_entry)
        if self.session.mode.is_build:
            ttk.Label(self._body, text="Weights", font=("", 11, "bold")).grid(
                row=row, column=0, columnspan=4, sticky="w", pady=(8, 4)
            )
            row += 1
            for k, letter in enumerate("AEIOUX"):
                var = tk.StringVar()
                self._weight_vars[letter] = var
                ttk.Label(self._body, text=f"{letter}:").grid(
                    row=row + k // 3, column=(k % 3) * 2, sticky="e"
                )
                entry = ttk.Entry(self._body, textvariable=var, width=7)
                entry.grid(
                    row=row + k // 3, column=(k % 3) * 2 + 1, sticky="w"
                )
                entry.bind(
                    "<FocusOut>",
                    lambda _e, letter=letter: self._on_weight(letter),
                )
                entry.bind(
                    "<Return>",
                    lambda _e, letter=letter: self._on_weight(letter),
                )

    def _matrix(self, row, title, names, make_cell):
        ttk.Label(self._body, text=title, font=("", 11, "bold")).grid(
            row=row, column=0, columnspan=len(names) + 1, sticky="w",
            pady=(8, 4),
        )
        row += 1
        if not names:
            ttk.Label(self._body, text="No departments").grid(
                row=row, column=0, sticky="w"
            )
            return row + 1
        for j, name in enumerate(names):
            ttk.Label(self._body, text=name, width=6).grid(
                row=row, column=j + 1
            )
        for i, name in enumerate(names):
            ttk.Label(self._body, text=name, width=6).grid(
                row=row + i + 1, column=0, sticky="w"
            )
            for j in range(len(names)):
                make_cell(i, j).grid(row=row + i + 1, column=j + 1)
        return row + len(names) + 1

    def _flow_entry(self, i, j):
        var = tk.StringVar()
        self._flow_vars[i, j] = var
        entry = ttk.Entry(self._body, textvariable=var, width=6)
        entry.bind("<FocusOut>", lambda _e: self._on_flow(i, j))
        entry.bind("<Return>", lambda _e: self._on_flow(i, j))
        return entry

    def _closeness_entry(self, i, j):
        var = tk.StringVar()
        self._closeness_vars[i, j] = var
        combo = ttk.Combobox(
            self._body, textvariable=var, values=CLOSENESS_CHOICES, width=3
        )
        if i == j:
            combo.config(state="disabled")
        combo.bind("<<ComboboxSelected>>", lambda _e: self._on_closeness(i, j))
        combo.bind("<FocusOut>", lambda _e: self._on_closeness(i, j))
        return combo

    def _sync_values(self):
        rel = self.session.relations
        for (i, j), var in self._flow_vars.items():
            value = rel.flow(i, j)
            var.set(f"{value:g}")
        for (i, j), var in self._closeness_vars.items():
            var.set(rel.closeness(i, j))
        if self.session.mode.is_build:
            weights = self.session.weights[self.session.mode]
            for letter, var in self._weight_vars.items():
                var.set(f"{weights.get(letter, 0):g}")

    def _on_flow(self, i, j):
        if (i, j) not in self._flow_vars:
            return
        self.session.set_flow(i, j, self._flow_vars[i, j].get())
        self.on_changed()

    def _on_closeness(self, i, j):
        if (i, j) not in self._closeness_vars:
            return
        self.session.set_closeness(i, j, self._closeness_vars[i, j].get())
        self.on_changed()

    def _on_weight(self, letter):
        try:
            self.session.set_weight(letter, self._weight_vars[letter].get())
        except PlannerError as e:
            messagebox.showerror("Invalid input", str(e))
        self.on_changed()


# ---------------------------------------------------------------------------
# Preview panel
# ---------------------------------------------------------------------------


class PreviewPanel(ttk.Frame):
    """Pending optimizer candidate with Accept / Discard."""

    def __init__(self, parent, session, on_changed):
        super().__init__(parent, padding=10)
        self.session = session
        self.on_changed = on_changed
        self.candidate_var = tk.StringVar()
        self.score_label: ttk.Label = None
        self.moves_listbox: tk.Listbox = None
        self.candidate_combo: ttk.Combobox = None
        self._build()
        self.refresh()

    def _build(self):
        ttk.Label(self, text="Optimization preview", font=("", 11, "bold")).pack(
            anchor="w", pady=(0, 4)
        )
        self.candidate_combo = ttk.Combobox(
            self, textvariable=self.candidate_var, width=20, state="readonly"
        )
        self.candidate_combo.pack(anchor="w")
        self.candidate_combo.bind("<<ComboboxSelected>>", self._on_select)
        self.score_label = ttk.Label(self, text=_format_score(None))
        self.score_label.pack(anchor="w", pady=2)
        self.moves_listbox = tk.Listbox(self, height=6, font=("", 9))
        self.moves_listbox.pack(fill=tk.BOTH, expand=True)
        btns = ttk.Frame(self)
        btns.pack(fill=tk.X, pady=(4, 0))
        ttk.Button(btns, text="Accept", command=self._on_accept).pack(
            side=tk.LEFT
        )
        ttk.Button(btns, text="Discard", command=self._on_discard).pack(
            side=tk.LEFT, padx=(5, 0)
        )

    def refresh(self):
        preview = self.session.preview
        n = len(preview.candidates)
        self.candidate_combo["values"] = [
            f"Candidate {i + 1}" for i in range(n)
        ]
        self.candidate_var.set(
            f"Candidate {preview.selected_index + 1}" if n else ""
        )
        self.score_label.config(text=_format_score(preview.score))
        self.moves_listbox.delete(0, tk.END)
        if not preview.active:
            return
        rows = self.session.preview_diff()
        if not rows:
            self.moves_listbox.insert(tk.END, "No departments move")
        for row in rows:
            self.moves_listbox.insert(
                tk.END,
                f"{row.name}: ({row.from_xy[0]}, {row.from_xy[1]}) -> "
                f"({row.to_xy[0]}, {row.to_xy[1]})",
            )

    def _on_select(self, _event=None):
        idx = self.candidate_combo.current()
        if idx >= 0:
            self.session.preview.select(idx)
            self.on_changed()

    def _on_accept(self):
        self.session.accept_preview()
        self.on_changed()

    def _on_discard(self):
        self.session.discard_preview()
        self.on_changed()


# ---------------------------------------------------------------------------
# Main application
# ---------------------------------------------------------------------------


class App:
    def __init__(self, client=None, grid_size=config.DEFAULT_GRID_SIZE):
        self.root = tk.Tk()
        self.root.title("plantgrid")
        self.root.geometry("1500x950")
        self.root.configure(bg=PANEL_BG)

        style = ttk.Style()
        style.theme_use("clam")

        # Worker threads post (callback, args) here; drained on the Tk thread.
        self._results: queue.Queue = queue.Queue()

        self.session = LayoutSession(
            client=client or SyncClient(),
            grid_size=grid_size,
            live_sync=self._live_sync_async,
        )

        self.status_label = ttk.Label(self.root, text="")
        self.status_label.pack(side=tk.BOTTOM, anchor="w", padx=5)

        # Left: canvas in a scrollable frame (zoom can exceed the window).
        self.left_panel = ttk.Frame(self.root)
        self.left_panel.pack(
            side=tk.LEFT, fill=tk.BOTH, expand=True, padx=5, pady=5
        )
        self.canvas = tk.Canvas(
            self.left_panel, bg=PANEL_BG, highlightthickness=0
        )
        xscroll = ttk.Scrollbar(
            self.left_panel, orient=tk.HORIZONTAL, command=self.canvas.xview
        )
        yscroll = ttk.Scrollbar(
            self.left_panel, orient=tk.VERTICAL, command=self.canvas.yview
        )
        self.canvas.configure(
            xscrollcommand=xscroll.set, yscrollcommand=yscroll.set
        )
        xscroll.pack(side=tk.BOTTOM, fill=tk.X)
        yscroll.pack(side=tk.RIGHT, fill=tk.Y)
        self.canvas.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)

        self.right_panel = ttk.Frame(self.root)
        self.right_panel.pack(side=tk.RIGHT, fill=tk.BOTH, pady=5, padx=(0, 5))

        self.controls = ControlPanel(
            self.right_panel,
            self.session,
            on_changed=self._refresh,
            on_optimize=self._on_optimize,
            on_save=self._on_save,
            on_load=self._on_load,
        )
        self.controls.pack(side=tk.LEFT, fill=tk.Y, padx=(0, 5))

        middle = ttk.Frame(self.right_panel)
        middle.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        self.relations = RelationPanel(middle, self.session, self._refresh)
        self.relations.pack(side=tk.TOP, fill=tk.BOTH, expand=True)
        self.preview = PreviewPanel(middle, self.session, self._refresh)
        self.preview.pack(side=tk.BOTTOM, fill=tk.X)

        self._photo = None  # prevent GC

        # Drag state
        self._drag_id = None
        self._drag_start = None
        self._drag_last = None
        self._drag_overlay = None

        self.canvas.bind("<ButtonPress-1>", self._on_press)
        self.canvas.bind("<B1-Motion>", self._on_motion)
        self.canvas.bind("<ButtonRelease-1>", self._on_release)
        self.canvas.bind("<Control-MouseWheel>", self._on_zoom)
        self.canvas.bind("<Control-Button-4>", self._on_zoom)
        self.canvas.bind("<Control-Button-5>", self._on_zoom)

        self.root.after(50, self._render)
        self.root.after(POLL_MS, self._poll_results)

    # -- background work --

    def _live_sync_async(self, departments):
        """Fire-and-forget roster push; failures are logged by the client."""
        threading.Thread(
            target=self.session.client.sync_live_layout,
            args=(departments,),
            daemon=True,
        ).start()

    def _poll_results(self):
        while True:
            try:
                fn, args = self._results.get_nowait()
            except queue.Empty:
                break
            fn(*args)
        self.root.after(POLL_MS, self._poll_results)

    # -- rendering --

    def _refresh(self):
        self.controls.refresh()
        self.relations.refresh()
        self.preview.refresh()
        self._render()

    def _renderer(self, zoom):
        return LayoutRenderer(
            self.session.modes.resolution(),
            self.session.modes.extent(),
            scale=zoom,
        )

    def _render(self):
        s = self.session
        preview = s.preview
        show_departments = s.modes.placeable
        img = self._renderer(s.zoom).render(
            s.departments.all() if show_departments else [],
            ghosts=preview.candidate.placements if preview.active else None,
            moves=s.preview_diff() if show_departments else None,
            highlight_id=self._drag_id,
        )
        self._photo = ImageTk.PhotoImage(img)
        self.canvas.delete("all")
        self.canvas.create_image(0, 0, image=self._photo, anchor="nw")
        self.canvas.configure(scrollregion=(0, 0, img.width, img.height))
        self._drag_overlay = None

        status = f"{s.mode.value}  |  zoom {s.zoom:.2f}x"
        if s.loading:
            status += "  |  optimizing..."
        if s.project is not None:
            status += f"  |  project {s.project.name}"
        self.status_label.config(text=status)

    # -- drag --

    def _event_cell(self, event):
        x = self.canvas.canvasx(event.x)
        y = self.canvas.canvasy(event.y)
        cell = self._renderer(self.session.zoom).cell
        return int(x // cell), int(y // cell)

    def _on_press(self, event):
        if not self.session.modes.placeable:
            return
        cx, cy = self._event_cell(event)
        dept = department_at(self.session.departments.all(), cx, cy)
        if dept is None or dept.locked:
            return
        self._drag_id = dept.id
        self._drag_start = (event.x, event.y)
        self._drag_last = (event.x, event.y)
        cell = self._renderer(self.session.zoom).cell
        self._drag_overlay = self.canvas.create_rectangle(
            dept.x * cell,
            dept.y * cell,
            (dept.x + dept.width) * cell,
            (dept.y + dept.height) * cell,
            outline="#FFD700",
            width=2,
            dash=(4, 2),
        )

    def _on_motion(self, event):
        if self._drag_id is None or self._drag_overlay is None:
            return
        lx, ly = self._drag_last
        self.canvas.move(self._drag_overlay, event.x - lx, event.y - ly)
        self._drag_last = (event.x, event.y)

    def _on_release(self, event):
        if self._drag_id is None:
            return
        sx, sy = self._drag_start
        dept_id = self._drag_id
        self._drag_id = None
        self.session.drag_end(dept_id, event.x - sx, event.y - sy)
        self._refresh()

    def _on_zoom(self, event):
        self.session.zoom_wheel(_wheel_delta_y(event))
        self._render()

    # -- optimizer --

    def _on_optimize(self):
        if self.session.loading:
            return
        try:
            submission = self.session.prepare_submission()
        except PlannerError as e:
            messagebox.showerror("Cannot optimize", str(e))
            return
        self.session.loading = True
        self._refresh()
        threading.Thread(
            target=self._optimize_worker, args=(submission,), daemon=True
        ).start()

    def _optimize_worker(self, submission):
        try:
            outcome = self.session.execute(submission)
        except PlannerError as e:
            logger.warning("Optimization failed: %s", e)
            self._results.put((self._on_optimize_failed, (e,)))
            return
        except Exception as e:
            # Still report back, or the session stays in its loading state.
            logger.exception("Unexpected error during optimization")
            self._results.put((self._on_optimize_failed, (e,)))
            return
        self._results.put((self._on_optimize_done, (submission, outcome)))

    def _on_optimize_done(self, submission, outcome):
        self.session.loading = False
        self.session.receive(submission, outcome)
        self._refresh()

    def _on_optimize_failed(self, error):
        self.session.loading = False
        self._refresh()
        messagebox.showerror("Optimization failed", str(error))

    # -- files --

    def _on_save(self):
        path = filedialog.asksaveasfilename(
            defaultextension=".png",
            filetypes=[("PNG files", "*.png"), ("JSON files", "*.json")],
            initialfile=f"layout_{time.strftime('%Y-%m-%d_%H-%M-%S')}.png",
        )
        if not path:
            return
        state = self.session.to_dict()
        if path.lower().endswith(".json"):
            save_layout_json(state, path)
            return
        img = self._renderer(1).render(self.session.departments.all())
        save_layout_png(img, state, path)

    def _on_load(self):
        path = filedialog.askopenfilename(
            filetypes=[
                ("Layout files", "*.png *.json"),
                ("PNG files", "*.png"),
                ("JSON files", "*.json"),
            ],
        )
        if not path:
            return
        try:
            self.session.load_dict(load_layout(path))
        except (PlannerError, OSError) as e:
            messagebox.showerror("Load Error", str(e))
            return
        self._refresh()

    def run(self):
        self.root.mainloop()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Plant layout editor")
    parser.add_argument(
        "--api-base",
        default=config.API_BASE,
        help="Optimizer service base URL (default: %(default)s)",
    )
    parser.add_argument(
        "--grid-size",
        type=int,
        default=config.DEFAULT_GRID_SIZE,
        help="Initial CRAFT grid size in cells (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        help="Logging level (default: %(default)s)",
    )
    args = parser.parse_args(argv)
    if not config.GRID_SIZE_MIN <= args.grid_size <= config.GRID_SIZE_MAX:
        parser.error(
            f"--grid-size must be between {config.GRID_SIZE_MIN} "
            f"and {config.GRID_SIZE_MAX}"
        )
    return args


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    App(
        client=SyncClient(api_base=args.api_base), grid_size=args.grid_size
    ).run()


if __name__ == "__main__":
    main()
