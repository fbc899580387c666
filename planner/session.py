"""One editing session: the stores, the mode machine and the preview, wired.

Data flows one way:

    edits -> DepartmentStore / PrototypeStore -> RelationMatrixStore
          -> request body -> SyncClient -> optimizer -> candidates
          -> OptimizationPreview -> (accept) -> DepartmentStore

Wiring done here:

  * Any roster change re-aligns the relation matrices with the names of the
    *active* roster (non-void departments in CRAFT, prototypes otherwise).
  * Department changes are pushed to the live-edit sync (best effort).
  * Every mode transition discards the pending preview, blanks the
    relation matrices for the new roster and refits the departments into
    the new grid. Grid changes and accepted candidates are refitted too,
    so every department stays inside the active grid.

Submitting is split in three so the editor can keep the network off the
UI thread: ``prepare_submission`` validates and builds the request (UI
thread), ``execute`` talks to the service and touches no session state
(any thread), ``receive`` installs the candidates (UI thread). Nothing
prevents two submissions from being in flight; whichever is received last
wins. A response for a mode that is no longer active is dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from . import config
from .drag import DragController, DragEnd
from .errors import ValidationError
from .modes import ModeController, grid_dimension
from .payloads import build_body, craft_layout_body, default_weights
from .preview import OptimizationPreview
from .relations import RelationMatrixStore
from .stores import DepartmentStore, PrototypeStore
from .sync import SyncClient
from .types import (
    CLOSENESS_LETTERS,
    Department,
    DepartmentPrototype,
    DeptKind,
    DiffRow,
    Metric,
    Mode,
    OptimizationResult,
    Project,
)

logger = logging.getLogger(__name__)


@dataclass
class Submission:
    mode: Mode
    body: dict
    project: Project | None = None


@dataclass
class Outcome:
    project: Project
    candidates: list[OptimizationResult] = field(default_factory=list)


class LayoutSession:
    def __init__(
        self,
        client: SyncClient | None = None,
        grid_size: int = config.DEFAULT_GRID_SIZE,
        user_id: str = config.USER_ID,
        project_name: str = config.PROJECT_NAME,
        live_sync: Callable[[list[Department]], object] | None = None,
    ) -> None:
        self.client = client or SyncClient()
        self.user_id = user_id
        self.project_name = project_name
        self.project: Project | None = None

        self.modes = ModeController(grid_size)
        self.departments = DepartmentStore()
        self.prototypes = PrototypeStore()
        self.relations = RelationMatrixStore()
        self.preview = OptimizationPreview()
        self.drag = DragController(self.departments, self.modes)

        self.metric = Metric.RECTILINEAR
        self.weights = {
            Mode.CORELAP: default_weights(Mode.CORELAP),
            Mode.ALDEP: default_weights(Mode.ALDEP),
        }
        self.settings: dict = {}
        self.zoom = 1.0
        self.loading = False

        self._live_sync = (
            live_sync if live_sync is not None else self.client.sync_live_layout
        )
        self.departments.subscribe(self._on_departments_changed)
        self.prototypes.subscribe(self._on_prototypes_changed)
        self.modes.subscribe(self._on_mode_changed)

    @property
    def mode(self) -> Mode:
        return self.modes.mode

    # -- wiring --

    def active_names(self) -> list[str]:
        if self.mode.is_build:
            return self.prototypes.names()
        return self.departments.relation_names()

    def _resync_relations(self) -> None:
        if self.relations.sync_names(self.active_names()):
            logger.debug("Relation matrices rebuilt at %d", self.relations.size)

    def _on_departments_changed(self, departments: list[Department]) -> None:
        if not self.mode.is_build:
            self._resync_relations()
        self._live_sync(departments)

    def _on_prototypes_changed(self, _prototypes) -> None:
        if self.mode.is_build:
            self._resync_relations()

    def _on_mode_changed(self, old: Mode, new: Mode) -> None:
        self.preview.discard()
        self._fit_departments()
        # New roster source, so the matrices start blank.
        self.relations.reset(self.active_names())
        logger.info("Mode %s -> %s", old.value, new.value)

    def _fit_departments(self) -> None:
        if self.departments.fit_to(
            self.modes.extent(), self.modes.resolution()
        ):
            logger.info("Departments refitted to the %s grid", self.mode.value)

    # -- departments --

    def add_department(
        self, name, width, height, x, y, kind=DeptKind.DEPT
    ) -> Department:
        ext_w, ext_h = self.modes.extent()
        return self.departments.add(
            name, width, height, x, y, ext_w, ext_h, kind=kind
        )

    def remove_department(self, dept_id: str) -> bool:
        return self.departments.remove(dept_id)

    def toggle_lock(self, dept_id: str) -> Department | None:
        return self.departments.toggle_lock(dept_id)

    def drag_end(self, dept_id: str, dx_px: float, dy_px: float):
        return self.drag.drag_end(DragEnd(dept_id, dx_px, dy_px), self.zoom)

    # -- prototypes --

    def add_prototype(self, name, cell_area, fixed=False) -> DepartmentPrototype:
        return self.prototypes.add(name, cell_area, fixed)

    def remove_prototype(self, proto_id: str) -> bool:
        return self.prototypes.remove(proto_id)

    def toggle_fixed(self, proto_id: str):
        return self.prototypes.toggle_fixed(proto_id)

    # -- relations --

    def set_flow(self, i: int, j: int, value) -> float:
        return self.relations.set_flow_cell(i, j, value)

    def set_closeness(self, i: int, j: int, value) -> str:
        return self.relations.set_closeness_cell(i, j, value)

    def set_weight(self, letter: str, value) -> float:
        """Override a closeness weight for the active build algorithm."""
        if not self.mode.is_build:
            raise ValidationError("Weights only apply to CORELAP and ALDEP")
        letter = str(letter).upper()
        if letter not in CLOSENESS_LETTERS or not letter:
            raise ValidationError(f"Unknown closeness rating {letter!r}")
        try:
            weight = float(value)
        except (TypeError, ValueError):
            raise ValidationError("Weight must be a number") from None
        self.weights[self.mode] = {**self.weights[self.mode], letter: weight}
        return weight

    # -- mode & grid --

    def select_mode(self, mode) -> bool:
        return self.modes.select(mode)

    def set_grid_size(self, value) -> int:
        """Change the CRAFT grid; departments that no longer fit are refitted."""
        n = self.modes.set_grid_size(value)
        if not self.mode.is_build:
            self._fit_departments()
        return n

    def set_build_grid(self, width, height) -> tuple[int, int]:
        dims = self.modes.set_build_grid(width, height)
        if self.mode.is_build:
            self._fit_departments()
        return dims

    def set_zoom(self, zoom: float) -> float:
        self.zoom = min(config.ZOOM_MAX, max(config.ZOOM_MIN, float(zoom)))
        return self.zoom

    def zoom_wheel(self, delta_y: float) -> float:
        """Ctrl+wheel: scrolling down zooms out."""
        return self.set_zoom(self.zoom - delta_y * config.ZOOM_WHEEL_STEP)

    # -- optimization --

    def _create_project(self) -> Project:
        project = self.client.create_project(self.project_name, self.user_id)
        logger.info("Created project %s", project.id)
        return project

    def ensure_project(self) -> Project:
        """The optimizer project, created on first use and cached."""
        if self.project is None:
            self.project = self._create_project()
        return self.project

    def prepare_submission(self) -> Submission:
        mode = self.mode
        project_id = self.project.id if self.project else ""
        if mode.is_build:
            body = build_body(
                mode,
                self.project_name,
                project_id,
                self.modes.grid_width,
                self.modes.grid_height,
                self.prototypes.all(),
                self.relations,
                weights=self.weights[mode],
                settings=self.settings,
            )
        else:
            body = craft_layout_body(
                self.project_name,
                self.modes.grid_size,
                project_id,
                self.departments.all(),
                self.relations,
                metric=self.metric,
            )
        return Submission(mode=mode, body=body, project=self.project)

    def execute(self, submission: Submission) -> Outcome:
        """Network half of a submission. Reads nothing from the session."""
        project = submission.project or self._create_project()
        body = {**submission.body, "projectId": project.id}
        if submission.mode.is_build:
            candidates = self.client.generate(submission.mode, body)
        else:
            layout_id = self.client.submit_layout(body)
            candidates = [self.client.fetch_result(layout_id)]
        return Outcome(project=project, candidates=candidates)

    def receive(self, submission: Submission, outcome: Outcome) -> bool:
        """Install a response in the preview. False if it was stale."""
        self.project = outcome.project
        if submission.mode is not self.mode:
            logger.info(
                "Dropping %s result received in %s mode",
                submission.mode.value,
                self.mode.value,
            )
            return False
        self.preview.propose(outcome.candidates)
        return True

    def run_optimization(self) -> bool:
        """Blocking submit + receive, for scripts and tests."""
        submission = self.prepare_submission()
        self.loading = True
        try:
            submission.project = self.ensure_project()
            outcome = self.execute(submission)
        finally:
            self.loading = False
        return self.receive(submission, outcome)

    def preview_diff(self) -> list[DiffRow]:
        return self.preview.diff(self.departments.all())

    def accept_preview(self) -> list[Department] | None:
        if not self.preview.active:
            return None
        merged = self.preview.apply(
            self.departments.all(),
            self.modes.resolution(),
            self.modes.extent(),
        )
        self.departments.replace_all(merged)
        if self.mode.is_build:
            self.modes.mark_applied()
        return merged

    def discard_preview(self) -> None:
        self.preview.discard()

    # -- persistence --

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "gridSize": self.modes.grid_size,
            "gridWidth": self.modes.grid_width,
            "gridHeight": self.modes.grid_height,
            "metric": self.metric.value,
            "departments": [d.to_dict() for d in self.departments],
            "prototypes": [p.to_dict() for p in self.prototypes],
            "flowMatrix": self.relations.flow_rows(),
            "closenessMatrix": self.relations.closeness_rows(),
            "weights": {m.value: dict(w) for m, w in self.weights.items()},
        }

    def load_dict(self, d: dict) -> None:
        """Replace the session state with a saved layout.

        Everything is parsed and checked first; a bad file leaves the
        session untouched.
        """
        try:
            mode = Mode(d.get("mode", Mode.CRAFT.value))
            departments = [
                Department.from_dict(x) for x in d.get("departments", [])
            ]
            prototypes = [
                DepartmentPrototype.from_dict(x)
                for x in d.get("prototypes", [])
            ]
            metric = Metric(d.get("metric", Metric.RECTILINEAR.value))
            grid_size = grid_dimension(
                d.get("gridSize", self.modes.grid_size), "Grid size"
            )
            grid_w = grid_dimension(
                d.get("gridWidth", self.modes.grid_width), "Grid width"
            )
            grid_h = grid_dimension(
                d.get("gridHeight", self.modes.grid_height), "Grid height"
            )
            weights = {
                Mode(k): {str(letter): float(v) for letter, v in w.items()}
                for k, w in d.get("weights", {}).items()
            }
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid layout data: {e}") from e

        if mode.is_build:
            n = len(prototypes)
        else:
            n = sum(1 for dept in departments if not dept.is_void)
        for key in ("flowMatrix", "closenessMatrix"):
            rows = d.get(key)
            if rows is not None and (
                not isinstance(rows, list)
                or len(rows) != n
                or any(not isinstance(r, list) or len(r) != n for r in rows)
            ):
                raise ValidationError(f"{key} does not match the departments")

        self.modes.select(mode)
        self.modes.set_grid_size(grid_size)
        self.modes.set_build_grid(grid_w, grid_h)
        self.metric = metric
        self.weights.update(weights)
        self.prototypes.replace_all(prototypes)
        self.departments.replace_all(departments)
        self._fit_departments()
        self.relations.reset(self.active_names())
        self.preview.discard()
        if mode.is_build and departments:
            self.modes.mark_applied()
        else:
            self.modes.clear_applied()
        if d.get("flowMatrix") is not None:
            self.relations.set_flow_matrix(d["flowMatrix"])
        if d.get("closenessMatrix") is not None:
            self.relations.set_closeness_matrix(d["closenessMatrix"])
