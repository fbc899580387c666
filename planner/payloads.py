"""Request bodies for the optimizer endpoints.

Each builder checks the local preconditions first and raises
``ValidationError`` without building anything if they fail:

  * CRAFT needs at least one non-void department, and both relation
    matrices must be square over exactly the non-void departments.
  * CORELAP/ALDEP need at least one prototype, a closeness matrix square
    over the prototypes, and a total prototype area that fits the grid.

Department coordinates are shifted to the origin before they are sent.
"""

from __future__ import annotations

from .errors import ValidationError
from .preview import normalize_origin
from .relations import RelationMatrixStore
from .types import Department, DepartmentPrototype, Metric, Mode

# Closeness letter weights per build algorithm.
DEFAULT_WEIGHTS = {
    Mode.CORELAP: {"A": 6, "E": 5, "I": 4, "O": 3, "U": 2, "X": 1},
    Mode.ALDEP: {"A": 64, "E": 16, "I": 4, "O": 1, "U": 0, "X": -1024},
}


def default_weights(mode: Mode) -> dict[str, float]:
    return dict(DEFAULT_WEIGHTS.get(mode, DEFAULT_WEIGHTS[Mode.CORELAP]))


def _check_matrix_size(relations: RelationMatrixStore, entities: list):
    n = len(entities)
    if relations.size != n or not relations.is_aligned(n):
        raise ValidationError(
            f"Relation matrices are {relations.size}x{relations.size} but "
            f"there are {n} departments"
        )


def craft_layout_body(
    name: str,
    grid_size: int,
    project_id: str,
    departments: list[Department],
    relations: RelationMatrixStore,
    metric: Metric = Metric.RECTILINEAR,
) -> dict:
    """Body for ``POST /craft/layout``."""
    active = [d for d in departments if not d.is_void]
    if not active:
        raise ValidationError("Add at least one department first")
    _check_matrix_size(relations, active)
    return {
        "name": name,
        "gridSize": grid_size,
        "projectId": project_id,
        "departments": [
            {
                "name": d.name,
                "x": d.x,
                "y": d.y,
                "width": d.width,
                "height": d.height,
                "locked": d.locked,
                "type": d.kind.value,
            }
            for d in normalize_origin(departments)
        ],
        "flowMatrix": relations.flow_rows(),
        "closenessMatrix": relations.closeness_rows(),
        "metric": Metric(metric).value,
    }


def build_body(
    mode: Mode,
    name: str,
    project_id: str,
    grid_width: int,
    grid_height: int,
    prototypes: list[DepartmentPrototype],
    relations: RelationMatrixStore,
    weights: dict[str, float] | None = None,
    settings: dict | None = None,
) -> dict:
    """Body for ``POST /corelap/generate`` and ``POST /aldep/generate``."""
    mode = Mode(mode)
    if not mode.is_build:
        raise ValidationError(f"{mode.value} is not a build algorithm")
    if not prototypes:
        raise ValidationError("Add at least one department first")
    _check_matrix_size(relations, prototypes)
    total = sum(p.cell_area for p in prototypes)
    capacity = grid_width * grid_height
    if total > capacity:
        raise ValidationError(
            f"Departments need {total} cells but the grid only has {capacity}"
        )
    return {
        "name": name,
        "projectId": project_id,
        "gridWidth": grid_width,
        "gridHeight": grid_height,
        "algorithm": mode.value,
        "departments": [
            {"name": p.name, "fixed": p.fixed, "area": p.cell_area}
            for p in prototypes
        ],
        "closenessMatrix": relations.closeness_rows(),
        "weights": dict(weights) if weights else default_weights(mode),
        "settings": dict(settings or {}),
    }
