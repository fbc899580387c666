"""Unit tests for the non-widget helpers in editor/app.py."""

import queue
from types import SimpleNamespace

import pytest

pytest.importorskip("tkinter")

from editor.app import (  # noqa: E402
    App,
    _format_score,
    _wheel_delta_y,
    department_label,
    parse_args,
    prototype_label,
)
from planner.errors import SyncError  # noqa: E402
from planner.types import (  # noqa: E402
    Department,
    DepartmentPrototype,
    DeptKind,
)

# ---------------------------------------------------------------------------
# _wheel_delta_y
# ---------------------------------------------------------------------------


class TestWheelDelta:
    def test_mousewheel_up_is_negative(self):
        assert _wheel_delta_y(SimpleNamespace(num=None, delta=120)) == -120

    def test_x11_buttons(self):
        assert _wheel_delta_y(SimpleNamespace(num=4, delta=0)) == -120
        assert _wheel_delta_y(SimpleNamespace(num=5, delta=0)) == 120


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


class TestLabels:
    def test_score(self):
        assert _format_score(None) == "Score: --"
        assert _format_score(1234.5) == "Score: 1,234.50"

    def test_department(self):
        d = Department("dept_1", "Paint", 2, 3, 5, 4, 30)
        assert department_label(d) == "Paint  5x4 @ (2, 3)"

    def test_locked_void(self):
        d = Department(
            "dept_1", "Aisle", 0, 0, 1, 9, 30, kind=DeptKind.VOID, locked=True
        )
        assert department_label(d).endswith("[void]  [locked]")

    def test_prototype(self):
        p = DepartmentPrototype("proto_1", "Weld", 8, fixed=True)
        assert prototype_label(p) == "Weld  (8 cells)  [fixed]"


# ---------------------------------------------------------------------------
# parse_args
# ---------------------------------------------------------------------------


class TestParseArgs:
    def test_defaults(self):
        args = parse_args([])
        assert args.grid_size == 30

    def test_grid_size_out_of_range(self):
        with pytest.raises(SystemExit):
            parse_args(["--grid-size", "200"])

    def test_api_base(self):
        args = parse_args(["--api-base", "http://example.test/api"])
        assert args.api_base == "http://example.test/api"


# ---------------------------------------------------------------------------
# _optimize_worker
# ---------------------------------------------------------------------------


class _RaisingSession:
    def __init__(self, error):
        self.error = error

    def execute(self, submission):
        raise self.error


def _worker_app(error):
    # Skip __init__; the worker only touches the session and the queue.
    app = App.__new__(App)
    app.session = _RaisingSession(error)
    app._results = queue.Queue()
    return app


class TestOptimizeWorker:
    def test_planner_error_reported(self):
        app = _worker_app(SyncError("refused"))
        app._optimize_worker(object())
        fn, args = app._results.get_nowait()
        assert fn == app._on_optimize_failed
        assert isinstance(args[0], SyncError)

    def test_unexpected_error_reported(self, caplog):
        app = _worker_app(RuntimeError("bad payload"))
        app._optimize_worker(object())
        fn, args = app._results.get_nowait()
        assert fn == app._on_optimize_failed
        assert isinstance(args[0], RuntimeError)
        assert "Unexpected error during optimization" in caplog.text
