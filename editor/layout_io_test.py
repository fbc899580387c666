"""Tests for layout_io save/load helpers."""

import json

import pytest
from PIL import Image

from editor.layout_io import (
    METADATA_KEY,
    load_layout,
    load_layout_json,
    load_layout_png,
    save_layout_json,
    save_layout_png,
)
from planner.errors import ValidationError

SAMPLE_LAYOUT = {
    "mode": "CRAFT",
    "gridSize": 30,
    "gridWidth": 30,
    "gridHeight": 30,
    "metric": "rectilinear",
    "departments": [
        {
            "id": "dept_1",
            "name": "Paint",
            "x": 2,
            "y": 3,
            "width": 5,
            "height": 4,
            "gridSize": 30,
            "type": "dept",
            "locked": True,
        }
    ],
    "prototypes": [],
    "flowMatrix": [[0.0]],
    "closenessMatrix": [["X"]],
    "weights": {"CORELAP": {"A": 6.0}, "ALDEP": {"A": 64.0}},
}


def test_save_and_load_png_roundtrip(tmp_path):
    """Save a layout in a PNG, load it back, and verify equality."""
    img = Image.new("RGB", (100, 100), "green")
    path = str(tmp_path / "layout.png")

    save_layout_png(img, SAMPLE_LAYOUT, path)
    loaded = load_layout_png(path)

    assert loaded == SAMPLE_LAYOUT


def test_load_png_missing_chunk(tmp_path):
    """A plain PNG without metadata is rejected."""
    img = Image.new("RGB", (100, 100), "red")
    path = str(tmp_path / "plain.png")
    img.save(path)

    with pytest.raises(ValidationError) as e:
        load_layout_png(path)
    assert METADATA_KEY in str(e.value)


def test_load_png_not_an_image(tmp_path):
    path = tmp_path / "fake.png"
    path.write_text("definitely not a png")

    with pytest.raises(ValidationError):
        load_layout_png(str(path))


def test_json_roundtrip(tmp_path):
    """Write a JSON file and load it back."""
    path = str(tmp_path / "layout.json")
    save_layout_json(SAMPLE_LAYOUT, path)

    assert load_layout_json(path) == SAMPLE_LAYOUT


def test_load_json_invalid(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")

    with pytest.raises(ValidationError):
        load_layout_json(str(path))


def test_load_layout_dispatches_by_extension(tmp_path):
    """load_layout dispatches to PNG or JSON loader based on extension."""
    img = Image.new("RGB", (100, 100), "blue")
    png_path = str(tmp_path / "test.PNG")
    save_layout_png(img, SAMPLE_LAYOUT, png_path)

    assert load_layout(png_path) == SAMPLE_LAYOUT

    json_path = str(tmp_path / "test.json")
    with open(json_path, "w") as f:
        json.dump(SAMPLE_LAYOUT, f)

    assert load_layout(json_path) == SAMPLE_LAYOUT


def test_load_layout_unsupported_extension(tmp_path):
    path = str(tmp_path / "layout.txt")
    with pytest.raises(ValidationError) as e:
        load_layout(path)
    assert "Unsupported" in str(e.value)
