"""Save and load plant layouts as PNG (with embedded state) or JSON.

The primary format is PNG: the rendered canvas is saved with the full
session state (mode, grids, departments, prototypes, relation matrices,
weights) embedded in a PNG tEXt chunk (key: ``plantgrid_layout``). A saved
file is both a shareable picture of the floor plan and a complete layout
that can be loaded back into the editor. JSON files are supported as a
plain-text alternative.

Loaders raise ``ValidationError`` for files they cannot use, so the editor
reports them like any other input problem.
"""

import json

from PIL import Image, UnidentifiedImageError
from PIL.PngImagePlugin import PngInfo

from planner.errors import ValidationError

METADATA_KEY = "plantgrid_layout"


def save_layout_png(img: Image.Image, layout: dict, path: str) -> None:
    """Save a rendered canvas with the layout JSON embedded as a tEXt chunk."""
    info = PngInfo()
    info.add_text(METADATA_KEY, json.dumps(layout))
    img.save(path, pnginfo=info)


def save_layout_json(layout: dict, path: str) -> None:
    with open(path, "w") as f:
        json.dump(layout, f, indent=2)
        f.write("\n")


def load_layout_png(path: str) -> dict:
    """Load a layout dict from a PNG file's tEXt metadata."""
    try:
        with Image.open(path) as img:
            text_data = dict(getattr(img, "text", None) or {})
    except UnidentifiedImageError as e:
        raise ValidationError(f"Not a PNG image: {path}") from e
    if METADATA_KEY not in text_data:
        raise ValidationError(
            f"PNG file does not contain layout metadata (missing '{METADATA_KEY}' chunk)"
        )
    return json.loads(text_data[METADATA_KEY])


def load_layout_json(path: str) -> dict:
    with open(path) as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {path}: {e}") from e


def load_layout(path: str) -> dict:
    """Load a layout from a file, dispatching by extension (.png / .json)."""
    lower = path.lower()
    if lower.endswith(".png"):
        return load_layout_png(path)
    elif lower.endswith(".json"):
        return load_layout_json(path)
    else:
        raise ValidationError(f"Unsupported file extension: {path}")
