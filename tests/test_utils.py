import json

import numpy as np
from PIL import Image

from effect_config import Color
from raster_buffer import RasterBuffer
from utils import (
    BUILTIN_PALETTES,
    PaletteManager,
    hex_to_rgb,
    image_to_raster,
    load_palettes_from_file,
    raster_to_image,
    rgb_to_hex,
    validate_image_file,
)


def test_hex_conversions():
    assert hex_to_rgb("#ea580c") == (234, 88, 12)
    assert hex_to_rgb("garbage") == (0, 0, 0)
    assert rgb_to_hex((234, 88, 12)) == "#ea580c"


def test_validate_image_file(tmp_path):
    png = tmp_path / "a.PNG"
    png.write_bytes(b"")
    txt = tmp_path / "notes.txt"
    txt.write_text("x")

    assert validate_image_file(str(png))
    assert not validate_image_file(str(txt))
    assert not validate_image_file(str(tmp_path / "missing.png"))


def test_image_to_raster_handles_any_mode():
    for mode, color in [("RGB", (10, 20, 30)), ("L", 77), ("P", 0), ("RGBA", (1, 2, 3, 4))]:
        raster = image_to_raster(Image.new(mode, (3, 2), color))

        assert raster.size == (3, 2)
        assert raster.pixels.dtype == np.uint8


def test_image_to_raster_keeps_pixel_values():
    raster = image_to_raster(Image.new("RGB", (2, 2), (10, 20, 30)))

    assert raster.get_pixel(1, 1) == (10, 20, 30, 255)


def test_raster_to_image_is_rgba():
    raster = RasterBuffer.filled(4, 3, (9, 8, 7, 255))

    image = raster_to_image(raster)

    assert image.mode == "RGBA"
    assert image.size == (4, 3)
    assert image.getpixel((3, 2)) == (9, 8, 7, 255)


def test_builtin_palettes_are_available(tmp_path):
    manager = PaletteManager(str(tmp_path / "palette.json"))

    names = manager.list_palette_names()

    assert names == [p["name"] for p in BUILTIN_PALETTES]
    assert manager.get_palette_colors("blue") == (Color.from_hex("#2563eb"),
                                                  Color.from_hex("#dbeafe"))
    assert manager.get_palette("nope") is None
    assert manager.get_palette_colors("nope") is None


def test_custom_palette_is_saved_and_shadows_builtin(tmp_path):
    path = tmp_path / "palette.json"
    manager = PaletteManager(str(path))

    manager.add_palette("mine", "#111111", "#eeeeee")
    manager.add_palette("bw", "#222222", "#dddddd")

    reloaded = PaletteManager(str(path))
    assert reloaded.get_palette("mine") == {"name": "mine", "ink": "#111111", "paper": "#eeeeee"}
    assert reloaded.get_palette("bw")["ink"] == "#222222"
    assert reloaded.list_palette_names().count("bw") == 1
    assert reloaded.list_palette_names()[:2] == ["mine", "bw"]


def test_add_palette_updates_in_place(tmp_path):
    manager = PaletteManager(str(tmp_path / "palette.json"))

    manager.add_palette("mine", "#111111", "#eeeeee")
    manager.add_palette("mine", "#333333", "#eeeeee")

    assert len(manager.palettes) == 1
    assert manager.get_palette("mine")["ink"] == "#333333"


def test_remove_palette(tmp_path):
    manager = PaletteManager(str(tmp_path / "palette.json"))
    manager.add_palette("mine", "#111111", "#eeeeee")

    manager.remove_palette("mine")

    assert PaletteManager(manager.filepath).get_palette("mine") is None


def test_load_palettes_skips_bad_entries(tmp_path):
    path = tmp_path / "palette.json"
    path.write_text(json.dumps([
        {"name": "ok", "ink": "#000000", "paper": "#ffffff"},
        {"name": "no-paper", "ink": "#000000"},
        "junk",
    ]))

    assert [p["name"] for p in load_palettes_from_file(str(path))] == ["ok"]


def test_load_palettes_tolerates_broken_file(tmp_path):
    path = tmp_path / "palette.json"
    path.write_text("{oops")

    assert load_palettes_from_file(str(path)) == []
