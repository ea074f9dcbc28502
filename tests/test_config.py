import json
from pathlib import Path

import pytest

from config_manager import (
    DEFAULT_CONFIG,
    ConfigManager,
    ConfigValidationError,
    build_effect_config,
    merge_configs,
    validate_config,
)
from effect_config import (
    Color,
    DitherAlgorithm,
    EffectConfig,
    EffectType,
    InvalidColorError,
    SourceAdjustments,
    parse_hex_color,
)
from utils import PaletteManager


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    path = tmp_path / "in.png"
    path.write_bytes(b"not decoded during validation")
    return path


@pytest.fixture
def palettes(tmp_path: Path) -> PaletteManager:
    return PaletteManager(str(tmp_path / "palette.json"))


# -------------------- colours and enums --------------------

@pytest.mark.parametrize("text,expected", [
    ("#000000", (0, 0, 0)),
    ("ffffff", (255, 255, 255)),
    ("#DC2626", (220, 38, 38)),
    (" #7c3aed ", (124, 58, 237)),
])
def test_parse_hex_color(text, expected):
    assert parse_hex_color(text) == expected


@pytest.mark.parametrize("text", ["#fff", "#12345g", "", "#1234567", None])
def test_parse_hex_color_rejects_malformed(text):
    with pytest.raises(InvalidColorError):
        parse_hex_color(text)


def test_from_hex_falls_back_to_black_with_warning(caplog):
    with caplog.at_level("WARNING"):
        color = Color.from_hex("not-a-color")

    assert color == Color(0, 0, 0)
    assert "not-a-color" in caplog.text


def test_color_round_trips_through_hex():
    assert Color.from_hex("#2563eb").to_hex() == "#2563eb"
    assert Color(1, 2, 3).rgba == (1, 2, 3, 255)


@pytest.mark.parametrize("name", ["floyd_steinberg", "Floyd-Steinberg", "FloydSteinberg",
                                  "FLOYD_STEINBERG"])
def test_algorithm_names_are_forgiving(name):
    assert DitherAlgorithm.from_name(name) is DitherAlgorithm.FLOYD_STEINBERG


def test_unknown_enum_name_raises():
    with pytest.raises(ValueError):
        EffectType.from_name("mosaic")


@pytest.mark.parametrize("name", [None, 0, ["dither"]])
def test_non_string_enum_name_raises(name):
    with pytest.raises(ValueError):
        EffectType.from_name(name)


def test_effect_config_defaults():
    config = EffectConfig()

    assert config.effect_type is EffectType.DITHER
    assert config.algorithm is DitherAlgorithm.FLOYD_STEINBERG
    assert config.point_size == 3.0
    assert config.contrast == 1.2
    assert config.bg_color == Color(255, 255, 255)
    assert config.source == SourceAdjustments(1.0, 1.0, 1.0)


# -------------------- manager --------------------

def test_merge_fills_missing_keys():
    merged = merge_configs(json.loads(json.dumps(DEFAULT_CONFIG)),
                           {"effect": {"type": "ascii"}})

    assert merged["effect"]["type"] == "ascii"
    assert merged["effect"]["algorithm"] == "floyd_steinberg"
    assert merged["source"]["saturation"] == 1.0


def test_manager_does_not_share_defaults():
    first = ConfigManager()
    first.set("effect", "point_size", value=9)

    assert ConfigManager().get("effect", "point_size") == 3
    assert DEFAULT_CONFIG["effect"]["point_size"] == 3


def test_get_with_missing_key_returns_default():
    assert ConfigManager().get("effect", "nope", default="x") == "x"


def test_from_file_resolves_paths_against_config_dir(tmp_path, image_file):
    config_path = tmp_path / "job.json"
    config_path.write_text(json.dumps({
        "input": "in.png",
        "output": "out/result.png",
        "effect": {"type": "halftone", "point_size": 2},
    }))

    config = ConfigManager.from_file(str(config_path)).validated()

    assert config["input"] == str(image_file.resolve())
    assert config["output"] == str((tmp_path / "out" / "result.png").resolve())
    assert config["effect"]["point_size"] == 2.0


def test_from_file_reports_bad_json(tmp_path):
    config_path = tmp_path / "job.json"
    config_path.write_text("{ not json")

    with pytest.raises(ConfigValidationError, match="Invalid JSON"):
        ConfigManager.from_file(str(config_path))


def test_from_file_requires_an_object(tmp_path):
    config_path = tmp_path / "job.json"
    config_path.write_text("[1, 2]")

    with pytest.raises(ConfigValidationError):
        ConfigManager.from_file(str(config_path))


def test_save_writes_json(tmp_path):
    config_path = tmp_path / "saved.json"
    manager = ConfigManager({"effect": {"type": "ascii"}})

    manager.save(str(config_path))

    assert json.loads(config_path.read_text())["effect"]["type"] == "ascii"


# -------------------- validation --------------------

def test_validation_lists_every_problem(image_file):
    manager = ConfigManager({
        "input": str(image_file),
        "output": "out.png",
        "effect": {
            "type": "mosaic",
            "algorithm": "bayer",
            "point_size": 0.5,
            "brightness": 0,
            "ink": "#zzzzzz",
        },
        "source": {"saturation": "lots"},
    })

    with pytest.raises(ConfigValidationError) as excinfo:
        manager.validated()

    message = str(excinfo.value)
    assert "effect type" in message
    assert "dither algorithm" in message
    assert "'effect.point_size' must be >= 1" in message
    assert "'effect.brightness' must be > 0" in message
    assert "'effect.ink'" in message
    assert "'source.saturation' must be a number" in message


def test_validation_rejects_null_effect_type_and_algorithm():
    manager = ConfigManager({"effect": {"type": None, "algorithm": None}})

    with pytest.raises(ConfigValidationError) as excinfo:
        manager.validated(require_paths=False)

    message = str(excinfo.value)
    assert "Invalid effect type: 'None'" in message
    assert "Invalid dither algorithm: 'None'" in message


def test_validation_requires_paths():
    with pytest.raises(ConfigValidationError, match="input"):
        ConfigManager().validated()


def test_validation_without_paths_passes_defaults():
    config = ConfigManager().validated(require_paths=False)

    assert config["effect"]["contrast"] == 1.2


def test_validation_reports_missing_input(tmp_path):
    manager = ConfigManager({"input": str(tmp_path / "missing.png"), "output": "o.png"})

    with pytest.raises(ConfigValidationError, match="not found"):
        manager.validated()


def test_validation_rejects_non_object_sections():
    with pytest.raises(ConfigValidationError, match="'effect' must be an object"):
        validate_config({"effect": "dither", "source": {}}, require_paths=False)


def test_validation_rejects_unknown_palette(palettes):
    manager = ConfigManager({"palette": "neon"})

    with pytest.raises(ConfigValidationError, match="Unknown palette"):
        manager.validated(require_paths=False, palettes=palettes)


# -------------------- building --------------------

def test_build_effect_config_from_validated_dict():
    manager = ConfigManager({
        "effects_enabled": False,
        "effect": {"type": "Halftone", "algorithm": "JarvisJudiceNinke", "ink": "#112233"},
        "source": {"contrast": 1.5},
    })

    config = manager.effect_config()

    assert config.effect_type is EffectType.HALFTONE
    assert config.algorithm is DitherAlgorithm.JARVIS_JUDICE_NINKE
    assert config.ink_color == Color(0x11, 0x22, 0x33)
    assert config.effects_enabled is False
    assert config.source.contrast == 1.5


def test_palette_overrides_ink_and_paper(palettes):
    config = build_effect_config(
        validate_config(ConfigManager({"palette": "red"}).config, require_paths=False,
                        palettes=palettes),
        palettes=palettes,
    )

    assert config.ink_color == Color.from_hex("#dc2626")
    assert config.paper_color == Color.from_hex("#fef3c7")
