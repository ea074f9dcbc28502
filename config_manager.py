"""
Configuration management for effect jobs.
Handles loading JSON job files, merging them over defaults, validating them
and turning them into an immutable EffectConfig.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

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

__all__ = [
    'ConfigValidationError',
    'ConfigManager',
    'validate_config',
    'build_effect_config',
]


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


DEFAULT_CONFIG = {
    "input": None,
    "output": None,
    "effects_enabled": True,

    # Effect-stage settings
    "effect": {
        "type": "dither",
        "algorithm": "floyd_steinberg",
        "point_size": 3,
        "ink": "#000000",
        "paper": "#ffffff",
        "brightness": 1.0,
        "contrast": 1.2,
        "detail": 1.0
    },

    # Source-stage tone adjustments
    "source": {
        "brightness": 1.0,
        "contrast": 1.0,
        "saturation": 1.0
    },

    # Named ink/paper palette; overrides effect.ink / effect.paper when set
    "palette": None,

    # Block-enlarge dither output back towards the source size
    "enlarge": False
}

# (section, key, lower bound, bound is inclusive)
_NUMERIC_FIELDS = [
    ("effect", "point_size", 1.0, True),
    ("effect", "brightness", 0.0, False),
    ("effect", "contrast", 0.0, True),
    ("effect", "detail", 0.0, True),
    ("source", "brightness", 0.0, False),
    ("source", "contrast", 0.0, True),
    ("source", "saturation", 0.0, True),
]


def merge_configs(default: Dict, loaded: Dict) -> Dict:
    """
    Recursively merge loaded config with defaults.
    Ensures all default keys exist even if not in loaded config.
    """
    for key, value in default.items():
        if key in loaded:
            if isinstance(value, dict) and isinstance(loaded[key], dict):
                default[key] = merge_configs(value, loaded[key])
            else:
                default[key] = loaded[key]
    return default


class ConfigManager:
    """Holds one job configuration, always complete with respect to defaults."""

    def __init__(self, config: Optional[Dict] = None, config_file: Optional[str] = None):
        """
        Initialize config manager.

        Args:
            config: Partial config dictionary to merge over the defaults
            config_file: Path of the JSON file the config came from, if any
        """
        self.config_file = config_file
        self.config = merge_configs(copy.deepcopy(DEFAULT_CONFIG), config or {})

    @classmethod
    def from_file(cls, config_file: str) -> "ConfigManager":
        """
        Load a JSON job file.

        Raises:
            ConfigValidationError: If the file cannot be read or is not a JSON object
        """
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid JSON in config file:\n  Line {e.lineno}: {e.msg}")
        except OSError as e:
            raise ConfigValidationError(f"Failed to load config file: {e}")
        if not isinstance(loaded, dict):
            raise ConfigValidationError("Config file must contain a JSON object")
        return cls(loaded, config_file=config_file)

    def save(self, config_file: Optional[str] = None):
        """Save current config to file."""
        path = config_file or self.config_file
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.config, f, indent=4)

    def get(self, *keys: str, default: Any = None) -> Any:
        """
        Get config value by nested keys.

        Example:
            config.get("effect", "point_size")  # Returns 3
        """
        value = self.config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, *keys: str, value: Any):
        """
        Set config value by nested keys.

        Example:
            config.set("effect", "type", value="halftone")
        """
        if len(keys) == 0:
            return

        current = self.config
        for key in keys[:-1]:
            if key not in current or not isinstance(current[key], dict):
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value

    def validated(self, require_paths: bool = True,
                  palettes: Optional[PaletteManager] = None) -> Dict[str, Any]:
        base_dir = Path(self.config_file).parent if self.config_file else None
        return validate_config(self.config, base_dir=base_dir,
                               require_paths=require_paths, palettes=palettes)

    def effect_config(self, palettes: Optional[PaletteManager] = None) -> EffectConfig:
        return build_effect_config(self.validated(require_paths=False, palettes=palettes),
                                   palettes=palettes)


def _check_enum(errors: List[str], enum_cls, value, label: str):
    try:
        enum_cls.from_name(value)
    except ValueError:
        choices = [m.value for m in enum_cls]
        errors.append(f"Invalid {label}: '{value}'. Must be one of: {choices}")


def validate_config(config: Dict[str, Any], base_dir: Optional[Path] = None,
                    require_paths: bool = True,
                    palettes: Optional[PaletteManager] = None) -> Dict[str, Any]:
    """
    Validate configuration and return a normalized copy.

    Args:
        config: Config dictionary (already merged with defaults)
        base_dir: Directory relative input/output paths resolve against
        require_paths: Whether 'input' and 'output' must be present
        palettes: Palette lookup for the 'palette' field

    Returns:
        Validated and normalized config

    Raises:
        ConfigValidationError: If validation fails, listing every problem
    """
    config = copy.deepcopy(config)
    errors = []

    if require_paths:
        for key in ("input", "output"):
            if not config.get(key):
                errors.append(f"Missing required field: '{key}'")

    bad_sections = [s for s in ("effect", "source") if not isinstance(config.get(s), dict)]
    errors.extend(f"'{s}' must be an object/dictionary" for s in bad_sections)
    if bad_sections:
        raise ConfigValidationError(_format_errors(errors))

    effect = config["effect"]
    _check_enum(errors, EffectType, effect.get("type"), "effect type")
    _check_enum(errors, DitherAlgorithm, effect.get("algorithm"), "dither algorithm")

    for section, key, lower, inclusive in _NUMERIC_FIELDS:
        raw = config[section].get(key)
        try:
            value = float(raw)
        except (TypeError, ValueError):
            errors.append(f"'{section}.{key}' must be a number")
            continue
        if value < lower or (not inclusive and value == lower):
            op = ">=" if inclusive else ">"
            errors.append(f"'{section}.{key}' must be {op} {lower:g}")
        config[section][key] = value

    for key in ("ink", "paper"):
        try:
            parse_hex_color(effect.get(key))
        except InvalidColorError:
            errors.append(f"'effect.{key}' must be a hex color like '#1a2b3c'")

    palette_name = config.get("palette")
    if palette_name:
        palettes = palettes or PaletteManager()
        if palettes.get_palette(palette_name) is None:
            errors.append(f"Unknown palette: '{palette_name}'")

    if errors:
        raise ConfigValidationError(_format_errors(errors))

    if base_dir is not None:
        for key in ("input", "output"):
            if config.get(key):
                path = Path(config[key])
                if not path.is_absolute():
                    config[key] = str((base_dir / path).resolve())

    if require_paths and not os.path.exists(config["input"]):
        raise ConfigValidationError(f"Input file/directory not found: {config['input']}")

    return config


def _format_errors(errors: List[str]) -> str:
    return "Configuration validation failed:\n" + "\n".join(f"  • {e}" for e in errors)


def build_effect_config(config: Dict[str, Any],
                        palettes: Optional[PaletteManager] = None) -> EffectConfig:
    """Turn a validated config dictionary into an EffectConfig."""
    effect = config["effect"]
    source = config["source"]

    ink = Color.from_hex(effect["ink"])
    paper = Color.from_hex(effect["paper"])
    if config.get("palette"):
        palettes = palettes or PaletteManager()
        ink, paper = palettes.get_palette_colors(config["palette"])

    return EffectConfig(
        effect_type=EffectType.from_name(effect["type"]),
        algorithm=DitherAlgorithm.from_name(effect["algorithm"]),
        point_size=float(effect["point_size"]),
        ink_color=ink,
        paper_color=paper,
        brightness=float(effect["brightness"]),
        contrast=float(effect["contrast"]),
        detail=float(effect["detail"]),
        effects_enabled=bool(config.get("effects_enabled", True)),
        source=SourceAdjustments(
            brightness=float(source["brightness"]),
            contrast=float(source["contrast"]),
            saturation=float(source["saturation"]),
        ),
    )
