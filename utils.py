"""
Utility functions for the effects application: colour conversion, PIL image
conversion and ink/paper palette management.
"""

import json
import logging
import os
from typing import Dict, List, Optional, Tuple

import numpy as np
from PIL import Image

from effect_config import Color
from raster_buffer import RasterBuffer

__all__ = [
    # Functions
    'load_palettes_from_file',
    'save_palettes_to_file',
    'hex_to_rgb',
    'rgb_to_hex',
    'validate_image_file',
    'image_to_raster',
    'raster_to_image',
    # Classes
    'PaletteManager',
]

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.bmp', '.tiff', '.webp'}

BUILTIN_PALETTES: Tuple[Dict[str, str], ...] = (
    {'name': 'bw', 'ink': '#000000', 'paper': '#ffffff'},
    {'name': 'red', 'ink': '#dc2626', 'paper': '#fef3c7'},
    {'name': 'purple', 'ink': '#7c3aed', 'paper': '#fce7f3'},
    {'name': 'green', 'ink': '#059669', 'paper': '#d1fae5'},
    {'name': 'blue', 'ink': '#2563eb', 'paper': '#dbeafe'},
    {'name': 'orange', 'ink': '#ea580c', 'paper': '#ffedd5'},
)


def load_palettes_from_file(filepath: str = "palette.json") -> List[Dict]:
    """
    Load custom ink/paper palettes from a JSON file.

    Args:
        filepath: Path to palette JSON file

    Returns:
        List of palette dictionaries with 'name', 'ink' and 'paper' keys
    """
    if not os.path.exists(filepath):
        return []

    try:
        with open(filepath, 'r', encoding='utf-8') as f:
            palettes = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading palettes: {e}")
        return []
    if not isinstance(palettes, list):
        return []
    return [p for p in palettes
            if isinstance(p, dict) and {'name', 'ink', 'paper'} <= p.keys()]


def save_palettes_to_file(palettes: List[Dict], filepath: str = "palette.json"):
    """
    Save palettes to a JSON file.

    Args:
        palettes: List of palette dictionaries
        filepath: Path to save JSON file
    """
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(palettes, f, indent=4)


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """
    Convert hex color string to RGB tuple.

    Args:
        hex_color: Hex string like "#FF0000" or "FF0000"

    Returns:
        RGB tuple (r, g, b); (0, 0, 0) if the string is malformed
    """
    return Color.from_hex(hex_color).rgb


def rgb_to_hex(rgb: Tuple[int, int, int]) -> str:
    """
    Convert RGB tuple to hex color string.

    Args:
        rgb: RGB tuple (r, g, b)

    Returns:
        Hex string like "#ff0000"
    """
    return Color(*rgb).to_hex()


def validate_image_file(filepath: str) -> bool:
    """
    Check if file is a valid image file.

    Args:
        filepath: Path to image file

    Returns:
        True if valid image file
    """
    ext = os.path.splitext(filepath)[1].lower()
    return ext in IMAGE_EXTENSIONS and os.path.isfile(filepath)


def image_to_raster(image: Image.Image) -> RasterBuffer:
    """Decode any PIL image into an RGBA RasterBuffer."""
    if image.mode != 'RGBA':
        image = image.convert('RGBA')
    return RasterBuffer.from_array(np.asarray(image, dtype=np.uint8))


def raster_to_image(raster: RasterBuffer) -> Image.Image:
    """Wrap a RasterBuffer as an RGBA PIL image, ready to encode."""
    return Image.fromarray(np.ascontiguousarray(raster.pixels), 'RGBA')


class PaletteManager:
    """
    Manages ink/paper palettes: the built-in presets plus custom palettes
    kept in a JSON file. Custom palettes shadow presets of the same name.
    """

    def __init__(self, filepath: str = "palette.json"):
        self.filepath = filepath
        self.palettes = []
        self.load()

    def load(self):
        """Load custom palettes from file."""
        self.palettes = load_palettes_from_file(self.filepath)

    def save(self):
        """Save custom palettes to file."""
        save_palettes_to_file(self.palettes, self.filepath)

    def add_palette(self, name: str, ink: str, paper: str):
        """Add or update a custom palette."""
        for pal in self.palettes:
            if pal['name'] == name:
                pal['ink'] = ink
                pal['paper'] = paper
                self.save()
                return

        self.palettes.append({'name': name, 'ink': ink, 'paper': paper})
        self.save()

    def remove_palette(self, name: str):
        """Remove a custom palette by name."""
        self.palettes = [p for p in self.palettes if p['name'] != name]
        self.save()

    def get_palette(self, name: str) -> Optional[Dict]:
        """Get palette by name, custom palettes first."""
        for pal in list(self.palettes) + list(BUILTIN_PALETTES):
            if pal['name'] == name:
                return pal
        return None

    def get_palette_colors(self, name: str) -> Optional[Tuple[Color, Color]]:
        """Get (ink, paper) as Colors."""
        pal = self.get_palette(name)
        if pal:
            return Color.from_hex(pal['ink']), Color.from_hex(pal['paper'])
        return None

    def list_palette_names(self) -> List[str]:
        """Get all palette names, custom ones first, without duplicates."""
        names = [p['name'] for p in self.palettes]
        names.extend(p['name'] for p in BUILTIN_PALETTES if p['name'] not in names)
        return names
