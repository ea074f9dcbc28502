"""
Parameter types for one effects invocation: colours, the effect and
algorithm enumerations, source adjustments and the immutable EffectConfig.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from raster_buffer import EffectError

__all__ = [
    'InvalidColorError',
    'parse_hex_color',
    'Color',
    'EffectType',
    'DitherAlgorithm',
    'SourceAdjustments',
    'EffectConfig',
]

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r'^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$', re.IGNORECASE)


class InvalidColorError(EffectError, ValueError):
    """Raised for a malformed hex colour. Color.from_hex recovers from it."""


def parse_hex_color(text: str) -> Tuple[int, int, int]:
    """
    Parse "#RRGGBB" or "RRGGBB" (case-insensitive) into an (r, g, b) tuple.

    Raises:
        InvalidColorError: if the string is not exactly six hex digits.
    """
    match = _HEX_RE.match(text.strip()) if isinstance(text, str) else None
    if not match:
        raise InvalidColorError(f"Invalid hex color: {text!r}")
    return tuple(int(part, 16) for part in match.groups())


# -------------------- Colors --------------------

@dataclass(frozen=True)
class Color:
    r: int = 0
    g: int = 0
    b: int = 0

    @classmethod
    def from_hex(cls, text: str) -> "Color":
        """Parse a hex colour, falling back to black for malformed input."""
        try:
            return cls(*parse_hex_color(text))
        except InvalidColorError as e:
            logger.warning("%s, using black", e)
            return cls(0, 0, 0)

    def to_hex(self) -> str:
        return f'#{self.r:02x}{self.g:02x}{self.b:02x}'

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return self.r, self.g, self.b

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        return self.r, self.g, self.b, 255


BLACK = Color(0, 0, 0)
WHITE = Color(255, 255, 255)


# -------------------- Enumerations --------------------

def _squash(name: str) -> str:
    return re.sub(r'[^a-z0-9]', '', str(name).lower())


class _NamedEnum(Enum):

    @classmethod
    def from_name(cls, name):
        """
        Look up a member by value or name, ignoring case and separators, so
        "floyd_steinberg", "Floyd-Steinberg" and "FloydSteinberg" all match.
        """
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            raise ValueError(f"Unknown {cls.__name__}: {name!r}")
        key = _squash(name)
        for member in cls:
            if key in (_squash(member.value), _squash(member.name)):
                return member
        raise ValueError(f"Unknown {cls.__name__}: {name!r}")


class EffectType(_NamedEnum):
    DITHER = "dither"
    ASCII = "ascii"
    HALFTONE = "halftone"
    NONE = "none"


class DitherAlgorithm(_NamedEnum):
    FLOYD_STEINBERG = "floyd_steinberg"
    ATKINSON = "atkinson"
    JARVIS_JUDICE_NINKE = "jarvis_judice_ninke"
    SIERRA = "sierra"
    STUCKI = "stucki"


# -------------------- Configuration --------------------

@dataclass(frozen=True)
class SourceAdjustments:
    """Tone adjustment applied to the source before any effect runs."""
    brightness: float = 1.0
    contrast: float = 1.0
    saturation: float = 1.0


@dataclass(frozen=True)
class EffectConfig:
    """
    Everything one engine invocation needs. Ranges are the caller's to
    validate: point_size >= 1, brightness > 0, contrast >= 0, detail >= 0.
    """
    effect_type: EffectType = EffectType.DITHER
    algorithm: DitherAlgorithm = DitherAlgorithm.FLOYD_STEINBERG
    point_size: float = 3.0
    ink_color: Color = BLACK
    paper_color: Color = WHITE
    brightness: float = 1.0
    contrast: float = 1.2
    detail: float = 1.0
    effects_enabled: bool = True
    source: SourceAdjustments = field(default_factory=SourceAdjustments)

    @property
    def bg_color(self) -> Color:
        return self.paper_color
