"""
The capability every effect pipeline implements, plus the identity pass.
"""

from effect_config import EffectConfig
from raster_buffer import RasterBuffer

__all__ = [
    'BaseEffectEngine',
    'IdentityEngine',
]


class BaseEffectEngine:
    """
    Base class for effect engines.
    Each engine implements .apply(raster, config) and returns a new, fully
    opaque RasterBuffer. Engines hold no state between calls.
    """
    name = "base"

    def apply(self, raster: RasterBuffer, config: EffectConfig) -> RasterBuffer:
        raise NotImplementedError


class IdentityEngine(BaseEffectEngine):
    """
    No effect at all; the (already tone-adjusted) source comes back with alpha 255.
    """
    name = "none"

    def apply(self, raster: RasterBuffer, config: EffectConfig) -> RasterBuffer:
        return raster.with_opaque_alpha()
