"""
Brightness / contrast / saturation adjustment shared by the source stage and
the three effect engines.
"""

from typing import Optional

import numpy as np

from effect_config import SourceAdjustments
from raster_buffer import RasterBuffer

__all__ = [
    'luminance',
    'ToneAdjuster',
]


def luminance(rgb: np.ndarray) -> np.ndarray:
    """
    Rec.601 luma 0.299R + 0.587G + 0.114B of an (..., 3) array.

    Integer input is weighted in thousandths so that grey pixels map exactly
    onto their channel value (128,128,128 -> 128.0).
    """
    rgb = np.asarray(rgb)
    if np.issubdtype(rgb.dtype, np.integer):
        wide = rgb.astype(np.int64)
        return (299 * wide[..., 0] + 587 * wide[..., 1] + 114 * wide[..., 2]) / 1000.0
    rgb = rgb.astype(np.float64)
    return 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]


def _to_uint8(values: np.ndarray) -> np.ndarray:
    return np.rint(np.clip(values, 0, 255)).astype(np.uint8)


class ToneAdjuster:
    """
    Per-pixel tone math. Contrast is applied around mid-grey, then brightness
    scales the result, then everything is clamped to [0, 255]:

        v' = ((v/255 - 0.5) * contrast + 0.5) * 255
        v'' = v' * brightness
    """

    @staticmethod
    def adjust_values(values: np.ndarray, brightness: float, contrast: float) -> np.ndarray:
        """Contrast then brightness on any float array, clamped to [0, 255]."""
        values = np.asarray(values, dtype=np.float64)
        out = ((values / 255.0 - 0.5) * contrast + 0.5) * 255.0
        out *= brightness
        return np.clip(out, 0.0, 255.0)

    @staticmethod
    def adjust_luminance(lum: np.ndarray, brightness: float, contrast: float) -> np.ndarray:
        """Effect-stage adjustment of a luminance map (ASCII and halftone cells)."""
        return ToneAdjuster.adjust_values(lum, brightness, contrast)

    @staticmethod
    def apply(raster: RasterBuffer, brightness: float, contrast: float,
              saturation: Optional[float] = None) -> RasterBuffer:
        """
        Adjust R, G and B of every pixel and return a new buffer. Alpha is kept.

        When saturation is given it runs last, pulling each channel towards the
        luminance of the already contrast/brightness-adjusted pixel.
        """
        rgb = ToneAdjuster.adjust_values(raster.rgb, brightness, contrast)
        if saturation is not None:
            lum = luminance(rgb)[..., np.newaxis]
            rgb = np.clip(lum + (rgb - lum) * saturation, 0.0, 255.0)
        out = raster.copy()
        out.pixels[:, :, :3] = _to_uint8(rgb)
        return out

    @staticmethod
    def adjust_source(raster: RasterBuffer, adjustments: SourceAdjustments) -> RasterBuffer:
        return ToneAdjuster.apply(raster, adjustments.brightness, adjustments.contrast,
                                  adjustments.saturation)

    @staticmethod
    def adjust_effect(raster: RasterBuffer, brightness: float, contrast: float) -> RasterBuffer:
        """Effect-stage RGB adjustment: no saturation, detail is handled by the caller."""
        return ToneAdjuster.apply(raster, brightness, contrast)
