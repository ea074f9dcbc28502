"""
Error-diffusion dithering: the fixed table of diffusion kernels and the
engine that downsamples, greys, diffuses, thresholds and recolours a raster.
"""

import logging
import math
from dataclasses import dataclass
from fractions import Fraction
from types import MappingProxyType
from typing import List, Mapping, Tuple

import numpy as np

from effect_config import DitherAlgorithm, EffectConfig
from effect_engine import BaseEffectEngine
from raster_buffer import RasterBuffer
from tone_adjuster import ToneAdjuster, luminance

__all__ = [
    'DiffusionKernel',
    'KERNELS',
    'get_kernel',
    'dither_dimensions',
    'grayscale_with_detail',
    'diffuse_error',
    'DitherEngine',
]

logger = logging.getLogger(__name__)

THRESHOLD = 128.0


# -------------------- Diffusion Kernels --------------------

@dataclass(frozen=True)
class DiffusionKernel:
    """
    Error-diffusion weights as an integer matrix over a common divisor.

    Row 0 is the current row; anchor_column marks the current pixel inside it.
    Every non-zero weight must land on a pixel the row-major scan has not
    visited yet: right of the anchor on row 0, anywhere on later rows.
    """
    name: str
    matrix: Tuple[Tuple[int, ...], ...]
    divisor: int
    anchor_column: int

    def __post_init__(self):
        if self.divisor <= 0:
            raise ValueError(f"{self.name}: divisor must be positive")
        widths = {len(row) for row in self.matrix}
        if len(widths) != 1:
            raise ValueError(f"{self.name}: kernel rows must share one width")
        if not 0 <= self.anchor_column < widths.pop():
            raise ValueError(f"{self.name}: anchor column outside the kernel")
        for row in self.matrix:
            if any(w < 0 for w in row):
                raise ValueError(f"{self.name}: weights must be non-negative")
        if any(self.matrix[0][:self.anchor_column + 1]):
            raise ValueError(
                f"{self.name}: row 0 may only weight columns right of the anchor"
            )

    @property
    def weights(self) -> np.ndarray:
        """Normalized float weights, matrix / divisor."""
        return np.array(self.matrix, dtype=np.float64) / self.divisor

    @property
    def total_weight(self) -> Fraction:
        """Exact fraction of the error this kernel passes on."""
        return Fraction(sum(sum(row) for row in self.matrix), self.divisor)

    def taps(self) -> List[Tuple[int, int, float]]:
        """Non-zero weights as (dx, dy, weight) relative to the current pixel."""
        return [
            (dx - self.anchor_column, dy, weight / self.divisor)
            for dy, row in enumerate(self.matrix)
            for dx, weight in enumerate(row)
            if weight
        ]


# Atkinson passes on only 6/8 of the error; the lost quarter is what gives it
# its high-contrast look and must not be renormalized.
KERNELS: Mapping[DitherAlgorithm, DiffusionKernel] = MappingProxyType({
    DitherAlgorithm.FLOYD_STEINBERG: DiffusionKernel(
        "Floyd-Steinberg",
        ((0, 0, 7),
         (3, 5, 1)),
        16, 1),
    DitherAlgorithm.ATKINSON: DiffusionKernel(
        "Atkinson",
        ((0, 0, 1, 1),
         (1, 1, 1, 0),
         (0, 1, 0, 0)),
        8, 1),
    DitherAlgorithm.JARVIS_JUDICE_NINKE: DiffusionKernel(
        "Jarvis-Judice-Ninke",
        ((0, 0, 0, 7, 5),
         (3, 5, 7, 5, 3),
         (1, 3, 5, 3, 1)),
        48, 2),
    DitherAlgorithm.SIERRA: DiffusionKernel(
        "Sierra",
        ((0, 0, 0, 5, 3),
         (2, 4, 5, 4, 2),
         (0, 2, 3, 2, 0)),
        32, 2),
    DitherAlgorithm.STUCKI: DiffusionKernel(
        "Stucki",
        ((0, 0, 0, 8, 4),
         (2, 4, 8, 4, 2),
         (1, 2, 4, 2, 1)),
        42, 2),
})


def get_kernel(algorithm: DitherAlgorithm) -> DiffusionKernel:
    try:
        return KERNELS[algorithm]
    except KeyError:
        raise ValueError(f"Unrecognized DitherAlgorithm: {algorithm}") from None


# -------------------- Dither Phases --------------------

def dither_dimensions(width: int, height: int, point_size: float) -> Tuple[int, int]:
    """Downsampled grid size, floor(size / point_size), never below 1."""
    return (max(1, int(math.floor(width / point_size))),
            max(1, int(math.floor(height / point_size))))


def grayscale_with_detail(raster: RasterBuffer, detail: float) -> np.ndarray:
    """
    Float32 luminance map blended towards mid-grey:
    gray = L * detail + 128 * (1 - detail).
    """
    lum = luminance(raster.rgb)
    return (lum * detail + 128.0 * (1.0 - detail)).astype(np.float32)


def diffuse_error(gray: np.ndarray, kernel: DiffusionKernel) -> np.ndarray:
    """
    Threshold gray in place to 0/255, pushing each pixel's quantization
    error onto its unvisited neighbours.

    The scan is strictly row-major. Error aimed outside the grid is dropped.
    """
    height, width = gray.shape
    taps = kernel.taps()
    for y in range(height):
        row = gray[y]
        for x in range(width):
            old = row[x]
            new = np.float32(0.0) if old < THRESHOLD else np.float32(255.0)
            row[x] = new
            error = np.float32(old - new)
            if not error:
                continue
            for dx, dy, weight in taps:
                nx = x + dx
                ny = y + dy
                if 0 <= nx < width and ny < height:
                    gray[ny, nx] += error * weight
    return gray


# -------------------- Dither Engine --------------------

class DitherEngine(BaseEffectEngine):
    """
    Error-diffusion dither in four strictly ordered phases:
      1) downsample by point_size
      2) tone-adjust, convert to grey and apply the detail blend
      3) diffuse error with the configured kernel
      4) recolour: cells quantized to 0 become ink, the rest paper

    The result has the downsampled dimensions; block-enlarging it for display
    is left to the caller (see RasterBuffer.upscale).
    """
    name = "dither"

    def apply(self, raster: RasterBuffer, config: EffectConfig) -> RasterBuffer:
        width, height = dither_dimensions(raster.width, raster.height, config.point_size)
        kernel = get_kernel(config.algorithm)
        logger.debug("Dithering %dx%d -> %dx%d with %s",
                     raster.width, raster.height, width, height, kernel.name)

        small = raster.resample(width, height)
        small = ToneAdjuster.adjust_effect(small, config.brightness, config.contrast)
        gray = grayscale_with_detail(small, config.detail)
        diffuse_error(gray, kernel)
        return self._recolor(gray, config)

    @staticmethod
    def _recolor(gray: np.ndarray, config: EffectConfig) -> RasterBuffer:
        height, width = gray.shape
        is_ink = (gray == 0)[..., np.newaxis]
        ink = np.array(config.ink_color.rgba, dtype=np.uint8)
        paper = np.array(config.paper_color.rgba, dtype=np.uint8)
        return RasterBuffer(width, height, np.where(is_ink, ink, paper))
