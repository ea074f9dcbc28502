"""
Character-grid ("ASCII") and halftone dot rendering.

Both engines sample the source on a coarse grid, turn each cell's luminance
into a mark (a glyph from a density ramp, or a dot radius) and paint the
marks in ink over a paper-coloured canvas.
"""

import logging
import math
from functools import lru_cache
from typing import List

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from effect_config import EffectConfig
from effect_engine import BaseEffectEngine
from raster_buffer import RasterBuffer
from tone_adjuster import ToneAdjuster, luminance

__all__ = [
    'ASCII_RAMP',
    'CELL_WIDTH',
    'CELL_HEIGHT',
    'glyph_indices',
    'glyph_mask',
    'AsciiEngine',
    'dot_radii',
    'fill_circle',
    'HalftoneEngine',
]

logger = logging.getLogger(__name__)


# -------------------- ASCII --------------------

# Darkest glyph first, blank last.
ASCII_RAMP = "@%#*+=-:. "
CELL_WIDTH = 6
CELL_HEIGHT = 10


def glyph_indices(lum: np.ndarray, ramp: str = ASCII_RAMP) -> np.ndarray:
    """Map adjusted luminance in [0, 255] to ramp positions floor(L/255 * (N-1))."""
    n = len(ramp)
    idx = np.floor(np.asarray(lum, dtype=np.float64) / 255.0 * (n - 1)).astype(np.int64)
    return np.clip(idx, 0, n - 1)


@lru_cache(maxsize=256)
def glyph_mask(char: str, font_px: float) -> np.ndarray:
    """
    Binary coverage of one character drawn top-left at (0, 0) in the default
    font. Rendered without anti-aliasing so the canvas stays two-coloured.
    """
    font = ImageFont.load_default(size=font_px)
    left, top, right, bottom = font.getbbox(char)
    w, h = max(1, int(math.ceil(right))), max(1, int(math.ceil(bottom)))
    img = Image.new('L', (w, h), 0)
    draw = ImageDraw.Draw(img)
    draw.fontmode = "1"
    draw.text((0, 0), char, fill=255, font=font)
    mask = np.asarray(img) > 0
    mask.setflags(write=False)
    return mask


def _stamp(canvas: np.ndarray, mask: np.ndarray, x0: int, y0: int, color: np.ndarray):
    """Paint color wherever mask is set, with the mask's top-left at (x0, y0)."""
    h = min(mask.shape[0], canvas.shape[0] - y0)
    w = min(mask.shape[1], canvas.shape[1] - x0)
    if h <= 0 or w <= 0:
        return
    region = canvas[y0:y0 + h, x0:x0 + w]
    region[mask[:h, :w]] = color


class AsciiEngine(BaseEffectEngine):
    """
    Renders the source as a grid of glyphs, one per 6x10 cell scaled by point_size.

    A source smaller than one cell yields a paper-only canvas of the source size.
    """
    name = "ascii"

    def __init__(self, ramp: str = ASCII_RAMP):
        self.ramp = ramp

    def glyph_grid(self, raster: RasterBuffer, config: EffectConfig) -> List[str]:
        """The characters the engine would draw, one string per grid row."""
        cols, rows = self._grid_size(raster, config.point_size)
        if cols == 0 or rows == 0:
            return []
        small = raster.resample(cols, rows)
        lum = ToneAdjuster.adjust_luminance(luminance(small.rgb),
                                            config.brightness, config.contrast)
        idx = glyph_indices(lum, self.ramp)
        return [''.join(self.ramp[i] for i in row) for row in idx]

    def apply(self, raster: RasterBuffer, config: EffectConfig) -> RasterBuffer:
        ps = config.point_size
        paper = config.paper_color.rgba
        lines = self.glyph_grid(raster, config)
        if not lines:
            logger.debug("Source %dx%d smaller than one glyph cell", *raster.size)
            return RasterBuffer.filled(raster.width, raster.height, paper)

        cols, rows = len(lines[0]), len(lines)
        cell_w, cell_h = CELL_WIDTH * ps, CELL_HEIGHT * ps
        canvas_w = max(1, int(math.floor(cols * cell_w)))
        canvas_h = max(1, int(math.floor(rows * cell_h)))
        logger.debug("ASCII grid %dx%d on %dx%d canvas", cols, rows, canvas_w, canvas_h)

        out = RasterBuffer.filled(canvas_w, canvas_h, paper)
        canvas = out.pixels
        ink = np.array(config.ink_color.rgba, dtype=np.uint8)
        font_px = CELL_HEIGHT * ps
        for y, line in enumerate(lines):
            y0 = int(math.floor(y * cell_h))
            for x, char in enumerate(line):
                mask = glyph_mask(char, font_px)
                if not mask.any():
                    continue
                _stamp(canvas, mask, int(math.floor(x * cell_w)), y0, ink)
        return out

    @staticmethod
    def _grid_size(raster: RasterBuffer, point_size: float):
        cols = int(math.floor(raster.width / (CELL_WIDTH * point_size)))
        rows = int(math.floor(raster.height / (CELL_HEIGHT * point_size)))
        return cols, rows


# -------------------- Halftone --------------------

def dot_radii(lum: np.ndarray, max_radius: float, detail: float) -> np.ndarray:
    """radius = ((255 - L) / 255) * max_radius * detail; darker means bigger."""
    lum = np.asarray(lum, dtype=np.float64)
    return (255.0 - lum) / 255.0 * max_radius * detail


def fill_circle(canvas: np.ndarray, cx: float, cy: float, radius: float, color: np.ndarray):
    """
    Fill every pixel whose centre lies within radius of (cx, cy), clipped to
    the canvas.
    """
    height, width = canvas.shape[:2]
    x0 = max(0, int(math.floor(cx - radius)))
    x1 = min(width, int(math.ceil(cx + radius)) + 1)
    y0 = max(0, int(math.floor(cy - radius)))
    y1 = min(height, int(math.ceil(cy + radius)) + 1)
    if x0 >= x1 or y0 >= y1:
        return
    ys, xs = np.mgrid[y0:y1, x0:x1]
    inside = (xs + 0.5 - cx) ** 2 + (ys + 0.5 - cy) ** 2 <= radius * radius
    canvas[y0:y1, x0:x1][inside] = color


class HalftoneEngine(BaseEffectEngine):
    """
    Newspaper-style halftone: one ink dot per grid cell on a full-resolution
    paper canvas. spacing = point_size * 4, and the largest dot fills its cell.
    """
    name = "halftone"

    # Dots at or below this radius are not drawn.
    MIN_RADIUS = 0.5

    def apply(self, raster: RasterBuffer, config: EffectConfig) -> RasterBuffer:
        spacing = config.point_size * 4
        max_radius = spacing / 2
        cols = max(1, int(math.ceil(raster.width / spacing)))
        rows = max(1, int(math.ceil(raster.height / spacing)))
        logger.debug("Halftone grid %dx%d, spacing %.2f", cols, rows, spacing)

        out = RasterBuffer.filled(raster.width, raster.height, config.paper_color.rgba)
        small = raster.resample(cols, rows)
        lum = ToneAdjuster.adjust_luminance(luminance(small.rgb),
                                            config.brightness, config.contrast)
        radii = dot_radii(lum, max_radius, config.detail)

        canvas = out.pixels
        ink = np.array(config.ink_color.rgba, dtype=np.uint8)
        for y in range(rows):
            cy = y * spacing + spacing / 2
            for x in range(cols):
                r = radii[y, x]
                if r > self.MIN_RADIUS:
                    fill_circle(canvas, x * spacing + spacing / 2, cy, r, ink)
        return out
