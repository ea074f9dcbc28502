"""
Fixed-size RGBA8 raster used as the common currency between every stage of
the effects engine: the tone stage, the three stylization engines and the
collaborators that decode or encode files.
"""

from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

__all__ = [
    'EffectError',
    'InvalidDimensionsError',
    'OutOfBoundsError',
    'ResampleMethod',
    'RasterBuffer',
]


# -------------------- Errors --------------------

class EffectError(Exception):
    """Base class for every failure raised by the effects engine."""


class InvalidDimensionsError(EffectError, ValueError):
    """Raised when a width/height is below 1 or pixel data has the wrong shape."""


class OutOfBoundsError(EffectError, IndexError):
    """Raised on pixel access outside the buffer. Always a programming error."""


# -------------------- Resampling --------------------

class ResampleMethod(Enum):
    AREA = "area"
    NEAREST = "nearest"


_PIL_RESAMPLE = {
    ResampleMethod.AREA: Image.Resampling.BOX,
    ResampleMethod.NEAREST: Image.Resampling.NEAREST,
}


def _check_dimensions(width: int, height: int):
    if int(width) != width or int(height) != height:
        raise InvalidDimensionsError(f"Dimensions must be integers, got {width}x{height}")
    if width < 1 or height < 1:
        raise InvalidDimensionsError(f"Dimensions must be at least 1x1, got {width}x{height}")


# -------------------- Raster Buffer --------------------

class RasterBuffer:
    """
    A width x height grid of 8-bit RGBA pixels, row-major with row 0 first.

    Pixels live in a numpy array of shape (height, width, 4); get_pixel/set_pixel
    take (x, y) while the array itself is indexed [y, x].
    """

    def __init__(self, width: int, height: int, pixels: Optional[np.ndarray] = None):
        _check_dimensions(width, height)
        self._width = int(width)
        self._height = int(height)
        if pixels is None:
            self._pixels = np.zeros((self._height, self._width, 4), dtype=np.uint8)
        else:
            arr = np.asarray(pixels)
            if arr.shape != (self._height, self._width, 4):
                raise InvalidDimensionsError(
                    f"Pixel data of shape {arr.shape} does not match "
                    f"{self._width}x{self._height} RGBA"
                )
            self._pixels = np.ascontiguousarray(arr, dtype=np.uint8).copy()

    @classmethod
    def filled(cls, width: int, height: int,
               rgba: Sequence[int] = (0, 0, 0, 255)) -> "RasterBuffer":
        """Allocate a buffer with every pixel set to one RGBA value."""
        _check_dimensions(width, height)
        arr = np.empty((int(height), int(width), 4), dtype=np.uint8)
        arr[:, :] = tuple(rgba)
        return cls(width, height, arr)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RasterBuffer":
        """
        Wrap an (H, W, 3) or (H, W, 4) uint8 array. RGB input gets alpha 255.
        """
        arr = np.asarray(arr)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise InvalidDimensionsError(f"Expected (H, W, 3|4) array, got {arr.shape}")
        h, w = arr.shape[:2]
        if arr.shape[2] == 3:
            alpha = np.full((h, w, 1), 255, dtype=np.uint8)
            arr = np.concatenate([arr.astype(np.uint8), alpha], axis=2)
        return cls(w, h, arr)

    @classmethod
    def from_rows(cls, rows: Iterable[Iterable[Tuple[int, int, int, int]]]) -> "RasterBuffer":
        """Build a buffer from nested rows of (r, g, b, a) tuples."""
        arr = np.array([list(row) for row in rows], dtype=np.uint8)
        return cls.from_array(arr)

    # ---- shape ----

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> Tuple[int, int]:
        return self._width, self._height

    @property
    def pixels(self) -> np.ndarray:
        """The live (H, W, 4) pixel array. Mutating it mutates the buffer."""
        return self._pixels

    @property
    def rgb(self) -> np.ndarray:
        return self._pixels[:, :, :3]

    # ---- pixel access ----

    def _check_bounds(self, x: int, y: int):
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise OutOfBoundsError(
                f"Pixel ({x}, {y}) outside {self._width}x{self._height} buffer"
            )

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        self._check_bounds(x, y)
        r, g, b, a = self._pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def set_pixel(self, x: int, y: int, rgba: Sequence[int]):
        self._check_bounds(x, y)
        self._pixels[y, x] = tuple(rgba)

    # ---- derived buffers ----

    def copy(self) -> "RasterBuffer":
        return RasterBuffer(self._width, self._height, self._pixels)

    def with_opaque_alpha(self) -> "RasterBuffer":
        out = self.copy()
        out._pixels[:, :, 3] = 255
        return out

    def resample(self, width: int, height: int,
                 method: ResampleMethod = ResampleMethod.AREA) -> "RasterBuffer":
        """
        Produce a new buffer of the target size by area (box) or nearest sampling.

        Colour and alpha are resampled independently so that transparent pixels
        never bleed into the colour channels.
        """
        _check_dimensions(width, height)
        width, height = int(width), int(height)
        if (width, height) == self.size:
            return self.copy()
        resample = _PIL_RESAMPLE[method]
        rgb = Image.fromarray(np.ascontiguousarray(self.rgb), 'RGB')
        alpha = Image.fromarray(np.ascontiguousarray(self._pixels[:, :, 3]), 'L')
        rgb = np.asarray(rgb.resize((width, height), resample), dtype=np.uint8)
        alpha = np.asarray(alpha.resize((width, height), resample), dtype=np.uint8)
        return RasterBuffer(width, height, np.dstack([rgb, alpha]))

    def upscale(self, factor: int) -> "RasterBuffer":
        """Nearest-neighbour block enlargement, each pixel becoming factor x factor."""
        factor = int(factor)
        if factor < 1:
            raise InvalidDimensionsError(f"Upscale factor must be at least 1, got {factor}")
        if factor == 1:
            return self.copy()
        arr = np.repeat(np.repeat(self._pixels, factor, axis=0), factor, axis=1)
        return RasterBuffer(self._width * factor, self._height * factor, arr)

    # ---- comparison ----

    def tobytes(self) -> bytes:
        return self._pixels.tobytes()

    def __eq__(self, other) -> bool:
        if not isinstance(other, RasterBuffer):
            return NotImplemented
        return self.size == other.size and np.array_equal(self._pixels, other._pixels)

    __hash__ = None

    def __repr__(self) -> str:
        return f"RasterBuffer({self._width}x{self._height})"
