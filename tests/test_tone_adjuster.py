import numpy as np
import pytest

from effect_config import SourceAdjustments
from raster_buffer import RasterBuffer
from tone_adjuster import ToneAdjuster, luminance


def test_luminance_of_integer_grey_is_exact():
    rgb = np.array([[128, 128, 128], [255, 255, 255], [0, 0, 0]], dtype=np.uint8)

    assert list(luminance(rgb)) == [128.0, 255.0, 0.0]


def test_luminance_weights():
    assert luminance(np.array([255, 0, 0], dtype=np.uint8)) == pytest.approx(76.245)
    assert luminance(np.array([0, 255, 0], dtype=np.uint8)) == pytest.approx(149.685)
    assert luminance(np.array([0, 0, 255], dtype=np.uint8)) == pytest.approx(29.07)


def test_neutral_settings_are_identity():
    values = np.arange(256, dtype=np.float64)

    out = ToneAdjuster.adjust_values(values, 1.0, 1.0)

    assert out == pytest.approx(values)


def test_contrast_pivots_on_mid_grey():
    out = ToneAdjuster.adjust_values(np.array([0.0, 127.5, 255.0]), 1.0, 2.0)

    assert list(out) == pytest.approx([0.0, 127.5, 255.0])


def test_zero_contrast_flattens_to_mid_grey():
    out = ToneAdjuster.adjust_values(np.array([0.0, 40.0, 255.0]), 1.0, 0.0)

    assert list(out) == pytest.approx([127.5, 127.5, 127.5])


def test_brightness_scales_and_clamps():
    buf = RasterBuffer.filled(1, 1, (100, 100, 100, 255))

    assert ToneAdjuster.apply(buf, 2.0, 1.0).get_pixel(0, 0) == (200, 200, 200, 255)
    assert ToneAdjuster.apply(buf, 3.0, 1.0).get_pixel(0, 0) == (255, 255, 255, 255)


def test_saturation_uses_adjusted_luminance():
    # brightness halves the pixel to (100, 50, 25) before desaturating
    buf = RasterBuffer.filled(1, 1, (200, 100, 50, 255))

    out = ToneAdjuster.apply(buf, 0.5, 1.0, saturation=0.0)

    assert out.get_pixel(0, 0) == (62, 62, 62, 255)


def test_zero_saturation_makes_red_grey():
    buf = RasterBuffer.filled(1, 1, (255, 0, 0, 255))

    out = ToneAdjuster.adjust_source(buf, SourceAdjustments(saturation=0.0))

    assert out.get_pixel(0, 0) == (76, 76, 76, 255)


def test_oversaturation_clamps():
    buf = RasterBuffer.filled(1, 1, (255, 0, 0, 255))

    out = ToneAdjuster.adjust_source(buf, SourceAdjustments(saturation=3.0))

    assert out.get_pixel(0, 0) == (255, 0, 0, 255)


def test_apply_returns_new_buffer_and_keeps_alpha():
    buf = RasterBuffer.filled(2, 2, (10, 20, 30, 77))

    out = ToneAdjuster.adjust_effect(buf, 2.0, 1.0)

    assert out is not buf
    assert out.get_pixel(1, 1) == (20, 40, 60, 77)
    assert buf.get_pixel(1, 1) == (10, 20, 30, 77)
