"""Tests for color mapping and post-processing."""

import numpy as np
import pytest

from melscope.render.colorgrade import (
    DARK,
    bloom,
    bloom_field,
    bloom_kernel,
    chromatic_sample,
    grade,
    map_color,
    palette,
    shade,
    smoothstep,
    to_rgb8,
    value_noise,
)


class TestSmoothstep:
    def test_edges(self):
        assert smoothstep(0.0, 1.0, -1.0) == 0.0
        assert smoothstep(0.0, 1.0, 2.0) == 1.0
        assert smoothstep(0.0, 1.0, 0.5) == pytest.approx(0.5)

    def test_monotonic(self):
        x = np.linspace(0, 1, 50)
        assert np.all(np.diff(smoothstep(0.2, 0.8, x)) >= 0)


class TestMapColor:
    def test_black_below_threshold(self):
        colors = map_color(np.array([0.0, 0.005, 0.0099]))
        np.testing.assert_array_equal(colors, 0.0)

    def test_output_shape(self):
        vals = np.random.rand(12, 20)
        assert map_color(vals).shape == (12, 20, 3)

    def test_scalar_input(self):
        assert map_color(0.5).shape == (3,)

    @pytest.mark.parametrize("edge", [0.25, 0.6])
    def test_continuous_at_segment_edges(self, edge):
        below = map_color(edge - 1e-7)
        above = map_color(edge + 1e-7)
        np.testing.assert_allclose(below, above, atol=1e-4)

    def test_brighter_is_warmer(self):
        """Low intensities lean blue, high intensities lean red."""
        low = map_color(0.1)
        high = map_color(0.9)
        assert low[2] > low[0]
        assert high[0] > high[2]

    def test_near_zero_softened(self):
        faint = map_color(0.02)
        assert np.all(faint < DARK)

    def test_time_animates_palette(self):
        assert not np.allclose(map_color(0.8, time=0.0), map_color(0.8, time=3.0))

    def test_values_in_unit_range(self):
        colors = map_color(np.linspace(0, 1, 200), time=1.7)
        assert colors.min() >= 0.0
        assert colors.max() <= 1.0


class TestPalette:
    def test_periodic(self):
        np.testing.assert_allclose(palette(0.3), palette(2.3), atol=1e-9)

    def test_shape(self):
        assert palette(np.zeros((4, 5))).shape == (4, 5, 3)


class TestBloom:
    def test_kernel(self):
        kernel = bloom_kernel()
        assert kernel.shape == (7, 7)
        assert kernel[3, 3] == 1.0
        assert kernel[0, 0] == pytest.approx(np.exp(-3.6))
        np.testing.assert_allclose(kernel, kernel.T)

    def test_point_matches_field(self):
        rng = np.random.default_rng(5)
        image = rng.random((20, 30))
        field = bloom_field(image)
        for y, x in [(0, 0), (10, 15), (19, 29), (2, 27)]:
            assert bloom(image, x, y) == pytest.approx(field[y, x])

    def test_single_texel_spreads(self):
        image = np.zeros((15, 15))
        image[7, 7] = 1.0
        field = bloom_field(image)
        assert field[7, 7] == pytest.approx(1.0)
        assert field[7, 9] == pytest.approx(np.exp(-0.8))
        assert field[7, 11] == 0.0

    def test_uniform_field_is_kernel_sum(self):
        image = np.full((10, 10), 0.5)
        np.testing.assert_allclose(bloom_field(image), 0.5 * bloom_kernel().sum())


class TestChromaticSample:
    def test_zero_offset_is_identity(self):
        image = np.random.rand(6, 9)
        np.testing.assert_allclose(chromatic_sample(image, 0.0), image)

    def test_one_texel_shift(self):
        image = np.tile(np.arange(8, dtype=np.float64), (3, 1))
        shifted = chromatic_sample(image, 1.0 / 8)
        np.testing.assert_allclose(shifted[0], [1, 2, 3, 4, 5, 6, 7, 7])

    def test_half_texel_is_bilinear(self):
        image = np.tile(np.arange(4, dtype=np.float64), (2, 1))
        shifted = chromatic_sample(image, -0.5 / 4)
        np.testing.assert_allclose(shifted[0], [0.0, 0.5, 1.5, 2.5])


class TestValueNoise:
    def test_range(self):
        px, py = np.meshgrid(np.linspace(0, 40, 100), np.linspace(0, 40, 100))
        noise = value_noise(px, py)
        assert noise.min() >= 0.0
        assert noise.max() <= 1.0

    def test_deterministic(self):
        px = np.linspace(0, 10, 30)
        np.testing.assert_array_equal(value_noise(px, px), value_noise(px, px))


class TestGrade:
    def test_gamma(self):
        assert grade(np.array([0.25]), gamma=2.0, exposure=1.0)[0] == pytest.approx(0.5)

    def test_exposure_clamped(self):
        np.testing.assert_array_equal(grade(np.array([0.8]), exposure=2.0), [1.0])

    def test_negative_clamped(self):
        np.testing.assert_array_equal(grade(np.array([-0.3])), [0.0])


class TestShade:
    def test_output_shape_and_range(self):
        image = np.random.rand(16, 40).astype(np.float32)
        rgb = shade(image, time=0.4)
        assert rgb.shape == (16, 40, 3)
        assert rgb.min() >= 0.0
        assert rgb.max() <= 1.0

    def test_silence_is_black(self):
        rgb = shade(np.zeros((8, 12)), time=2.0)
        np.testing.assert_array_equal(rgb, 0.0)

    def test_deterministic(self):
        image = np.random.default_rng(9).random((8, 12))
        np.testing.assert_array_equal(shade(image, time=1.3), shade(image, time=1.3))

    def test_time_changes_frame(self):
        image = np.full((8, 12), 0.7)
        assert not np.allclose(shade(image, time=0.1), shade(image, time=0.4))

    def test_bloom_brightens(self):
        image = np.zeros((16, 16))
        image[8, 8] = 0.8
        dim = shade(image, bloom_intensity=0.0)
        bright = shade(image, bloom_intensity=2.0)
        assert bright[8, 10].sum() > dim[8, 10].sum()

    def test_exposure_zero_is_black(self):
        image = np.full((4, 4), 0.9)
        np.testing.assert_array_equal(shade(image, exposure=0.0), 0.0)


def test_to_rgb8():
    rgb = to_rgb8(np.array([[[0.0, 0.5, 1.0]], [[-1.0, 2.0, 0.999]]]))
    assert rgb.dtype == np.uint8
    np.testing.assert_array_equal(rgb[0, 0], [0, 127, 255])
    np.testing.assert_array_equal(rgb[1, 0], [0, 255, 254])
