"""Tests for the spectrogram image encoder."""

import numpy as np
import pytest

from melscope.core.texture import SpectrogramImage
from melscope.errors import InvalidConfig


def _naive_shift_and_append(grid: np.ndarray, frame: np.ndarray):
    """Literal per-tick shift, used as the reference behaviour."""
    grid[:, :-1] = grid[:, 1:].copy()
    levels = np.floor(np.clip(np.nan_to_num(frame), 0, 1) * 255).astype(np.uint8)
    grid[:, -1, :3] = levels[:, np.newaxis]
    grid[:, -1, 3] = 255


class TestSpectrogramImage:
    def test_initial_grid_black_and_opaque(self):
        image = SpectrogramImage(width=8, band_count=4)
        grid = image.to_array()
        assert grid.shape == (4, 8, 4)
        assert grid.dtype == np.uint8
        assert np.all(grid[..., :3] == 0)
        assert np.all(grid[..., 3] == 255)

    def test_dimensions(self):
        image = SpectrogramImage(width=600, band_count=128)
        assert image.height == 128
        assert image.width == 600
        assert image.shape == (128, 600)

    def test_append_writes_rightmost_column(self):
        image = SpectrogramImage(width=5, band_count=3)
        image.shift_and_append(np.array([0.0, 0.5, 1.0]))
        grid = image.to_array()

        np.testing.assert_array_equal(grid[:, -1, 0], [0, 127, 255])
        np.testing.assert_array_equal(grid[:, -1, 0], grid[:, -1, 1])
        np.testing.assert_array_equal(grid[:, -1, 0], grid[:, -1, 2])
        assert np.all(grid[:, :-1, :3] == 0)

    def test_width_appends_fill_in_order(self):
        """After W appends column x holds frame x (0-indexed)."""
        width, bands = 6, 3
        image = SpectrogramImage(width=width, band_count=bands)
        frames = [np.full(bands, (i + 1) / 10.0) for i in range(width)]
        for frame in frames:
            image.shift_and_append(frame)

        grid = image.to_array()
        for x, frame in enumerate(frames):
            expected = np.floor(frame * 255).astype(np.uint8)
            np.testing.assert_array_equal(grid[:, x, 0], expected)

    def test_matches_literal_shift(self):
        """Ring storage reads exactly like shifting every column each tick."""
        width, bands = 7, 5
        image = SpectrogramImage(width=width, band_count=bands)
        reference = np.zeros((bands, width, 4), dtype=np.uint8)
        reference[..., 3] = 255

        rng = np.random.default_rng(3)
        for _ in range(23):
            frame = rng.random(bands)
            image.shift_and_append(frame)
            _naive_shift_and_append(reference, frame)
            np.testing.assert_array_equal(image.to_array(), reference)

    def test_out_of_range_values_clamped(self):
        image = SpectrogramImage(width=2, band_count=4)
        image.shift_and_append(np.array([-0.5, 1.7, np.nan, np.inf]))
        np.testing.assert_array_equal(image.to_array()[:, -1, 0], [0, 255, 0, 255])

    def test_alpha_stays_opaque(self):
        image = SpectrogramImage(width=3, band_count=2)
        for _ in range(5):
            image.shift_and_append(np.array([0.3, 0.9]))
        assert np.all(image.to_array()[..., 3] == 255)

    def test_intensity(self):
        image = SpectrogramImage(width=3, band_count=2)
        image.shift_and_append(np.array([1.0, 0.0]))
        intensity = image.intensity()
        assert intensity.shape == (2, 3)
        assert intensity.dtype == np.float32
        assert intensity[0, -1] == pytest.approx(1.0)
        assert intensity[1, -1] == 0.0

    def test_reset(self):
        image = SpectrogramImage(width=3, band_count=2)
        image.shift_and_append(np.array([1.0, 1.0]))
        image.reset()
        assert image.columns_written == 0
        assert np.all(image.to_array()[..., :3] == 0)

    def test_wrong_frame_length(self):
        image = SpectrogramImage(width=3, band_count=2)
        with pytest.raises(InvalidConfig):
            image.shift_and_append(np.zeros(3))

    @pytest.mark.parametrize("width, bands", [(0, 4), (4, 0), (-1, 2)])
    def test_invalid_dimensions(self, width, bands):
        with pytest.raises(InvalidConfig):
            SpectrogramImage(width=width, band_count=bands)
