"""
Spectrogram image encoding.

Maintains the RGBA byte grid backing the displayed texture. Each tick the
grid scrolls left by one column and the newest Mel frame becomes the
rightmost column. Internally the grid is a ring of columns with a rotating
write index, so a tick costs O(band_count) instead of moving every pixel;
readers always see the grid in oldest-to-newest, left-to-right order.
"""

import numpy as np

from melscope.errors import InvalidConfig

CHANNELS = 4
OPAQUE = 255


class SpectrogramImage:
    """
    Fixed-shape (band_count x width x RGBA) uint8 spectrogram grid.

    Row ``y`` is Mel band ``y`` (lowest frequency first), column ``x`` is
    time (oldest on the left). The shape never changes; a new width or
    band count requires a new instance.
    """

    def __init__(self, width: int, band_count: int):
        if width < 1 or band_count < 1:
            raise InvalidConfig(
                f"Image dimensions must be positive, got {width}x{band_count}"
            )
        self.width = width
        self.band_count = band_count
        self._arena = np.zeros((band_count, width, CHANNELS), dtype=np.uint8)
        self._arena[..., 3] = OPAQUE
        # Ring slot holding the oldest column; the next frame overwrites it
        self._write_index = 0
        self.columns_written = 0

    @property
    def height(self) -> int:
        return self.band_count

    @property
    def shape(self) -> tuple[int, int]:
        """(height, width) of the grid."""
        return (self.band_count, self.width)

    def shift_and_append(self, frame: np.ndarray):
        """
        Scroll the grid left by one column and write ``frame`` on the right.

        Band values are clamped to [0, 1] (missing/NaN values become 0)
        and stored as ``floor(v * 255)`` on R, G and B with opaque alpha.

        Args:
            frame: (band_count,) Mel frame.
        """
        values = np.asarray(frame, dtype=np.float64)
        if values.shape != (self.band_count,):
            raise InvalidConfig(
                f"Expected a frame of {self.band_count} bands, got shape {values.shape}"
            )

        values = np.nan_to_num(values, nan=0.0, posinf=1.0, neginf=0.0)
        levels = np.floor(np.clip(values, 0.0, 1.0) * 255.0).astype(np.uint8)

        column = self._arena[:, self._write_index]
        column[:, :3] = levels[:, np.newaxis]
        column[:, 3] = OPAQUE

        self._write_index = (self._write_index + 1) % self.width
        self.columns_written += 1

    def to_array(self) -> np.ndarray:
        """(band_count, width, 4) copy of the grid in display order."""
        return np.roll(self._arena, -self._write_index, axis=1)

    def intensity(self) -> np.ndarray:
        """(band_count, width) float32 intensities in [0, 1] (red channel)."""
        return self.to_array()[..., 0].astype(np.float32) / 255.0

    def reset(self):
        """Black out the grid and restart the column ring."""
        self._arena[..., :3] = 0
        self._arena[..., 3] = OPAQUE
        self._write_index = 0
        self.columns_written = 0
