"""
Reduce FFT magnitude frames to Mel-band frames.
"""

import numpy as np

from melscope.core.filterbank import FilterBank
from melscope.errors import InvalidConfig

# Maximum byte magnitude produced by the analyser
MAGNITUDE_SCALE = 255.0


def reduce_frame(
    magnitudes: np.ndarray,
    bank: FilterBank,
    scale: float = MAGNITUDE_SCALE,
) -> np.ndarray:
    """
    Apply the filter bank to one magnitude frame.

    Each band is the filter-weighted sum of magnitudes divided by the
    fixed magnitude scale, not by the filter's own weight total. Wide
    filters can therefore exceed 1 before the final clamp, and saturate.

    Args:
        magnitudes: (fft_bin_count,) magnitudes in [0, scale].
        bank: Filter bank matching the magnitude bin count.
        scale: Maximum representable magnitude.

    Returns:
        (band_count,) float32 Mel frame in [0.0, 1.0].
    """
    magnitudes = np.asarray(magnitudes, dtype=np.float64)
    if magnitudes.shape != (bank.fft_bin_count,):
        raise InvalidConfig(
            f"Expected {bank.fft_bin_count} magnitude bins, got shape {magnitudes.shape}"
        )

    energy = bank.weights @ magnitudes / scale
    return np.clip(energy, 0.0, 1.0).astype(np.float32)


def reduce_frames(
    frames: np.ndarray,
    bank: FilterBank,
    scale: float = MAGNITUDE_SCALE,
) -> np.ndarray:
    """
    Reduce a stack of frames at once.

    Args:
        frames: (n_frames, fft_bin_count) magnitudes.
        bank: Filter bank matching the bin count.
        scale: Maximum representable magnitude.

    Returns:
        (n_frames, band_count) float32 array in [0.0, 1.0].
    """
    frames = np.asarray(frames, dtype=np.float64)
    if frames.ndim != 2 or frames.shape[1] != bank.fft_bin_count:
        raise InvalidConfig(
            f"Expected (n, {bank.fft_bin_count}) magnitudes, got shape {frames.shape}"
        )

    energy = frames @ bank.weights.T / scale
    return np.clip(energy, 0.0, 1.0).astype(np.float32)
