"""
Mel filter bank construction.

Builds a bank of triangular filters spaced evenly on the Mel scale, laid
over the linear FFT bins produced by the frequency analyser. The bank is
an immutable value: any configuration change builds a new one.
"""

from dataclasses import dataclass

import numpy as np

from melscope.errors import InvalidConfig

DEFAULT_MIN_HZ = 500.0


def hz_to_mel(hz):
    """Convert frequency in Hz to Mel (HTK formula)."""
    return 2595.0 * np.log10(1.0 + np.asarray(hz, dtype=np.float64) / 700.0)


def mel_to_hz(mel):
    """Convert Mel back to Hz."""
    return 700.0 * (10.0 ** (np.asarray(mel, dtype=np.float64) / 2595.0) - 1.0)


@dataclass(frozen=True)
class FilterBank:
    """Triangular Mel filters over linear FFT bins."""

    weights: np.ndarray  # Shape: (band_count, fft_bin_count), values in [0, 1]
    hz_points: np.ndarray  # Shape: (band_count + 2,), ascending breakpoints
    sample_rate: int
    min_hz: float

    @property
    def band_count(self) -> int:
        return self.weights.shape[0]

    @property
    def fft_bin_count(self) -> int:
        return self.weights.shape[1]

    @property
    def center_frequencies(self) -> np.ndarray:
        """Peak frequency of each filter, ascending."""
        return self.hz_points[1:-1]

    @property
    def bin_frequencies(self) -> np.ndarray:
        """Frequency in Hz of every FFT bin the filters are defined over."""
        return bin_frequencies(self.sample_rate, self.fft_bin_count)


def bin_frequencies(sample_rate: int, fft_bin_count: int) -> np.ndarray:
    """Frequencies of ``fft_bin_count`` bins spanning [0, Nyquist)."""
    return np.arange(fft_bin_count, dtype=np.float64) * sample_rate / (2 * fft_bin_count)


def build_filter_bank(
    sample_rate: int,
    fft_bin_count: int,
    band_count: int,
    min_hz: float = DEFAULT_MIN_HZ,
) -> FilterBank:
    """
    Build a triangular Mel filter bank.

    ``band_count + 2`` breakpoints are spaced evenly in Mel between
    ``min_hz`` and Nyquist. Filter ``m`` rises linearly from breakpoint
    ``m-1`` to a peak of 1 at breakpoint ``m`` and falls back to 0 at
    breakpoint ``m+1``.

    Args:
        sample_rate: Audio sample rate in Hz.
        fft_bin_count: Number of magnitude bins (half the FFT size).
        band_count: Number of Mel bands to produce.
        min_hz: Lowest breakpoint frequency.

    Returns:
        A new FilterBank.

    Raises:
        InvalidConfig: Non-positive dimensions, or ``min_hz`` outside
            [0, Nyquist).
    """
    if sample_rate <= 0:
        raise InvalidConfig(f"sample_rate must be positive, got {sample_rate}")
    if fft_bin_count <= 0:
        raise InvalidConfig(f"fft_bin_count must be positive, got {fft_bin_count}")
    if band_count <= 0:
        raise InvalidConfig(f"band_count must be positive, got {band_count}")

    nyquist = sample_rate / 2
    if min_hz < 0 or min_hz >= nyquist:
        raise InvalidConfig(
            f"min_hz ({min_hz}) must lie in [0, Nyquist={nyquist})"
        )

    mel_points = np.linspace(hz_to_mel(min_hz), hz_to_mel(nyquist), band_count + 2)
    hz_points = mel_to_hz(mel_points)
    # Pin the ends so the round trip through Mel cannot shift them
    hz_points[0] = min_hz
    hz_points[-1] = nyquist

    freqs = bin_frequencies(sample_rate, fft_bin_count)[np.newaxis, :]
    left = hz_points[:-2, np.newaxis]
    center = hz_points[1:-1, np.newaxis]
    right = hz_points[2:, np.newaxis]

    rising = (freqs - left) / (center - left)
    falling = (right - freqs) / (right - center)

    weights = np.where(
        (freqs >= left) & (freqs <= center),
        rising,
        np.where((freqs > center) & (freqs <= right), falling, 0.0),
    )
    weights.setflags(write=False)
    hz_points.setflags(write=False)

    return FilterBank(
        weights=weights,
        hz_points=hz_points,
        sample_rate=int(sample_rate),
        min_hz=float(min_hz),
    )
