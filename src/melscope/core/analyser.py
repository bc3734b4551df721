"""
Real-time frequency analyser.

Turns the most recent window of PCM samples into per-bin byte magnitudes,
following the behaviour of a browser analyser node: Blackman window,
magnitude spectrum, exponential smoothing over time, decibel conversion
and a linear map of a decibel range onto 0-255.
"""

import logging

import numpy as np
from scipy import signal as scipy_signal

from melscope.config import MAX_FFT_SIZE, MIN_FFT_SIZE, is_power_of_two
from melscope.errors import InvalidConfig

logger = logging.getLogger(__name__)


class FrequencyAnalyser:
    """
    Produces smoothed magnitude spectra from a rolling sample window.

    The smoothing state carries over between calls, so the analyser must
    be fed once per tick from a single thread.
    """

    def __init__(
        self,
        fft_size: int = 1024,
        smoothing: float = 0.5,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
    ):
        """
        Initialize the analyser.

        Args:
            fft_size: Analysis window size (power of two).
            smoothing: Time constant in [0, 1]; 0 disables smoothing.
            min_decibels: Level mapped to byte 0.
            max_decibels: Level mapped to byte 255.
        """
        if min_decibels >= max_decibels:
            raise InvalidConfig(
                f"min_decibels ({min_decibels}) must be below max_decibels ({max_decibels})"
            )
        self.min_decibels = float(min_decibels)
        self.max_decibels = float(max_decibels)
        self.set_smoothing(smoothing)
        self.resize(fft_size)

    @property
    def bin_count(self) -> int:
        return self.fft_size // 2

    def resize(self, fft_size: int):
        """Change the window size; resets the smoothing state."""
        if not is_power_of_two(fft_size) or not MIN_FFT_SIZE <= fft_size <= MAX_FFT_SIZE:
            raise InvalidConfig(
                f"fft_size must be a power of two in [{MIN_FFT_SIZE}, {MAX_FFT_SIZE}], "
                f"got {fft_size}"
            )
        self.fft_size = int(fft_size)
        # Periodic Blackman (a0=0.42, a1=0.5, a2=0.08)
        self._window = scipy_signal.get_window("blackman", self.fft_size)
        self._smoothed = np.zeros(self.bin_count, dtype=np.float64)
        logger.debug("Analyser resized to %d (%d bins)", self.fft_size, self.bin_count)

    def set_smoothing(self, smoothing: float):
        if not 0.0 <= smoothing <= 1.0:
            raise InvalidConfig(f"smoothing must be in [0, 1], got {smoothing}")
        self.smoothing = float(smoothing)

    def reset(self):
        """Forget previous spectra."""
        self._smoothed[:] = 0.0

    def _window_samples(self, samples: np.ndarray) -> np.ndarray:
        samples = np.asarray(samples, dtype=np.float64).ravel()
        if len(samples) >= self.fft_size:
            return samples[-self.fft_size:]
        padded = np.zeros(self.fft_size, dtype=np.float64)
        padded[self.fft_size - len(samples):] = samples
        return padded

    def magnitudes(self, samples: np.ndarray) -> np.ndarray:
        """
        Smoothed linear magnitude spectrum of the latest window.

        Args:
            samples: Mono PCM in [-1, 1]; only the last ``fft_size``
                samples are used, shorter input is zero padded.

        Returns:
            (bin_count,) float64 magnitudes.
        """
        windowed = self._window_samples(samples) * self._window
        spectrum = np.abs(np.fft.rfft(windowed))[: self.bin_count] / self.fft_size

        tau = self.smoothing
        self._smoothed = tau * self._smoothed + (1.0 - tau) * spectrum
        return self._smoothed.copy()

    def float_frequency_data(self, samples: np.ndarray) -> np.ndarray:
        """Smoothed spectrum in decibels (-inf for silent bins)."""
        with np.errstate(divide="ignore"):
            return 20.0 * np.log10(self.magnitudes(samples))

    def byte_frequency_data(self, samples: np.ndarray) -> np.ndarray:
        """
        Smoothed spectrum mapped onto bytes.

        Returns:
            (bin_count,) uint8 array; ``min_decibels`` maps to 0 and
            ``max_decibels`` to 255.
        """
        db = self.float_frequency_data(samples)
        span = self.max_decibels - self.min_decibels
        scaled = np.floor(255.0 / span * (db - self.min_decibels))
        return np.clip(scaled, 0, 255).astype(np.uint8)
