"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from melscope.config import RenderConfig

# Default sample rate for test audio
TEST_SR = 44100


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for tests."""
    return TEST_SR


@pytest.fixture
def pure_sine(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate a 1kHz sine wave.

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    duration = 2.0
    t = np.linspace(0, duration, int(sample_rate * duration), endpoint=False)
    y = 0.5 * np.sin(2 * np.pi * 1000.0 * t)
    return y.astype(np.float32), sample_rate


@pytest.fixture
def white_noise(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    Generate white noise.

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    rng = np.random.default_rng(42)  # Reproducible
    samples = int(sample_rate * 1.0)
    y = (rng.standard_normal(samples) * 0.3).astype(np.float32)
    return y, sample_rate


@pytest.fixture
def small_config() -> RenderConfig:
    """Small dimensions to keep pipeline tests fast."""
    return RenderConfig(fft_size=1024, mel_bands=16, spectrogram_width=32)


@pytest.fixture
def temp_audio_file(tmp_path, pure_sine):
    """Create a temporary mono WAV file."""
    import soundfile as sf

    y, sr = pure_sine
    audio_path = tmp_path / "test_audio.wav"
    sf.write(audio_path, y, sr)
    return audio_path
