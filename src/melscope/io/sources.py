"""
Audio sources feeding the analyser.

Every source exposes the latest mono samples on demand. Live capture runs
on the audio driver's callback thread and only ever writes into the
source's own locked sample window; the analysis tick reads from it.
"""

import abc
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Union

import librosa
import numpy as np
import soundfile as sf

from melscope.config import MAX_FFT_SIZE
from melscope.errors import DecodeFailure, DeviceUnavailable

logger = logging.getLogger(__name__)


def _load_sounddevice():
    """Import sounddevice; a missing PortAudio library raises OSError."""
    try:
        import sounddevice
    except OSError as e:
        raise DeviceUnavailable(f"Audio capture is not supported here: {e}") from e
    return sounddevice


def list_input_devices() -> list[dict]:
    """Describe capture-capable devices as dicts (index, name, channels, default_samplerate)."""
    sd = _load_sounddevice()
    devices = []
    for idx, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            devices.append({
                "index": idx,
                "name": device["name"],
                "channels": device["max_input_channels"],
                "default_samplerate": device["default_samplerate"],
            })
    return devices


def load_audio(path: Union[str, Path], sample_rate: int) -> np.ndarray:
    """
    Decode an audio file to mono float32 at ``sample_rate``.

    Uses soundfile for WAV/FLAC/OGG and falls back to librosa for codecs
    soundfile cannot handle.

    Args:
        path: Audio file path.
        sample_rate: Target sample rate.

    Returns:
        1-D float32 array.

    Raises:
        DecodeFailure: Missing, empty or undecodable file.
    """
    path = Path(path)
    if not path.is_file():
        raise DecodeFailure(f"Audio file not found: {path}")

    try:
        data, file_sr = sf.read(path, dtype="float32", always_2d=True)
        data = data.mean(axis=1)
    except RuntimeError as e:
        logger.debug("soundfile could not read %s (%s); trying librosa", path, e)
        try:
            data, file_sr = librosa.load(path, sr=None, mono=True)
        except Exception as e2:
            raise DecodeFailure(f"Could not decode {path}: {e2}") from e2

    if data.size == 0:
        raise DecodeFailure(f"Audio file contains no samples: {path}")

    if file_sr != sample_rate:
        data = librosa.resample(data, orig_sr=file_sr, target_sr=sample_rate)

    return np.ascontiguousarray(data, dtype=np.float32)


class SampleWindow:
    """Thread-safe rolling window of the most recent samples."""

    def __init__(self, capacity: int = MAX_FFT_SIZE):
        self._buffer = np.zeros(capacity, dtype=np.float32)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return len(self._buffer)

    def write(self, samples: np.ndarray):
        samples = np.asarray(samples, dtype=np.float32).ravel()
        n = len(samples)
        if n == 0:
            return
        with self._lock:
            if n >= self.capacity:
                self._buffer[:] = samples[-self.capacity:]
            else:
                self._buffer[:-n] = self._buffer[n:]
                self._buffer[-n:] = samples

    def latest(self, n: int) -> np.ndarray:
        n = min(n, self.capacity)
        with self._lock:
            return self._buffer[self.capacity - n:].copy()

    def clear(self):
        with self._lock:
            self._buffer[:] = 0.0


class AudioSource(abc.ABC):
    """Supplies mono samples to the analysis tick."""

    sample_rate: int

    @abc.abstractmethod
    def start(self):
        """Begin producing samples. Idempotent."""

    @abc.abstractmethod
    def stop(self):
        """Stop producing samples. Idempotent."""

    @abc.abstractmethod
    def read(self, n: int) -> np.ndarray:
        """Return up to the latest ``n`` samples, oldest first."""

    @property
    def finished(self) -> bool:
        """True once a finite source has been fully played."""
        return False


class MicrophoneSource(AudioSource):
    """
    Live capture through a sounddevice input stream.

    Multi-channel input is mixed down to mono in the driver callback.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        device: int | str | None = None,
        block_size: int = 1024,
    ):
        self.sample_rate = sample_rate
        self.device = device
        self.block_size = block_size
        self._window = SampleWindow()
        self._stream = None

    @property
    def active(self) -> bool:
        return self._stream is not None

    def _callback(self, indata, frames, time_info, status):
        if status:
            logger.warning("Input stream status: %s", status)
        if indata.ndim > 1:
            indata = indata.mean(axis=1)
        self._window.write(indata)

    def start(self):
        if self._stream is not None:
            return
        sd = _load_sounddevice()
        try:
            stream = sd.InputStream(
                device=self.device,
                channels=1,
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                dtype="float32",
                callback=self._callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            raise DeviceUnavailable(
                f"Cannot open input device {self.device!r}: {e}"
            ) from e

        self._window.clear()
        self._stream = stream
        logger.info(
            "Capturing from device %r at %d Hz", self.device, self.sample_rate
        )

    def stop(self):
        stream, self._stream = self._stream, None
        if stream is None:
            return
        stream.stop()
        stream.close()
        logger.info("Capture stopped")

    def read(self, n: int) -> np.ndarray:
        return self._window.latest(n)


class FileSource(AudioSource):
    """
    Decoded audio file played against a clock.

    Nothing is sent to an output device: the playback position only
    decides which samples the analyser sees on each tick.
    """

    def __init__(
        self,
        path: Union[str, Path],
        sample_rate: int = 44100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = Path(path)
        self.sample_rate = sample_rate
        self.samples = load_audio(self.path, sample_rate)
        self._clock = clock
        self._started_at: float | None = None
        self._elapsed = 0.0
        logger.info("Loaded %s (%.2fs)", self.path.name, self.duration)

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate

    @property
    def position(self) -> float:
        """Playback position in seconds."""
        if self._started_at is None:
            return self._elapsed
        return self._elapsed + (self._clock() - self._started_at)

    @property
    def finished(self) -> bool:
        return self.position >= self.duration

    def start(self):
        if self._started_at is None:
            self._started_at = self._clock()

    def stop(self):
        if self._started_at is not None:
            self._elapsed += self._clock() - self._started_at
            self._started_at = None

    def read(self, n: int) -> np.ndarray:
        end = min(int(self.position * self.sample_rate), len(self.samples))
        return self.samples[max(0, end - n):end].copy()


class ArraySource(AudioSource):
    """In-memory samples advanced explicitly with ``advance()``."""

    def __init__(self, samples: np.ndarray, sample_rate: int = 44100):
        self.samples = np.asarray(samples, dtype=np.float32).ravel()
        self.sample_rate = sample_rate
        self.cursor = 0
        self.running = False

    @property
    def finished(self) -> bool:
        return self.cursor >= len(self.samples)

    def start(self):
        self.running = True

    def stop(self):
        self.running = False

    def advance(self, n: int):
        self.cursor = min(self.cursor + n, len(self.samples))

    def read(self, n: int) -> np.ndarray:
        return self.samples[max(0, self.cursor - n):self.cursor].copy()
