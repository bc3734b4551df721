"""
Runtime configuration shared by the analysis and rendering stages.

A single RenderConfig is passed by reference into every stage. Changes go
through ``update()``, which validates a candidate copy before touching the
live object, and bumps generation counters so the pipeline knows which
derived structures (filter bank, spectrogram image) must be rebuilt.
"""

import dataclasses
import math
from dataclasses import dataclass, field

from melscope.errors import InvalidConfig

MIN_FFT_SIZE = 32
MAX_FFT_SIZE = 32768

# camelCase option names accepted from external control surfaces
OPTION_ALIASES = {
    "fftSize": "fft_size",
    "melBands": "mel_bands",
    "bloomIntensity": "bloom_intensity",
    "scrollSpeed": "scroll_speed",
    "spectrogramWidth": "spectrogram_width",
    "minFrequency": "min_frequency",
    "sampleRate": "sample_rate",
}

# Changes to these invalidate the Mel filter bank
BANK_FIELDS = frozenset({"fft_size", "mel_bands", "sample_rate", "min_frequency"})
# Changes to these invalidate the spectrogram image and history
IMAGE_FIELDS = frozenset({"mel_bands", "spectrogram_width"})

_INT_FIELDS = ("fft_size", "mel_bands", "spectrogram_width", "sample_rate")


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def _coerce(name: str, value):
    """Convert an option value to its field type, rejecting NaN, inf and fractions."""
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfig(f"{name} must be numeric, got {value!r}") from e
    if not math.isfinite(number):
        raise InvalidConfig(f"{name} must be finite, got {value!r}")
    if name in _INT_FIELDS:
        if not number.is_integer():
            raise InvalidConfig(f"{name} must be a whole number, got {value!r}")
        return int(number)
    return number


@dataclass
class RenderConfig:
    """Process-wide spectrogram settings."""

    fft_size: int = 1024  # Analysis window, power of two
    mel_bands: int = 256  # Output band count (image height)
    smoothing: float = 0.5  # Analyser temporal smoothing (0-1)
    bloom_intensity: float = 0.7
    scroll_speed: float = 1.0  # Multiplier on shader time
    spectrogram_width: int = 600  # History length (image width)
    exposure: float = 1.2
    gamma: float = 1.0
    sample_rate: int = 44100
    min_frequency: float = 500.0  # Lowest Mel breakpoint in Hz

    # Bumped whenever a dimension-affecting field changes
    bank_generation: int = field(default=0, compare=False)
    image_generation: int = field(default=0, compare=False)

    def __post_init__(self):
        for name in self.option_names():
            setattr(self, name, _coerce(name, getattr(self, name)))
        self.validate()

    @classmethod
    def option_names(cls) -> tuple[str, ...]:
        """Names of the user-facing options (generation counters excluded)."""
        return tuple(
            f.name for f in dataclasses.fields(cls) if not f.name.endswith("_generation")
        )

    @property
    def fft_bin_count(self) -> int:
        return self.fft_size // 2

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2

    def validate(self):
        """
        Check every option.

        Raises:
            InvalidConfig: On the first invalid value found.
        """
        if not is_power_of_two(self.fft_size) or not (
            MIN_FFT_SIZE <= self.fft_size <= MAX_FFT_SIZE
        ):
            raise InvalidConfig(
                f"fft_size must be a power of two in [{MIN_FFT_SIZE}, {MAX_FFT_SIZE}], "
                f"got {self.fft_size}"
            )
        if self.mel_bands < 1:
            raise InvalidConfig(f"mel_bands must be positive, got {self.mel_bands}")
        if self.spectrogram_width < 1:
            raise InvalidConfig(
                f"spectrogram_width must be positive, got {self.spectrogram_width}"
            )
        if self.sample_rate < 1:
            raise InvalidConfig(f"sample_rate must be positive, got {self.sample_rate}")
        if not 0.0 <= self.smoothing <= 1.0:
            raise InvalidConfig(f"smoothing must be in [0, 1], got {self.smoothing}")
        # Written so that NaN fails every check
        if not self.gamma > 0:
            raise InvalidConfig(f"gamma must be positive, got {self.gamma}")
        if not self.exposure >= 0:
            raise InvalidConfig(f"exposure must be non-negative, got {self.exposure}")
        if not self.bloom_intensity >= 0:
            raise InvalidConfig(
                f"bloom_intensity must be non-negative, got {self.bloom_intensity}"
            )
        if not self.scroll_speed >= 0:
            raise InvalidConfig(
                f"scroll_speed must be non-negative, got {self.scroll_speed}"
            )
        if not 0.0 <= self.min_frequency < self.nyquist:
            raise InvalidConfig(
                f"min_frequency must be in [0, {self.nyquist}), got {self.min_frequency}"
            )

    def check(self, **changes) -> tuple[dict, "RenderConfig"]:
        """
        Validate option changes without applying them.

        Returns:
            The changes keyed by field name, and the validated candidate
            config they would produce.

        Raises:
            InvalidConfig: Unknown option or invalid value.
        """
        resolved = {}
        known = self.option_names()
        for key, value in changes.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise InvalidConfig(f"Unknown option: {key}")
            resolved[name] = value
        return resolved, dataclasses.replace(self, **resolved)

    def update(self, **changes) -> set[str]:
        """
        Apply option changes atomically.

        Args:
            **changes: Option names (snake_case or the camelCase aliases)
                mapped to new values.

        Returns:
            Names of the fields whose value actually changed.

        Raises:
            InvalidConfig: Unknown option or invalid value. Nothing is
                modified in that case.
        """
        resolved, candidate = self.check(**changes)

        changed = {
            name for name in resolved if getattr(self, name) != getattr(candidate, name)
        }
        for name in changed:
            setattr(self, name, getattr(candidate, name))

        if changed & BANK_FIELDS:
            self.bank_generation += 1
        if changed & IMAGE_FIELDS:
            self.image_generation += 1
        return changed
