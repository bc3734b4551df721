"""
Error taxonomy for the spectrogram pipeline.

Configuration problems fail fast at configuration time; device and
decode problems are reported upward and leave the pipeline idle.
"""


class MelscopeError(Exception):
    """Base class for all melscope errors."""


class InvalidConfig(MelscopeError, ValueError):
    """Degenerate frequency range, non-positive dimension or bad option."""


class DeviceUnavailable(MelscopeError, RuntimeError):
    """The capture device could not be opened (denied, missing, unsupported)."""


class DecodeFailure(MelscopeError, RuntimeError):
    """The input audio could not be decoded."""
