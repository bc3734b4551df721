"""Audio input modules."""

from melscope.io.sources import (
    ArraySource,
    AudioSource,
    FileSource,
    MicrophoneSource,
    list_input_devices,
    load_audio,
)

__all__ = [
    "ArraySource",
    "AudioSource",
    "FileSource",
    "MicrophoneSource",
    "list_input_devices",
    "load_audio",
]
