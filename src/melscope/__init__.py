"""Live scrolling Mel spectrogram."""

from melscope.config import RenderConfig
from melscope.core.filterbank import FilterBank, build_filter_bank
from melscope.core.history import HistoryBuffer
from melscope.core.reducer import reduce_frame
from melscope.core.texture import SpectrogramImage
from melscope.errors import DecodeFailure, DeviceUnavailable, InvalidConfig
from melscope.pipeline import SpectrogramPipeline

__version__ = "0.1.0"
__all__ = [
    "DecodeFailure",
    "DeviceUnavailable",
    "FilterBank",
    "HistoryBuffer",
    "InvalidConfig",
    "RenderConfig",
    "SpectrogramImage",
    "SpectrogramPipeline",
    "build_filter_bank",
    "reduce_frame",
]
