"""Core analysis modules."""

from melscope.core.analyser import FrequencyAnalyser
from melscope.core.filterbank import FilterBank, build_filter_bank
from melscope.core.history import HistoryBuffer
from melscope.core.reducer import reduce_frame
from melscope.core.texture import SpectrogramImage

__all__ = [
    "FilterBank",
    "FrequencyAnalyser",
    "HistoryBuffer",
    "SpectrogramImage",
    "build_filter_bank",
    "reduce_frame",
]
