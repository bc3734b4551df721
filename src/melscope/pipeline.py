"""
Main spectrogram pipeline.

Orchestrates one analysis tick per display refresh:
samples -> analyser -> Mel reduction -> history -> spectrogram image.

All mutation of the history and image happens on the thread calling
``tick()``. Other threads talk to the pipeline through a command queue
that is drained at the start of each tick.
"""

import logging
import queue
from typing import Any

import numpy as np

from melscope.config import RenderConfig
from melscope.errors import InvalidConfig
from melscope.core.analyser import FrequencyAnalyser
from melscope.core.filterbank import FilterBank, build_filter_bank
from melscope.core.history import HistoryBuffer
from melscope.core.reducer import reduce_frame
from melscope.core.texture import SpectrogramImage
from melscope.io.sources import AudioSource
from melscope.render.display import DisplaySink, DisplayUniforms

logger = logging.getLogger(__name__)

_CONFIGURE = "configure"
_FRAME = "frame"
_STOP = "stop"


class SpectrogramPipeline:
    """
    Live Mel spectrogram state machine.

    Derived structures (filter bank, image, history) are rebuilt lazily
    from the config's generation counters, so changes made through
    ``configure()`` or directly on the shared RenderConfig are both
    picked up before the next column is produced.
    """

    def __init__(self, config: RenderConfig | None = None):
        """
        Initialize the pipeline.

        Args:
            config: Shared configuration. Defaults to RenderConfig().
        """
        self.config = config or RenderConfig()
        self.analyser = FrequencyAnalyser(
            fft_size=self.config.fft_size,
            smoothing=self.config.smoothing,
        )
        self.bank: FilterBank | None = None
        self.image: SpectrogramImage | None = None
        self.history: HistoryBuffer | None = None

        self._bank_generation: int | None = None
        self._image_generation: int | None = None
        self._commands: queue.Queue = queue.Queue()
        self._source: AudioSource | None = None
        self._recording = False
        self._stop_requested = False
        self._session = 0

        self._sync()

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def session(self) -> int:
        """Identifier of the current recording session."""
        return self._session

    @property
    def source(self) -> AudioSource | None:
        return self._source

    def _sync(self):
        """Rebuild whatever the config generations say is stale."""
        cfg = self.config

        if self.analyser.fft_size != cfg.fft_size:
            self.analyser.resize(cfg.fft_size)
        if self.analyser.smoothing != cfg.smoothing:
            self.analyser.set_smoothing(cfg.smoothing)

        if self._bank_generation != cfg.bank_generation:
            self.bank = build_filter_bank(
                cfg.sample_rate,
                cfg.fft_bin_count,
                cfg.mel_bands,
                min_hz=cfg.min_frequency,
            )
            self._bank_generation = cfg.bank_generation
            logger.info(
                "Mel filter bank built: %d bands over %d bins",
                self.bank.band_count,
                self.bank.fft_bin_count,
            )

        if self._image_generation != cfg.image_generation:
            # Reallocate and drop history so old frames never meet the new shape
            self.image = SpectrogramImage(cfg.spectrogram_width, cfg.mel_bands)
            self.history = HistoryBuffer(cfg.spectrogram_width)
            self._image_generation = cfg.image_generation
            logger.info(
                "Spectrogram image allocated: %dx%d",
                cfg.spectrogram_width,
                cfg.mel_bands,
            )

    def configure(self, **options: Any) -> set[str]:
        """
        Apply option changes immediately. Call from the tick thread only.

        Returns:
            Names of the options that changed.

        Raises:
            InvalidConfig: Nothing is changed.
        """
        changed = self.config.update(**options)
        if changed:
            logger.debug("Config changed: %s", sorted(changed))
        self._sync()
        return changed

    def set_option(self, name: str, value: Any):
        """
        Queue an option change for the next tick. Safe from any thread.

        Raises:
            InvalidConfig: Unknown option or invalid value; nothing is queued.
        """
        self.config.check(**{name: value})
        self._commands.put((_CONFIGURE, {name: value}))

    def start(self, source: AudioSource | None = None) -> int:
        """
        Begin recording.

        Without a source, frames must be supplied through ``submit_frame``.

        Args:
            source: Audio source to analyse on every tick.

        Returns:
            The new session id.

        Raises:
            DeviceUnavailable, DecodeFailure: From the source. The pipeline
                is left exactly as it was.
        """
        if source is not None:
            source.start()

        previous = self._source
        if previous is not None and previous is not source:
            previous.stop()

        self._source = source
        self._session += 1
        self.history.clear()
        self.analyser.reset()
        self._stop_requested = False
        self._recording = True
        logger.info("Recording started (session %d)", self._session)
        return self._session

    def stop(self):
        """Stop recording. Idempotent."""
        was_recording = self._recording or self._stop_requested
        self._recording = False
        self._stop_requested = False

        source, self._source = self._source, None
        if source is not None:
            source.stop()

        if was_recording:
            # Frames still in flight for this session are now stale
            self._session += 1
            self.history.clear()
            logger.info("Recording stopped")

    def request_stop(self):
        """
        Stop from any thread.

        Pushes stop immediately; the source is released on the next tick.
        Does nothing when idle, and a request that is still queued when a
        new session starts is ignored.
        """
        if not self._recording:
            return
        self._stop_requested = True
        self._recording = False
        self._commands.put((_STOP, self._session))

    def submit_frame(self, magnitudes: np.ndarray, session: int):
        """
        Hand over externally acquired magnitudes. Safe from any thread.

        Frames whose session has ended by the time they are processed are
        dropped.
        """
        self._commands.put((_FRAME, (np.asarray(magnitudes), session)))

    def _drain_commands(self) -> int:
        pushed = 0
        while True:
            try:
                kind, payload = self._commands.get_nowait()
            except queue.Empty:
                return pushed

            if kind == _CONFIGURE:
                try:
                    self.configure(**payload)
                except InvalidConfig as e:
                    # Valid when queued, but invalidated by a later change
                    logger.warning("Rejected queued option %s: %s", payload, e)
            elif kind == _STOP:
                if payload != self._session:
                    logger.debug("Ignored stop request for session %d", payload)
                else:
                    self.stop()
            elif kind == _FRAME:
                magnitudes, session = payload
                if not self._recording or session != self._session:
                    logger.debug("Dropped late frame from session %d", session)
                elif magnitudes.shape != (self.bank.fft_bin_count,):
                    logger.warning(
                        "Dropped frame with %d bins (expected %d)",
                        magnitudes.size,
                        self.bank.fft_bin_count,
                    )
                else:
                    self._push(magnitudes)
                    pushed += 1

    def _push(self, magnitudes: np.ndarray):
        frame = reduce_frame(magnitudes, self.bank)
        self.history.push(frame)
        self.image.shift_and_append(frame)

    def tick(self) -> bool:
        """
        Run one analysis tick.

        Returns:
            True if at least one column was appended.
        """
        pushed = self._drain_commands()
        self._sync()

        source = self._source
        if not self._recording or source is None:
            return pushed > 0

        if source.finished:
            logger.info("Source finished")
            self.stop()
            return pushed > 0

        samples = source.read(self.config.fft_size)
        self._push(self.analyser.byte_frequency_data(samples))
        return True

    def snapshot(self) -> list[np.ndarray]:
        """History frames, oldest first."""
        return self.history.snapshot()

    def uniforms(self, elapsed: float) -> DisplayUniforms:
        """Shading uniforms for ``elapsed`` seconds of wall time."""
        cfg = self.config
        return DisplayUniforms(
            time=elapsed * cfg.scroll_speed,
            bloom_intensity=cfg.bloom_intensity,
            exposure=cfg.exposure,
            gamma=cfg.gamma,
        )

    def render(self, sink: DisplaySink, elapsed: float):
        sink.present(self.image, self.uniforms(elapsed))
