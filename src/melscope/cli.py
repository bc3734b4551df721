"""
CLI entry point for the live Mel spectrogram.

Usage:
    melscope [audio_file] [options]
    python -m melscope [audio_file] [options]

Keys:
    space          start / stop recording
    up / down      double / halve Mel bands
    right / left   double / halve FFT size
    [ / ]          bloom -/+
    - / =          exposure -/+
    , / .          gamma -/+
    escape         quit
"""

import argparse
import logging
import sys
from pathlib import Path

import pygame

from melscope.config import MAX_FFT_SIZE, MIN_FFT_SIZE, RenderConfig
from melscope.errors import DecodeFailure, DeviceUnavailable, InvalidConfig
from melscope.io.sources import AudioSource, FileSource, MicrophoneSource, list_input_devices
from melscope.pipeline import SpectrogramPipeline
from melscope.render.display import QUIT, PygameDisplay

MIN_BANDS = 8
MAX_BANDS = 512


def _parse_size(value: str) -> tuple[int, int]:
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got {value!r}")
    if width < 1 or height < 1:
        raise argparse.ArgumentTypeError(f"Window size must be positive, got {value!r}")
    return width, height


def _parse_device(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="melscope",
        description="Live scrolling Mel spectrogram for microphone or file input",
    )

    parser.add_argument(
        "audio",
        type=Path,
        nargs="?",
        default=None,
        help="Audio file to analyse in real time (default: microphone)",
    )
    parser.add_argument("--device", type=_parse_device, default=None, help="Input device index or name")
    parser.add_argument("--list-devices", action="store_true", help="List input devices and exit")

    # Analysis
    parser.add_argument("--fft-size", type=int, default=1024, help="Analysis window size (default: 1024)")
    parser.add_argument("--mel-bands", type=int, default=256, help="Mel band count (default: 256)")
    parser.add_argument("--smoothing", type=float, default=0.5, help="Analyser smoothing 0-1 (default: 0.5)")
    parser.add_argument("--min-freq", type=float, default=500.0, help="Lowest Mel frequency in Hz (default: 500)")
    parser.add_argument("--sample-rate", type=int, default=44100, help="Sample rate in Hz (default: 44100)")
    parser.add_argument("--width", type=int, default=600, help="History length in columns (default: 600)")

    # Look
    parser.add_argument("--bloom", type=float, default=0.7, help="Bloom intensity (default: 0.7)")
    parser.add_argument("--exposure", type=float, default=1.2, help="Exposure (default: 1.2)")
    parser.add_argument("--gamma", type=float, default=1.0, help="Gamma (default: 1.0)")
    parser.add_argument("--scroll-speed", type=float, default=1.0, help="Animation speed (default: 1.0)")

    # Window
    parser.add_argument("--window", type=_parse_size, default=(1280, 720), help="Window size WxH (default: 1280x720)")
    parser.add_argument("-f", "--fps", type=int, default=60, help="Frame rate cap (default: 60)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline events")

    return parser


def _caption(pipeline: SpectrogramPipeline) -> str:
    cfg = pipeline.config
    state = "recording" if pipeline.recording else "stopped"
    return (
        f"melscope [{state}]  fft {cfg.fft_size}  bands {cfg.mel_bands}  "
        f"bloom {cfg.bloom_intensity:.1f}  exposure {cfg.exposure:.1f}  gamma {cfg.gamma:.1f}"
    )


def _open_source(args: argparse.Namespace, config: RenderConfig) -> AudioSource:
    if args.audio is not None:
        return FileSource(args.audio, sample_rate=config.sample_rate)
    return MicrophoneSource(sample_rate=config.sample_rate, device=args.device)


def handle_key(pipeline: SpectrogramPipeline, key: int) -> dict:
    """
    Translate a key press into option changes.

    Returns:
        The options to apply (empty for unmapped keys).
    """
    cfg = pipeline.config
    if key == pygame.K_UP:
        return {"mel_bands": min(cfg.mel_bands * 2, MAX_BANDS)}
    if key == pygame.K_DOWN:
        return {"mel_bands": max(cfg.mel_bands // 2, MIN_BANDS)}
    if key == pygame.K_RIGHT:
        return {"fft_size": min(cfg.fft_size * 2, MAX_FFT_SIZE)}
    if key == pygame.K_LEFT:
        return {"fft_size": max(cfg.fft_size // 2, MIN_FFT_SIZE)}
    if key == pygame.K_RIGHTBRACKET:
        return {"bloom_intensity": round(cfg.bloom_intensity + 0.1, 2)}
    if key == pygame.K_LEFTBRACKET:
        return {"bloom_intensity": round(max(cfg.bloom_intensity - 0.1, 0.0), 2)}
    if key == pygame.K_EQUALS:
        return {"exposure": round(cfg.exposure + 0.1, 2)}
    if key == pygame.K_MINUS:
        return {"exposure": round(max(cfg.exposure - 0.1, 0.0), 2)}
    if key == pygame.K_PERIOD:
        return {"gamma": round(cfg.gamma + 0.1, 2)}
    if key == pygame.K_COMMA:
        return {"gamma": round(max(cfg.gamma - 0.1, 0.1), 2)}
    return {}


def run(pipeline: SpectrogramPipeline, display: PygameDisplay, args: argparse.Namespace):
    """Tick, render and handle keys until the window is closed."""
    elapsed = 0.0
    while True:
        for event in display.poll_events():
            if event == QUIT or event == pygame.K_ESCAPE:
                return
            if event == pygame.K_SPACE:
                if pipeline.recording:
                    pipeline.stop()
                else:
                    try:
                        pipeline.start(_open_source(args, pipeline.config))
                    except (DeviceUnavailable, DecodeFailure) as e:
                        print(f"Error: {e}", file=sys.stderr)
            else:
                changes = handle_key(pipeline, event)
                if changes:
                    pipeline.configure(**changes)
            display.set_caption(_caption(pipeline))

        was_recording = pipeline.recording
        pipeline.tick()
        if was_recording and not pipeline.recording:
            print("Playback finished")
            display.set_caption(_caption(pipeline))

        pipeline.render(display, elapsed)
        elapsed += display.wait(args.fps)


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list_devices:
        try:
            devices = list_input_devices()
        except DeviceUnavailable as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        for device in devices:
            print(
                f"  [{device['index']}] {device['name']} "
                f"({device['channels']} ch, {device['default_samplerate']:.0f} Hz)"
            )
        return

    if args.audio is not None and not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        sys.exit(1)

    try:
        config = RenderConfig(
            fft_size=args.fft_size,
            mel_bands=args.mel_bands,
            smoothing=args.smoothing,
            bloom_intensity=args.bloom,
            scroll_speed=args.scroll_speed,
            spectrogram_width=args.width,
            exposure=args.exposure,
            gamma=args.gamma,
            sample_rate=args.sample_rate,
            min_frequency=args.min_freq,
        )
        pipeline = SpectrogramPipeline(config)
        source = _open_source(args, config)
        pipeline.start(source)
    except (InvalidConfig, DeviceUnavailable, DecodeFailure) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.audio is not None:
        print(f"Analyzing audio: {args.audio} ({source.duration:.1f}s)")
    else:
        print("Listening on the microphone (space to stop, escape to quit)")
    print(f"  FFT size: {config.fft_size}, Mel bands: {config.mel_bands}, width: {config.spectrogram_width}")

    display = PygameDisplay(size=args.window, caption=_caption(pipeline))
    try:
        run(pipeline, display, args)
    finally:
        pipeline.stop()
        display.close()


if __name__ == "__main__":
    main()
