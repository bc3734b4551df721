"""
Display sinks for the spectrogram image.

A sink receives the current SpectrogramImage plus per-tick uniforms and
presents it. Shading runs on the CPU through ``colorgrade.shade``.
"""

import abc
import logging
from dataclasses import dataclass

import numpy as np
import pygame

from melscope.core.texture import SpectrogramImage
from melscope.render.colorgrade import shade, to_rgb8

logger = logging.getLogger(__name__)

QUIT = "quit"


@dataclass(frozen=True)
class DisplayUniforms:
    """Per-tick scalars consumed by the shading stage."""

    time: float
    bloom_intensity: float
    exposure: float
    gamma: float


def render_frame(image: SpectrogramImage, uniforms: DisplayUniforms) -> np.ndarray:
    """
    Shade the spectrogram for presentation.

    Returns:
        (H, W, 3) uint8 RGB with the lowest band on the bottom row.
    """
    rgb = shade(
        image.intensity(),
        time=uniforms.time,
        bloom_intensity=uniforms.bloom_intensity,
        exposure=uniforms.exposure,
        gamma=uniforms.gamma,
    )
    return np.ascontiguousarray(to_rgb8(rgb)[::-1])


def frame_to_surface(frame: np.ndarray) -> pygame.Surface:
    """(H, W, 3) uint8 array to a pygame Surface."""
    # pygame uses (width, height) but numpy frames are (height, width)
    return pygame.surfarray.make_surface(np.transpose(frame, (1, 0, 2)))


def surface_to_array(surface: pygame.Surface) -> np.ndarray:
    """pygame Surface back to an (H, W, 3) uint8 array."""
    return np.transpose(pygame.surfarray.array3d(surface), (1, 0, 2))


class DisplaySink(abc.ABC):
    @abc.abstractmethod
    def present(self, image: SpectrogramImage, uniforms: DisplayUniforms):
        """Show the image with the given uniforms."""


class ArraySink(DisplaySink):
    """Headless sink that keeps the last shaded frame."""

    def __init__(self):
        self.frame: np.ndarray | None = None
        self.uniforms: DisplayUniforms | None = None
        self.frames_presented = 0

    def present(self, image: SpectrogramImage, uniforms: DisplayUniforms):
        self.frame = render_frame(image, uniforms)
        self.uniforms = uniforms
        self.frames_presented += 1


class PygameDisplay(DisplaySink):
    """
    Resizable pygame window.

    The spectrogram is shaded at texture resolution and smooth-scaled to
    the window.
    """

    def __init__(self, size: tuple[int, int] = (1280, 720), caption: str = "melscope"):
        pygame.init()
        self.screen = pygame.display.set_mode(size, pygame.RESIZABLE)
        pygame.display.set_caption(caption)
        self.clock = pygame.time.Clock()
        logger.info("Opened %dx%d display", *size)

    def present(self, image: SpectrogramImage, uniforms: DisplayUniforms):
        surface = frame_to_surface(render_frame(image, uniforms))
        scaled = pygame.transform.smoothscale(surface, self.screen.get_size())
        self.screen.blit(scaled, (0, 0))
        pygame.display.flip()

    def set_caption(self, caption: str):
        pygame.display.set_caption(caption)

    def poll_events(self) -> list:
        """Key codes pressed since the last poll, plus ``QUIT`` on window close."""
        events = []
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                events.append(QUIT)
            elif event.type == pygame.KEYDOWN:
                events.append(event.key)
        return events

    def wait(self, fps: int) -> float:
        """Cap the loop rate; returns seconds since the previous call."""
        return self.clock.tick(fps) / 1000.0

    def close(self):
        pygame.quit()
