"""
Color grading and post-processing for the spectrogram.

Maps texture intensities to a four-stop false-color palette blended with
an animated cosine palette, adds bloom, chromatic aberration, noise
detail and shimmer, then applies gamma and exposure.

Every function is a pure, vectorized function of its inputs, so a frame
is reproducible from (intensities, time, settings) alone.
"""

import numpy as np
from scipy import ndimage

# Reference colors for the intensity ramp
DARK = np.array([0.28, 0.27, 0.91])
MID = np.array([0.8, 0.36, 0.57])
BRIGHT = np.array([0.88, 0.43, 0.35])
CORE = np.array([0.86, 0.47, 0.28])

# Cosine palette coefficients: a + b * cos(2pi * (c * t + d))
PALETTE_A = np.array([0.5, 0.5, 0.5])
PALETTE_B = np.array([0.3, 0.3, 0.3])
PALETTE_C = np.array([1.0, 1.0, 0.5])
PALETTE_D = np.array([0.8, 0.9, 0.3])

BLACK_LEVEL = 0.01
BLOOM_RADIUS = 3
BLOOM_FALLOFF = 0.2
BLOOM_SCALE = 0.02
CHROMATIC_MIX = 0.6


def smoothstep(edge0: float, edge1: float, x) -> np.ndarray:
    """Hermite interpolation between two edges (GLSL semantics)."""
    t = np.clip((np.asarray(x, dtype=np.float64) - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def mix(a, b, t):
    """Linear blend ``a * (1 - t) + b * t``."""
    return a + (b - a) * t


def fract(x):
    return x - np.floor(x)


def palette(t) -> np.ndarray:
    """
    Cosine color palette.

    Args:
        t: Scalar or array phase.

    Returns:
        Array of shape ``t.shape + (3,)``.
    """
    t = np.asarray(t, dtype=np.float64)[..., np.newaxis]
    return PALETTE_A + PALETTE_B * np.cos(2.0 * np.pi * (PALETTE_C * t + PALETTE_D))


def map_color(intensity, time: float = 0.0) -> np.ndarray:
    """
    Map intensities to RGB.

    Three smoothstep-blended segments (below 0.25, 0.25-0.6, above 0.6)
    between four reference colors, blended with the animated palette in
    proportion to intensity and softened near zero. Intensities below
    0.01 are pure black.

    Args:
        intensity: Scalar or array of intensities, nominally in [0, 1].
        time: Palette animation phase.

    Returns:
        float64 array of shape ``intensity.shape + (3,)``.
    """
    i = np.asarray(intensity, dtype=np.float64)
    x = i[..., np.newaxis]

    low = mix(DARK, MID, smoothstep(0.0, 0.25, x))
    middle = mix(MID, BRIGHT, smoothstep(0.25, 0.6, x))
    high = mix(BRIGHT, CORE, smoothstep(0.6, 1.0, x))
    color = np.where(x < 0.25, low, np.where(x < 0.6, middle, high))

    color = mix(color, palette(i + time * 0.1), 0.3 * x)
    color = color * smoothstep(0.0, 0.05, x)

    return np.where(x < BLACK_LEVEL, 0.0, color)


def bloom_kernel(radius: int = BLOOM_RADIUS, falloff: float = BLOOM_FALLOFF) -> np.ndarray:
    """(2r+1, 2r+1) weights ``exp(-(dx^2 + dy^2) * falloff)``."""
    dy, dx = np.mgrid[-radius:radius + 1, -radius:radius + 1]
    return np.exp(-(dx ** 2 + dy ** 2) * falloff)


def bloom(
    image: np.ndarray,
    x: int,
    y: int,
    radius: int = BLOOM_RADIUS,
    falloff: float = BLOOM_FALLOFF,
) -> float:
    """
    Kernel-weighted sum of intensities around one texel.

    Neighbours beyond the border repeat the edge texel.

    Args:
        image: (H, W) intensities.
        x: Column.
        y: Row.

    Returns:
        Unscaled bloom estimate.
    """
    h, w = image.shape
    offsets = np.arange(-radius, radius + 1)
    rows = np.clip(y + offsets, 0, h - 1)
    cols = np.clip(x + offsets, 0, w - 1)
    return float(np.sum(image[np.ix_(rows, cols)] * bloom_kernel(radius, falloff)))


def bloom_field(
    image: np.ndarray,
    radius: int = BLOOM_RADIUS,
    falloff: float = BLOOM_FALLOFF,
) -> np.ndarray:
    """``bloom()`` evaluated for every texel at once."""
    return ndimage.convolve(
        np.asarray(image, dtype=np.float64),
        bloom_kernel(radius, falloff),
        mode="nearest",
    )


def chromatic_sample(image: np.ndarray, offset) -> np.ndarray:
    """
    Resample intensities shifted horizontally.

    Args:
        image: (H, W) intensities.
        offset: Scalar or (H, W) shift in normalized texture units
            (1.0 = full width). Sampling is bilinear, clamped to edges.

    Returns:
        (H, W) float64 intensities.
    """
    h, w = image.shape
    rows, cols = np.mgrid[0:h, 0:w].astype(np.float64)
    cols = cols + np.asarray(offset, dtype=np.float64) * w
    return ndimage.map_coordinates(
        np.asarray(image, dtype=np.float64),
        [rows, cols],
        order=1,
        mode="nearest",
    )


def _hash(px: np.ndarray, py: np.ndarray) -> np.ndarray:
    return fract(np.sin(px * 127.1 + py * 311.7) * 43758.5453)


def value_noise(px: np.ndarray, py: np.ndarray) -> np.ndarray:
    """Smooth lattice value noise in [0, 1]."""
    ix, iy = np.floor(px), np.floor(py)
    fx, fy = px - ix, py - iy
    fx = fx * fx * (3.0 - 2.0 * fx)
    fy = fy * fy * (3.0 - 2.0 * fy)

    bottom = mix(_hash(ix, iy), _hash(ix + 1.0, iy), fx)
    top = mix(_hash(ix, iy + 1.0), _hash(ix + 1.0, iy + 1.0), fx)
    return mix(bottom, top, fy)


def grade(color: np.ndarray, gamma: float = 1.0, exposure: float = 1.0) -> np.ndarray:
    """``clamp(pow(color, 1/gamma) * exposure, 0, 1)``."""
    color = np.power(np.clip(color, 0.0, None), 1.0 / gamma) * exposure
    return np.clip(color, 0.0, 1.0)


def shade(
    image: np.ndarray,
    time: float = 0.0,
    bloom_intensity: float = 0.7,
    exposure: float = 1.2,
    gamma: float = 1.0,
) -> np.ndarray:
    """
    Render spectrogram intensities to a finished RGB frame.

    One output pixel per texel.

    Args:
        image: (H, W) intensities in [0, 1], row 0 = lowest band.
        time: Animation time in seconds (already scaled by scroll speed).
        bloom_intensity: Glow strength.
        exposure: Output multiplier.
        gamma: Output gamma.

    Returns:
        (H, W, 3) float64 RGB in [0, 1].
    """
    intensity = np.asarray(image, dtype=np.float64)
    h, w = intensity.shape
    rows, cols = np.mgrid[0:h, 0:w].astype(np.float64)
    u = (cols + 0.5) / w
    v = (rows + 0.5) / h
    phase = fract(time)

    # Chromatic aberration: red sampled left, blue sampled right
    strength = intensity * 0.004 + 0.003 * np.sin(phase * 2.0)
    original = map_color(intensity, time)
    red = map_color(chromatic_sample(intensity, -strength), time)[..., 0]
    blue = map_color(chromatic_sample(intensity, strength), time)[..., 2]
    chromatic = np.stack([red, original[..., 1], blue], axis=-1)
    color = mix(original, chromatic, CHROMATIC_MIX)

    glow = bloom_field(intensity) * bloom_intensity * BLOOM_SCALE

    # Fine horizontal grain
    detail = value_noise(u, v * 512.0) * 0.05 * intensity
    color = color * (detail * (50.0 * (0.5 + np.sin(phase) * 0.5)))[..., np.newaxis]
    color = np.clip(color, 0.0, 1.0)

    glow_color = map_color(glow, time)
    color = color + glow_color * bloom_intensity + color * glow_color

    shimmer = 1.0 + (1.0 - 0.5 * np.sin(phase + u * 5.0)) * intensity
    color = color * shimmer[..., np.newaxis]

    return grade(color, gamma=gamma, exposure=exposure)


def to_rgb8(color: np.ndarray) -> np.ndarray:
    """Float RGB in [0, 1] to uint8."""
    return (np.clip(color, 0.0, 1.0) * 255.0).astype(np.uint8)
