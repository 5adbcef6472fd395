"""Background colour detection and foreground masking."""

from __future__ import annotations

import logging
import math

import numpy as np
import numpy.typing as npt

from ...config import DEFAULTS
from ..entities.image import PixelBuffer
from ..value_objects.color import WHITE, RGBAColor

logger = logging.getLogger(__name__)

# (H, W) bool, True = foreground
BinaryMask = npt.NDArray[np.bool_]


def color_distance(a: RGBAColor, b: RGBAColor) -> float:
    """Euclidean distance over RGB; alpha is ignored."""
    return math.sqrt((a.r - b.r) ** 2 + (a.g - b.g) ** 2 + (a.b - b.b) ** 2)


def colors_are_similar(a: RGBAColor, b: RGBAColor, tolerance: float) -> bool:
    return color_distance(a, b) <= tolerance


def distance_map(pixels: PixelBuffer, color: RGBAColor) -> npt.NDArray[np.float64]:
    """Per-pixel RGB distance to ``color`` as an (H, W) array."""
    rgb = pixels.data[:, :, :3].astype(np.int32)
    diff = rgb - np.array(color.rgb, dtype=np.int32)
    return np.sqrt(np.sum(diff * diff, axis=2, dtype=np.int64))


def corner_inset(width: int, height: int) -> int:
    """Distance from the border at which corners are sampled."""
    return min(DEFAULTS.corner_inset_max, min(width, height) // DEFAULTS.corner_inset_divisor)


def detect_background_color(
    pixels: PixelBuffer,
    tolerance: float = DEFAULTS.tolerance
) -> RGBAColor:
    """Guess the background colour from the four (slightly inset) corners.

    Samples are grouped by similarity; the colour of the first sample in the
    largest group wins, ties resolve to the group found first.

    Args:
        pixels: Image to inspect
        tolerance: Maximum RGB distance for two samples to be grouped

    Returns:
        Background colour, opaque white for an empty image
    """
    width, height = pixels.width, pixels.height
    if width == 0 or height == 0:
        return WHITE

    offset = corner_inset(width, height)
    positions = [
        (offset, offset),
        (width - 1 - offset, offset),
        (offset, height - 1 - offset),
        (width - 1 - offset, height - 1 - offset),
    ]

    groups: list[list] = []  # [color, count]
    for x, y in positions:
        color = pixels.pixel(x, y)
        for group in groups:
            if colors_are_similar(color, group[0], tolerance):
                group[1] += 1
                break
        else:
            groups.append([color, 1])

    if not groups:
        return WHITE

    best = groups[0]
    for group in groups[1:]:
        if group[1] > best[1]:
            best = group

    logger.debug(f"Background colour {best[0].rgb} ({best[1]}/4 corners)")
    return best[0]


def create_binary_mask(
    pixels: PixelBuffer,
    background: RGBAColor,
    tolerance: float = DEFAULTS.tolerance,
    alpha_threshold: int = DEFAULTS.opaque_alpha_threshold
) -> BinaryMask:
    """Mark pixels that differ from the background colour.

    Pixels whose alpha is below ``alpha_threshold`` are background regardless
    of their colour.
    """
    if pixels.width == 0 or pixels.height == 0:
        return np.zeros((pixels.height, pixels.width), dtype=bool)

    foreground = distance_map(pixels, background) > tolerance
    foreground &= pixels.alpha >= alpha_threshold
    return foreground
