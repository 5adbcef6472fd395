"""Border-connected background erasure with edge feathering."""

from __future__ import annotations

import logging
from collections import deque
from typing import Optional

import numpy as np

from ...config import DEFAULTS
from ..entities.image import PixelBuffer
from ..value_objects.color import RGBAColor
from .pixel_classifier import BinaryMask, detect_background_color, distance_map

logger = logging.getLogger(__name__)


def _border_indices(width: int, height: int) -> list[int]:
    """Flat indices of the image border, each listed once."""
    if width == 0 or height == 0:
        return []
    indices = set(range(width))
    indices.update(range((height - 1) * width, height * width))
    for y in range(height):
        indices.add(y * width)
        indices.add(y * width + width - 1)
    return sorted(indices)


def _flood_from_border(passable: BinaryMask) -> BinaryMask:
    """Multi-source BFS over ``passable`` seeded from every passable border pixel."""
    height, width = passable.shape
    size = width * height
    open_ = passable.reshape(-1).tolist()
    visited = bytearray(size)

    queue = deque()
    for idx in _border_indices(width, height):
        if open_[idx]:
            visited[idx] = 1
            queue.append(idx)

    while queue:
        idx = queue.popleft()
        x = idx % width
        if idx >= width:
            n = idx - width
            if open_[n] and not visited[n]:
                visited[n] = 1
                queue.append(n)
        if idx + width < size:
            n = idx + width
            if open_[n] and not visited[n]:
                visited[n] = 1
                queue.append(n)
        if x > 0:
            n = idx - 1
            if open_[n] and not visited[n]:
                visited[n] = 1
                queue.append(n)
        if x < width - 1:
            n = idx + 1
            if open_[n] and not visited[n]:
                visited[n] = 1
                queue.append(n)

    return np.frombuffer(bytes(visited), dtype=np.uint8).reshape(height, width).astype(bool)


def _neighbours(mask: BinaryMask) -> BinaryMask:
    """Pixels 4-adjacent to any set pixel of ``mask``."""
    out = np.zeros_like(mask)
    out[1:, :] |= mask[:-1, :]
    out[:-1, :] |= mask[1:, :]
    out[:, 1:] |= mask[:, :-1]
    out[:, :-1] |= mask[:, 1:]
    return out


def remove_background_flood_fill(
    pixels: PixelBuffer,
    background: Optional[RGBAColor] = None,
    tolerance: float = DEFAULTS.tolerance,
    feather: bool = True,
    feather_rounds: int = DEFAULTS.feather_rounds
) -> PixelBuffer:
    """Make the background reachable from the image border transparent.

    Background-coloured areas fully enclosed by the subject are kept. With
    ``feather`` on, up to ``feather_rounds`` rings of near-background pixels
    around the erased area are erased too, which cleans anti-aliased edges.

    Args:
        pixels: Source image (not modified)
        background: Background colour, detected from the corners when None
        tolerance: RGB distance for the hard fill; feathering uses twice this
        feather: Whether to run the feathering rounds
        feather_rounds: Maximum number of feathering rings

    Returns:
        New buffer with erased pixels at alpha 0
    """
    result = pixels.copy()
    if pixels.width == 0 or pixels.height == 0:
        return result

    if background is None:
        background = detect_background_color(pixels, tolerance)

    distances = distance_map(pixels, background)
    passable = (distances <= tolerance) & (pixels.alpha >= DEFAULTS.opaque_alpha_threshold)
    removed = _flood_from_border(passable)
    hard_count = int(removed.sum())

    if feather and hard_count:
        near = distances <= tolerance * DEFAULTS.feather_tolerance_factor
        frontier = removed
        for _ in range(feather_rounds):
            candidates = _neighbours(frontier) & near & ~removed
            if not candidates.any():
                break
            removed = removed | candidates
            frontier = candidates

    result.data[removed, 3] = 0
    logger.debug(
        f"Flood fill erased {int(removed.sum())} pixels "
        f"({hard_count} hard, background {background.rgb})"
    )
    return result


def has_transparent_pixels(pixels: PixelBuffer) -> bool:
    """True if any pixel has alpha below 255."""
    return bool((pixels.alpha < 255).any())
