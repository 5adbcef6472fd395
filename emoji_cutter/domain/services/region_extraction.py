"""Cropping rectangle and polygon regions out of a pixel buffer."""

from __future__ import annotations

import logging
import math

import numpy as np

from ...exceptions import DegenerateRegionError
from ..entities.image import PixelBuffer
from ..entities.region import RegionType, SegmentationRegion, SelectionRegion
from ..value_objects.config import ExtractionOptions
from ..value_objects.geometry import BoundingBox, Polygon
from .background_removal import remove_background_flood_fill

logger = logging.getLogger(__name__)


def _crop_window(
    pixels: PixelBuffer,
    box: BoundingBox,
    padding: int
) -> tuple[int, int, int, int]:
    """Integer crop rectangle covering ``box`` plus padding, clipped to the image."""
    left = max(0, math.floor(box.x - padding))
    top = max(0, math.floor(box.y - padding))
    right = min(pixels.width, math.ceil(box.right + padding))
    bottom = min(pixels.height, math.ceil(box.bottom + padding))
    if right <= left or bottom <= top:
        raise DegenerateRegionError(
            f"Region {box.to_dict()} does not overlap the {pixels.width}x{pixels.height} image"
        )
    return left, top, right - left, bottom - top


def crop_rectangle(pixels: PixelBuffer, box: BoundingBox, padding: int = 0) -> PixelBuffer:
    """Plain copy of the box area, no masking."""
    return pixels.crop(*_crop_window(pixels, box, padding))


def crop_polygon(
    pixels: PixelBuffer,
    polygon: Polygon,
    box: BoundingBox,
    padding: int = 0
) -> PixelBuffer:
    """Crop like ``crop_rectangle`` and clear every pixel outside the polygon.

    A pixel is kept when its centre lies inside the polygon (even-odd rule).
    Cleared pixels are transparent black.
    """
    left, top, width, height = _crop_window(pixels, box, padding)
    cropped = pixels.crop(left, top, width, height)

    # Pixel centres in crop-local coordinates
    xs = np.arange(width, dtype=np.float64) + 0.5
    ys = np.arange(height, dtype=np.float64)[:, None] + 0.5
    inside = np.zeros((height, width), dtype=bool)

    vertices = [(v.x - left, v.y - top) for v in polygon.vertices]
    j = len(vertices) - 1
    for i in range(len(vertices)):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        if yi != yj:
            spans = (yi > ys) != (yj > ys)
            x_cross = (xj - xi) * (ys - yi) / (yj - yi) + xi
            inside ^= spans & (xs < x_cross)
        j = i

    cropped.data[~inside] = 0
    return cropped


def extract_from_selection(
    pixels: PixelBuffer,
    selection: SelectionRegion | SegmentationRegion,
    options: ExtractionOptions | None = None
) -> PixelBuffer:
    """Crop a region by its type and optionally erase its background.

    Background removal is best-effort: if it fails the unmasked crop is
    returned and a warning is logged.
    """
    options = options or ExtractionOptions()

    if selection.type == RegionType.POLYGON and selection.polygon is not None:
        cropped = crop_polygon(pixels, selection.polygon, selection.bounding_box, options.padding)
    else:
        cropped = crop_rectangle(pixels, selection.bounding_box, options.padding)

    if not options.remove_background:
        return cropped

    try:
        return remove_background_flood_fill(
            cropped,
            tolerance=options.background_tolerance,
            feather=options.feather,
        )
    except Exception as e:
        logger.warning(f"Background removal failed for {selection.id}, keeping crop: {e}")
        return cropped
