"""Domain layer - pixel algorithms and geometry, no I/O."""

from .entities.image import PixelBuffer
from .entities.region import (
    ExtractedEmoji,
    RegionType,
    SegmentationRegion,
    SegmentationResult,
    SelectionMode,
    SelectionRegion,
)
from .value_objects.color import RGBAColor
from .value_objects.geometry import BoundingBox, Point, Polygon

__all__ = [
    # Entities
    'PixelBuffer',
    'RegionType',
    'SelectionMode',
    'SelectionRegion',
    'SegmentationRegion',
    'SegmentationResult',
    'ExtractedEmoji',
    # Value Objects
    'RGBAColor',
    'Point',
    'Polygon',
    'BoundingBox',
]
