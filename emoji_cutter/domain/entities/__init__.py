"""Domain entities."""

from .image import PixelBuffer
from .region import (
    ExtractedEmoji,
    RegionType,
    SegmentationMethod,
    SegmentationRegion,
    SegmentationResult,
    SelectionMode,
    SelectionRegion,
)

__all__ = [
    'PixelBuffer',
    'RegionType',
    'SelectionMode',
    'SegmentationMethod',
    'SelectionRegion',
    'SegmentationRegion',
    'SegmentationResult',
    'ExtractedEmoji',
]
