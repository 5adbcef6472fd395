"""Value objects - immutable data with validation."""

from .color import RGBAColor, WHITE
from .geometry import BoundingBox, CanvasTransform, Point, Polygon
from .config import (
    AISegmentationConfig,
    APIStyle,
    BackgroundRemovalOptions,
    ExtractionOptions,
    ManualSplitConfig,
    VisionAPIConfig,
)

__all__ = [
    'RGBAColor',
    'WHITE',
    'Point',
    'Polygon',
    'BoundingBox',
    'CanvasTransform',
    'APIStyle',
    'ManualSplitConfig',
    'AISegmentationConfig',
    'ExtractionOptions',
    'BackgroundRemovalOptions',
    'VisionAPIConfig',
]
