"""Emoji Cutter - split emoji sprite sheets into transparent cutouts."""

__version__ = "1.0.0"

from .domain.entities.image import PixelBuffer
from .domain.entities.region import ExtractedEmoji, SegmentationRegion, SegmentationResult, SelectionRegion
from .domain.value_objects.config import (
    AISegmentationConfig,
    BackgroundRemovalOptions,
    ExtractionOptions,
    ManualSplitConfig,
    VisionAPIConfig,
)
from .application.services.splitting import EmojiSplitService
from .exceptions import (
    EmojiCutterError,
    ConfigurationError,
    ImageProcessingError,
    InvalidJsonError,
    InvalidPolygonError,
    DegenerateRegionError,
    TransportError,
    BackgroundRemovalError,
)
from .utils.env import setup_logging

__all__ = [
    '__version__',
    'PixelBuffer',
    'SegmentationRegion',
    'SegmentationResult',
    'SelectionRegion',
    'ExtractedEmoji',
    'ManualSplitConfig',
    'AISegmentationConfig',
    'ExtractionOptions',
    'BackgroundRemovalOptions',
    'VisionAPIConfig',
    'EmojiSplitService',
    'setup_logging',
    # Exceptions
    'EmojiCutterError',
    'ConfigurationError',
    'ImageProcessingError',
    'InvalidJsonError',
    'InvalidPolygonError',
    'DegenerateRegionError',
    'TransportError',
    'BackgroundRemovalError',
]
