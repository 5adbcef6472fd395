"""Ports - interfaces for external dependencies (Dependency Inversion)."""

from .vision_model import VisionModel
from .background_remover import AdvancedBackgroundRemover
from .cache import Cache, MemoryCache
from .event_publisher import EventPublisher, ProcessingEvent, SimpleEventPublisher

__all__ = [
    'VisionModel',
    'AdvancedBackgroundRemover',
    'Cache',
    'MemoryCache',
    'EventPublisher',
    'ProcessingEvent',
    'SimpleEventPublisher',
]
