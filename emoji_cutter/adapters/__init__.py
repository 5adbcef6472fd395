"""Adapters - concrete implementations of the application ports."""

from .background import RembgAdapter
from .vision import GeminiVisionAdapter, OpenAIVisionAdapter, create_vision_model

__all__ = [
    'RembgAdapter',
    'OpenAIVisionAdapter',
    'GeminiVisionAdapter',
    'create_vision_model',
]
