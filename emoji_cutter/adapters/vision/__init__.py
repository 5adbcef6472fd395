"""Vision model adapters."""

from ...domain.value_objects.config import APIStyle, VisionAPIConfig
from .gemini_adapter import GeminiVisionAdapter
from .openai_adapter import OpenAIVisionAdapter


def create_vision_model(config: VisionAPIConfig) -> OpenAIVisionAdapter | GeminiVisionAdapter:
    """Pick the adapter matching the configured API style."""
    if config.style == APIStyle.GEMINI:
        return GeminiVisionAdapter(config)
    return OpenAIVisionAdapter(config)


__all__ = ['OpenAIVisionAdapter', 'GeminiVisionAdapter', 'create_vision_model']
