"""Background removal adapters."""

from .rembg_adapter import RembgAdapter

__all__ = ['RembgAdapter']
