"""Background Remover port - interface for ML matting backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ...domain.entities.image import PixelBuffer


@runtime_checkable
class AdvancedBackgroundRemover(Protocol):
    """Port for model-based background removal."""

    @property
    def name(self) -> str:
        ...

    @property
    def is_available(self) -> bool:
        """Check if backend dependencies are installed."""
        ...

    def remove(self, pixels: PixelBuffer) -> PixelBuffer:
        """Return a copy of ``pixels`` with the background made transparent.

        Raises:
            BackgroundRemovalError: If the backend fails
        """
        ...
