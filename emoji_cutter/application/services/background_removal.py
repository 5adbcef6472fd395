"""Background removal service - advanced backend with flood-fill fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...domain.entities.image import PixelBuffer
from ...domain.services.background_removal import remove_background_flood_fill
from ...domain.value_objects.config import BackgroundRemovalOptions
from ...exceptions import BackgroundRemovalError
from ..ports.background_remover import AdvancedBackgroundRemover

logger = logging.getLogger(__name__)


class RemovalMethod(str, Enum):
    ADVANCED = "advanced"
    SIMPLE = "simple"


@dataclass(frozen=True, slots=True)
class BackgroundRemovalResult:
    """Outcome of background removal; ``did_fallback`` marks a failed advanced try."""
    blob: bytes
    pixels: PixelBuffer
    method: RemovalMethod
    did_fallback: bool = False
    error: Optional[str] = None


class BackgroundRemovalService:
    """Remove an image background, preferring the advanced backend."""

    def __init__(self, advanced: AdvancedBackgroundRemover | None = None):
        self._advanced = advanced

    def _simple(self, pixels: PixelBuffer, options: BackgroundRemovalOptions) -> PixelBuffer:
        return remove_background_flood_fill(
            pixels,
            tolerance=options.tolerance,
            feather=options.feather_edge,
        )

    @staticmethod
    def _result(
        pixels: PixelBuffer,
        method: RemovalMethod,
        did_fallback: bool = False,
        error: Optional[str] = None
    ) -> BackgroundRemovalResult:
        return BackgroundRemovalResult(
            blob=pixels.to_png_bytes(),
            pixels=pixels,
            method=method,
            did_fallback=did_fallback,
            error=error,
        )

    def remove(
        self,
        source: bytes | PixelBuffer,
        options: BackgroundRemovalOptions | None = None
    ) -> BackgroundRemovalResult:
        """Remove the background of an encoded image or pixel buffer.

        Raises:
            ImageProcessingError: If ``source`` bytes cannot be decoded
        """
        options = options or BackgroundRemovalOptions()
        pixels = source if isinstance(source, PixelBuffer) else PixelBuffer.from_encoded(source)

        if not options.use_advanced:
            return self._result(self._simple(pixels, options), RemovalMethod.SIMPLE)

        try:
            if self._advanced is None:
                raise BackgroundRemovalError("No advanced background remover configured")
            if not self._advanced.is_available:
                raise BackgroundRemovalError(f"{self._advanced.name} is not installed")
            result = self._advanced.remove(pixels)
            logger.info(f"Background removed with {self._advanced.name}")
            return self._result(result, RemovalMethod.ADVANCED)
        except Exception as e:
            logger.warning(f"Advanced removal failed, falling back to flood fill: {e}")
            return self._result(
                self._simple(pixels, options),
                RemovalMethod.SIMPLE,
                did_fallback=True,
                error=str(e),
            )
