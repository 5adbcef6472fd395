"""rembg adapter - implements AdvancedBackgroundRemover port."""

from __future__ import annotations

import logging

from ...application.ports.background_remover import AdvancedBackgroundRemover
from ...domain.entities.image import PixelBuffer
from ...exceptions import BackgroundRemovalError

logger = logging.getLogger(__name__)


class RembgAdapter(AdvancedBackgroundRemover):
    """Salient-object matting through rembg's ONNX models."""

    def __init__(self, model_name: str = "silueta"):
        self._model_name = model_name
        self._session = None

    @property
    def name(self) -> str:
        return f"rembg-{self._model_name}"

    @property
    def is_available(self) -> bool:
        """Check if rembg is installed."""
        try:
            import rembg  # noqa: F401
            return True
        except ImportError:
            return False

    def load(self) -> None:
        """Create the rembg session (downloads the model on first use)."""
        if self._session is not None:
            return

        try:
            from rembg import new_session
        except ImportError as e:
            raise RuntimeError(
                "rembg not installed. Install with: pip install emoji-cutter[advanced]"
            ) from e

        logger.info(f"Loading rembg model {self._model_name}...")
        self._session = new_session(self._model_name)

    def unload(self) -> None:
        self._session = None

    def remove(self, pixels: PixelBuffer) -> PixelBuffer:
        try:
            self.load()
            from rembg import remove

            result = remove(pixels.to_pil(), session=self._session)
            return PixelBuffer.from_pil(result)
        except Exception as e:
            raise BackgroundRemovalError(f"rembg failed: {e}", method="advanced") from e
