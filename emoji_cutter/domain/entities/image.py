"""Pixel buffer entity - RGBA pixels held in a numpy array."""

from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from ...exceptions import ImageProcessingError
from ..value_objects.color import RGBAColor

# (H, W, 4) uint8, row-major RGBA
RGBAArray = npt.NDArray[np.uint8]


@dataclass(frozen=True, slots=True)
class PixelBuffer:
    """Decoded RGBA image.

    The engine never reads files or codecs directly; callers decode into a
    PixelBuffer and the algorithms work on ``data``.
    """
    data: RGBAArray

    def __post_init__(self) -> None:
        if self.data.ndim != 3 or self.data.shape[2] != 4:
            raise ImageProcessingError(
                f"Expected (H, W, 4) RGBA array, got shape {self.data.shape}"
            )
        if self.data.dtype != np.uint8:
            object.__setattr__(self, "data", self.data.astype(np.uint8))

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def alpha(self) -> npt.NDArray[np.uint8]:
        return self.data[:, :, 3]

    def pixel(self, x: int, y: int) -> RGBAColor:
        """Colour at integer pixel position."""
        return RGBAColor.from_sequence(self.data[y, x])

    def copy(self) -> PixelBuffer:
        return PixelBuffer(self.data.copy())

    def crop(self, x: int, y: int, w: int, h: int) -> PixelBuffer:
        """Copy of the sub-rectangle; caller guarantees it is inside the image."""
        return PixelBuffer(self.data[y:y + h, x:x + w].copy())

    @classmethod
    def blank(cls, width: int, height: int, color: RGBAColor | None = None) -> PixelBuffer:
        """Create a uniformly filled buffer (transparent black by default)."""
        data = np.zeros((height, width, 4), dtype=np.uint8)
        if color is not None:
            data[:, :] = color.as_tuple()
        return cls(data)

    @classmethod
    def from_rgba_bytes(cls, width: int, height: int, raw: bytes | bytearray) -> PixelBuffer:
        """Wrap a row-major RGBA byte array (4 bytes per pixel)."""
        expected = width * height * 4
        if len(raw) != expected:
            raise ImageProcessingError(
                f"RGBA buffer has {len(raw)} bytes, expected {expected} for {width}x{height}"
            )
        data = np.frombuffer(bytes(raw), dtype=np.uint8).reshape(height, width, 4).copy()
        return cls(data)

    @classmethod
    def from_array(cls, array: npt.ArrayLike) -> PixelBuffer:
        """Create from an RGB or RGBA numpy array."""
        arr = np.asarray(array, dtype=np.uint8)
        if arr.ndim == 3 and arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)
        return cls(np.ascontiguousarray(arr))

    @classmethod
    def from_pil(cls, image: PILImage.Image) -> PixelBuffer:
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    @classmethod
    def from_encoded(cls, blob: bytes) -> PixelBuffer:
        """Decode PNG/JPEG/WebP/... bytes."""
        try:
            with PILImage.open(io.BytesIO(blob)) as image:
                return cls.from_pil(image)
        except (OSError, ValueError) as e:
            raise ImageProcessingError(f"Failed to decode image: {e}") from e

    @classmethod
    def from_file(cls, path: Path | str) -> PixelBuffer:
        """Load image from file."""
        path = Path(path)
        try:
            with PILImage.open(path) as image:
                return cls.from_pil(image)
        except (OSError, ValueError) as e:
            raise ImageProcessingError(f"Failed to load image: {e}", image_path=str(path)) from e

    def to_pil(self) -> PILImage.Image:
        return PILImage.fromarray(np.ascontiguousarray(self.data))

    def to_png_bytes(self) -> bytes:
        """Encode as PNG, keeping the alpha channel."""
        buffer = io.BytesIO()
        self.to_pil().save(buffer, format="PNG")
        return buffer.getvalue()

    def to_data_url(self) -> str:
        """PNG data URL usable as a preview source."""
        encoded = base64.b64encode(self.to_png_bytes()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
