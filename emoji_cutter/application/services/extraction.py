"""Extraction service - turn regions into PNG cutouts."""

from __future__ import annotations

import base64
import io
import logging
import time
from typing import Callable, Sequence

from PIL import Image as PILImage

from ...config import DEFAULTS
from ...domain.entities.image import PixelBuffer
from ...domain.entities.region import (
    ExtractedEmoji,
    SegmentationRegion,
    SelectionRegion,
    generate_id,
)
from ...domain.services.region_extraction import crop_rectangle, extract_from_selection
from ...domain.value_objects.config import ExtractionOptions
from ..ports.cache import MemoryCache
from ..ports.event_publisher import (
    STAGE_EXTRACT_COMPLETE,
    STAGE_EXTRACT_FAILED,
    STAGE_EXTRACT_START,
    EventPublisher,
    ProcessingEvent,
    SimpleEventPublisher,
)

logger = logging.getLogger(__name__)


class ThumbnailCache:
    """LRU cache of selection thumbnails keyed by id and current geometry.

    Editing a selection changes its fingerprint, so stale thumbnails are
    never served; they simply age out.
    """

    def __init__(
        self,
        max_size: int | None = DEFAULTS.thumbnail_cache_size,
        thumbnail_size: int = DEFAULTS.thumbnail_size
    ):
        self._cache = MemoryCache(max_size)
        self.thumbnail_size = thumbnail_size

    @staticmethod
    def key(selection: SelectionRegion) -> tuple[str, str]:
        return (selection.id, selection.geometry_fingerprint)

    def get(
        self,
        pixels: PixelBuffer,
        selection: SelectionRegion
    ) -> str:
        """Data URL of the selection's thumbnail, rendering it on a miss."""
        key = self.key(selection)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        thumbnail = self._render(pixels, selection)
        self._cache.set(key, thumbnail)
        return thumbnail

    def _render(self, pixels: PixelBuffer, selection: SelectionRegion) -> str:
        image = crop_rectangle(pixels, selection.bounding_box).to_pil()
        image.thumbnail((self.thumbnail_size, self.thumbnail_size), PILImage.Resampling.LANCZOS)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, selection: SelectionRegion) -> bool:
        return self._cache.has(self.key(selection))


class ExtractionService:
    """Cut every region out of an image.

    One bad region is logged and skipped; the rest are still extracted.
    """

    def __init__(self, event_publisher: EventPublisher | None = None):
        self._events = event_publisher or SimpleEventPublisher()

    def extract_one(
        self,
        pixels: PixelBuffer,
        region: SelectionRegion | SegmentationRegion,
        options: ExtractionOptions | None = None
    ) -> ExtractedEmoji:
        cutout = extract_from_selection(pixels, region, options)
        return ExtractedEmoji(
            id=generate_id("emoji_"),
            blob=cutout.to_png_bytes(),
            preview=cutout.to_data_url(),
            bounding_box=region.bounding_box,
            pixels=cutout,
        )

    def extract_all(
        self,
        pixels: PixelBuffer,
        regions: Sequence[SelectionRegion | SegmentationRegion],
        options: ExtractionOptions | None = None,
        progress_callback: Callable[[int, int], None] | None = None
    ) -> list[ExtractedEmoji]:
        """Extract all regions in order.

        Args:
            pixels: Source image
            regions: Regions to cut out
            options: Extraction options (defaults remove the background)
            progress_callback: Optional callback(done, total)

        Returns:
            Cutouts for the regions that succeeded
        """
        start_time = time.time()
        total = len(regions)
        emojis: list[ExtractedEmoji] = []

        self._events.publish(ProcessingEvent(
            stage=STAGE_EXTRACT_START,
            message=f"Extracting {total} regions",
            progress=0.0,
            region_count=total,
        ))

        for i, region in enumerate(regions, 1):
            try:
                emojis.append(self.extract_one(pixels, region, options))
            except Exception as e:
                logger.error(f"Failed to extract region {region.id}: {e}")
                self._events.publish(ProcessingEvent(
                    stage=STAGE_EXTRACT_FAILED,
                    message=str(e),
                    progress=i / total,
                    region_id=region.id,
                ))
            if progress_callback:
                progress_callback(i, total)

        elapsed = (time.time() - start_time) * 1000
        logger.info(f"Extracted {len(emojis)}/{total} regions in {elapsed:.0f}ms")

        self._events.publish(ProcessingEvent(
            stage=STAGE_EXTRACT_COMPLETE,
            message=f"Extracted {len(emojis)}/{total} regions",
            progress=1.0,
            region_count=len(emojis),
        ))
        return emojis
