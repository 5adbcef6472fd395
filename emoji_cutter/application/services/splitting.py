"""Emoji split service - detection with AI-first fallback policy."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from ...domain.entities.image import PixelBuffer
from ...domain.entities.region import (
    ExtractedEmoji,
    SegmentationMethod,
    SegmentationResult,
)
from ...domain.services.component_labeling import detect_emojis, detect_grid, split_by_grid
from ...domain.value_objects.config import ExtractionOptions, ManualSplitConfig
from ..ports.event_publisher import (
    STAGE_AI_SEGMENT,
    STAGE_DETECT_COMPLETE,
    STAGE_FALLBACK_DETECT,
    STAGE_NO_REGIONS,
    EventPublisher,
    ProcessingEvent,
    SimpleEventPublisher,
)
from .ai_segmentation import AISegmentationAdapter, CancellationToken
from .extraction import ExtractionService

logger = logging.getLogger(__name__)

NO_REGIONS_HINT = "未检测到表情区域，请确认背景颜色是否均匀，或调整容差后重试"


@dataclass
class SplitOutcome:
    """Detection result plus the cutouts made from it."""
    segmentation: SegmentationResult
    emojis: list[ExtractedEmoji] = field(default_factory=list)
    hint: Optional[str] = None
    processing_time_ms: float = 0.0

    @property
    def method(self) -> SegmentationMethod:
        return self.segmentation.method


class EmojiSplitService:
    """Find emoji regions in a sheet and cut them out.

    AI segmentation is tried first when an adapter is configured and enabled.
    A failed or empty AI answer falls back to connected-component detection
    and the result reports ``method='fallback'``.
    """

    def __init__(
        self,
        ai_adapter: AISegmentationAdapter | None = None,
        manual_config: ManualSplitConfig | None = None,
        extraction_service: ExtractionService | None = None,
        event_publisher: EventPublisher | None = None
    ):
        self._ai = ai_adapter
        self._manual_config = manual_config or ManualSplitConfig()
        self._events = event_publisher or SimpleEventPublisher()
        self._extraction = extraction_service or ExtractionService(self._events)

    @property
    def uses_ai(self) -> bool:
        return self._ai is not None and self._ai.config.enabled

    def cancel(self) -> None:
        """Cancel an in-flight AI request."""
        if self._ai is not None:
            self._ai.cancel()

    def detect(
        self,
        pixels: PixelBuffer,
        blob: bytes | None = None,
        token: CancellationToken | None = None
    ) -> SegmentationResult:
        """Detect regions, falling back to classic detection if AI fails.

        Args:
            pixels: Decoded image
            blob: Original encoded bytes for the AI path (PNG-encoded if omitted)
            token: Optional cancellation token for the AI request
        """
        ai_error = None
        if self.uses_ai:
            self._events.publish(ProcessingEvent(
                stage=STAGE_AI_SEGMENT,
                message="Requesting AI segmentation",
                progress=0.0,
            ))
            result = self._ai.segment(blob or pixels.to_png_bytes(), token)
            if result.success and result.regions:
                self._events.publish(ProcessingEvent(
                    stage=STAGE_DETECT_COMPLETE,
                    message=f"AI found {result.region_count} regions",
                    progress=1.0,
                    region_count=result.region_count,
                ))
                return result
            ai_error = result.error
            logger.info(f"AI segmentation unusable ({ai_error or 'no regions'}), falling back")

        self._events.publish(ProcessingEvent(
            stage=STAGE_FALLBACK_DETECT,
            message="Detecting regions on flat background",
            progress=0.5,
        ))
        regions = detect_emojis(pixels, self._manual_config)
        self._events.publish(ProcessingEvent(
            stage=STAGE_DETECT_COMPLETE,
            message=f"Found {len(regions)} regions",
            progress=1.0,
            region_count=len(regions),
        ))
        return SegmentationResult(
            success=True,
            regions=regions,
            method=SegmentationMethod.FALLBACK,
            error=ai_error,
        )

    def detect_grid_layout(self, pixels: PixelBuffer) -> SegmentationResult:
        """Split along a detected grid, or detect regions if no grid is found."""
        grid = detect_grid(pixels, self._manual_config.tolerance)
        if grid is None:
            logger.info("No grid layout recognised, detecting regions instead")
            return SegmentationResult(
                success=True,
                regions=detect_emojis(pixels, self._manual_config),
                method=SegmentationMethod.FALLBACK,
            )
        rows, cols = grid
        logger.info(f"Detected {rows}x{cols} grid")
        return self.split_grid(pixels, rows, cols)

    def split_grid(self, pixels: PixelBuffer, rows: int, cols: int) -> SegmentationResult:
        return SegmentationResult(
            success=True,
            regions=split_by_grid(pixels, rows, cols),
            method=SegmentationMethod.FALLBACK,
        )

    def split(
        self,
        pixels: PixelBuffer,
        blob: bytes | None = None,
        options: ExtractionOptions | None = None,
        grid: tuple[int, int] | None = None,
        auto_grid: bool = False,
        token: CancellationToken | None = None
    ) -> SplitOutcome:
        """Detect regions and extract every one of them.

        Args:
            pixels: Decoded image
            blob: Original encoded bytes for the AI path
            options: Extraction options
            grid: Fixed (rows, cols) layout; skips detection
            auto_grid: Try grid detection instead of region detection
            token: Optional cancellation token for the AI request

        Returns:
            Outcome with cutouts; an empty result carries a hint, not an error
        """
        start_time = time.time()

        if grid is not None:
            segmentation = self.split_grid(pixels, *grid)
        elif auto_grid:
            segmentation = self.detect_grid_layout(pixels)
        else:
            segmentation = self.detect(pixels, blob, token)

        if segmentation.is_empty:
            self._events.publish(ProcessingEvent(
                stage=STAGE_NO_REGIONS,
                message=NO_REGIONS_HINT,
                progress=1.0,
                region_count=0,
            ))
            return SplitOutcome(
                segmentation=segmentation,
                hint=NO_REGIONS_HINT,
                processing_time_ms=(time.time() - start_time) * 1000,
            )

        emojis = self._extraction.extract_all(pixels, segmentation.regions, options)
        elapsed = (time.time() - start_time) * 1000
        logger.info(
            f"Split into {len(emojis)} emojis via {segmentation.method.value} in {elapsed:.0f}ms"
        )
        return SplitOutcome(
            segmentation=segmentation,
            emojis=emojis,
            processing_time_ms=elapsed,
        )
