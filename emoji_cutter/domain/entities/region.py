"""Region entities - detection output, editable selections and cutouts."""

from __future__ import annotations

import copy
import secrets
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional

from ..value_objects.geometry import BoundingBox, Polygon

if TYPE_CHECKING:
    from .image import PixelBuffer


class RegionType(str, Enum):
    """Shape of a region."""
    RECTANGLE = "rectangle"
    POLYGON = "polygon"


class SelectionMode(str, Enum):
    """Drawing mode of the selection editor."""
    RECTANGLE = "rectangle"
    POLYGON = "polygon"
    SELECT = "select"


class SegmentationMethod(str, Enum):
    """Which pipeline produced a segmentation result."""
    AI = "ai"
    FALLBACK = "fallback"


def generate_id(prefix: str = "") -> str:
    """Time-ordered unique id."""
    stamp = format(int(time.time() * 1000), "x")
    return f"{prefix}{stamp}_{secrets.token_hex(4)}"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class SegmentationRegion:
    """A detected region; confidence and label only come from the AI path."""
    id: str
    type: RegionType
    bounding_box: BoundingBox
    polygon: Optional[Polygon] = None
    confidence: Optional[float] = None
    label: Optional[str] = None

    def to_selection(self) -> SelectionRegion:
        """Hand the region over to the editable model (confidence/label dropped)."""
        polygon = self.polygon if self.type == RegionType.POLYGON else None
        return SelectionRegion(
            id=generate_id("sel_"),
            type=RegionType.POLYGON if polygon is not None else RegionType.RECTANGLE,
            bounding_box=self.bounding_box,
            polygon=polygon,
        )


@dataclass(slots=True)
class SelectionRegion:
    """User-editable selection.

    ``polygon`` is set iff ``type`` is polygon, and ``bounding_box`` is always
    derived from it in that case.
    """
    id: str
    type: RegionType
    bounding_box: BoundingBox
    polygon: Optional[Polygon] = None
    created_at: int = field(default_factory=now_ms)
    is_selected: bool = False

    @property
    def is_polygon(self) -> bool:
        return self.type == RegionType.POLYGON and self.polygon is not None

    def clone(self) -> SelectionRegion:
        # geometry value objects are frozen, a shallow copy is a deep snapshot
        return copy.copy(self)

    def with_geometry(
        self,
        bounding_box: BoundingBox,
        polygon: Optional[Polygon] = None
    ) -> SelectionRegion:
        return replace(self, bounding_box=bounding_box, polygon=polygon)

    @property
    def geometry_fingerprint(self) -> str:
        """Stable key describing the current shape."""
        box = self.bounding_box
        parts = [f"{box.x:.3f}", f"{box.y:.3f}", f"{box.width:.3f}", f"{box.height:.3f}"]
        if self.polygon is not None:
            parts.extend(f"{v.x:.3f},{v.y:.3f}" for v in self.polygon.vertices)
        return "_".join(parts)


@dataclass(frozen=True, slots=True)
class ExtractedEmoji:
    """Final cutout: PNG bytes, a renderable preview and the source box."""
    id: str
    blob: bytes
    preview: str
    bounding_box: BoundingBox
    pixels: Optional['PixelBuffer'] = None

    @property
    def size(self) -> int:
        return len(self.blob)


@dataclass(frozen=True, slots=True)
class SegmentationResult:
    """Outcome of a segmentation attempt; never raised, always returned."""
    success: bool
    regions: list[SegmentationRegion] = field(default_factory=list)
    method: SegmentationMethod = SegmentationMethod.AI
    error: Optional[str] = None
    raw_response: Optional[str] = None

    @property
    def region_count(self) -> int:
        return len(self.regions)

    @property
    def is_empty(self) -> bool:
        return len(self.regions) == 0

    @classmethod
    def failure(
        cls,
        error: str,
        method: SegmentationMethod = SegmentationMethod.AI,
        raw_response: Optional[str] = None
    ) -> SegmentationResult:
        """Create a failure result."""
        return cls(success=False, regions=[], method=method, error=error, raw_response=raw_response)

    @classmethod
    def from_regions(
        cls,
        regions: list[SegmentationRegion],
        method: SegmentationMethod = SegmentationMethod.AI,
        raw_response: Optional[str] = None
    ) -> SegmentationResult:
        """Create a success result."""
        return cls(success=True, regions=list(regions), method=method, raw_response=raw_response)
