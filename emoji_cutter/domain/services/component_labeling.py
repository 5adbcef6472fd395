"""Connected-component region discovery on flat-background sheets."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt

from ...config import DEFAULTS
from ..entities.image import PixelBuffer
from ..entities.region import RegionType, SegmentationRegion, generate_id
from ..value_objects.config import ManualSplitConfig
from ..value_objects.geometry import BoundingBox
from .box_merging import merge_nearby_boxes, sort_reading_order
from .pixel_classifier import (
    BinaryMask,
    create_binary_mask,
    detect_background_color,
    distance_map,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LabelingResult:
    """Output of connected-component labeling.

    ``labels`` is an (H, W) int32 array, 0 for background and 1..n for
    components. ``regions[i]`` holds the flat ``y * width + x`` indices of
    component ``i + 1``.
    """
    labels: npt.NDArray[np.int32]
    region_count: int
    regions: list[npt.NDArray[np.int64]] = field(default_factory=list)

    @property
    def width(self) -> int:
        return int(self.labels.shape[1])

    @property
    def height(self) -> int:
        return int(self.labels.shape[0])


@dataclass(frozen=True, slots=True)
class ComponentBox:
    """Tight box of a component plus the number of pixels it contains."""
    box: BoundingBox
    pixel_count: int


def label_connected_regions(mask: BinaryMask) -> LabelingResult:
    """Label 4-connected foreground components with breadth-first search."""
    height, width = mask.shape
    size = width * height
    if size == 0:
        return LabelingResult(np.zeros((height, width), dtype=np.int32), 0, [])

    foreground = mask.reshape(-1).tolist()
    labels = [0] * size
    regions: list[npt.NDArray[np.int64]] = []
    current = 0

    for start in np.flatnonzero(mask).tolist():
        if labels[start]:
            continue
        current += 1
        labels[start] = current
        members = [start]
        queue = deque([start])

        while queue:
            idx = queue.popleft()
            x = idx % width

            neighbors = []
            if idx >= width:
                neighbors.append(idx - width)
            if idx + width < size:
                neighbors.append(idx + width)
            if x > 0:
                neighbors.append(idx - 1)
            if x < width - 1:
                neighbors.append(idx + 1)

            for n in neighbors:
                if foreground[n] and not labels[n]:
                    labels[n] = current
                    members.append(n)
                    queue.append(n)

        regions.append(np.asarray(members, dtype=np.int64))

    label_array = np.asarray(labels, dtype=np.int32).reshape(height, width)
    return LabelingResult(label_array, current, regions)


def extract_bounding_boxes(labeling: LabelingResult) -> list[ComponentBox]:
    """Tight boxes with inclusive pixel extents (a single pixel is 1x1)."""
    width = labeling.width
    boxes = []
    for indices in labeling.regions:
        if indices.size == 0:
            continue
        ys = indices // width
        xs = indices % width
        min_x, max_x = int(xs.min()), int(xs.max())
        min_y, max_y = int(ys.min()), int(ys.max())
        boxes.append(ComponentBox(
            box=BoundingBox(min_x, min_y, max_x - min_x + 1, max_y - min_y + 1),
            pixel_count=int(indices.size),
        ))
    return boxes


def filter_boxes(
    boxes: list[ComponentBox],
    min_area: int,
    min_size: int
) -> list[ComponentBox]:
    """Drop specks: too few pixels or too thin on either side."""
    return [
        b for b in boxes
        if b.pixel_count >= min_area and min(b.box.width, b.box.height) >= min_size
    ]


def detect_emojis(
    pixels: PixelBuffer,
    config: ManualSplitConfig | None = None
) -> list[SegmentationRegion]:
    """Find emoji regions on a flat background.

    Pipeline: background colour, foreground mask, labeling, box filtering,
    proximity merging, reading-order sort. Busy backgrounds yield noisy or
    empty results rather than an error.

    Returns:
        Rectangle regions in reading order
    """
    config = config or ManualSplitConfig()
    width, height = pixels.width, pixels.height
    if width == 0 or height == 0:
        return []

    background = detect_background_color(pixels, config.tolerance)
    mask = create_binary_mask(pixels, background, config.tolerance)
    labeling = label_connected_regions(mask)
    components = filter_boxes(
        extract_bounding_boxes(labeling), config.min_area, config.min_size
    )

    merge_distance = config.merge_distance(width, height)
    boxes = merge_nearby_boxes([c.box for c in components], merge_distance)
    boxes = sort_reading_order(boxes, DEFAULTS.row_bucket_height)

    logger.info(
        f"Detected {len(boxes)} regions "
        f"({labeling.region_count} components, {len(components)} after filtering)"
    )

    return [
        SegmentationRegion(
            id=generate_id("region_"),
            type=RegionType.RECTANGLE,
            bounding_box=box,
        )
        for box in boxes
    ]


# ---------------------------------------------------------------------------
# Grid layouts
# ---------------------------------------------------------------------------

def split_by_grid(
    pixels: PixelBuffer,
    rows: int,
    cols: int
) -> list[SegmentationRegion]:
    """Cut the image into ``rows x cols`` equal cells, row by row.

    Cell edges are floored so the last row/column absorbs the remainder.
    """
    if rows < 1 or cols < 1:
        raise ValueError(f"Grid must have at least one row and column, got {rows}x{cols}")

    width, height = pixels.width, pixels.height
    regions = []
    for row in range(rows):
        top = height * row // rows
        bottom = height * (row + 1) // rows
        for col in range(cols):
            left = width * col // cols
            right = width * (col + 1) // cols
            box = BoundingBox(left, top, right - left, bottom - top)
            if box.is_degenerate:
                continue
            regions.append(SegmentationRegion(
                id=generate_id("grid_"),
                type=RegionType.RECTANGLE,
                bounding_box=box,
            ))
    return regions


def _find_separators(ratios: npt.NDArray[np.float64], threshold: float) -> list[int]:
    """Centres of interior runs where the background ratio reaches ``threshold``.

    Runs touching either border are margins, not separators.
    """
    separators = []
    n = len(ratios)
    run_start = -1
    for i in range(n):
        if ratios[i] >= threshold:
            if run_start < 0:
                run_start = i
        elif run_start >= 0:
            if run_start > 0:
                separators.append((run_start + i - 1) // 2)
            run_start = -1
    return separators


def detect_grid(
    pixels: PixelBuffer,
    tolerance: float = DEFAULTS.tolerance,
    min_cells: int = DEFAULTS.grid_min_cells,
    max_cells: int = DEFAULTS.grid_max_cells
) -> tuple[int, int] | None:
    """Guess a rows x cols layout from background-coloured separator lines.

    Thresholds are tried from strict to loose; the first one that gives a
    plausible cell count on both axes wins.

    Returns:
        (rows, cols) or None when no grid is recognised
    """
    if pixels.width == 0 or pixels.height == 0:
        return None

    background = detect_background_color(pixels, tolerance)
    is_background = distance_map(pixels, background) <= tolerance
    row_ratios = is_background.mean(axis=1)
    col_ratios = is_background.mean(axis=0)

    for threshold in DEFAULTS.grid_thresholds:
        rows = len(_find_separators(row_ratios, threshold)) + 1
        cols = len(_find_separators(col_ratios, threshold)) + 1
        if min_cells <= rows <= max_cells and min_cells <= cols <= max_cells:
            logger.debug(f"Grid {rows}x{cols} at threshold {threshold}")
            return (rows, cols)

    return None
