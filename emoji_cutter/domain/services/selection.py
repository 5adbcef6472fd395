"""Pure selection geometry operations.

Every operation returns a new SelectionRegion, or None when the edit would
produce an unusable shape. Callers refuse the edit silently or show a hint;
nothing here raises for bad user input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ..entities.region import RegionType, SelectionRegion, generate_id
from ..value_objects.geometry import (
    BoundingBox,
    Point,
    Polygon,
    bounding_box_of,
    clamp_box_to_image,
    clamp_point_inclusive,
    self_intersects,
)

logger = logging.getLogger(__name__)


class PolygonError(str, Enum):
    """Reason a vertex list is not a usable polygon."""
    NOT_CLOSED = "not_closed"
    SELF_INTERSECTING = "self_intersecting"


@dataclass(frozen=True, slots=True)
class PolygonValidation:
    valid: bool
    error: Optional[PolygonError] = None


def validate_polygon(vertices: Polygon | Sequence[Point]) -> PolygonValidation:
    """Check a vertex ring; fewer than three vertices cannot close."""
    polygon = vertices if isinstance(vertices, Polygon) else Polygon(tuple(vertices))
    if len(polygon) < 3:
        return PolygonValidation(False, PolygonError.NOT_CLOSED)
    if self_intersects(polygon):
        return PolygonValidation(False, PolygonError.SELF_INTERSECTING)
    return PolygonValidation(True)


def _usable_polygon(polygon: Polygon) -> bool:
    return validate_polygon(polygon).valid and not bounding_box_of(polygon).is_degenerate


def create_rectangle(
    start: Point,
    end: Point,
    image_width: float,
    image_height: float
) -> Optional[SelectionRegion]:
    """Rectangle selection from a drag in any direction."""
    box = BoundingBox(
        min(start.x, end.x),
        min(start.y, end.y),
        abs(end.x - start.x),
        abs(end.y - start.y),
    )
    box = clamp_box_to_image(box, image_width, image_height)
    if box.is_degenerate:
        return None
    return SelectionRegion(id=generate_id("sel_"), type=RegionType.RECTANGLE, bounding_box=box)


def create_polygon(
    vertices: Sequence[Point],
    image_width: float,
    image_height: float
) -> Optional[SelectionRegion]:
    """Polygon selection; each vertex is clamped into the image first."""
    if len(vertices) < 3:
        return None

    polygon = Polygon(tuple(
        clamp_point_inclusive(v, image_width, image_height) for v in vertices
    ))
    if not _usable_polygon(polygon):
        logger.debug("Rejected polygon selection")
        return None

    return SelectionRegion(
        id=generate_id("sel_"),
        type=RegionType.POLYGON,
        bounding_box=bounding_box_of(polygon),
        polygon=polygon,
    )


def move(
    selection: SelectionRegion,
    dx: float,
    dy: float,
    image_width: float,
    image_height: float
) -> SelectionRegion:
    """Translate a selection, stopping each axis at the image edge.

    The polygon is shifted by the delta actually applied to the box so the
    two stay aligned.
    """
    box = selection.bounding_box
    new_x = min(max(box.x + dx, 0.0), max(0.0, image_width - box.width))
    new_y = min(max(box.y + dy, 0.0), max(0.0, image_height - box.height))
    actual_dx = new_x - box.x
    actual_dy = new_y - box.y

    polygon = selection.polygon
    if selection.is_polygon:
        polygon = polygon.translate(actual_dx, actual_dy)

    return selection.with_geometry(box.translate(actual_dx, actual_dy), polygon)


def resize(
    selection: SelectionRegion,
    new_box: BoundingBox,
    image_width: float,
    image_height: float
) -> Optional[SelectionRegion]:
    """Fit a selection into ``new_box``; polygons are rescaled, not replaced."""
    box = clamp_box_to_image(new_box, image_width, image_height)
    if box.is_degenerate:
        return None

    if not selection.is_polygon:
        return selection.with_geometry(box)

    polygon = selection.polygon.rescale(selection.bounding_box, box)
    if not _usable_polygon(polygon):
        return None
    return selection.with_geometry(bounding_box_of(polygon), polygon)


def move_vertex(
    selection: SelectionRegion,
    index: int,
    position: Point,
    image_width: float,
    image_height: float
) -> Optional[SelectionRegion]:
    if not selection.is_polygon:
        return None
    if not 0 <= index < len(selection.polygon):
        return None

    point = clamp_point_inclusive(position, image_width, image_height)
    polygon = selection.polygon.replace_vertex(index, point)
    if not _usable_polygon(polygon):
        return None
    return selection.with_geometry(bounding_box_of(polygon), polygon)


def insert_vertex(
    selection: SelectionRegion,
    edge_index: int,
    position: Point,
    image_width: float,
    image_height: float
) -> Optional[SelectionRegion]:
    """Split edge ``edge_index`` (from vertex i to i+1) at ``position``."""
    if not selection.is_polygon:
        return None
    if not 0 <= edge_index < len(selection.polygon):
        return None

    point = clamp_point_inclusive(position, image_width, image_height)
    polygon = selection.polygon.insert_vertex(edge_index + 1, point)
    if not _usable_polygon(polygon):
        return None
    return selection.with_geometry(bounding_box_of(polygon), polygon)
