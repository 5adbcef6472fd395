"""Geometry value objects and polygon math."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional


@dataclass(frozen=True, slots=True)
class Point:
    """2D point with real-valued pixel coordinates."""
    x: float
    y: float

    def distance_to(self, other: Point) -> float:
        """Calculate Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Point:
        return Point(self.x * scalar, self.y * scalar)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned bounding box anchored at its top-left corner."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @property
    def top_left(self) -> Point:
        return Point(self.x, self.y)

    @property
    def bottom_right(self) -> Point:
        return Point(self.right, self.bottom)

    @property
    def is_degenerate(self) -> bool:
        """A box with non-positive extent is not a valid region."""
        return self.width <= 0 or self.height <= 0

    def intersects(self, other: BoundingBox) -> bool:
        """Check if this box overlaps or touches another."""
        return not (
            self.right < other.x or
            other.right < self.x or
            self.bottom < other.y or
            other.bottom < self.y
        )

    def gap_to(self, other: BoundingBox) -> float:
        """Edge-to-edge distance to another box (0 when they overlap)."""
        horizontal = max(0.0, max(self.x, other.x) - min(self.right, other.right))
        vertical = max(0.0, max(self.y, other.y) - min(self.bottom, other.bottom))
        if horizontal == 0 and vertical == 0:
            return 0.0
        return math.hypot(horizontal, vertical)

    def union(self, other: BoundingBox) -> BoundingBox:
        """Return bounding box containing both boxes."""
        min_x = min(self.x, other.x)
        min_y = min(self.y, other.y)
        max_x = max(self.right, other.right)
        max_y = max(self.bottom, other.bottom)
        return BoundingBox(min_x, min_y, max_x - min_x, max_y - min_y)

    def translate(self, dx: float, dy: float) -> BoundingBox:
        return BoundingBox(self.x + dx, self.y + dy, self.width, self.height)

    def expand(self, pixels: float) -> BoundingBox:
        """Expand box by specified pixels in all directions."""
        return BoundingBox(
            self.x - pixels,
            self.y - pixels,
            self.width + pixels * 2,
            self.height + pixels * 2
        )

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class Polygon:
    """Ordered ring of vertices without a closing duplicate."""
    vertices: tuple[Point, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.vertices, tuple):
            object.__setattr__(self, "vertices", tuple(self.vertices))

    def __iter__(self) -> Iterator[Point]:
        return iter(self.vertices)

    def __len__(self) -> int:
        return len(self.vertices)

    def __getitem__(self, index: int) -> Point:
        return self.vertices[index]

    @property
    def bounding_box(self) -> BoundingBox:
        return bounding_box_of(self)

    @property
    def area(self) -> float:
        """Calculate area using shoelace formula."""
        n = len(self.vertices)
        if n < 3:
            return 0.0
        total = 0.0
        for i in range(n):
            p = self.vertices[i]
            q = self.vertices[(i + 1) % n]
            total += p.x * q.y - q.x * p.y
        return abs(total) / 2

    def translate(self, dx: float, dy: float) -> Polygon:
        return Polygon(tuple(Point(v.x + dx, v.y + dy) for v in self.vertices))

    def rescale(self, old_box: BoundingBox, new_box: BoundingBox) -> Polygon:
        """Map vertices affinely from ``old_box`` onto ``new_box``."""
        scale_x = new_box.width / old_box.width if old_box.width else 1.0
        scale_y = new_box.height / old_box.height if old_box.height else 1.0
        return Polygon(tuple(
            Point(
                new_box.x + (v.x - old_box.x) * scale_x,
                new_box.y + (v.y - old_box.y) * scale_y,
            )
            for v in self.vertices
        ))

    def replace_vertex(self, index: int, point: Point) -> Polygon:
        vertices = list(self.vertices)
        vertices[index] = point
        return Polygon(tuple(vertices))

    def insert_vertex(self, index: int, point: Point) -> Polygon:
        vertices = list(self.vertices)
        vertices.insert(index, point)
        return Polygon(tuple(vertices))

    def to_list(self) -> list[dict[str, float]]:
        return [v.to_dict() for v in self.vertices]

    @classmethod
    def from_points(cls, points: Iterable[tuple[float, float] | Point]) -> Polygon:
        """Create polygon from Points or (x, y) pairs."""
        return cls(tuple(p if isinstance(p, Point) else Point(*p) for p in points))


# ---------------------------------------------------------------------------
# Polygon predicates
# ---------------------------------------------------------------------------

def is_valid_polygon(polygon: Optional[Polygon]) -> bool:
    """A polygon needs at least three vertices to enclose an area."""
    if polygon is None:
        return False
    vertices = getattr(polygon, "vertices", None)
    if vertices is None or isinstance(vertices, (str, bytes)):
        return False
    try:
        return len(vertices) >= 3
    except TypeError:
        return False


def bounding_box_of(polygon: Polygon) -> BoundingBox:
    """Tight bounding box of the polygon's vertices.

    An empty polygon yields a zero box; callers must reject degenerate boxes.
    """
    if not polygon.vertices:
        return BoundingBox(0, 0, 0, 0)
    xs = [v.x for v in polygon.vertices]
    ys = [v.y for v in polygon.vertices]
    return BoundingBox(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def point_in_polygon(point: Point, polygon: Polygon) -> bool:
    """Ray casting parity test.

    Points exactly on an edge may fall on either side.
    """
    vertices = polygon.vertices
    n = len(vertices)
    if n < 3:
        return False

    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = vertices[i].x, vertices[i].y
        xj, yj = vertices[j].x, vertices[j].y
        if (yi > point.y) != (yj > point.y):
            x_cross = (xj - xi) * (point.y - yi) / (yj - yi) + xi
            if point.x < x_cross:
                inside = not inside
        j = i
    return inside


def is_convex(polygon: Polygon) -> bool:
    """Check that all turns have the same direction, ignoring collinear triples."""
    vertices = polygon.vertices
    n = len(vertices)
    if n < 3:
        return False

    sign = 0
    for i in range(n):
        p1 = vertices[i]
        p2 = vertices[(i + 1) % n]
        p3 = vertices[(i + 2) % n]
        cross = (p2.x - p1.x) * (p3.y - p2.y) - (p2.y - p1.y) * (p3.x - p2.x)
        if cross == 0:
            continue
        current = 1 if cross > 0 else -1
        if sign == 0:
            sign = current
        elif sign != current:
            return False
    return True


def _orientation(a: Point, b: Point, c: Point) -> float:
    return (c.x - a.x) * (b.y - a.y) - (b.x - a.x) * (c.y - a.y)


def _on_segment(a: Point, b: Point, p: Point) -> bool:
    return (
        min(a.x, b.x) <= p.x <= max(a.x, b.x) and
        min(a.y, b.y) <= p.y <= max(a.y, b.y)
    )


def segments_intersect(p1: Point, p2: Point, p3: Point, p4: Point) -> bool:
    """Check whether segment p1-p2 meets segment p3-p4 (touching counts)."""
    d1 = _orientation(p3, p4, p1)
    d2 = _orientation(p3, p4, p2)
    d3 = _orientation(p1, p2, p3)
    d4 = _orientation(p1, p2, p4)

    if ((d1 > 0 and d2 < 0) or (d1 < 0 and d2 > 0)) and \
            ((d3 > 0 and d4 < 0) or (d3 < 0 and d4 > 0)):
        return True

    if d1 == 0 and _on_segment(p3, p4, p1):
        return True
    if d2 == 0 and _on_segment(p3, p4, p2):
        return True
    if d3 == 0 and _on_segment(p1, p2, p3):
        return True
    if d4 == 0 and _on_segment(p1, p2, p4):
        return True
    return False


def self_intersects(polygon: Polygon) -> bool:
    """Test every pair of non-adjacent edges for intersection.

    Triangles have no non-adjacent edges and never self-intersect.
    """
    vertices = polygon.vertices
    n = len(vertices)
    if n < 4:
        return False

    for i in range(n):
        a1 = vertices[i]
        a2 = vertices[(i + 1) % n]
        for j in range(i + 2, n):
            # first and last edges share vertex 0
            if i == 0 and j == n - 1:
                continue
            b1 = vertices[j]
            b2 = vertices[(j + 1) % n]
            if segments_intersect(a1, a2, b1, b2):
                return True
    return False


# ---------------------------------------------------------------------------
# Coordinate helpers
# ---------------------------------------------------------------------------

def _below(limit: float) -> float:
    """Largest float strictly less than ``limit``."""
    return math.nextafter(limit, -math.inf)


def clamp_point(point: Point, width: float, height: float) -> Point:
    """Clamp into the half-open pixel area ``[0, width) x [0, height)``."""
    x = min(max(point.x, 0.0), _below(width))
    y = min(max(point.y, 0.0), _below(height))
    return Point(max(x, 0.0), max(y, 0.0))


def clamp_point_inclusive(point: Point, width: float, height: float) -> Point:
    """Clamp into the closed image rectangle ``[0, width] x [0, height]``."""
    return Point(
        min(max(point.x, 0.0), width),
        min(max(point.y, 0.0), height),
    )


def normalize_point(
    point: Point,
    width: float,
    height: float,
    is_percentage: bool
) -> Point:
    """Convert percentage coordinates (0-100) into pixels."""
    if not is_percentage:
        return Point(point.x, point.y)
    return Point((point.x / 100) * width, (point.y / 100) * height)


def rectangle_to_bounding_box(top_left: Point, bottom_right: Point) -> BoundingBox:
    return BoundingBox(
        top_left.x,
        top_left.y,
        bottom_right.x - top_left.x,
        bottom_right.y - top_left.y,
    )


def bounding_box_to_polygon(box: BoundingBox) -> Polygon:
    """Corners in the order top-left, top-right, bottom-right, bottom-left."""
    return Polygon((
        Point(box.x, box.y),
        Point(box.right, box.y),
        Point(box.right, box.bottom),
        Point(box.x, box.bottom),
    ))


def clamp_box_to_image(box: BoundingBox, width: float, height: float) -> BoundingBox:
    """Clip a box to the image; the result may be degenerate."""
    x = min(max(box.x, 0.0), width)
    y = min(max(box.y, 0.0), height)
    right = max(x, min(box.right, width))
    bottom = max(y, min(box.bottom, height))
    return BoundingBox(x, y, right - x, bottom - y)


@dataclass(frozen=True, slots=True)
class CanvasTransform:
    """Zoom and pan applied when an image is drawn onto a canvas."""
    zoom: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def canvas_to_image(self, point: Point) -> Point:
        return Point(
            (point.x - self.offset_x) / self.zoom,
            (point.y - self.offset_y) / self.zoom,
        )

    def image_to_canvas(self, point: Point) -> Point:
        return Point(
            point.x * self.zoom + self.offset_x,
            point.y * self.zoom + self.offset_y,
        )

    def polygon_to_image(self, polygon: Polygon) -> Polygon:
        return Polygon(tuple(self.canvas_to_image(v) for v in polygon.vertices))

    def polygon_to_canvas(self, polygon: Polygon) -> Polygon:
        return Polygon(tuple(self.image_to_canvas(v) for v in polygon.vertices))

    def box_to_image(self, box: BoundingBox) -> BoundingBox:
        top_left = self.canvas_to_image(box.top_left)
        return BoundingBox(top_left.x, top_left.y, box.width / self.zoom, box.height / self.zoom)

    def box_to_canvas(self, box: BoundingBox) -> BoundingBox:
        top_left = self.image_to_canvas(box.top_left)
        return BoundingBox(top_left.x, top_left.y, box.width * self.zoom, box.height * self.zoom)
