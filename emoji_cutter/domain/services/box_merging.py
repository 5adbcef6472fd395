"""Box merging service - pure geometry operations."""

from __future__ import annotations

from ...domain.value_objects.geometry import BoundingBox


def merge_nearby_boxes(
    boxes: list[BoundingBox],
    merge_distance: float
) -> list[BoundingBox]:
    """Merge boxes whose edge-to-edge gap is within ``merge_distance``.

    A merged box can end up close enough to another box that neither of its
    parts was, so passes repeat until the box count stops changing.

    Args:
        boxes: Boxes to merge
        merge_distance: Maximum gap in pixels (0 merges only touching boxes)

    Returns:
        Merged boxes, in no particular order
    """
    if len(boxes) <= 1:
        return list(boxes)

    current = list(boxes)
    while True:
        merged = _merge_pass(current, merge_distance)
        if len(merged) == len(current):
            return merged
        current = merged


def _merge_pass(boxes: list[BoundingBox], merge_distance: float) -> list[BoundingBox]:
    """One union-find clustering pass.

    Algorithm:
        1. Sort by left edge for a sweep-line
        2. Union every pair within the distance
        3. Union each component into a single box

    Complexity: O(n log n) average case
    """
    n = len(boxes)
    parent = list(range(n))

    def find(x: int) -> int:
        while parent[x] != x:
            parent[x] = parent[parent[x]]  # Path halving
            x = parent[x]
        return x

    def union(x: int, y: int) -> None:
        px, py = find(x), find(y)
        if px != py:
            parent[px] = py

    order = sorted(range(n), key=lambda i: boxes[i].x)

    for i, idx1 in enumerate(order):
        box1 = boxes[idx1]
        for idx2 in order[i + 1:]:
            box2 = boxes[idx2]
            # Later boxes start even further right
            if box2.x - box1.right > merge_distance:
                break
            if box1.gap_to(box2) <= merge_distance:
                union(idx1, idx2)

    components: dict[int, BoundingBox] = {}
    for i in range(n):
        root = find(i)
        if root in components:
            components[root] = components[root].union(boxes[i])
        else:
            components[root] = boxes[i]

    return list(components.values())


def sort_reading_order(
    boxes: list[BoundingBox],
    row_height: int = 50
) -> list[BoundingBox]:
    """Order boxes top-to-bottom in ``row_height`` bands, then left-to-right."""
    return sorted(boxes, key=lambda b: (int(b.y // row_height), b.x))
