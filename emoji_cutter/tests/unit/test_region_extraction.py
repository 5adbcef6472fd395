"""Unit tests for rectangle and polygon cropping."""

import numpy as np
import pytest
from emoji_cutter.domain.entities.image import PixelBuffer
from emoji_cutter.domain.entities.region import RegionType, SegmentationRegion, SelectionRegion
from emoji_cutter.domain.services.region_extraction import (
    crop_polygon,
    crop_rectangle,
    extract_from_selection,
)
from emoji_cutter.domain.value_objects.config import ExtractionOptions
from emoji_cutter.domain.value_objects.geometry import BoundingBox, Point, Polygon, point_in_polygon
from emoji_cutter.exceptions import DegenerateRegionError

NO_BG = ExtractionOptions(remove_background=False)


def gradient(width=50, height=50):
    data = np.zeros((height, width, 4), dtype=np.uint8)
    data[:, :, 0] = np.arange(width, dtype=np.uint8)[None, :]
    data[:, :, 1] = np.arange(height, dtype=np.uint8)[:, None]
    data[:, :, 3] = 255
    return PixelBuffer(data)


def red_square_on_white():
    data = np.full((60, 60, 4), 255, dtype=np.uint8)
    data[20:40, 20:40] = (220, 20, 20, 255)
    return PixelBuffer(data)


class TestCropRectangle:
    def test_copies_area(self):
        cropped = crop_rectangle(gradient(), BoundingBox(10, 20, 5, 3))
        assert cropped.size == (5, 3)
        assert cropped.pixel(0, 0).rgb == (10, 20, 0)
        assert cropped.pixel(4, 2).rgb == (14, 22, 0)

    def test_fractional_box_covers_touched_pixels(self):
        cropped = crop_rectangle(gradient(), BoundingBox(10.4, 10.6, 5.2, 5))
        assert cropped.size == (6, 6)

    def test_padding_clipped(self):
        cropped = crop_rectangle(gradient(), BoundingBox(2, 45, 10, 5), padding=5)
        assert cropped.size == (17, 10)
        assert cropped.pixel(0, 0).rgb == (0, 40, 0)

    def test_no_overlap_raises(self):
        with pytest.raises(DegenerateRegionError):
            crop_rectangle(gradient(), BoundingBox(80, 80, 10, 10))

    def test_source_untouched(self):
        pixels = gradient()
        cropped = crop_rectangle(pixels, BoundingBox(0, 0, 5, 5))
        cropped.data[:] = 0
        assert pixels.pixel(1, 1).rgb == (1, 1, 0)


class TestCropPolygon:
    def test_triangle_mask_matches_centre_rule(self):
        polygon = Polygon.from_points([(5, 5), (45, 5), (25, 40)])
        box = polygon.bounding_box
        cropped = crop_polygon(gradient(), polygon, box)

        assert cropped.size == (40, 35)
        for cy in range(cropped.height):
            for cx in range(cropped.width):
                centre = Point(5 + cx + 0.5, 5 + cy + 0.5)
                expected = point_in_polygon(centre, polygon)
                assert (cropped.alpha[cy, cx] == 255) == expected

    def test_outside_pixels_fully_cleared(self):
        polygon = Polygon.from_points([(5, 5), (45, 5), (25, 40)])
        cropped = crop_polygon(gradient(), polygon, polygon.bounding_box)
        outside = cropped.alpha == 0
        assert outside.any()
        assert (cropped.data[outside] == 0).all()

    def test_inside_pixels_keep_colour(self):
        polygon = Polygon.from_points([(5, 5), (45, 5), (25, 40)])
        cropped = crop_polygon(gradient(), polygon, polygon.bounding_box)
        # centre column near the top edge
        assert cropped.pixel(20, 1).rgb == (25, 6, 0)

    def test_padding_is_outside_polygon(self):
        polygon = Polygon.from_points([(10, 10), (30, 10), (30, 30), (10, 30)])
        cropped = crop_polygon(gradient(), polygon, polygon.bounding_box, padding=3)
        assert cropped.size == (26, 26)
        assert cropped.alpha[0, 0] == 0
        assert (cropped.alpha[3:23, 3:23] == 255).all()
        assert (cropped.alpha[23:, :] == 0).all()


class TestExtractFromSelection:
    def test_polygon_selection_masked(self):
        polygon = Polygon.from_points([(5, 5), (45, 5), (25, 40)])
        selection = SelectionRegion(
            id="p", type=RegionType.POLYGON, bounding_box=polygon.bounding_box, polygon=polygon
        )
        result = extract_from_selection(gradient(), selection, NO_BG)
        assert has_cleared(result)

    def test_rectangle_region_not_masked(self):
        region = SegmentationRegion(id="r", type=RegionType.RECTANGLE, bounding_box=BoundingBox(0, 0, 10, 10))
        result = extract_from_selection(gradient(), region, NO_BG)
        assert (result.alpha == 255).all()

    def test_background_removed_by_default(self):
        region = SegmentationRegion(id="r", type=RegionType.RECTANGLE, bounding_box=BoundingBox(10, 10, 40, 40))
        result = extract_from_selection(red_square_on_white(), region)
        assert result.alpha[0, 0] == 0
        assert result.alpha[20, 20] == 255

    def test_padding_option(self):
        region = SegmentationRegion(id="r", type=RegionType.RECTANGLE, bounding_box=BoundingBox(20, 20, 20, 20))
        result = extract_from_selection(red_square_on_white(), region, ExtractionOptions(padding=4))
        assert result.size == (28, 28)
        assert result.alpha[0, 0] == 0
        assert result.alpha[14, 14] == 255

    def test_degenerate_region_raises(self):
        region = SegmentationRegion(id="r", type=RegionType.RECTANGLE, bounding_box=BoundingBox(200, 0, 10, 10))
        with pytest.raises(DegenerateRegionError):
            extract_from_selection(gradient(), region, NO_BG)


def has_cleared(pixels):
    return bool((pixels.alpha == 0).any())
