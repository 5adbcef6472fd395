"""Tests for the extraction service and thumbnail cache."""

import base64
import io

import numpy as np
import pytest
from PIL import Image
from emoji_cutter.application.ports.cache import MemoryCache
from emoji_cutter.application.ports.event_publisher import SimpleEventPublisher
from emoji_cutter.application.services.extraction import ExtractionService, ThumbnailCache
from emoji_cutter.domain.entities.image import PixelBuffer
from emoji_cutter.domain.entities.region import RegionType, SegmentationRegion, SelectionRegion
from emoji_cutter.domain.services.selection import move
from emoji_cutter.domain.value_objects.config import ExtractionOptions
from emoji_cutter.domain.value_objects.geometry import BoundingBox


def sheet():
    data = np.full((200, 200, 4), 255, dtype=np.uint8)
    data[20:80, 20:80] = (0, 160, 0, 255)
    data[120:180, 120:180] = (160, 0, 0, 255)
    return PixelBuffer(data)


def region(name, x, y, w, h):
    return SegmentationRegion(id=name, type=RegionType.RECTANGLE, bounding_box=BoundingBox(x, y, w, h))


def selection(name, x, y, w, h):
    return SelectionRegion(id=name, type=RegionType.RECTANGLE, bounding_box=BoundingBox(x, y, w, h))


def decode_data_url(url):
    header, encoded = url.split(",", 1)
    assert header == "data:image/png;base64"
    return Image.open(io.BytesIO(base64.b64decode(encoded)))


class TestMemoryCache:
    """Tests for the LRU cache."""

    def test_set_get(self):
        cache = MemoryCache()
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert cache.has("a")
        assert cache.get("missing") is None

    def test_evicts_least_recently_used(self):
        cache = MemoryCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert cache.has("a")
        assert not cache.has("b")
        assert len(cache) == 2

    def test_unbounded(self):
        cache = MemoryCache(max_size=None)
        for i in range(500):
            cache.set(i, i)
        assert len(cache) == 500

    def test_delete_and_clear(self):
        cache = MemoryCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        cache.delete("missing")
        assert not cache.has("a")
        cache.clear()
        assert len(cache) == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            MemoryCache(max_size=0)


class TestThumbnailCache:
    """Tests for selection thumbnails."""

    def test_thumbnail_rendered_and_bounded_in_size(self):
        cache = ThumbnailCache(thumbnail_size=32)
        url = cache.get(sheet(), selection("a", 0, 0, 100, 50))
        image = decode_data_url(url)
        assert image.size == (32, 16)

    def test_cached_by_geometry(self):
        cache = ThumbnailCache()
        pixels = sheet()
        sel = selection("a", 10, 10, 50, 50)
        first = cache.get(pixels, sel)
        assert sel in cache
        assert cache.get(pixels, sel) is first
        assert len(cache) == 1

    def test_geometry_change_is_a_miss(self):
        cache = ThumbnailCache()
        pixels = sheet()
        sel = selection("a", 10, 10, 50, 50)
        cache.get(pixels, sel)
        moved = move(sel, 100, 100, 200, 200)
        assert moved not in cache
        cache.get(pixels, moved)
        assert len(cache) == 2

    def test_lru_bound(self):
        cache = ThumbnailCache(max_size=2)
        pixels = sheet()
        for name in "abc":
            cache.get(pixels, selection(name, 0, 0, 10, 10))
        assert len(cache) == 2
        assert selection("a", 0, 0, 10, 10) not in cache

    def test_clear(self):
        cache = ThumbnailCache()
        cache.get(sheet(), selection("a", 0, 0, 10, 10))
        cache.clear()
        assert len(cache) == 0


class TestExtractionService:
    """Tests for batch extraction."""

    def test_extract_one(self):
        emoji = ExtractionService().extract_one(sheet(), region("r", 10, 10, 80, 80))
        image = Image.open(io.BytesIO(emoji.blob))
        assert image.size == (80, 80)
        assert image.getpixel((0, 0))[3] == 0
        assert image.getpixel((40, 40)) == (0, 160, 0, 255)
        assert emoji.bounding_box == BoundingBox(10, 10, 80, 80)
        assert emoji.size == len(emoji.blob)
        assert emoji.id.startswith("emoji_")

    def test_extract_all_in_order(self):
        regions = [region("a", 110, 110, 80, 80), region("b", 10, 10, 80, 80)]
        emojis = ExtractionService().extract_all(sheet(), regions, ExtractionOptions(remove_background=False))
        assert [e.bounding_box.x for e in emojis] == [110, 10]

    def test_bad_region_skipped(self):
        regions = [region("a", 10, 10, 80, 80), region("bad", 500, 500, 10, 10), region("b", 110, 110, 80, 80)]
        progress = []
        emojis = ExtractionService().extract_all(
            sheet(), regions, progress_callback=lambda done, total: progress.append((done, total))
        )
        assert len(emojis) == 2
        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_events(self):
        publisher = SimpleEventPublisher()
        received = []
        publisher.subscribe(received.append)
        ExtractionService(publisher).extract_all(sheet(), [region("a", 10, 10, 80, 80)])
        assert [e.stage for e in received] == ["extract_start", "extract_complete"]
        assert received[-1].region_count == 1
        assert received[-1].is_final

    def test_failed_region_event(self):
        publisher = SimpleEventPublisher()
        received = []
        publisher.subscribe(received.append)
        regions = [region("a", 10, 10, 80, 80), region("bad", 500, 500, 10, 10)]
        ExtractionService(publisher).extract_all(sheet(), regions)
        failed = [e for e in received if e.stage == "extract_failed"]
        assert [e.region_id for e in failed] == ["bad"]
        assert received[-1].region_count == 1

    def test_unsubscribe(self):
        publisher = SimpleEventPublisher()
        received = []
        publisher.subscribe(received.append)
        assert publisher.unsubscribe(received.append)
        assert not publisher.unsubscribe(received.append)
        ExtractionService(publisher).extract_all(sheet(), [region("a", 10, 10, 80, 80)])
        assert received == []

    def test_nothing_to_extract(self):
        assert ExtractionService().extract_all(sheet(), []) == []
