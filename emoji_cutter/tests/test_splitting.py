"""Tests for the emoji split service."""

import io
import json

import numpy as np
import pytest
from PIL import Image
from emoji_cutter.application.ports.event_publisher import SimpleEventPublisher
from emoji_cutter.application.services.ai_segmentation import AISegmentationAdapter
from emoji_cutter.application.services.splitting import NO_REGIONS_HINT, EmojiSplitService
from emoji_cutter.domain.entities.image import PixelBuffer
from emoji_cutter.domain.entities.region import SegmentationMethod
from emoji_cutter.domain.value_objects.config import ExtractionOptions
from emoji_cutter.domain.value_objects.geometry import BoundingBox


class StubVisionModel:
    name = "stub"
    is_available = True

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = 0

    def describe(self, image, mime_type, prompt, timeout):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.response


def two_emoji_sheet():
    data = np.full((400, 400, 4), 255, dtype=np.uint8)
    data[50:150, 50:150] = (200, 30, 30, 255)
    data[250:350, 220:320] = (30, 30, 200, 255)
    return PixelBuffer(data)


def grid_sheet():
    data = np.full((300, 300, 4), 255, dtype=np.uint8)
    for top in (10, 160):
        for left in (10, 110, 210):
            data[top:top + 80, left:left + 80] = (0, 0, 0, 255)
    return PixelBuffer(data)


@pytest.fixture
def events():
    publisher = SimpleEventPublisher()
    received = []
    publisher.subscribe(received.append)
    publisher.received = received
    return publisher


class TestDetect:
    """Tests for the AI-first detection policy."""

    def test_without_ai_uses_fallback(self):
        """Test classic detection when no adapter is configured."""
        service = EmojiSplitService()
        result = service.detect(two_emoji_sheet())
        assert result.success
        assert result.method == SegmentationMethod.FALLBACK
        assert [r.bounding_box for r in result.regions] == [
            BoundingBox(50, 50, 100, 100),
            BoundingBox(220, 250, 100, 100),
        ]
        assert result.error is None

    def test_ai_regions_used(self):
        """Test AI regions are returned when the model answers."""
        answer = json.dumps({"regions": [
            {"type": "rectangle", "topLeft": {"x": 110, "y": 120}, "bottomRight": {"x": 200, "y": 210}}
        ]})
        model = StubVisionModel(response=answer)
        with AISegmentationAdapter(model) as adapter:
            service = EmojiSplitService(ai_adapter=adapter)
            result = service.detect(two_emoji_sheet())

        assert service.uses_ai
        assert result.method == SegmentationMethod.AI
        assert [r.bounding_box for r in result.regions] == [BoundingBox(110, 120, 90, 90)]

    def test_ai_failure_falls_back(self):
        """Test a failing model still yields classic regions and keeps the error."""
        model = StubVisionModel(error=RuntimeError("connection reset"))
        with AISegmentationAdapter(model) as adapter:
            result = EmojiSplitService(ai_adapter=adapter).detect(two_emoji_sheet())

        assert model.calls == 1
        assert result.success
        assert result.method == SegmentationMethod.FALLBACK
        assert result.region_count == 2
        assert result.error == "网络连接失败，请检查网络"

    def test_empty_ai_answer_falls_back(self):
        model = StubVisionModel(response='{"regions": []}')
        with AISegmentationAdapter(model) as adapter:
            result = EmojiSplitService(ai_adapter=adapter).detect(two_emoji_sheet())
        assert result.method == SegmentationMethod.FALLBACK
        assert result.region_count == 2

    def test_events_published(self, events):
        EmojiSplitService(event_publisher=events).detect(two_emoji_sheet())
        stages = [e.stage for e in events.received]
        assert stages == ["fallback_detect", "detect_complete"]
        assert events.received[-1].region_count == 2


class TestGrid:
    def test_fixed_grid(self):
        result = EmojiSplitService().split_grid(grid_sheet(), 2, 3)
        assert result.region_count == 6

    def test_auto_grid(self):
        result = EmojiSplitService().detect_grid_layout(grid_sheet())
        assert result.region_count == 6
        assert result.regions[0].bounding_box == BoundingBox(0, 0, 100, 150)

    def test_auto_grid_without_layout_detects_regions(self):
        data = np.full((200, 200, 4), 255, dtype=np.uint8)
        data[50:150, 50:150] = (0, 0, 0, 255)
        result = EmojiSplitService().detect_grid_layout(PixelBuffer(data))
        assert result.method == SegmentationMethod.FALLBACK
        assert [r.bounding_box for r in result.regions] == [BoundingBox(50, 50, 100, 100)]


class TestSplit:
    """End-to-end split tests."""

    def test_cutouts_have_transparent_background(self):
        """Test each detected emoji becomes a transparent PNG."""
        outcome = EmojiSplitService().split(two_emoji_sheet(), options=ExtractionOptions(padding=10))

        assert outcome.hint is None
        assert outcome.method == SegmentationMethod.FALLBACK
        assert len(outcome.emojis) == 2
        for emoji in outcome.emojis:
            image = Image.open(io.BytesIO(emoji.blob))
            assert image.format == "PNG"
            assert image.size == (120, 120)
            assert image.getpixel((0, 0))[3] == 0
            assert image.getpixel((60, 60))[3] == 255
            assert emoji.preview.startswith("data:image/png;base64,")

    def test_tight_crop_of_flat_square_is_erased(self):
        """Test a zero-padding crop of a solid square loses every pixel.

        All four sampled corners lie on the square, so its own colour is
        taken as the background.
        """
        outcome = EmojiSplitService().split(two_emoji_sheet(), options=ExtractionOptions(padding=0))

        assert len(outcome.emojis) == 2
        for emoji in outcome.emojis:
            image = Image.open(io.BytesIO(emoji.blob))
            assert image.size == (100, 100)
            assert image.getchannel("A").getextrema() == (0, 0)

    def test_empty_sheet_gives_hint(self, events):
        """Test a blank sheet returns a hint instead of failing."""
        blank = PixelBuffer(np.full((100, 100, 4), 255, dtype=np.uint8))
        outcome = EmojiSplitService(event_publisher=events).split(blank)

        assert outcome.emojis == []
        assert outcome.hint == NO_REGIONS_HINT
        assert outcome.segmentation.success
        assert events.received[-1].stage == "no_regions"

    def test_grid_split_keeps_background(self):
        outcome = EmojiSplitService().split(
            grid_sheet(), options=ExtractionOptions(remove_background=False), grid=(2, 3)
        )
        assert len(outcome.emojis) == 6
        assert all(e.pixels.alpha.min() == 255 for e in outcome.emojis)

    def test_processing_time_recorded(self):
        outcome = EmojiSplitService().split(two_emoji_sheet())
        assert outcome.processing_time_ms >= 0
