"""Tests for background removal with fallback."""

import io

import numpy as np
from PIL import Image
from emoji_cutter.adapters.background import RembgAdapter
from emoji_cutter.application.ports.background_remover import AdvancedBackgroundRemover
from emoji_cutter.application.services.background_removal import (
    BackgroundRemovalService,
    RemovalMethod,
)
from emoji_cutter.domain.entities.image import PixelBuffer
from emoji_cutter.domain.value_objects.config import BackgroundRemovalOptions
from emoji_cutter.exceptions import BackgroundRemovalError


class FakeRemover:
    name = "fake"

    def __init__(self, available=True, error=None):
        self.is_available = available
        self.error = error
        self.calls = 0

    def remove(self, pixels):
        self.calls += 1
        if self.error is not None:
            raise self.error
        result = pixels.copy()
        result.data[:, :, 3] = 7
        return result


def image():
    data = np.full((40, 40, 4), 255, dtype=np.uint8)
    data[10:30, 10:30] = (20, 20, 20, 255)
    return PixelBuffer(data)


class TestBackgroundRemovalService:
    """Tests for method selection and fallback."""

    def test_advanced_used(self):
        remover = FakeRemover()
        result = BackgroundRemovalService(remover).remove(image())
        assert result.method == RemovalMethod.ADVANCED
        assert not result.did_fallback
        assert result.pixels.alpha.max() == 7

    def test_simple_requested(self):
        remover = FakeRemover()
        result = BackgroundRemovalService(remover).remove(
            image(), BackgroundRemovalOptions(use_advanced=False)
        )
        assert result.method == RemovalMethod.SIMPLE
        assert not result.did_fallback
        assert remover.calls == 0
        assert result.pixels.alpha[0, 0] == 0
        assert result.pixels.alpha[20, 20] == 255

    def test_failure_falls_back(self):
        remover = FakeRemover(error=BackgroundRemovalError("model crashed"))
        result = BackgroundRemovalService(remover).remove(image())
        assert result.method == RemovalMethod.SIMPLE
        assert result.did_fallback
        assert "model crashed" in result.error
        assert result.pixels.alpha[0, 0] == 0

    def test_unavailable_falls_back(self):
        remover = FakeRemover(available=False)
        result = BackgroundRemovalService(remover).remove(image())
        assert result.did_fallback
        assert remover.calls == 0

    def test_no_remover_configured(self):
        result = BackgroundRemovalService().remove(image())
        assert result.method == RemovalMethod.SIMPLE
        assert result.did_fallback

    def test_encoded_input_and_png_output(self):
        result = BackgroundRemovalService().remove(
            image().to_png_bytes(), BackgroundRemovalOptions(use_advanced=False)
        )
        decoded = Image.open(io.BytesIO(result.blob))
        assert decoded.format == "PNG"
        assert decoded.mode == "RGBA"
        assert decoded.getpixel((0, 0))[3] == 0


class TestRembgAdapter:
    def test_implements_port(self):
        adapter = RembgAdapter()
        assert isinstance(adapter, AdvancedBackgroundRemover)
        assert adapter.name == "rembg-silueta"

    def test_unavailable_adapter_falls_back(self, monkeypatch):
        monkeypatch.setattr(RembgAdapter, "is_available", property(lambda self: False))
        result = BackgroundRemovalService(RembgAdapter()).remove(image())
        assert result.did_fallback
        assert "rembg-silueta is not installed" in result.error
