"""Gemini adapter - implements VisionModel port."""

from __future__ import annotations

import logging

from ...application.ports.vision_model import VisionModel
from ...exceptions import TransportError
from .base import HTTPVisionAdapter, encode_base64

logger = logging.getLogger(__name__)


class GeminiVisionAdapter(HTTPVisionAdapter, VisionModel):
    """``models/{model}:generateContent`` with the image as ``inlineData``."""

    def describe(
        self,
        image: bytes,
        mime_type: str,
        prompt: str,
        timeout: float
    ) -> str:
        payload = {
            "contents": [
                {
                    "parts": [
                        {"text": prompt},
                        {"inlineData": {"mimeType": mime_type, "data": encode_base64(image)}},
                    ]
                }
            ]
        }
        headers = {"x-goog-api-key": self._config.api_key}
        url = f"{self._config.base_url}/models/{self._config.model}:generateContent"

        reply = self._post(url, payload, headers, timeout)

        try:
            parts = reply["candidates"][0]["content"]["parts"]
            text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        except (KeyError, IndexError, TypeError):
            text = ""

        if not text:
            raise TransportError("AI 未返回有效响应")
        return text
