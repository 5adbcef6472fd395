"""OpenAI-compatible adapter - implements VisionModel port."""

from __future__ import annotations

import logging

from ...application.ports.vision_model import VisionModel
from ...config import AI_DEFAULTS
from ...exceptions import TransportError
from .base import HTTPVisionAdapter, encode_base64

logger = logging.getLogger(__name__)


class OpenAIVisionAdapter(HTTPVisionAdapter, VisionModel):
    """Chat completions endpoint with an inline ``image_url`` data URL.

    Works with any server exposing ``POST {base_url}/chat/completions``.
    """

    def describe(
        self,
        image: bytes,
        mime_type: str,
        prompt: str,
        timeout: float
    ) -> str:
        data_url = f"data:{mime_type};base64,{encode_base64(image)}"
        payload = {
            "model": self._config.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                }
            ],
            "max_tokens": AI_DEFAULTS.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self._config.api_key}"}

        reply = self._post(
            f"{self._config.base_url}/chat/completions", payload, headers, timeout
        )

        try:
            content = reply["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None

        # some servers return content as a list of parts
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") for part in content if isinstance(part, dict)
            )

        if not content:
            raise TransportError("AI 未返回有效响应")
        return content
