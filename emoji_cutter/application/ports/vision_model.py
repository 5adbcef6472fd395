"""Vision Model port - interface for multimodal chat endpoints."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class VisionModel(Protocol):
    """Port for models that answer a text prompt about one image.

    Implementations: OpenAI-compatible chat completions, Gemini generateContent.
    """

    @property
    def name(self) -> str:
        """Model name."""
        ...

    @property
    def is_available(self) -> bool:
        """Check if the model can be called (credentials, dependencies)."""
        ...

    def describe(
        self,
        image: bytes,
        mime_type: str,
        prompt: str,
        timeout: float
    ) -> str:
        """Send the image and prompt, return the model's text reply.

        Args:
            image: Encoded image bytes
            mime_type: MIME type of ``image``
            prompt: Instruction text
            timeout: Request timeout in seconds

        Returns:
            Raw text of the first answer

        Raises:
            TransportError: On HTTP, network or timeout failure
        """
        ...
