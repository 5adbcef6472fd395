"""Shared HTTP plumbing for vision model adapters."""

from __future__ import annotations

import base64
import logging

import requests

from ...domain.value_objects.config import VisionAPIConfig
from ...exceptions import TransportError, TransportErrorKind

logger = logging.getLogger(__name__)

_STATUS_KINDS = {
    401: TransportErrorKind.UNAUTHORIZED,
    403: TransportErrorKind.UNAUTHORIZED,
    408: TransportErrorKind.TIMEOUT,
    429: TransportErrorKind.RATE_LIMITED,
    504: TransportErrorKind.TIMEOUT,
}


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class HTTPVisionAdapter:
    """Base class posting JSON to a vision endpoint with ``requests``.

    Subclasses build the payload and pick the answer text out of the reply.
    """

    def __init__(
        self,
        config: VisionAPIConfig,
        session: requests.Session | None = None
    ):
        self._config = config
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return self._config.model or ""

    @property
    def is_available(self) -> bool:
        return bool(self._config.api_key)

    def _post(
        self,
        url: str,
        payload: dict,
        headers: dict[str, str],
        timeout: float
    ) -> dict:
        """POST JSON and return the decoded reply.

        Raises:
            TransportError: On timeout, connection failure or non-2xx status
        """
        try:
            response = self._session.post(url, json=payload, headers=headers, timeout=timeout)
        except requests.Timeout as e:
            raise TransportError(f"Request timeout: {e}", TransportErrorKind.TIMEOUT) from e
        except requests.ConnectionError as e:
            raise TransportError(f"Network connection failed: {e}", TransportErrorKind.NETWORK) from e
        except requests.RequestException as e:
            raise TransportError(f"Request failed: {e}") from e

        if not response.ok:
            status = response.status_code
            logger.debug(f"{self.name} answered HTTP {status}: {response.text[:500]}")
            raise TransportError(
                f"HTTP {status}: {response.text[:200]}",
                kind=_STATUS_KINDS.get(status, TransportErrorKind.UNKNOWN),
                status_code=status,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from server: {e}", status_code=response.status_code) from e
