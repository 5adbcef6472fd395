"""Custom exceptions for Emoji Cutter."""

from enum import Enum
from typing import Optional


class EmojiCutterError(Exception):
    """Base exception for all application errors.

    Attributes:
        message: Human-readable error description
        error_code: Optional error code for programmatic handling
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class ConfigurationError(EmojiCutterError):
    """Error in configuration or settings.

    Attributes:
        config_key: The configuration key that caused the error (if applicable)
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, error_code="CONFIG_ERROR")
        self.config_key = config_key


class ImageProcessingError(EmojiCutterError):
    """Error while decoding, encoding or transforming pixel data.

    Attributes:
        image_path: Path to the image being processed when error occurred
    """

    def __init__(self, message: str, image_path: Optional[str] = None):
        super().__init__(message, error_code="IMAGE_ERROR")
        self.image_path = image_path

    def __str__(self) -> str:
        if self.image_path:
            return f"{super().__str__()} (image: {self.image_path})"
        return super().__str__()


class InvalidJsonError(EmojiCutterError):
    """AI response could not be turned into a ``{"regions": [...]}`` object.

    Attributes:
        raw_response: The text that failed to parse
    """

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message, error_code="INVALID_JSON")
        self.raw_response = raw_response


class InvalidPolygonError(EmojiCutterError):
    """Polygon has fewer than 3 vertices or intersects itself."""

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message, error_code="INVALID_POLYGON")
        self.reason = reason


class DegenerateRegionError(EmojiCutterError):
    """Bounding box with non-positive width or height."""

    def __init__(self, message: str):
        super().__init__(message, error_code="DEGENERATE_REGION")


class TransportErrorKind(str, Enum):
    """Classification of AI transport failures."""
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class TransportError(EmojiCutterError):
    """Error talking to the AI vision service.

    Attributes:
        kind: Classified failure kind
        status_code: HTTP status code if the server answered
    """

    def __init__(
        self,
        message: str,
        kind: TransportErrorKind = TransportErrorKind.UNKNOWN,
        status_code: Optional[int] = None
    ):
        super().__init__(message, error_code="TRANSPORT_ERROR")
        self.kind = kind
        self.status_code = status_code


class BackgroundRemovalError(EmojiCutterError):
    """Advanced background removal failed (recoverable)."""

    def __init__(self, message: str, method: Optional[str] = None):
        super().__init__(message, error_code="BACKGROUND_REMOVAL_FAILED")
        self.method = method

