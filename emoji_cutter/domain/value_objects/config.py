"""Configuration value objects with validation."""

from __future__ import annotations

from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator

from ...config import AI_DEFAULTS, DEFAULTS


class APIStyle(str, Enum):
    """Wire format of the vision API."""
    OPENAI = "openai"
    GEMINI = "gemini"


class ManualSplitConfig(BaseModel):
    """Tuning for the flat-background detection pipeline."""

    model_config = {"frozen": True}

    tolerance: float = Field(default=DEFAULTS.tolerance, ge=0, le=255)
    min_area: int = Field(default=DEFAULTS.min_area, ge=0)
    min_size: int = Field(default=DEFAULTS.min_size, ge=0)
    merge_distance_percent: float = Field(default=DEFAULTS.merge_distance_percent, ge=0, le=10)

    def merge_distance(self, width: int, height: int) -> float:
        """Merge threshold in pixels for an image of the given size."""
        return self.merge_distance_percent / 100 * min(width, height)


class AISegmentationConfig(BaseModel):
    """Settings for the AI segmentation adapter."""

    model_config = {"frozen": True}

    enabled: bool = True
    timeout: int = Field(default=AI_DEFAULTS.timeout_ms, gt=0)  # milliseconds
    max_image_size: int = Field(default=AI_DEFAULTS.max_image_size, gt=0)  # bytes
    use_polygon: bool = True

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000


class ExtractionOptions(BaseModel):
    """Options for cutting a region out of the source image."""

    model_config = {"frozen": True}

    remove_background: bool = True
    background_tolerance: float = Field(default=DEFAULTS.tolerance, ge=0, le=255)
    padding: int = Field(default=0, ge=0)
    feather: bool = True


class BackgroundRemovalOptions(BaseModel):
    """Options for the standalone background removal entry point."""

    model_config = {"frozen": True}

    use_advanced: bool = True
    tolerance: float = Field(default=DEFAULTS.tolerance, ge=0, le=255)
    feather_edge: bool = True


class VisionAPIConfig(BaseModel):
    """Connection settings for a vision model endpoint."""

    api_key: str
    base_url: str = ""
    style: APIStyle = APIStyle.OPENAI
    model: str | None = None

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("API Key 不能为空")
        return v.strip()

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https"):
            raise ValueError("Base URL 必须使用 http 或 https 协议")
        if not parsed.netloc:
            raise ValueError("Base URL 格式无效，请输入有效的 URL")
        return v.rstrip("/")

    @model_validator(mode="after")
    def fill_defaults(self) -> VisionAPIConfig:
        """Use the style's public endpoint and model when left blank."""
        if self.style == APIStyle.OPENAI:
            self.base_url = self.base_url or AI_DEFAULTS.openai_base_url
            self.model = self.model or AI_DEFAULTS.openai_model
        else:
            self.base_url = self.base_url or AI_DEFAULTS.gemini_base_url
            self.model = self.model or AI_DEFAULTS.gemini_model
        return self


__all__ = [
    'APIStyle',
    'ManualSplitConfig',
    'AISegmentationConfig',
    'ExtractionOptions',
    'BackgroundRemovalOptions',
    'VisionAPIConfig',
]
