"""AI segmentation - ask a vision model for emoji bounding boxes.

The adapter prepares the image, calls a ``VisionModel`` on a worker thread,
and turns the free-form answer into validated regions. It never raises from
``segment``; every failure becomes a ``SegmentationResult`` with a short
localized error so the caller can fall back to classic detection.
"""

from __future__ import annotations

import io
import json
import logging
import math
import re
import threading
import time
from concurrent.futures import Future
from typing import Annotated, Any, Literal, Optional, Union

from PIL import Image as PILImage
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from ...config import AI_DEFAULTS
from ...domain.entities.region import (
    RegionType,
    SegmentationMethod,
    SegmentationRegion,
    SegmentationResult,
    generate_id,
)
from ...domain.value_objects.config import AISegmentationConfig
from ...domain.value_objects.geometry import (
    BoundingBox,
    Point,
    Polygon,
    bounding_box_of,
    clamp_point_inclusive,
    is_valid_polygon,
    normalize_point,
)
from ...exceptions import (
    ImageProcessingError,
    InvalidJsonError,
    TransportError,
    TransportErrorKind,
)
from ..ports.vision_model import VisionModel

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def build_prompt(width: int, height: int) -> str:
    """Instruction asking for rectangle regions only, sized to the image."""
    return f"""你是一个精确的图像分析专家。请分析这张表情包合集图片，找出每个独立表情包的精确边界。

**重要：这是一张 {width} x {height} 像素的图片**

**你的任务：**
1. 找出图片中所有独立的表情包（通常是卡通形象 + 配文）
2. 每个表情包应该包含完整的图案和对应的文字
3. 返回每个表情包的精确矩形边界坐标

**输出格式（严格遵守）：**
```json
{{
  "regions": [
    {{
      "type": "rectangle",
      "topLeft": {{"x": 0, "y": 0}},
      "bottomRight": {{"x": 100, "y": 150}},
      "label": "emoji"
    }}
  ]
}}
```

**坐标规则：**
- x 坐标范围：0 到 {width}
- y 坐标范围：0 到 {height}
- topLeft 是左上角坐标
- bottomRight 是右下角坐标
- 坐标必须是整数像素值

**识别要点：**
1. 边界框要完整包含整个表情包（图案+文字），不要切掉任何部分
2. 边界框要紧贴内容，但留出少量边距（约5-10像素）
3. 如果图片是网格布局（如3x3），按行列顺序识别
4. 不要把多个表情包合并成一个区域
5. 坐标不要超出图片范围

请仔细分析图片，返回精确的 JSON 结果。"""


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def _loads(candidate: str) -> bool:
    try:
        json.loads(candidate)
        return True
    except ValueError:
        return False


def _repair(candidate: str) -> Optional[str]:
    """Fix trailing commas, then single quotes; None if still invalid."""
    fixed = _TRAILING_COMMA_RE.sub(r"\1", candidate)
    if _loads(fixed):
        return fixed
    fixed = fixed.replace("'", '"')
    if _loads(fixed):
        return fixed
    return None


def _balanced_objects(text: str):
    """Yield every balanced ``{...}`` substring, in order of its opening brace.

    One pass pairs each closing brace with the nearest open one; braces
    inside string literals are ignored and unclosed braces never match.
    """
    spans = []
    open_braces = []
    in_string = False
    escaped = False
    for index, c in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
        elif c == '"' and open_braces:
            in_string = True
        elif c == "{":
            open_braces.append(index)
        elif c == "}" and open_braces:
            spans.append((open_braces.pop(), index))
    for start, end in sorted(spans):
        yield text[start:end + 1]


def extract_json_from_text(text: str) -> Optional[str]:
    """Pull a JSON document out of a chatty model answer.

    Tried in order: the whole text, a fenced code block, then the first
    balanced object that mentions ``"regions"``. Candidates that only fail
    on trailing commas or single quotes are repaired.

    Returns:
        JSON text, or None when nothing parses
    """
    if not text:
        return None
    cleaned = text.strip()

    if _loads(cleaned):
        return cleaned

    match = _FENCE_RE.search(cleaned)
    if match:
        block = match.group(1).strip()
        if _loads(block):
            return block
        repaired = _repair(block)
        if repaired is not None:
            return repaired

    for candidate in _balanced_objects(cleaned):
        if '"regions"' not in candidate and "'regions'" not in candidate:
            continue
        if _loads(candidate):
            return candidate
        repaired = _repair(candidate)
        if repaired is not None:
            return repaired

    return None


class _PointSchema(BaseModel):
    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)

    @field_validator("x", "y", mode="before")
    @classmethod
    def reject_non_numbers(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("coordinate must be a number")
        return v


class _RegionSchema(BaseModel):
    label: Optional[str] = None
    confidence: Optional[float] = None

    @field_validator("label", mode="before")
    @classmethod
    def drop_non_string_label(cls, v: Any) -> Any:
        return v if isinstance(v, str) else None

    @field_validator("confidence", mode="before")
    @classmethod
    def drop_non_numeric_confidence(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        return v if math.isfinite(v) else None


class _RectangleSchema(_RegionSchema):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["rectangle"]
    top_left: _PointSchema = Field(alias="topLeft")
    bottom_right: _PointSchema = Field(alias="bottomRight")


class _PolygonSchema(_RegionSchema):
    type: Literal["polygon"]
    vertices: list[_PointSchema]

    @field_validator("vertices", mode="before")
    @classmethod
    def keep_valid_vertices(cls, v: Any) -> Any:
        if not isinstance(v, list):
            raise ValueError("vertices must be a list")
        kept = []
        for vertex in v:
            try:
                kept.append(_PointSchema.model_validate(vertex))
            except PydanticValidationError:
                continue
        return kept


_REGION_ADAPTER = TypeAdapter(
    Annotated[Union[_RectangleSchema, _PolygonSchema], Field(discriminator="type")]
)


class _ResponseSchema(BaseModel):
    regions: list[Any]


def _looks_like_percentage(x: float, y: float, width: int, height: int) -> bool:
    """Guess whether the largest coordinates of a region are relative.

    Fractions in [0, 1] are always relative. Whole numbers up to 100 are
    taken as percentages only on images larger than 500 px per side.
    """
    if 0 <= x <= 1 and 0 <= y <= 1:
        return True
    if 0 <= x <= 100 and 0 <= y <= 100 and width > 500 and height > 500:
        return float(x).is_integer() and float(y).is_integer()
    return False


def _to_pixels(points: list[_PointSchema], width: int, height: int) -> list[Point]:
    max_x = max(p.x for p in points)
    max_y = max(p.y for p in points)
    percentage = _looks_like_percentage(max_x, max_y, width, height)
    # fractions become percentages before normalising
    scale = 100.0 if percentage and max_x <= 1 and max_y <= 1 else 1.0
    return [
        clamp_point_inclusive(
            normalize_point(Point(p.x * scale, p.y * scale), width, height, percentage),
            width,
            height,
        )
        for p in points
    ]


def _fit_rectangle(box: BoundingBox, width: int, height: int) -> Optional[BoundingBox]:
    """Grow slivers to the minimum side without leaving the image."""
    if box.is_degenerate:
        return None
    side = AI_DEFAULTS.min_region_side
    w = min(max(box.width, side), width)
    h = min(max(box.height, side), height)
    x = min(box.x, width - w)
    y = min(box.y, height - h)
    return BoundingBox(x, y, w, h)


def _build_region(
    schema: _RectangleSchema | _PolygonSchema,
    width: int,
    height: int,
    allow_polygons: bool = True
) -> Optional[SegmentationRegion]:
    label = schema.label or AI_DEFAULTS.default_label

    if isinstance(schema, _PolygonSchema):
        if len(schema.vertices) < 3:
            return None
        polygon = Polygon(tuple(_to_pixels(schema.vertices, width, height)))
        if not is_valid_polygon(polygon):
            return None
        box = bounding_box_of(polygon)
        if box.is_degenerate:
            return None
        if not allow_polygons:
            box = _fit_rectangle(box, width, height)
            return SegmentationRegion(
                id=generate_id("ai_"),
                type=RegionType.RECTANGLE,
                bounding_box=box,
                confidence=schema.confidence,
                label=label,
            )
        return SegmentationRegion(
            id=generate_id("ai_"),
            type=RegionType.POLYGON,
            bounding_box=box,
            polygon=polygon,
            confidence=schema.confidence,
            label=label,
        )

    a, b = _to_pixels([schema.top_left, schema.bottom_right], width, height)
    box = _fit_rectangle(
        BoundingBox(min(a.x, b.x), min(a.y, b.y), abs(b.x - a.x), abs(b.y - a.y)),
        width,
        height,
    )
    if box is None:
        return None
    return SegmentationRegion(
        id=generate_id("ai_"),
        type=RegionType.RECTANGLE,
        bounding_box=box,
        confidence=schema.confidence,
        label=label,
    )


def parse_response(
    text: str,
    width: int,
    height: int,
    allow_polygons: bool = True
) -> list[SegmentationRegion]:
    """Validate a model answer into regions in pixel coordinates.

    Elements that fail validation are skipped one by one. Coordinates outside
    the image are clamped rather than rejected. With ``allow_polygons`` off,
    polygon answers are kept as rectangles of their bounds.

    Raises:
        InvalidJsonError: If no JSON object with a ``regions`` list is found
    """
    json_text = extract_json_from_text(text)
    if json_text is None:
        raise InvalidJsonError("无法从 AI 响应中提取 JSON", raw_response=text)

    try:
        document = _ResponseSchema.model_validate(json.loads(json_text))
    except (ValueError, PydanticValidationError) as e:
        raise InvalidJsonError(f"响应格式无效：缺少 regions 数组 ({e})", raw_response=text) from e

    regions = []
    for index, element in enumerate(document.regions):
        if isinstance(element, dict) and "type" not in element and "topLeft" in element:
            element = {**element, "type": "rectangle"}
        try:
            schema = _REGION_ADAPTER.validate_python(element)
        except PydanticValidationError:
            logger.debug(f"Skipping malformed region #{index}")
            continue
        region = _build_region(schema, width, height, allow_polygons)
        if region is None:
            logger.debug(f"Skipping degenerate region #{index}")
            continue
        regions.append(region)

    return regions


def rescale_regions(
    regions: list[SegmentationRegion],
    source_size: tuple[int, int],
    target_size: tuple[int, int]
) -> list[SegmentationRegion]:
    """Map regions found on a resized copy back onto the original image."""
    if source_size == target_size:
        return regions
    source = BoundingBox(0, 0, *source_size)
    target = BoundingBox(0, 0, *target_size)
    scaled = []
    for region in regions:
        corners = Polygon((region.bounding_box.top_left, region.bounding_box.bottom_right))
        tl, br = corners.rescale(source, target).vertices
        polygon = region.polygon.rescale(source, target) if region.polygon else None
        scaled.append(SegmentationRegion(
            id=region.id,
            type=region.type,
            bounding_box=BoundingBox(tl.x, tl.y, br.x - tl.x, br.y - tl.y),
            polygon=polygon,
            confidence=region.confidence,
            label=region.label,
        ))
    return scaled


# ---------------------------------------------------------------------------
# Image preparation
# ---------------------------------------------------------------------------

def image_info(blob: bytes) -> tuple[int, int, str]:
    """Width, height and MIME type of an encoded image."""
    try:
        with PILImage.open(io.BytesIO(blob)) as image:
            mime = PILImage.MIME.get(image.format or "", "image/png")
            return image.width, image.height, mime
    except (OSError, ValueError) as e:
        raise ImageProcessingError(f"图片加载失败: {e}") from e


def _encode_jpeg(image: PILImage.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def compress_image(blob: bytes, max_image_size: int) -> bytes:
    """Shrink an encoded image until it fits ``max_image_size`` bytes.

    Blobs that already fit are returned as-is. Otherwise the image is
    flattened onto white and re-encoded as JPEG, lowering quality first and
    then dimensions.

    Raises:
        ImageProcessingError: If the blob cannot be decoded, or not even a
            1x1 JPEG fits the limit
    """
    if len(blob) <= max_image_size:
        return blob

    try:
        with PILImage.open(io.BytesIO(blob)) as source:
            rgba = source.convert("RGBA")
    except (OSError, ValueError) as e:
        raise ImageProcessingError(f"图片加载失败: {e}") from e

    flat = PILImage.new("RGB", rgba.size, (255, 255, 255))
    flat.paste(rgba, mask=rgba.getchannel("A"))

    ratio = math.sqrt(max_image_size / len(blob))
    width = max(1, math.floor(flat.width * ratio))
    height = max(1, math.floor(flat.height * ratio))

    while True:
        resized = flat if (width, height) == flat.size else flat.resize(
            (width, height), PILImage.Resampling.LANCZOS
        )
        for quality in range(
            AI_DEFAULTS.initial_jpeg_quality,
            AI_DEFAULTS.min_jpeg_quality - 1,
            -AI_DEFAULTS.jpeg_quality_step,
        ):
            data = _encode_jpeg(resized, quality)
            if len(data) <= max_image_size:
                logger.info(
                    f"Compressed image {len(blob)} -> {len(data)} bytes "
                    f"({width}x{height}, quality {quality})"
                )
                return data

        if width == 1 and height == 1:
            raise ImageProcessingError(
                f"Cannot compress image below {max_image_size} bytes"
            )
        width = max(1, math.floor(width * AI_DEFAULTS.downscale_factor))
        height = max(1, math.floor(height * AI_DEFAULTS.downscale_factor))


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

_ERROR_PATTERNS: list[tuple[TransportErrorKind, re.Pattern]] = [
    (TransportErrorKind.CANCELLED, re.compile(r"cancel|abort")),
    (TransportErrorKind.UNAUTHORIZED, re.compile(r"api[ _-]?key|\b401\b|unauthori[sz]ed|invalid key")),
    (TransportErrorKind.RATE_LIMITED, re.compile(r"\brate\b|rate[ _-]?limit|quota|\b429\b|too many requests")),
    (TransportErrorKind.NETWORK, re.compile(r"network|fetch|connection|econnrefused")),
    (TransportErrorKind.TIMEOUT, re.compile(r"timeout|timed out")),
]

_FRIENDLY_MESSAGES = {
    TransportErrorKind.UNAUTHORIZED: "API Key 无效，请检查配置",
    TransportErrorKind.RATE_LIMITED: "请求过于频繁，请稍后再试",
    TransportErrorKind.NETWORK: "网络连接失败，请检查网络",
    TransportErrorKind.TIMEOUT: "请求超时，请重试",
    TransportErrorKind.CANCELLED: "请求已取消",
    TransportErrorKind.UNKNOWN: "发生未知错误，请重试",
}


def classify_error(error: BaseException | str) -> TransportErrorKind:
    """Map an exception or message onto a transport failure kind."""
    if isinstance(error, TransportError) and error.kind != TransportErrorKind.UNKNOWN:
        return error.kind
    message = str(error).lower()
    for kind, pattern in _ERROR_PATTERNS:
        if pattern.search(message):
            return kind
    return TransportErrorKind.UNKNOWN


def friendly_message(kind: TransportErrorKind) -> str:
    return _FRIENDLY_MESSAGES[kind]


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------

class CancellationToken:
    """Cooperative cancel flag shared between the caller and a request."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; True if cancelled."""
        return self._event.wait(timeout)


class AISegmentationAdapter:
    """Single-flight segmentation through a vision model.

    Starting a new ``segment`` call cancels the one in flight. The model call
    runs on a worker thread so cancellation and the configured timeout are
    honoured even while the request is blocked on the network.
    """

    POLL_INTERVAL = 0.05  # seconds

    def __init__(
        self,
        model: VisionModel,
        config: AISegmentationConfig | None = None
    ):
        self._model = model
        self._config = config or AISegmentationConfig()
        self._lock = threading.Lock()
        self._current: CancellationToken | None = None

    @property
    def config(self) -> AISegmentationConfig:
        return self._config

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._current is not None

    def cancel(self) -> None:
        """Cancel the in-flight request, if any."""
        with self._lock:
            if self._current is not None:
                logger.info("Cancelling AI segmentation request")
                self._current.cancel()

    def _begin(self, token: CancellationToken | None) -> CancellationToken:
        token = token or CancellationToken()
        with self._lock:
            if self._current is not None:
                self._current.cancel()
            self._current = token
        return token

    def _finish(self, token: CancellationToken) -> None:
        with self._lock:
            if self._current is token:
                self._current = None

    @staticmethod
    def _start_call(fn, *args) -> Future:
        """Run ``fn`` on its own daemon thread.

        A running model call cannot be interrupted, so an abandoned call keeps
        its thread until the model returns. Later requests never wait on it.
        """
        future: Future = Future()
        future.set_running_or_notify_cancel()

        def run():
            try:
                future.set_result(fn(*args))
            except BaseException as e:
                future.set_exception(e)

        threading.Thread(target=run, name="vision-request", daemon=True).start()
        return future

    def _wait(self, future: Future, token: CancellationToken) -> str:
        deadline = time.monotonic() + self._config.timeout_seconds
        while not future.done():
            if token.wait(self.POLL_INTERVAL):
                raise TransportError("Request cancelled", TransportErrorKind.CANCELLED)
            if time.monotonic() >= deadline:
                raise TransportError(
                    f"Request timeout after {self._config.timeout}ms",
                    TransportErrorKind.TIMEOUT,
                )
        if token.is_cancelled:
            raise TransportError("Request cancelled", TransportErrorKind.CANCELLED)
        return future.result()

    def segment(
        self,
        blob: bytes,
        token: CancellationToken | None = None
    ) -> SegmentationResult:
        """Segment an encoded image.

        Args:
            blob: Encoded image bytes
            token: Optional token the caller can cancel; one is created if omitted

        Returns:
            Success with regions in original-image pixels, or a failure with
            a localized message
        """
        token = self._begin(token)
        raw_response = None
        try:
            if not self._config.enabled:
                return SegmentationResult.failure("AI 分割未启用")

            original_width, original_height, _ = image_info(blob)
            processed = compress_image(blob, self._config.max_image_size)
            width, height, mime_type = image_info(processed)
            prompt = build_prompt(width, height)

            logger.info(f"Requesting segmentation from {self._model.name} ({width}x{height})")
            future = self._start_call(
                self._model.describe,
                processed,
                mime_type,
                prompt,
                self._config.timeout_seconds,
            )
            raw_response = self._wait(future, token)

            regions = parse_response(
                raw_response, width, height, allow_polygons=self._config.use_polygon
            )
            regions = rescale_regions(
                regions, (width, height), (original_width, original_height)
            )
            logger.info(f"AI segmentation returned {len(regions)} regions")
            return SegmentationResult.from_regions(regions, raw_response=raw_response)

        except Exception as e:
            kind = classify_error(e)
            logger.warning(f"AI segmentation failed ({kind.value}): {e}")
            return SegmentationResult.failure(
                friendly_message(kind),
                method=SegmentationMethod.AI,
                raw_response=raw_response,
            )
        finally:
            self._finish(token)

    def close(self) -> None:
        """Cancel the in-flight request; its worker thread is abandoned."""
        self.cancel()

    def __enter__(self) -> AISegmentationAdapter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
