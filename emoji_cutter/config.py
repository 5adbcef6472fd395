"""Configuration and constants for the Emoji Cutter project."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SegmentationDefaults:
    """Default tuning values for detection and extraction."""
    tolerance: int = 30  # RGB distance for "same colour as background"
    min_area: int = 100
    min_size: int = 10
    merge_distance_percent: float = 2.0

    # Corner sampling for background detection
    corner_inset_max: int = 5
    corner_inset_divisor: int = 10

    # Pixels with alpha below this never count as background in the flood fill
    # and always count as background in the binary mask
    opaque_alpha_threshold: int = 128

    # Feathering
    feather_rounds: int = 3
    feather_tolerance_factor: float = 2.0

    # Reading-order sort bucket (pixels per row)
    row_bucket_height: int = 50

    # Grid auto detection
    grid_thresholds: tuple[float, ...] = (0.95, 0.9, 0.85, 0.8)
    grid_min_cells: int = 2
    grid_max_cells: int = 6

    # Selection history
    max_history_size: int = 50

    # Thumbnails
    thumbnail_size: int = 64
    thumbnail_cache_size: int = 256


DEFAULTS = SegmentationDefaults()


@dataclass(frozen=True)
class AIDefaults:
    """Defaults for the AI segmentation path."""
    timeout_ms: int = 30_000
    max_image_size: int = 4 * 1024 * 1024
    min_region_side: float = 10.0
    default_label: str = "emoji"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.0-flash-exp"
    max_tokens: int = 4096
    # Compression
    initial_jpeg_quality: int = 90
    min_jpeg_quality: int = 10
    jpeg_quality_step: int = 10
    downscale_factor: float = 0.75


AI_DEFAULTS = AIDefaults()


# Supported input formats (decoded with Pillow)
SUPPORTED_IMAGE_EXTENSIONS: tuple[str, ...] = (
    '.png',
    '.jpg', '.jpeg',
    '.webp',
    '.bmp',
    '.gif',
    '.tiff', '.tif',
)

# Environment
ENV_FILE = ".env"
API_KEY_ENV = "EMOJI_CUTTER_API_KEY"
BASE_URL_ENV = "EMOJI_CUTTER_BASE_URL"


# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
