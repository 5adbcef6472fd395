"""Command-line interface for Emoji Cutter."""

import argparse
import logging
import re
import sys
from pathlib import Path

from .adapters.background import RembgAdapter
from .adapters.vision import create_vision_model
from .application.services.ai_segmentation import AISegmentationAdapter
from .application.services.background_removal import BackgroundRemovalService
from .application.services.splitting import EmojiSplitService
from .config import AI_DEFAULTS, DEFAULTS, SUPPORTED_IMAGE_EXTENSIONS
from .domain.entities.image import PixelBuffer
from .domain.value_objects.config import (
    AISegmentationConfig,
    APIStyle,
    BackgroundRemovalOptions,
    ExtractionOptions,
    ManualSplitConfig,
    VisionAPIConfig,
)
from .exceptions import ConfigurationError, EmojiCutterError, ImageProcessingError
from .utils.env import load_api_key, load_base_url, setup_logging

logger = logging.getLogger(__name__)

_GRID_RE = re.compile(r"^(\d+)[xX](\d+)$")


def _grid(value: str) -> tuple[int, int]:
    match = _GRID_RE.match(value)
    if not match or int(match.group(1)) < 1 or int(match.group(2)) < 1:
        raise argparse.ArgumentTypeError(f"Expected ROWSxCOLS, got '{value}'")
    return int(match.group(1)), int(match.group(2))


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="emoji-cutter",
        description="Cut emoji sprite sheets into individual transparent PNGs"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # split
    split = subparsers.add_parser("split", help="Detect emojis and save each as PNG")
    split.add_argument("input", help="Input image or folder")
    split.add_argument("-o", "--output", required=True, help="Output folder")
    split.add_argument(
        "--grid",
        type=_grid,
        metavar="ROWSxCOLS",
        help="Cut into a fixed grid instead of detecting regions"
    )
    split.add_argument(
        "--auto-grid",
        action="store_true",
        help="Try to recognise a grid layout from separator lines"
    )

    detect_group = split.add_argument_group("Detection options")
    detect_group.add_argument(
        "-t", "--tolerance",
        type=float,
        default=DEFAULTS.tolerance,
        help=f"Background colour tolerance 0-255 (default: {DEFAULTS.tolerance})"
    )
    detect_group.add_argument(
        "--min-area",
        type=int,
        default=DEFAULTS.min_area,
        help=f"Minimum region pixel count (default: {DEFAULTS.min_area})"
    )
    detect_group.add_argument(
        "--min-size",
        type=int,
        default=DEFAULTS.min_size,
        help=f"Minimum region side in pixels (default: {DEFAULTS.min_size})"
    )
    detect_group.add_argument(
        "--merge-percent",
        type=float,
        default=DEFAULTS.merge_distance_percent,
        help="Merge regions closer than this percent of the short side "
             f"(default: {DEFAULTS.merge_distance_percent})"
    )

    extract_group = split.add_argument_group("Extraction options")
    extract_group.add_argument(
        "-p", "--padding",
        type=int,
        default=0,
        help="Extra pixels around each region (default: 0)"
    )
    extract_group.add_argument(
        "--no-remove-bg",
        action="store_true",
        help="Keep the background in the cutouts"
    )
    extract_group.add_argument(
        "--no-feather",
        action="store_true",
        help="Disable edge feathering during background removal"
    )

    ai_group = split.add_argument_group("AI segmentation options")
    ai_group.add_argument(
        "--ai",
        action="store_true",
        help="Ask a vision model for regions first (needs an API key)"
    )
    ai_group.add_argument(
        "--api-style",
        choices=[s.value for s in APIStyle],
        default=APIStyle.OPENAI.value,
        help="API wire format (default: openai)"
    )
    ai_group.add_argument("--model", help="Model name (default depends on API style)")
    ai_group.add_argument("--base-url", help="API base URL")
    ai_group.add_argument(
        "--timeout",
        type=int,
        default=AI_DEFAULTS.timeout_ms,
        metavar="MS",
        help=f"Request timeout in milliseconds (default: {AI_DEFAULTS.timeout_ms})"
    )

    # remove-bg
    remove_bg = subparsers.add_parser("remove-bg", help="Make an image background transparent")
    remove_bg.add_argument("input", help="Input image or folder")
    remove_bg.add_argument("-o", "--output", required=True, help="Output folder")
    remove_bg.add_argument(
        "-t", "--tolerance",
        type=float,
        default=DEFAULTS.tolerance,
        help=f"Background colour tolerance 0-255 (default: {DEFAULTS.tolerance})"
    )
    remove_bg.add_argument(
        "--advanced",
        action="store_true",
        help="Try rembg first (pip install emoji-cutter[advanced])"
    )
    remove_bg.add_argument(
        "--no-feather",
        action="store_true",
        help="Disable edge feathering"
    )

    return parser


def collect_images(input_path: Path) -> list[Path]:
    """Single file, or supported images in a folder sorted by name."""
    if input_path.is_file():
        return [input_path]
    return sorted(
        f for f in input_path.iterdir()
        if f.suffix.lower() in SUPPORTED_IMAGE_EXTENSIONS
    )


def _build_split_service(parsed: argparse.Namespace) -> EmojiSplitService:
    manual_config = ManualSplitConfig(
        tolerance=parsed.tolerance,
        min_area=parsed.min_area,
        min_size=parsed.min_size,
        merge_distance_percent=parsed.merge_percent,
    )

    ai_adapter = None
    if parsed.ai:
        api_key = load_api_key()
        if not api_key:
            raise ConfigurationError(
                "No API key found. Set EMOJI_CUTTER_API_KEY or add it to .env",
                config_key="api_key",
            )
        try:
            api_config = VisionAPIConfig(
                api_key=api_key,
                base_url=parsed.base_url or load_base_url() or "",
                style=APIStyle(parsed.api_style),
                model=parsed.model,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid API configuration: {e}") from e
        ai_adapter = AISegmentationAdapter(
            create_vision_model(api_config),
            AISegmentationConfig(timeout=parsed.timeout),
        )

    return EmojiSplitService(ai_adapter=ai_adapter, manual_config=manual_config)


def run_split(parsed: argparse.Namespace, files: list[Path], output_path: Path) -> list[tuple[str, str]]:
    service = _build_split_service(parsed)
    options = ExtractionOptions(
        remove_background=not parsed.no_remove_bg,
        background_tolerance=parsed.tolerance,
        padding=parsed.padding,
        feather=not parsed.no_feather,
    )
    failed = []

    for i, file_path in enumerate(files, 1):
        logger.info(f"[{i}/{len(files)}] Splitting {file_path.name}...")
        try:
            blob = file_path.read_bytes()
            pixels = PixelBuffer.from_encoded(blob)
            outcome = service.split(
                pixels,
                blob=blob,
                options=options,
                grid=parsed.grid,
                auto_grid=parsed.auto_grid,
            )
        except ImageProcessingError as e:
            logger.error(f"  Failed to process {file_path.name}: {e}")
            failed.append((file_path.name, str(e)))
            continue

        if outcome.hint:
            logger.warning(f"  {outcome.hint}")
            continue

        if outcome.segmentation.error:
            logger.warning(f"  AI segmentation failed: {outcome.segmentation.error}")

        for n, emoji in enumerate(outcome.emojis, 1):
            output_file = output_path / f"{file_path.stem}_{n:02d}.png"
            output_file.write_bytes(emoji.blob)
        logger.info(
            f"  Saved {len(outcome.emojis)} emojis "
            f"(method: {outcome.method.value}, {outcome.processing_time_ms:.0f}ms)"
        )

    return failed


def run_remove_bg(parsed: argparse.Namespace, files: list[Path], output_path: Path) -> list[tuple[str, str]]:
    service = BackgroundRemovalService(RembgAdapter() if parsed.advanced else None)
    options = BackgroundRemovalOptions(
        use_advanced=parsed.advanced,
        tolerance=parsed.tolerance,
        feather_edge=not parsed.no_feather,
    )
    failed = []

    for i, file_path in enumerate(files, 1):
        logger.info(f"[{i}/{len(files)}] Removing background of {file_path.name}...")
        try:
            result = service.remove(file_path.read_bytes(), options)
        except ImageProcessingError as e:
            logger.error(f"  Failed to process {file_path.name}: {e}")
            failed.append((file_path.name, str(e)))
            continue

        output_file = output_path / f"{file_path.stem}_nobg.png"
        output_file.write_bytes(result.blob)
        suffix = f", fell back: {result.error}" if result.did_fallback else ""
        logger.info(f"  Saved: {output_file.name} (method: {result.method.value}{suffix})")

    return failed


def main(args: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    setup_logging(logging.DEBUG if parsed.verbose else logging.INFO, parsed.log_file)

    input_path = Path(parsed.input)
    output_path = Path(parsed.output)

    if not input_path.exists():
        logger.error(f"Input not found: {input_path}")
        return 1

    files = collect_images(input_path)
    if not files:
        logger.error("No image files found")
        return 1

    output_path.mkdir(parents=True, exist_ok=True)
    logger.info(f"Processing {len(files)} image(s)...")

    try:
        if parsed.command == "split":
            failed = run_split(parsed, files, output_path)
        else:
            failed = run_remove_bg(parsed, files, output_path)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except EmojiCutterError as e:
        logger.error(str(e))
        return 1

    if failed:
        logger.warning(f"Completed: {len(files) - len(failed)}/{len(files)} succeeded")
        for name, error in failed:
            logger.error(f"  - {name}: {error}")
        return 1

    logger.info(f"Completed: All {len(files)} images processed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
