"""Command-line interface for the Media Processing Orchestrator."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .application.ports.event_publisher import ProgressEvent
from .application.services.orchestrator import ProcessingOrchestrator
from .config import ENGINE_DEFAULTS, OperationKind
from .domain.entities.detection import DetectedObject
from .domain.entities.pixel_buffer import PixelBuffer
from .domain.value_objects.config import OrchestratorConfig, ProviderCatalog
from .domain.value_objects.geometry import MaskPolygon, Point
from .exceptions import ConfigurationError
from .utils.env import setup_logging

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("image", type=Path, help="Input image")
    
    group = parser.add_argument_group("provider options")
    group.add_argument(
        "--providers",
        type=Path,
        metavar="FILE",
        help="JSON provider catalog (default: built-in chains)"
    )
    group.add_argument(
        "--base-url",
        metavar="URL",
        help="Base URL joined to relative provider endpoints"
    )
    group.add_argument(
        "--local-only",
        action="store_true",
        help="Skip remote providers and process locally"
    )
    
    parser.add_argument(
        "--hard-limit-mb",
        type=float,
        default=ENGINE_DEFAULTS.hard_limit_mb,
        metavar="N",
        help=f"Refuse work above this memory usage (default: {ENGINE_DEFAULTS.hard_limit_mb:.0f})"
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        help="Also write logs to this file"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="media-orchestrator",
        description="Detect or remove image regions using remote providers with local fallback"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    
    detect = subparsers.add_parser("detect", help="Detect the object under a point")
    _add_common_options(detect)
    detect.add_argument(
        "--point",
        required=True,
        metavar="X,Y",
        help="Click point in pixel coordinates"
    )
    detect.add_argument(
        "-o", "--output",
        type=Path,
        help="Write detections as JSON to this file (default: stdout)"
    )
    
    remove = subparsers.add_parser("remove", help="Remove the content inside a mask polygon")
    _add_common_options(remove)
    remove.add_argument(
        "--mask",
        required=True,
        metavar="POINTS",
        help='Polygon points, e.g. "10,10 50,10 50,40"'
    )
    remove.add_argument(
        "-o", "--output",
        type=Path,
        required=True,
        help="Output image file"
    )
    remove.add_argument(
        "--hint",
        type=Path,
        metavar="FILE",
        help="Detections JSON from a previous detect run; the first object is used"
    )
    
    return parser


def build_config(parsed: argparse.Namespace) -> OrchestratorConfig:
    """Orchestrator settings from command-line options."""
    options = {"hard_limit_mb": parsed.hard_limit_mb}
    if parsed.base_url:
        options["base_url"] = parsed.base_url
    return OrchestratorConfig(**options)


def load_catalog(parsed: argparse.Namespace) -> ProviderCatalog:
    if parsed.local_only:
        return ProviderCatalog.local_only()
    if parsed.providers:
        return ProviderCatalog.from_file(parsed.providers)
    return ProviderCatalog.default()


def load_hint(path: Path | None) -> DetectedObject | None:
    """First object of a detections JSON file."""
    if path is None:
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        entries = data if isinstance(data, list) else data.get("objects", [])
        return DetectedObject.from_dict(entries[0]) if entries else None
    except (OSError, ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
        raise ConfigurationError(f"Cannot read hint file {path}: {e}", config_key="hint") from e


def main(args: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)
    
    setup_logging(logging.DEBUG if parsed.verbose else logging.INFO, log_file=parsed.log_file)
    logger = logging.getLogger(__name__)
    
    if not parsed.image.exists():
        logger.error(f"Input not found: {parsed.image}")
        return EXIT_FAILED
    
    try:
        pixels = PixelBuffer.from_file(parsed.image)
        if parsed.command == "detect":
            kind, selection, hint = OperationKind.DETECTION, Point.parse(parsed.point), None
        else:
            kind, selection, hint = OperationKind.REMOVAL, MaskPolygon.parse(parsed.mask), load_hint(parsed.hint)
        config = build_config(parsed)
        catalog = load_catalog(parsed)
    except ConfigurationError as e:
        logger.error(str(e))
        return EXIT_FAILED
    except (ValueError, OSError) as e:
        logger.error(f"Invalid input: {e}")
        return EXIT_FAILED
    
    def progress(event: ProgressEvent) -> None:
        logger.info(f"[{event.progress:5.1f}%] {event.message}")
        if event.warning:
            logger.warning(event.warning)
    
    with ProcessingOrchestrator.create(config=config, catalog=catalog) as orchestrator:
        handle = orchestrator.submit(kind, pixels, selection, hint=hint, on_progress=progress)
        try:
            result = handle.result()
        except KeyboardInterrupt:
            logger.info("Interrupted by user, cancelling")
            orchestrator.cancel(handle)
            handle.result()
            return EXIT_INTERRUPTED
    
    if not result.success:
        logger.error(f"{result.user_message} ({result.error_message})")
        return EXIT_FAILED
    
    if kind == OperationKind.DETECTION:
        payload = json.dumps([obj.to_dict() for obj in result.objects], indent=2)
        if parsed.output:
            parsed.output.write_text(payload, encoding="utf-8")
            logger.info(f"Saved {len(result.objects)} detection(s) to {parsed.output}")
        else:
            print(payload)
    else:
        parsed.output.parent.mkdir(parents=True, exist_ok=True)
        result.pixels.save(parsed.output)
        logger.info(f"Saved: {parsed.output}")
    
    logger.info(f"{result.user_message} (source: {result.source}, {result.elapsed_seconds:.2f}s)")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
