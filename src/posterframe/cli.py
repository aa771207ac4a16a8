#!/usr/bin/env python3
"""
PosterFrame CLI - Episode Poster Generation
Command-line interface for extracting and composing poster images.
"""

import argparse
import json
import random
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from . import __version__
from .config import PosterSettings, load_settings
from .decoders import DECODERS, create_decoder
from .errors import ConfigurationError, Failure
from .generator import PosterGenerator
from .models import FillMode, PosterFileType
from .processors.frame_quality import FrameQualityScorer
from .processors.letterbox import LetterboxDetector
from .utils.logging import configure_from_cli, get_logger

logger = get_logger("cli")


class Colors:
    """ANSI color codes for terminal output."""
    OKBLUE = '\033[94m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def print_colored(message: str, color: str = Colors.OKBLUE):
    """Print colored message to console."""
    print(f"{color}{message}{Colors.ENDC}")


def _settings_overrides(args) -> Dict[str, Any]:
    """CLI flags that override file settings. None means not given."""
    overrides: Dict[str, Any] = {
        "poster_file_type": args.format,
        "poster_fill": args.fill,
        "poster_dimension_ratio": args.ratio,
        "brighten_hdr": args.brighten,
        "max_retries": args.max_retries,
        "graphic_path": args.graphic,
    }
    if args.no_extract:
        overrides["extract_poster"] = False
    if args.no_letterbox:
        overrides["enable_letterbox_detection"] = False
    return overrides


def load_effective_settings(args) -> PosterSettings:
    """Defaults, then the --config file, then CLI flags."""
    settings = load_settings(args.config) if args.config else PosterSettings()
    return settings.merged(_settings_overrides(args))


def _output_for(output: Optional[str], inputs: List[str]) -> Optional[Path]:
    if output is None:
        return None
    path = Path(output)
    if len(inputs) > 1:
        path.mkdir(parents=True, exist_ok=True)
    return path


def generate_posters(args) -> int:
    """Generate posters for one or more videos."""
    try:
        settings = load_effective_settings(args)
    except ConfigurationError as e:
        print_colored(f"Configuration error: {e}", Colors.FAIL)
        return 1

    generator = PosterGenerator(decoder=create_decoder(args.decoder))
    output = _output_for(args.output, args.input)
    logger.info("Generating posters", inputs=len(args.input), settings_hash=settings.get_hash())

    if len(args.input) == 1:
        rng = random.Random(args.seed) if args.seed is not None else None
        results = [generator.generate(args.input[0], settings, output_path=output, rng=rng)]
    else:
        results = generator.generate_many(
            args.input,
            settings,
            output_dir=output,
            max_workers=args.workers,
            seed=args.seed,
        )

    exit_code = 0
    for video, result in zip(args.input, results):
        if isinstance(result, Failure):
            print_colored(f"✗ {video}: {result.kind.value}: {result.message}", Colors.FAIL)
            exit_code = 1
        elif isinstance(result, Path):
            print_colored(f"✓ {video} -> {result}", Colors.OKGREEN)
        else:
            print_colored(
                f"✓ {video}: {result.width}x{result.height} {result.mime_type} "
                f"({len(result.data)} bytes, not saved)",
                Colors.OKGREEN,
            )
    return exit_code


def inspect_image(args) -> int:
    """Print quality metrics and black bar bounds of a still image."""
    try:
        with Image.open(args.image) as img:
            pixels = np.array(img.convert("RGBA"))
    except (FileNotFoundError, UnidentifiedImageError, OSError) as e:
        print_colored(f"Cannot read image {args.image}: {e}", Colors.FAIL)
        return 1

    metrics = FrameQualityScorer().score(pixels)
    bounds = LetterboxDetector().detect_bounds(
        pixels,
        black_threshold=args.black_threshold,
        confidence=args.confidence,
    )
    report = {
        "image": str(args.image),
        "width": int(pixels.shape[1]),
        "height": int(pixels.shape[0]),
        "metrics": metrics.to_dict(),
        "acceptable": FrameQualityScorer.is_acceptable(metrics),
        "letterbox": bounds.to_dict() if bounds else None,
    }

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print_colored(f"{report['image']} ({report['width']}x{report['height']})", Colors.BOLD)
        print(f"  brightness: {metrics.brightness:.4f}")
        print(f"  sharpness:  {metrics.sharpness:.2f}")
        print(f"  score:      {metrics.combined_score:.4f}")
        print(f"  letterbox:  {report['letterbox'] or 'none'}")
    return 0


def _add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Set logging level (default: INFO)')
    parser.add_argument('--log-format', type=str, default='text', choices=['text', 'json'],
                        help='Set logging format (default: text)')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Path to log file (default: stderr only)')


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='posterframe',
        description='Generate episode poster images from video files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  posterframe generate --input episode.mkv --output poster.jpg
  posterframe generate --input *.mkv --output posters/ --fill fit --ratio 2:3
  posterframe generate --input episode.mkv --output poster.png --no-extract
  posterframe inspect --image frame.png
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    _add_logging_arguments(parser)

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    gen = subparsers.add_parser('generate', help='Generate posters from videos')
    gen.add_argument('--input', '-i', nargs='+', required=True, help='Input video file(s)')
    gen.add_argument('--output', '-o', type=str, default=None,
                     help='Output file, or directory when several inputs are given')
    gen.add_argument('--config', '-c', type=str, default=None, help='YAML settings file')
    gen.add_argument('--format', type=str, default=None,
                     choices=[t.value for t in PosterFileType] + ['jpg'],
                     help='Output image format (default: jpeg)')
    gen.add_argument('--fill', type=str, default=None, choices=[m.value for m in FillMode],
                     help='Aspect fill mode (default: original)')
    gen.add_argument('--ratio', type=str, default=None, help='Target aspect ratio W:H (default: 16:9)')
    gen.add_argument('--brighten', type=float, default=None, help='Brightness increase in percent')
    gen.add_argument('--graphic', type=str, default=None, help='Logo image to place on the poster')
    gen.add_argument('--max-retries', type=int, default=None, help='Maximum extraction attempts')
    gen.add_argument('--no-extract', action='store_true', help='Use a blank canvas instead of a frame')
    gen.add_argument('--no-letterbox', action='store_true', help='Disable black bar removal')
    gen.add_argument('--seed', type=int, default=None, help='Seed for reproducible frame selection')
    gen.add_argument('--decoder', type=str, default='ffmpeg', choices=sorted(DECODERS),
                     help='Frame decoder (default: ffmpeg)')
    gen.add_argument('--workers', type=int, default=4, help='Parallel jobs for several inputs')
    gen.set_defaults(func=generate_posters)

    ins = subparsers.add_parser('inspect', help='Show quality metrics and black bars of an image')
    ins.add_argument('--image', required=True, help='Image file')
    ins.add_argument('--black-threshold', type=int, default=25, help='Black luma threshold 0-255')
    ins.add_argument('--confidence', type=float, default=85.0, help='Bar confidence percent 50-100')
    ins.add_argument('--json', action='store_true', help='Print JSON')
    ins.set_defaults(func=inspect_image)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_from_cli(
        log_level=args.log_level,
        log_format=args.log_format,
        log_file=args.log_file,
    )

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print_colored("\nInterrupted", Colors.WARNING)
        return 130
    except ValueError as e:
        print_colored(f"Error: {e}", Colors.FAIL)
        return 1


if __name__ == '__main__':
    sys.exit(main())
