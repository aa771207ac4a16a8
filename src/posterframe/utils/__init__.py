"""
PosterFrame Utilities Package
Helpers for decoding, color parsing, pixel layouts and logging.
"""

from .ffmpeg import (
    FFmpegError,
    FFmpegCancelled,
    check_ffmpeg_installed,
    get_video_info,
    get_video_duration,
    get_video_resolution,
    extract_frame_png,
)

from .color import (
    parse_hex_color,
    parse_hex_color_strict,
    to_hex_color,
)

from .imaging import (
    to_rgba,
    luma,
    analysis_copy,
    aspect_ratio,
)

__all__ = [
    "FFmpegError",
    "FFmpegCancelled",
    "check_ffmpeg_installed",
    "get_video_info",
    "get_video_duration",
    "get_video_resolution",
    "extract_frame_png",
    "parse_hex_color",
    "parse_hex_color_strict",
    "to_hex_color",
    "to_rgba",
    "luma",
    "analysis_copy",
    "aspect_ratio",
]
