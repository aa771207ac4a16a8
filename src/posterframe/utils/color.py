"""Hex color parsing for overlay settings."""
import logging
from typing import Tuple

from ..errors import ConfigParseError

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

WHITE: RGBA = (255, 255, 255, 255)


def parse_hex_color_strict(value: str) -> RGBA:
    """Parse ``#RRGGBB`` or ``#AARRGGBB`` into an ``(r, g, b, a)`` tuple.

    Args:
        value: Color string, leading ``#`` optional

    Returns:
        Tuple of (red, green, blue, alpha) in 0-255

    Raises:
        ConfigParseError: If the string is not a valid hex color
    """
    if not isinstance(value, str):
        raise ConfigParseError(f"Color must be a string, got {type(value).__name__}")

    hex_str = value.strip().lstrip("#")
    if len(hex_str) not in (6, 8):
        raise ConfigParseError(f"Invalid color length: {value!r}")

    try:
        raw = int(hex_str, 16)
    except ValueError as e:
        raise ConfigParseError(f"Invalid hex color: {value!r}", cause=e)

    if len(hex_str) == 6:
        alpha = 255
        r, g, b = (raw >> 16) & 0xFF, (raw >> 8) & 0xFF, raw & 0xFF
    else:
        alpha = (raw >> 24) & 0xFF
        r, g, b = (raw >> 16) & 0xFF, (raw >> 8) & 0xFF, raw & 0xFF

    return (r, g, b, alpha)


def parse_hex_color(value: str) -> RGBA:
    """Parse a hex color, falling back to opaque white on bad input."""
    try:
        return parse_hex_color_strict(value)
    except ConfigParseError as e:
        logger.warning(f"{e}; using white")
        return WHITE


def to_hex_color(rgba: RGBA) -> str:
    """Format an ``(r, g, b, a)`` tuple as ``#AARRGGBB``."""
    r, g, b, a = rgba
    return f"#{a:02X}{r:02X}{g:02X}{b:02X}"
