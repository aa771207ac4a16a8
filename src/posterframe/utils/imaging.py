"""Pixel layout helpers shared by the processors.

All processors work on ``uint8`` arrays of shape ``(H, W, 4)`` in RGBA
order with straight alpha. Decoders may hand over other layouts, which
are normalized here.
"""
from typing import Tuple

import cv2
import numpy as np

from ..errors import AnalysisError

# BT.709 luma coefficients
LUMA_R = 0.2126
LUMA_G = 0.7152
LUMA_B = 0.0722

ANALYSIS_SIZE = 200

CHANNEL_LAYOUTS = ("RGBA", "RGB", "BGRA", "BGR", "GRAY")


def validate_bitmap(pixels: np.ndarray) -> None:
    """Raise AnalysisError if ``pixels`` is not a usable 2D image buffer."""
    if pixels is None or not isinstance(pixels, np.ndarray):
        raise AnalysisError("Empty buffer: no pixel data")
    if pixels.ndim not in (2, 3) or pixels.size == 0:
        raise AnalysisError(f"Malformed buffer with shape {getattr(pixels, 'shape', None)}")
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise AnalysisError("Empty buffer: zero-sized image")


def to_rgba(
    pixels: np.ndarray,
    channel_layout: str = "RGBA",
    premultiplied: bool = False,
) -> np.ndarray:
    """Convert a decoded buffer into straight-alpha RGBA.

    Args:
        pixels: Decoded image data
        channel_layout: One of RGBA, RGB, BGRA, BGR, GRAY
        premultiplied: Whether color channels are premultiplied by alpha

    Returns:
        New contiguous uint8 array of shape (H, W, 4)
    """
    validate_bitmap(pixels)
    layout = channel_layout.upper()
    if layout not in CHANNEL_LAYOUTS:
        raise AnalysisError(f"Unsupported channel layout: {channel_layout}")

    data = pixels
    if data.dtype == np.uint16:
        # 16-bit PNG from HDR sources
        data = (data >> 8).astype(np.uint8)
    elif data.dtype != np.uint8:
        data = np.clip(data, 0, 255).astype(np.uint8)

    if data.ndim == 2 or layout == "GRAY":
        if data.ndim == 3:
            data = data[:, :, 0]
        rgba = cv2.cvtColor(data, cv2.COLOR_GRAY2RGBA)
    elif layout == "RGB":
        rgba = cv2.cvtColor(data, cv2.COLOR_RGB2RGBA)
    elif layout == "BGR":
        rgba = cv2.cvtColor(data, cv2.COLOR_BGR2RGBA)
    elif layout == "BGRA":
        rgba = cv2.cvtColor(data, cv2.COLOR_BGRA2RGBA)
    else:
        rgba = np.array(data, dtype=np.uint8, copy=True)

    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise AnalysisError(f"Buffer does not match layout {layout}: {pixels.shape}")

    if premultiplied:
        rgba = unpremultiply(rgba)

    return np.ascontiguousarray(rgba)


def unpremultiply(rgba: np.ndarray) -> np.ndarray:
    """Divide color channels by alpha. Fully transparent pixels become black."""
    alpha = rgba[:, :, 3:4].astype(np.float32)
    color = rgba[:, :, :3].astype(np.float32)
    with np.errstate(divide="ignore", invalid="ignore"):
        straight = np.where(alpha > 0, color * 255.0 / alpha, 0.0)
    out = rgba.copy()
    out[:, :, :3] = np.clip(np.rint(straight), 0, 255).astype(np.uint8)
    return out


def luma(rgba: np.ndarray) -> np.ndarray:
    """BT.709 luma of an RGBA/RGB buffer in the 0-255 range (float32)."""
    rgb = rgba[..., :3].astype(np.float32)
    return LUMA_R * rgb[..., 0] + LUMA_G * rgb[..., 1] + LUMA_B * rgb[..., 2]


def analysis_size(width: int, height: int, max_side: int = ANALYSIS_SIZE) -> Tuple[int, int]:
    """Dimensions of the analysis copy, longest side about ``max_side``."""
    scale = min(max_side / width, max_side / height)
    return max(1, int(width * scale)), max(1, int(height * scale))


def analysis_copy(rgba: np.ndarray, max_side: int = ANALYSIS_SIZE) -> np.ndarray:
    """Downscaled copy used for scoring. Never modifies the source."""
    validate_bitmap(rgba)
    height, width = rgba.shape[:2]
    new_w, new_h = analysis_size(width, height, max_side)
    if (new_w, new_h) == (width, height):
        return rgba.copy()
    return cv2.resize(rgba, (new_w, new_h), interpolation=cv2.INTER_AREA)


def aspect_ratio(rgba: np.ndarray) -> float:
    """Width over height."""
    height, width = rgba.shape[:2]
    return width / height
