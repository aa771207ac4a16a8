"""Canvas layers: color overlay, static graphic and final encoding.

All functions take an RGBA uint8 array and return either the same
object (nothing drawn) or a new array.
"""

import io
import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..errors import EncodingError
from ..models import (
    Alignment,
    EncodedImage,
    GraphicSpec,
    OverlayGradient,
    OverlaySpec,
    PosterFileType,
    Position,
)
from ..utils.color import parse_hex_color

logger = logging.getLogger(__name__)

ENCODE_QUALITY = {
    PosterFileType.JPEG: 85,
    PosterFileType.WEBP: 80,
}


# =============================================================================
# Overlay
# =============================================================================

def gradient_weights(width: int, height: int, gradient: OverlayGradient) -> np.ndarray:
    """Blend factor per pixel: 0 at the primary end, 1 at the secondary end."""
    xs = np.arange(width, dtype=np.float64)[np.newaxis, :]
    ys = np.arange(height, dtype=np.float64)[:, np.newaxis]
    span_x = max(width - 1, 1)
    span_y = max(height - 1, 1)

    if gradient == OverlayGradient.LEFT_TO_RIGHT:
        t = np.broadcast_to(xs / span_x, (height, width))
    elif gradient == OverlayGradient.BOTTOM_TO_TOP:
        t = np.broadcast_to((height - 1 - ys) / span_y, (height, width))
    elif gradient == OverlayGradient.TOP_LEFT_TO_BOTTOM_RIGHT:
        t = (xs * span_x + ys * span_y) / (span_x ** 2 + span_y ** 2)
    elif gradient == OverlayGradient.TOP_RIGHT_TO_BOTTOM_LEFT:
        t = ((width - 1 - xs) * span_x + ys * span_y) / (span_x ** 2 + span_y ** 2)
    else:
        t = np.zeros((height, width), dtype=np.float64)
    return np.clip(t, 0.0, 1.0)


def build_overlay(width: int, height: int, spec: OverlaySpec) -> Optional[np.ndarray]:
    """
    Render the overlay layer.

    Args:
        width: Canvas width
        height: Canvas height
        spec: Overlay colors and gradient

    Returns:
        RGBA layer, or None when the primary color is fully transparent
    """
    primary = parse_hex_color(spec.color)
    if primary[3] == 0:
        return None

    if spec.gradient == OverlayGradient.NONE:
        layer = np.empty((height, width, 4), dtype=np.uint8)
        layer[...] = primary
        return layer

    secondary = parse_hex_color(spec.secondary_color)
    if secondary[3] == 0:
        secondary = primary

    t = gradient_weights(width, height, spec.gradient)[:, :, np.newaxis]
    start = np.array(primary, dtype=np.float64)
    end = np.array(secondary, dtype=np.float64)
    blended = start + (end - start) * t
    return np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def apply_overlay(canvas: np.ndarray, spec: OverlaySpec) -> np.ndarray:
    """Composite the overlay source-over onto ``canvas``."""
    height, width = canvas.shape[:2]
    layer = build_overlay(width, height, spec)
    if layer is None:
        return canvas

    base = Image.fromarray(np.ascontiguousarray(canvas))
    top = Image.fromarray(layer)
    return np.array(Image.alpha_composite(base, top))


# =============================================================================
# Graphic
# =============================================================================

def safe_area(width: int, height: int, safe_area_percent: float) -> Tuple[int, int, int, int]:
    """Safe rectangle as (left, top, width, height)."""
    margin_x = int(width * safe_area_percent / 100.0)
    margin_y = int(height * safe_area_percent / 100.0)
    return margin_x, margin_y, width - 2 * margin_x, height - 2 * margin_y


def graphic_placement(
    canvas_size: Tuple[int, int],
    graphic_size: Tuple[int, int],
    spec: GraphicSpec,
) -> Tuple[int, int, int, int]:
    """
    Compute where the graphic goes.

    The graphic is scaled, keeping its aspect ratio, to fit a box of
    ``width_percent`` x ``height_percent`` of the canvas, clamped to the
    safe area, then positioned inside the safe area.

    Returns:
        (x, y, width, height) of the scaled graphic
    """
    canvas_w, canvas_h = canvas_size
    graphic_w, graphic_h = graphic_size
    safe_x, safe_y, safe_w, safe_h = safe_area(canvas_w, canvas_h, spec.safe_area_percent)

    box_w = min(canvas_w * spec.width_percent / 100.0, safe_w)
    box_h = min(canvas_h * spec.height_percent / 100.0, safe_h)
    scale = min(box_w / graphic_w, box_h / graphic_h)
    new_w = max(1, int(graphic_w * scale))
    new_h = max(1, int(graphic_h * scale))

    if spec.alignment == Alignment.LEFT:
        x = safe_x
    elif spec.alignment == Alignment.RIGHT:
        x = safe_x + safe_w - new_w
    else:
        x = safe_x + (safe_w - new_w) // 2

    if spec.position == Position.TOP:
        y = safe_y
    elif spec.position == Position.BOTTOM:
        y = safe_y + safe_h - new_h
    else:
        y = safe_y + (safe_h - new_h) // 2

    return x, y, new_w, new_h


def load_graphic(path: str) -> Optional[Image.Image]:
    """Open a graphic as RGBA, or None with a warning if unusable."""
    graphic_path = Path(path)
    if not graphic_path.is_file():
        logger.warning(f"Graphic not found, skipping: {graphic_path}")
        return None
    try:
        with Image.open(graphic_path) as img:
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Could not load graphic {graphic_path}, skipping: {e}")
        return None


def apply_graphic(canvas: np.ndarray, spec: GraphicSpec) -> np.ndarray:
    """Composite the configured graphic onto ``canvas``."""
    if not spec.enabled:
        return canvas

    graphic = load_graphic(spec.path)
    if graphic is None:
        return canvas

    height, width = canvas.shape[:2]
    x, y, new_w, new_h = graphic_placement((width, height), graphic.size, spec)
    if (new_w, new_h) != graphic.size:
        graphic = graphic.resize((new_w, new_h), Image.Resampling.LANCZOS)

    base = Image.fromarray(np.ascontiguousarray(canvas))
    base.alpha_composite(graphic, dest=(x, y))
    logger.debug(f"Placed graphic {new_w}x{new_h} at ({x}, {y})")
    return np.array(base)


# =============================================================================
# Encoding
# =============================================================================

def encode_image(canvas: np.ndarray, file_type: PosterFileType) -> EncodedImage:
    """
    Encode the final canvas.

    JPEG has no alpha channel, so the canvas is flattened onto black.

    Raises:
        EncodingError: If Pillow fails to encode
    """
    height, width = canvas.shape[:2]
    try:
        img = Image.fromarray(np.ascontiguousarray(canvas))
        if file_type == PosterFileType.JPEG:
            background = Image.new("RGBA", img.size, (0, 0, 0, 255))
            img = Image.alpha_composite(background, img).convert("RGB")

        save_kwargs = {}
        if file_type in ENCODE_QUALITY:
            save_kwargs["quality"] = ENCODE_QUALITY[file_type]

        buffer = io.BytesIO()
        img.save(buffer, format=file_type.pil_format, **save_kwargs)
    except (OSError, ValueError, KeyError) as e:
        raise EncodingError(
            f"Failed to encode {file_type.value}: {e}",
            details={"width": width, "height": height},
            cause=e,
        ) from e

    return EncodedImage(data=buffer.getvalue(), file_type=file_type, width=width, height=height)
