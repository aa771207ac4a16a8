"""Data model for the poster pipeline.

Bitmaps are ``numpy.ndarray`` of dtype ``uint8`` and shape ``(H, W, 4)``
in RGBA order with straight alpha. Ownership is explicit: a stage either
returns the same object it was given (no transfer) or a new one, in which
case the caller releases whichever buffer it no longer needs.
"""
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from .utils.imaging import to_rgba

logger = logging.getLogger(__name__)

DEFAULT_ASPECT_RATIO = 16 / 9


# =============================================================================
# Frames and metrics
# =============================================================================

@dataclass(frozen=True)
class QualityMetrics:
    """Quality of a single candidate frame.

    Attributes:
        brightness: Mean BT.709 luma in 0..1
        sharpness: Mean squared Laplacian of luma (0..255 scale)
        combined_score: Weighted score in 0..1, higher is better
    """
    brightness: float
    sharpness: float
    combined_score: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "brightness": round(self.brightness, 4),
            "sharpness": round(self.sharpness, 2),
            "combined_score": round(self.combined_score, 4),
        }


@dataclass
class RawFrame:
    """A decoded frame handed over by a decoder.

    The frame owns its pixel buffer and, when the decoder had to leave one
    on disk, the temporary ``artifact_path``. Both are dropped by
    :meth:`release`.
    """
    pixels: Optional[np.ndarray]
    timestamp: float = 0.0
    channel_layout: str = "RGBA"
    premultiplied: bool = False
    artifact_path: Optional[Path] = None
    metrics: Optional[QualityMetrics] = None
    _released: bool = field(default=False, init=False, repr=False)

    @property
    def released(self) -> bool:
        return self._released

    @property
    def width(self) -> int:
        return 0 if self.pixels is None else int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return 0 if self.pixels is None else int(self.pixels.shape[0])

    def to_rgba(self) -> np.ndarray:
        """Straight-alpha RGBA copy of the pixels."""
        if self._released or self.pixels is None:
            raise ValueError("RawFrame has been released")
        return to_rgba(self.pixels, self.channel_layout, self.premultiplied)

    def release(self) -> None:
        """Drop the pixel buffer and delete any artifact file. Idempotent."""
        if self._released:
            return
        self._released = True
        self.pixels = None
        if self.artifact_path is not None:
            try:
                os.remove(self.artifact_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Could not delete frame artifact {self.artifact_path}: {e}")


# =============================================================================
# Geometry
# =============================================================================

@dataclass(frozen=True)
class CropBounds:
    """Offsets of detected black bars from each edge, in pixels."""
    left: int = 0
    top: int = 0
    right: int = 0
    bottom: int = 0

    @property
    def is_empty(self) -> bool:
        """True if no bars were found on any edge."""
        return self.left == 0 and self.top == 0 and self.right == 0 and self.bottom == 0

    def result_size(self, width: int, height: int) -> Tuple[int, int]:
        """Dimensions left after removing the bars."""
        return width - self.left - self.right, height - self.top - self.bottom

    def is_safe(self, width: int, height: int, min_fraction: float = 0.25) -> bool:
        """Check that cropping keeps a plausible interior.

        Args:
            width: Source width
            height: Source height
            min_fraction: Smallest allowed fraction of each source dimension

        Returns:
            True if the crop should be applied
        """
        if self.is_empty:
            return False
        new_w, new_h = self.result_size(width, height)
        if new_w <= 0 or new_h <= 0:
            return False
        if new_w > width or new_h > height:
            return False
        if new_w < width * min_fraction or new_h < height * min_fraction:
            return False
        return True

    def to_dict(self) -> Dict[str, int]:
        return {"left": self.left, "top": self.top, "right": self.right, "bottom": self.bottom}


class FillMode(Enum):
    """How the canvas is brought to the target aspect ratio."""
    ORIGINAL = "original"   # Keep source ratio
    FIT = "fit"             # Center crop, no scaling
    FILL = "fill"           # Stretch, distorts

    @classmethod
    def parse(cls, value: Union[str, "FillMode"]) -> "FillMode":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for mode in cls:
            if mode.value == normalized or mode.name.lower() == normalized:
                return mode
        raise ValueError(f"Unknown fill mode: {value!r}")


def parse_aspect_ratio(ratio: str, default: float = DEFAULT_ASPECT_RATIO) -> float:
    """Parse ``"W:H"`` into a float, falling back to 16:9.

    Args:
        ratio: Ratio string such as "16:9", "2.39:1" or " 4 : 3 "
        default: Ratio returned when parsing fails

    Returns:
        Width divided by height
    """
    try:
        width_str, height_str = str(ratio).split(":")
        width = float(width_str.strip())
        height = float(height_str.strip())
        if width <= 0 or height <= 0 or not np.isfinite(width) or not np.isfinite(height):
            raise ValueError("ratio components must be positive")
        return width / height
    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid aspect ratio {ratio!r} ({e}); falling back to 16:9")
        return default


@dataclass(frozen=True)
class FillSpec:
    """Target aspect ratio and fill mode."""
    target_ratio: float = DEFAULT_ASPECT_RATIO
    mode: FillMode = FillMode.ORIGINAL

    @classmethod
    def parse(cls, ratio: str, mode: Union[str, FillMode] = FillMode.ORIGINAL) -> "FillSpec":
        return cls(target_ratio=parse_aspect_ratio(ratio), mode=FillMode.parse(mode))


# =============================================================================
# Output formats
# =============================================================================

class PosterFileType(Enum):
    """Encodings supported for the final poster."""
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    GIF = "gif"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str) and value.lower() == "jpg":
            return cls.JPEG
        return None

    @property
    def extension(self) -> str:
        return {
            PosterFileType.JPEG: ".jpg",
            PosterFileType.PNG: ".png",
            PosterFileType.WEBP: ".webp",
            PosterFileType.GIF: ".gif",
        }[self]

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def pil_format(self) -> str:
        return self.name

    @property
    def is_lossless(self) -> bool:
        return self is PosterFileType.PNG

    @property
    def supports_transparency(self) -> bool:
        return self in (PosterFileType.PNG, PosterFileType.WEBP, PosterFileType.GIF)

    @classmethod
    def from_extension(cls, extension: str) -> "PosterFileType":
        """Map a file extension (with or without dot) to a type, JPEG if unknown."""
        ext = extension.lower().lstrip(".")
        if ext in ("jpg", "jpeg"):
            return cls.JPEG
        for file_type in cls:
            if file_type.value == ext:
                return file_type
        return cls.JPEG

    @classmethod
    def from_mime_type(cls, mime_type: str) -> "PosterFileType":
        """Map a MIME type to a type, JPEG if unknown."""
        normalized = mime_type.lower().strip()
        if normalized == "image/jpg":
            return cls.JPEG
        for file_type in cls:
            if file_type.mime_type == normalized:
                return file_type
        return cls.JPEG

    @classmethod
    def parse(cls, value: Union[str, "PosterFileType"]) -> "PosterFileType":
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized == "jpg":
            return cls.JPEG
        for file_type in cls:
            if file_type.value == normalized:
                return file_type
        raise ValueError(f"Unknown poster file type: {value!r}")


@dataclass
class EncodedImage:
    """Final encoded poster. Owned by the caller."""
    data: bytes
    file_type: PosterFileType
    width: int
    height: int

    @property
    def mime_type(self) -> str:
        return self.file_type.mime_type

    @property
    def extension(self) -> str:
        return self.file_type.extension

    def save(self, path: Union[str, Path]) -> Path:
        """Write the encoded bytes to ``path`` and return it."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.data)
        return path


class PosterCanvas:
    """Owner of the working bitmap as it moves through the stages."""

    def __init__(self, pixels: np.ndarray):
        self._pixels: Optional[np.ndarray] = pixels

    @classmethod
    def blank(cls, width: int, height: int) -> "PosterCanvas":
        """Fully transparent canvas."""
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @property
    def pixels(self) -> np.ndarray:
        if self._pixels is None:
            raise ValueError("PosterCanvas has been released")
        return self._pixels

    @property
    def released(self) -> bool:
        return self._pixels is None

    @property
    def size(self) -> Tuple[int, int]:
        height, width = self.pixels.shape[:2]
        return width, height

    def replace(self, new_pixels: np.ndarray) -> bool:
        """Take ownership of ``new_pixels``, dropping the old buffer.

        Returns:
            True if the buffer changed, False if the same object was passed
        """
        if new_pixels is self._pixels:
            return False
        self._pixels = new_pixels
        return True

    def release(self) -> None:
        self._pixels = None


# =============================================================================
# Layer specs
# =============================================================================

class OverlayGradient(Enum):
    """Direction of the overlay color blend."""
    NONE = "none"
    LEFT_TO_RIGHT = "left_to_right"
    BOTTOM_TO_TOP = "bottom_to_top"
    TOP_LEFT_TO_BOTTOM_RIGHT = "top_left_to_bottom_right"
    TOP_RIGHT_TO_BOTTOM_LEFT = "top_right_to_bottom_left"


class Position(Enum):
    """Vertical placement inside the safe area."""
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


class Alignment(Enum):
    """Horizontal placement inside the safe area."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


def parse_enum(enum_cls, value: Any):
    """Case-insensitive enum lookup by value or member name.

    Accepts the PascalCase option names used by older settings files,
    e.g. ``"TopLeftCornerToBottomRightCorner"``.
    """
    if isinstance(value, enum_cls):
        return value
    normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    compact = normalized.replace("_", "").replace("corner", "")
    for member in enum_cls:
        if normalized in (member.value, member.name.lower()):
            return member
        if compact == member.value.replace("_", ""):
            return member
    try:
        return enum_cls(normalized)
    except ValueError:
        raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}") from None


@dataclass(frozen=True)
class ExtractionSpec:
    """Where and how hard to look for a poster frame."""
    window_start: float = 20.0
    window_end: float = 80.0
    max_retries: int = 30


@dataclass(frozen=True)
class LetterboxSpec:
    """Black bar detection settings.

    Attributes:
        enabled: Run detection at all
        black_threshold: Luma at or below which a pixel counts as black (0-255)
        confidence: Percent of a row/column that must be black (50-100)
    """
    enabled: bool = True
    black_threshold: int = 25
    confidence: float = 85.0

    def __post_init__(self):
        if not 0 <= self.black_threshold <= 255:
            raise ValueError("black_threshold must be between 0 and 255")
        if not 50 <= self.confidence <= 100:
            raise ValueError("confidence must be between 50 and 100")


@dataclass(frozen=True)
class OverlaySpec:
    """Color overlay drawn over the whole canvas."""
    color: str = "#66000000"
    gradient: OverlayGradient = OverlayGradient.NONE
    secondary_color: str = "#66000000"


@dataclass(frozen=True)
class GraphicSpec:
    """Static graphic (logo) placed inside the safe area.

    Attributes:
        path: Image file, empty for none
        width_percent: Maximum width as percent of canvas width
        height_percent: Maximum height as percent of canvas height
        position: Vertical placement
        alignment: Horizontal placement
        safe_area_percent: Inset of the safe area on each side
    """
    path: str = ""
    width_percent: float = 25.0
    height_percent: float = 25.0
    position: Position = Position.CENTER
    alignment: Alignment = Alignment.CENTER
    safe_area_percent: float = 5.0

    @property
    def enabled(self) -> bool:
        return bool(self.path)
