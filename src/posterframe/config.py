"""Configuration module for PosterFrame poster generation."""
import hashlib
import json
import logging
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from .errors import ConfigurationError
from .models import (
    Alignment,
    ExtractionSpec,
    FillMode,
    FillSpec,
    GraphicSpec,
    LetterboxSpec,
    OverlayGradient,
    OverlaySpec,
    PosterFileType,
    Position,
    parse_enum,
)

logger = logging.getLogger(__name__)

_ENUM_FIELDS = {
    "poster_fill": FillMode,
    "poster_file_type": PosterFileType,
    "overlay_gradient": OverlayGradient,
    "graphic_position": Position,
    "graphic_alignment": Alignment,
}

# Option names that do not convert cleanly from PascalCase
_LEGACY_ALIASES = {
    "BrightenHDR": "brighten_hdr",
}


def _to_snake_case(key: str) -> str:
    if key in _LEGACY_ALIASES:
        return _LEGACY_ALIASES[key]
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


@dataclass
class PosterSettings:
    """Settings for a poster generation run.

    Attributes:
        extract_poster: Extract a frame from the video; if False a blank
            transparent canvas is used
        extract_window_start: Start of the seek window, percent of duration
        extract_window_end: End of the seek window, percent of duration
        max_retries: Maximum number of extraction attempts
        enable_letterbox_detection: Crop black bars before filling
        letterbox_black_threshold: Luma at or below which a pixel is black (0-255)
        letterbox_confidence: Percent of a row/column that must be black (50-100)
        brighten_hdr: Percent brightness increase applied to extracted frames
        skip_bright_frames: Skip brightening when the frame is already bright
        poster_fill: Original, Fit (crop) or Fill (stretch)
        poster_dimension_ratio: Target ratio as "W:H"
        poster_safe_area: Inset of the graphic safe area, percent per side
        poster_file_type: Output encoding
        overlay_color: Primary overlay color, #AARRGGBB
        overlay_gradient: Overlay gradient direction
        overlay_secondary_color: Second gradient color, #AARRGGBB
        graphic_path: Logo image, empty for none
        graphic_width: Maximum logo width, percent of canvas
        graphic_height: Maximum logo height, percent of canvas
        graphic_position: Vertical logo placement
        graphic_alignment: Horizontal logo placement
        fallback_width: Blank canvas width when no frame size is known
        fallback_height: Blank canvas height when no frame size is known
    """

    extract_poster: bool = True
    extract_window_start: float = 20.0
    extract_window_end: float = 80.0
    max_retries: int = 30

    enable_letterbox_detection: bool = True
    letterbox_black_threshold: int = 25
    letterbox_confidence: float = 85.0

    brighten_hdr: float = 25.0
    skip_bright_frames: bool = False

    poster_fill: FillMode = FillMode.ORIGINAL
    poster_dimension_ratio: str = "16:9"
    poster_safe_area: float = 5.0
    poster_file_type: PosterFileType = PosterFileType.JPEG

    overlay_color: str = "#66000000"
    overlay_gradient: OverlayGradient = OverlayGradient.NONE
    overlay_secondary_color: str = "#66000000"

    graphic_path: str = ""
    graphic_width: float = 25.0
    graphic_height: float = 25.0
    graphic_position: Position = Position.CENTER
    graphic_alignment: Alignment = Alignment.CENTER

    fallback_width: int = 1920
    fallback_height: int = 1080

    def __post_init__(self) -> None:
        """Coerce enum fields and validate ranges."""
        for name, enum_cls in _ENUM_FIELDS.items():
            value = getattr(self, name)
            try:
                setattr(self, name, parse_enum(enum_cls, value))
            except ValueError as e:
                raise ConfigurationError(
                    str(e),
                    config_key=name,
                    config_value=value,
                ) from e

        if not 0 <= self.letterbox_black_threshold <= 255:
            raise ConfigurationError(
                "letterbox_black_threshold must be between 0 and 255",
                config_key="letterbox_black_threshold",
                config_value=self.letterbox_black_threshold,
            )
        if not 50 <= self.letterbox_confidence <= 100:
            raise ConfigurationError(
                "letterbox_confidence must be between 50 and 100",
                config_key="letterbox_confidence",
                config_value=self.letterbox_confidence,
            )
        if self.max_retries < 1:
            raise ConfigurationError(
                "max_retries must be at least 1",
                config_key="max_retries",
                config_value=self.max_retries,
            )
        if not 0 <= self.poster_safe_area < 50:
            raise ConfigurationError(
                "poster_safe_area must be between 0 and 50",
                config_key="poster_safe_area",
                config_value=self.poster_safe_area,
            )
        for name in ("graphic_width", "graphic_height"):
            value = getattr(self, name)
            if not 0 < value <= 100:
                raise ConfigurationError(
                    f"{name} must be between 0 and 100",
                    config_key=name,
                    config_value=value,
                )
        if self.fallback_width <= 0 or self.fallback_height <= 0:
            raise ConfigurationError(
                "fallback dimensions must be positive",
                config_key="fallback_width",
                config_value=(self.fallback_width, self.fallback_height),
            )

    # -------------------------------------------------------------------------
    # Mapping onto pipeline specs
    # -------------------------------------------------------------------------

    def extraction_spec(self) -> ExtractionSpec:
        return ExtractionSpec(
            window_start=self.extract_window_start,
            window_end=self.extract_window_end,
            max_retries=self.max_retries,
        )

    def letterbox_spec(self) -> LetterboxSpec:
        return LetterboxSpec(
            enabled=self.enable_letterbox_detection,
            black_threshold=self.letterbox_black_threshold,
            confidence=self.letterbox_confidence,
        )

    def fill_spec(self) -> FillSpec:
        return FillSpec.parse(self.poster_dimension_ratio, self.poster_fill)

    def overlay_spec(self) -> OverlaySpec:
        return OverlaySpec(
            color=self.overlay_color,
            gradient=self.overlay_gradient,
            secondary_color=self.overlay_secondary_color,
        )

    def graphic_spec(self) -> GraphicSpec:
        return GraphicSpec(
            path=self.graphic_path,
            width_percent=self.graphic_width,
            height_percent=self.graphic_height,
            position=self.graphic_position,
            alignment=self.graphic_alignment,
            safe_area_percent=self.poster_safe_area,
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a plain dictionary.

        Enum fields are stored by value so the result is JSON/YAML safe.
        """
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in _ENUM_FIELDS:
                value = value.value
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PosterSettings":
        """Create settings from a dictionary.

        Keys may be snake_case or the PascalCase option names used by
        older settings files. Unknown keys are ignored with a warning.

        Args:
            data: Settings dictionary

        Returns:
            PosterSettings instance
        """
        valid_keys = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _to_snake_case(str(key))
            if name in valid_keys:
                kwargs[name] = value
            else:
                logger.warning(f"Ignoring unknown setting: {key}")
        return cls(**kwargs)

    def merged(self, overrides: Dict[str, Any]) -> "PosterSettings":
        """Copy of these settings with non-None ``overrides`` applied."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return PosterSettings.from_dict(data)

    def get_hash(self) -> str:
        """Generate hash of the settings that affect the output image.

        Returns:
            SHA256 hash (first 16 characters)
        """
        hash_data = self.to_dict()
        for key in ("max_retries", "fallback_width", "fallback_height"):
            hash_data.pop(key, None)
        config_str = json.dumps(hash_data, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]


def load_settings(path: Union[str, Path]) -> PosterSettings:
    """Load PosterSettings from a YAML file.

    A top-level ``poster:`` section is used when present, otherwise the
    whole document.

    Args:
        path: YAML file path

    Returns:
        PosterSettings instance

    Raises:
        ConfigurationError: If the file is missing, malformed, or has invalid values
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigurationError(f"Settings file not found: {path}", cause=e) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}", cause=e) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")

    section = data.get("poster", data)
    if not isinstance(section, dict):
        raise ConfigurationError(f"'poster' section in {path} must be a mapping")
    return PosterSettings.from_dict(section)


def save_settings(settings: PosterSettings, path: Union[str, Path]) -> Path:
    """Write settings to a YAML file under a ``poster:`` section."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump({"poster": settings.to_dict()}, f, sort_keys=False)
    return path
