"""Processors for poster generation.

- frame_quality: Brightness/sharpness scoring of candidate frames
- frame_extractor: Randomized, quality-scored frame extraction
- letterbox: Black bar detection and cropping
- aspect_fill: Original / Fit (crop) / Fill (stretch) aspect transforms
- brightness: Linear brightness adjustment
- overlay: Color overlay, static graphic and encoding
- compositor: Stage sequencing into a finished poster
"""

from .frame_quality import FrameQualityScorer
from .frame_extractor import (
    ExtractionReport,
    ExtractionState,
    FrameExtractor,
    generate_seek_time,
)
from .letterbox import LetterboxDetector
from .aspect_fill import AspectFillTransformer
from .brightness import BrightnessAdjuster
from .overlay import (
    apply_graphic,
    apply_overlay,
    build_overlay,
    encode_image,
    graphic_placement,
    safe_area,
)
from .compositor import CanvasCompositor, NullTextRenderer, TextRenderer

__all__ = [
    "FrameQualityScorer",
    "ExtractionReport",
    "ExtractionState",
    "FrameExtractor",
    "generate_seek_time",
    "LetterboxDetector",
    "AspectFillTransformer",
    "BrightnessAdjuster",
    "apply_graphic",
    "apply_overlay",
    "build_overlay",
    "encode_image",
    "graphic_placement",
    "safe_area",
    "CanvasCompositor",
    "NullTextRenderer",
    "TextRenderer",
]
