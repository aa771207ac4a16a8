"""PosterFrame - Episode poster images extracted from video."""
__version__ = "0.4.0"

from .config import PosterSettings, load_settings, save_settings
from .errors import (
    PosterFrameError,
    InvalidInputError,
    DecodeError,
    AnalysisError,
    ConfigParseError,
    ConfigurationError,
    EncodingError,
    RenderError,
    ExtractionCancelled,
    ErrorKind,
    Failure,
    classify_error,
)
from .models import (
    RawFrame,
    QualityMetrics,
    CropBounds,
    FillMode,
    FillSpec,
    PosterFileType,
    EncodedImage,
    PosterCanvas,
    OverlayGradient,
    Position,
    Alignment,
    ExtractionSpec,
    LetterboxSpec,
    OverlaySpec,
    GraphicSpec,
    parse_aspect_ratio,
)
from .decoders import FrameDecoder, FFmpegFrameDecoder, OpenCVFrameDecoder, create_decoder
from .processors import (
    FrameQualityScorer,
    FrameExtractor,
    ExtractionReport,
    ExtractionState,
    LetterboxDetector,
    AspectFillTransformer,
    BrightnessAdjuster,
    CanvasCompositor,
    NullTextRenderer,
    TextRenderer,
)
from .generator import PosterGenerator
from .utils.logging import LogConfig, configure_logging, get_logger

__all__ = [
    "__version__",
    "PosterSettings",
    "load_settings",
    "save_settings",
    "PosterFrameError",
    "InvalidInputError",
    "DecodeError",
    "AnalysisError",
    "ConfigParseError",
    "ConfigurationError",
    "EncodingError",
    "RenderError",
    "ExtractionCancelled",
    "ErrorKind",
    "Failure",
    "classify_error",
    "RawFrame",
    "QualityMetrics",
    "CropBounds",
    "FillMode",
    "FillSpec",
    "PosterFileType",
    "EncodedImage",
    "PosterCanvas",
    "OverlayGradient",
    "Position",
    "Alignment",
    "ExtractionSpec",
    "LetterboxSpec",
    "OverlaySpec",
    "GraphicSpec",
    "parse_aspect_ratio",
    "FrameDecoder",
    "FFmpegFrameDecoder",
    "OpenCVFrameDecoder",
    "create_decoder",
    "FrameQualityScorer",
    "FrameExtractor",
    "ExtractionReport",
    "ExtractionState",
    "LetterboxDetector",
    "AspectFillTransformer",
    "BrightnessAdjuster",
    "CanvasCompositor",
    "NullTextRenderer",
    "TextRenderer",
    "PosterGenerator",
    "LogConfig",
    "configure_logging",
    "get_logger",
]
