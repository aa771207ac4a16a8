"""Exception hierarchy and failure reporting for PosterFrame.

Exception Hierarchy:
    PosterFrameError (base)
    +-- InvalidInputError      fail fast, never retried
    +-- DecodeError            transient, retried by the extractor
    +-- AnalysisError          skip the attempt and continue
    +-- ConfigParseError       recovered locally with a warning
    +-- ConfigurationError     invalid settings values
    +-- EncodingError          terminal
    +-- RenderError            typography collaborator failure
    +-- ExtractionCancelled    cooperative cancellation

Pipeline entry points never raise these across their boundary. They are
converted into a :class:`Failure` value which evaluates falsy, so callers
can write ``if not result:`` to produce "no image" instead of crashing.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Type


class ErrorKind(Enum):
    """Failure categories reported by the pipeline."""
    INVALID_INPUT = "invalid_input"
    DECODE_FAILURE = "decode_failure"
    ANALYSIS_FAILURE = "analysis_failure"
    CONFIG_PARSE_FAILURE = "config_parse_failure"
    ENCODING_FAILURE = "encoding_failure"
    RENDER_FAILURE = "render_failure"
    CANCELLED = "cancelled"


class PosterFrameError(Exception):
    """Base exception for all PosterFrame errors.

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
        cause: Original exception that caused this error (if any)
    """

    kind: ErrorKind = ErrorKind.DECODE_FAILURE

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization.

        Returns:
            Dictionary with error type, kind, message, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


class InvalidInputError(PosterFrameError):
    """Missing or unreadable source. Never retried."""
    kind = ErrorKind.INVALID_INPUT


class DecodeError(PosterFrameError):
    """The decoder could not produce a frame at the requested position.

    Transient: the extractor draws another timestamp and tries again.
    """
    kind = ErrorKind.DECODE_FAILURE


class AnalysisError(PosterFrameError):
    """A decoded buffer was empty or malformed and could not be scored."""
    kind = ErrorKind.ANALYSIS_FAILURE


class ConfigParseError(PosterFrameError):
    """A configuration string (ratio, color) could not be parsed."""
    kind = ErrorKind.CONFIG_PARSE_FAILURE


class ConfigurationError(PosterFrameError):
    """Invalid configuration value.

    Raised when settings are out of range or of an unknown enum value.
    """
    kind = ErrorKind.CONFIG_PARSE_FAILURE

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if config_key:
            details["config_key"] = config_key
        if config_value is not None:
            details["config_value"] = config_value
        super().__init__(message, details=details, cause=cause)


class EncodingError(PosterFrameError):
    """The final raster could not be encoded."""
    kind = ErrorKind.ENCODING_FAILURE


class RenderError(PosterFrameError):
    """The typography collaborator failed to render onto the canvas."""
    kind = ErrorKind.RENDER_FAILURE


class ExtractionCancelled(PosterFrameError):
    """Cancellation was requested while the pipeline was running."""
    kind = ErrorKind.CANCELLED


# =============================================================================
# Failure value
# =============================================================================

@dataclass(frozen=True)
class Failure:
    """Terminal outcome of a pipeline stage.

    Falsy, so ``result or fallback`` and ``if not result`` both work.
    """
    kind: ErrorKind
    message: str
    stage: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return False

    @classmethod
    def from_error(cls, error: Exception, stage: str = "") -> "Failure":
        """Build a Failure from an exception, classifying foreign ones."""
        if isinstance(error, PosterFrameError):
            return cls(
                kind=error.kind,
                message=error.message,
                stage=stage,
                details=dict(error.details),
            )
        error_class = classify_error(error)
        return cls(kind=error_class.kind, message=str(error), stage=stage)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "stage": self.stage,
            "details": self.details,
        }


# =============================================================================
# Classification
# =============================================================================

def classify_error(
    error: Exception,
    stderr: Optional[str] = None
) -> Type[PosterFrameError]:
    """Map a foreign exception onto the PosterFrame taxonomy.

    Args:
        error: The exception that occurred
        stderr: Optional decoder stderr output for additional context

    Returns:
        The appropriate error class to use
    """
    if isinstance(error, PosterFrameError):
        return type(error)

    if isinstance(error, (FileNotFoundError, PermissionError, IsADirectoryError)):
        return InvalidInputError

    error_text = str(error).lower()
    stderr_text = (stderr or "").lower()
    combined = f"{error_text} {stderr_text}"

    input_indicators = [
        "no such file",
        "not found",
        "does not exist",
        "permission denied",
        "is a directory",
    ]
    if any(ind in combined for ind in input_indicators):
        return InvalidInputError

    analysis_indicators = [
        "invalid data",
        "corrupt",
        "could not decode",
        "empty buffer",
    ]
    if any(ind in combined for ind in analysis_indicators):
        return AnalysisError

    # Unknown errors are treated as transient decode failures
    return DecodeError
