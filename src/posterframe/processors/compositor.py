"""Poster canvas composition.

Sequences the stages of poster generation:

    extract -> remove black bars -> aspect fill -> brighten
            -> overlay -> graphic -> typography -> encode

When no source video is given, a transparent canvas of the fallback
size is used instead of an extracted frame. Every stage failure ends the
run with a :class:`~posterframe.errors.Failure`; nothing is raised to
the caller.
"""

import logging
import random
import threading
from pathlib import Path
from typing import Any, Optional, Protocol, Tuple, Union

import numpy as np

from ..decoders import FFmpegFrameDecoder, FrameDecoder
from ..errors import (
    ExtractionCancelled,
    Failure,
    InvalidInputError,
    PosterFrameError,
    RenderError,
)
from ..models import (
    EncodedImage,
    ExtractionSpec,
    FillSpec,
    GraphicSpec,
    LetterboxSpec,
    OverlaySpec,
    PosterCanvas,
    PosterFileType,
    RawFrame,
)
from .aspect_fill import AspectFillTransformer
from .brightness import BrightnessAdjuster
from .frame_extractor import FrameExtractor
from .letterbox import LetterboxDetector
from .overlay import apply_graphic, apply_overlay, encode_image

logger = logging.getLogger(__name__)


class TextRenderer(Protocol):
    """Typography collaborator that draws episode text onto the canvas."""

    def render_text(self, canvas: np.ndarray, episode: Optional[Any]) -> np.ndarray:
        """Return the canvas with text drawn, either in place or as a new array."""
        ...


class NullTextRenderer:
    """Draws nothing."""

    def render_text(self, canvas: np.ndarray, episode: Optional[Any]) -> np.ndarray:
        return canvas


class CanvasCompositor:
    """Build a finished poster from a video or a blank canvas.

    Holds only stateless collaborators, so one instance can serve several
    threads at once.
    """

    def __init__(
        self,
        decoder: Optional[FrameDecoder] = None,
        extractor: Optional[FrameExtractor] = None,
        detector: Optional[LetterboxDetector] = None,
        fill_transformer: Optional[AspectFillTransformer] = None,
        brightness: Optional[BrightnessAdjuster] = None,
        text_renderer: Optional[TextRenderer] = None,
    ):
        if extractor is None:
            extractor = FrameExtractor(decoder or FFmpegFrameDecoder())
        self.extractor = extractor
        self.detector = detector or LetterboxDetector()
        self.fill_transformer = fill_transformer or AspectFillTransformer()
        self.brightness = brightness or BrightnessAdjuster()
        self.text_renderer = text_renderer or NullTextRenderer()

    def compose(
        self,
        source_path: Optional[Union[str, Path]],
        fallback_dimensions: Optional[Tuple[int, int]],
        overlay_spec: OverlaySpec,
        graphic_spec: GraphicSpec,
        fill_spec: FillSpec,
        letterbox_spec: LetterboxSpec,
        brighten_percent: float,
        output_format: PosterFileType,
        *,
        extraction: Optional[ExtractionSpec] = None,
        episode: Optional[Any] = None,
        rng: Optional[random.Random] = None,
        cancel_event: Optional[threading.Event] = None,
        duration_hint: Optional[float] = None,
        skip_bright_frames: bool = False,
    ) -> Union[EncodedImage, Failure]:
        """
        Produce an encoded poster.

        Args:
            source_path: Video to extract from, or None for a blank canvas
            fallback_dimensions: (width, height) of the blank canvas
            overlay_spec: Color overlay
            graphic_spec: Static graphic
            fill_spec: Aspect ratio fill
            letterbox_spec: Black bar detection
            brighten_percent: Brightness increase for extracted frames
            output_format: Encoding of the result
            extraction: Seek window and retry budget
            episode: Passed through to the text renderer
            rng: Random source for seek times
            cancel_event: Set to abort between stages
            duration_hint: Known video duration in seconds
            skip_bright_frames: Do not brighten frames that are already bright

        Returns:
            EncodedImage on success, Failure otherwise
        """
        extraction = extraction or ExtractionSpec()
        frame: Optional[RawFrame] = None
        canvas: Optional[PosterCanvas] = None
        stage = "extract"

        try:
            if source_path is not None:
                result = self.extractor.extract(
                    source_path,
                    duration_hint=duration_hint,
                    window_start=extraction.window_start,
                    window_end=extraction.window_end,
                    max_retries=extraction.max_retries,
                    rng=rng,
                    cancel_event=cancel_event,
                )
                if isinstance(result, Failure):
                    logger.warning(f"No frame extracted from {source_path}: {result.message}")
                    return result
                frame = result
                canvas = PosterCanvas(frame.to_rgba())
                frame.release()

                if letterbox_spec.enabled:
                    stage = "letterbox"
                    self._check_cancel(cancel_event)
                    canvas.replace(self.detector.detect_and_crop(
                        canvas.pixels,
                        black_threshold=letterbox_spec.black_threshold,
                        confidence=letterbox_spec.confidence,
                    ))

                stage = "fill"
                self._check_cancel(cancel_event)
                canvas.replace(self.fill_transformer.apply_fill(canvas.pixels, fill_spec))

                stage = "brighten"
                if skip_bright_frames and self.brightness.is_bright_enough(canvas.pixels):
                    logger.debug("Frame already bright enough, skipping brightening")
                else:
                    self.brightness.adjust(canvas.pixels, brighten_percent)
            else:
                stage = "canvas"
                canvas = PosterCanvas.blank(*self._validate_dimensions(fallback_dimensions))

            stage = "overlay"
            self._check_cancel(cancel_event)
            canvas.replace(apply_overlay(canvas.pixels, overlay_spec))

            stage = "graphic"
            canvas.replace(apply_graphic(canvas.pixels, graphic_spec))

            stage = "typography"
            canvas.replace(self._render_text(canvas.pixels, episode))

            stage = "encode"
            self._check_cancel(cancel_event)
            encoded = encode_image(canvas.pixels, output_format)
            logger.info(
                f"Generated {output_format.value} poster {encoded.width}x{encoded.height} "
                f"({len(encoded.data)} bytes)"
            )
            return encoded

        except PosterFrameError as e:
            logger.error(f"Poster generation failed during {stage}: {e}")
            return Failure.from_error(e, stage)
        except Exception as e:
            logger.exception(f"Unexpected error during {stage}")
            return Failure.from_error(e, stage)
        finally:
            if frame is not None:
                frame.release()
            if canvas is not None:
                canvas.release()

    def _render_text(self, pixels: np.ndarray, episode: Optional[Any]) -> np.ndarray:
        try:
            rendered = self.text_renderer.render_text(pixels, episode)
        except Exception as e:
            raise RenderError(f"Text rendering failed: {e}", cause=e) from e
        if rendered is None:
            return pixels
        return rendered

    @staticmethod
    def _validate_dimensions(dimensions: Optional[Tuple[int, int]]) -> Tuple[int, int]:
        if not dimensions or len(dimensions) != 2:
            raise InvalidInputError("Fallback dimensions are required without a source video")
        width, height = int(dimensions[0]), int(dimensions[1])
        if width <= 0 or height <= 0:
            raise InvalidInputError(
                f"Invalid fallback dimensions {width}x{height}",
                details={"width": width, "height": height},
            )
        return width, height

    @staticmethod
    def _check_cancel(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelled("Poster generation cancelled")
