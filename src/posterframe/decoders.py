"""Frame decoders.

A decoder turns "video file + timestamp" into a :class:`RawFrame`. The
extractor only depends on the :class:`FrameDecoder` protocol, so hosts
can plug in their own media stack. Two implementations ship with the
package: one driving the ``ffmpeg``/``ffprobe`` binaries and one using
OpenCV's ``VideoCapture``.
"""
import logging
import threading
from pathlib import Path
from typing import Optional, Protocol, Tuple, Union

import cv2
import numpy as np

from .errors import (
    AnalysisError,
    DecodeError,
    ExtractionCancelled,
    InvalidInputError,
    classify_error,
)
from .models import RawFrame
from .utils import ffmpeg as ffmpeg_utils

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FrameDecoder(Protocol):
    """Decoder collaborator used by the frame extractor."""

    def decode_frame_at(
        self,
        video_path: PathLike,
        timestamp: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> RawFrame:
        """Decode the frame nearest ``timestamp`` seconds.

        Raises:
            InvalidInputError: Source missing or unreadable
            DecodeError: No frame could be produced at this position
            ExtractionCancelled: cancel_event was set while decoding
        """
        ...

    def get_duration(self, video_path: PathLike) -> float:
        """Duration in seconds, or a value <= 0 if unknown."""
        ...


def _classified(error: Exception, message: str, stderr: Optional[str] = None) -> Exception:
    error_class = classify_error(error, stderr)
    details = {"stderr": stderr[-500:]} if stderr else None
    return error_class(message, details=details, cause=error)


class FFmpegFrameDecoder:
    """Decode single frames by piping PNG output from ffmpeg into memory.

    No temporary files are written, so returned frames carry no artifact.
    """

    def __init__(self, timeout: Optional[float] = 60.0):
        self.timeout = timeout

    def decode_frame_at(
        self,
        video_path: PathLike,
        timestamp: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> RawFrame:
        try:
            data = ffmpeg_utils.extract_frame_png(
                Path(video_path), timestamp, cancel_event=cancel_event, timeout=self.timeout
            )
        except ffmpeg_utils.FFmpegCancelled as e:
            raise ExtractionCancelled(str(e), cause=e) from e
        except ffmpeg_utils.FFmpegError as e:
            raise _classified(e, str(e), e.stderr) from e

        buffer = np.frombuffer(data, dtype=np.uint8)
        pixels = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
        if pixels is None:
            raise AnalysisError(f"Could not decode PNG data for {timestamp:.3f}s")

        if pixels.ndim == 2:
            layout = "GRAY"
        elif pixels.shape[2] == 4:
            layout = "BGRA"
        else:
            layout = "BGR"
        return RawFrame(pixels=pixels, timestamp=timestamp, channel_layout=layout)

    def get_duration(self, video_path: PathLike) -> float:
        try:
            return ffmpeg_utils.get_video_duration(Path(video_path))
        except ffmpeg_utils.FFmpegError as e:
            raise _classified(e, f"Could not probe duration: {e}", e.stderr) from e

    def get_frame_size(self, video_path: PathLike) -> Tuple[int, int]:
        try:
            return ffmpeg_utils.get_video_resolution(Path(video_path))
        except ffmpeg_utils.FFmpegError as e:
            raise _classified(e, f"Could not probe resolution: {e}", e.stderr) from e


class OpenCVFrameDecoder:
    """Decode frames with ``cv2.VideoCapture``.

    Useful where the ffmpeg binaries are not installed. Cancellation is
    only checked before the seek, since OpenCV reads are not interruptible.
    """

    def _open(self, video_path: PathLike) -> cv2.VideoCapture:
        path = Path(video_path)
        if not path.exists():
            raise InvalidInputError(f"Video not found: {path}")
        capture = cv2.VideoCapture(str(path))
        if not capture.isOpened():
            capture.release()
            raise InvalidInputError(f"Could not open video: {path}")
        return capture

    def decode_frame_at(
        self,
        video_path: PathLike,
        timestamp: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> RawFrame:
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelled("Frame extraction cancelled")

        capture = self._open(video_path)
        try:
            capture.set(cv2.CAP_PROP_POS_MSEC, timestamp * 1000.0)
            ok, pixels = capture.read()
        finally:
            capture.release()

        if not ok or pixels is None:
            raise DecodeError(f"No frame at {timestamp:.3f}s", details={"path": str(video_path)})
        return RawFrame(pixels=pixels, timestamp=timestamp, channel_layout="BGR")

    def get_duration(self, video_path: PathLike) -> float:
        capture = self._open(video_path)
        try:
            fps = capture.get(cv2.CAP_PROP_FPS)
            frame_count = capture.get(cv2.CAP_PROP_FRAME_COUNT)
        finally:
            capture.release()
        if fps and fps > 0 and frame_count > 0:
            return float(frame_count / fps)
        return 0.0

    def get_frame_size(self, video_path: PathLike) -> Tuple[int, int]:
        capture = self._open(video_path)
        try:
            width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
            height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        finally:
            capture.release()
        return width, height


DECODERS = {
    "ffmpeg": FFmpegFrameDecoder,
    "opencv": OpenCVFrameDecoder,
}


def create_decoder(name: str = "ffmpeg") -> FrameDecoder:
    """Factory for the shipped decoders.

    Args:
        name: 'ffmpeg' or 'opencv'

    Returns:
        Decoder instance
    """
    try:
        return DECODERS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown decoder '{name}'. Valid decoders: {sorted(DECODERS)}") from None
