"""Poster frame extraction.

Samples random timestamps inside a window of the video, scores each
decoded frame and keeps the best one. Stops early when a frame is
clearly good, or when a reasonably good frame has been found after a
few attempts.

Example:
    >>> extractor = FrameExtractor(FFmpegFrameDecoder())
    >>> result = extractor.extract("episode.mkv", None, 20, 80)
    >>> if result:
    ...     pixels = result.to_rgba()
    ...     result.release()
"""

import logging
import random
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..decoders import FrameDecoder
from ..errors import (
    AnalysisError,
    ErrorKind,
    ExtractionCancelled,
    Failure,
    InvalidInputError,
    PosterFrameError,
    classify_error,
)
from ..models import QualityMetrics, RawFrame
from .frame_quality import FrameQualityScorer

logger = logging.getLogger(__name__)

STAGE = "extract"


class ExtractionState(Enum):
    """States of a single extraction run."""
    SEARCHING = "searching"
    EARLY_ACCEPT = "early_accept"     # Frame passed both thresholds
    BEST_UPDATED = "best_updated"     # New best-so-far candidate
    EARLY_EXIT = "early_exit"         # Good enough after several attempts
    EXHAUSTED = "exhausted"           # Ran out of attempts
    CANCELLED = "cancelled"
    FAILED = "failed"
    DONE = "done"


@dataclass
class ExtractionReport:
    """Outcome of :meth:`FrameExtractor.run`.

    Attributes:
        state: Final state (DONE, CANCELLED or FAILED)
        frame: Selected frame, owned by the caller
        failure: Failure when no frame was selected
        attempts: Number of decode attempts made
        best_metrics: Metrics of the selected frame
        states: Every state the run passed through, in order
    """
    state: ExtractionState
    frame: Optional[RawFrame] = None
    failure: Optional[Failure] = None
    attempts: int = 0
    best_metrics: Optional[QualityMetrics] = None
    states: List[ExtractionState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.frame is not None

    @property
    def result(self) -> Union[RawFrame, Failure]:
        if self.frame is not None:
            return self.frame
        return self.failure


def generate_seek_time(
    duration: float,
    window_start: float,
    window_end: float,
    rng: random.Random,
) -> float:
    """Uniform random timestamp in ``[duration*start%, duration*end%)``."""
    start = duration * window_start / 100.0
    end = duration * window_end / 100.0
    timestamp = start + rng.random() * (end - start)
    if timestamp >= end:
        timestamp = start
    return timestamp


class FrameExtractor:
    """Pick the best-looking frame from a video by random sampling.

    At most two decoded frames are held at any time: the best so far and
    the candidate under evaluation. Every frame that is not returned is
    released on every exit path.
    """

    MAX_RETRIES = 30
    EARLY_EXIT_ATTEMPT_THRESHOLD = 5
    EARLY_EXIT_SCORE_THRESHOLD = 0.6
    DEFAULT_DURATION = 3600.0
    DEFAULT_WINDOW = (20.0, 80.0)

    def __init__(
        self,
        decoder: FrameDecoder,
        scorer: Optional[FrameQualityScorer] = None,
        check_exists: bool = True,
    ):
        """Initialize the extractor.

        Args:
            decoder: Decoder collaborator
            scorer: Quality scorer (default FrameQualityScorer())
            check_exists: Fail fast when the video path is not on disk
        """
        self.decoder = decoder
        self.scorer = scorer or FrameQualityScorer()
        self.check_exists = check_exists

    def extract(
        self,
        video_path: Union[str, Path],
        duration_hint: Optional[float] = None,
        window_start: float = 20.0,
        window_end: float = 80.0,
        max_retries: int = MAX_RETRIES,
        rng: Optional[random.Random] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Union[RawFrame, Failure]:
        """Extract the best frame, or a Failure.

        Returns:
            The selected RawFrame (caller must release it) or a Failure
        """
        report = self.run(
            video_path,
            duration_hint=duration_hint,
            window_start=window_start,
            window_end=window_end,
            max_retries=max_retries,
            rng=rng,
            cancel_event=cancel_event,
        )
        return report.result

    def resolve_window(self, window_start: float, window_end: float) -> Tuple[float, float]:
        """Validate the seek window, falling back to 20%-80%."""
        if (
            window_start >= window_end
            or not 0 <= window_start <= 100
            or not 0 <= window_end <= 100
        ):
            logger.warning(
                f"Invalid extraction window {window_start}%-{window_end}%, "
                f"using {self.DEFAULT_WINDOW[0]:.0f}%-{self.DEFAULT_WINDOW[1]:.0f}%"
            )
            return self.DEFAULT_WINDOW
        return float(window_start), float(window_end)

    def resolve_duration(self, video_path: Union[str, Path], duration_hint: Optional[float]) -> float:
        """Use the hint, then the decoder, then a one hour default."""
        if duration_hint is not None and duration_hint > 0:
            return float(duration_hint)

        duration = 0.0
        try:
            duration = float(self.decoder.get_duration(video_path) or 0.0)
        except InvalidInputError:
            raise
        except Exception as e:
            logger.warning(f"Could not determine duration of {video_path}: {e}")

        if duration <= 0:
            logger.warning(
                f"Unknown duration for {video_path}, assuming {self.DEFAULT_DURATION:.0f}s"
            )
            return self.DEFAULT_DURATION
        return duration

    def run(
        self,
        video_path: Union[str, Path],
        duration_hint: Optional[float] = None,
        window_start: float = 20.0,
        window_end: float = 80.0,
        max_retries: int = MAX_RETRIES,
        rng: Optional[random.Random] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExtractionReport:
        """Run the extraction state machine.

        Args:
            video_path: Video file to sample
            duration_hint: Known duration in seconds, skips probing when > 0
            window_start: Seek window start, percent of duration
            window_end: Seek window end, percent of duration
            max_retries: Maximum number of decode attempts
            rng: Random source for seek times (default: fresh Random())
            cancel_event: Set to abort; the run returns a CANCELLED failure

        Returns:
            ExtractionReport describing the outcome
        """
        report = ExtractionReport(state=ExtractionState.SEARCHING)
        report.states.append(ExtractionState.SEARCHING)

        invalid = self._validate_input(video_path, max_retries)
        if invalid is not None:
            return self._finish(report, ExtractionState.FAILED, failure=invalid)

        rng = rng or random.Random()
        best: Optional[RawFrame] = None
        candidate: Optional[RawFrame] = None

        try:
            duration = self.resolve_duration(video_path, duration_hint)
            start, end = self.resolve_window(window_start, window_end)
            outcome = ExtractionState.EXHAUSTED

            for attempt in range(1, max_retries + 1):
                if cancel_event is not None and cancel_event.is_set():
                    raise ExtractionCancelled("Extraction cancelled", details={"attempts": report.attempts})

                report.attempts = attempt
                timestamp = generate_seek_time(duration, start, end, rng)

                candidate = self._decode(video_path, timestamp, cancel_event)
                if candidate is None:
                    continue

                try:
                    metrics = self.scorer.score(
                        candidate.pixels, candidate.channel_layout, candidate.premultiplied
                    )
                except AnalysisError as e:
                    logger.warning(f"Skipping frame at {timestamp:.2f}s: {e}")
                    candidate.release()
                    candidate = None
                    continue

                candidate.metrics = metrics
                logger.debug(
                    f"Attempt {attempt}/{max_retries} at {timestamp:.2f}s: "
                    f"brightness={metrics.brightness:.3f} sharpness={metrics.sharpness:.1f} "
                    f"score={metrics.combined_score:.3f}"
                )

                if self.scorer.is_acceptable(metrics):
                    if best is not None:
                        best.release()
                    best, candidate = candidate, None
                    report.best_metrics = metrics
                    outcome = ExtractionState.EARLY_ACCEPT
                    break

                if best is None or metrics.combined_score > report.best_metrics.combined_score:
                    if best is not None:
                        best.release()
                    best, candidate = candidate, None
                    report.best_metrics = metrics
                    report.states.append(ExtractionState.BEST_UPDATED)
                else:
                    candidate.release()
                    candidate = None

                if (
                    attempt > self.EARLY_EXIT_ATTEMPT_THRESHOLD
                    and report.best_metrics is not None
                    and report.best_metrics.combined_score > self.EARLY_EXIT_SCORE_THRESHOLD
                ):
                    outcome = ExtractionState.EARLY_EXIT
                    break

            report.states.append(outcome)

            if best is None:
                return self._finish(
                    report,
                    ExtractionState.FAILED,
                    failure=Failure(
                        kind=ErrorKind.DECODE_FAILURE,
                        message=f"No usable frame after {report.attempts} attempts",
                        stage=STAGE,
                        details={"video_path": str(video_path)},
                    ),
                )

            logger.info(
                f"Selected frame at {best.timestamp:.2f}s after {report.attempts} attempt(s) "
                f"(score {report.best_metrics.combined_score:.3f}, {outcome.value})"
            )
            selected, best = best, None
            report.frame = selected
            return self._finish(report, ExtractionState.DONE)

        except ExtractionCancelled as e:
            logger.info(f"Extraction cancelled after {report.attempts} attempt(s)")
            return self._finish(report, ExtractionState.CANCELLED, failure=Failure.from_error(e, STAGE))
        except InvalidInputError as e:
            logger.error(f"Invalid input {video_path}: {e}")
            return self._finish(report, ExtractionState.FAILED, failure=Failure.from_error(e, STAGE))
        except Exception as e:
            logger.exception(f"Unexpected error extracting from {video_path}")
            return self._finish(report, ExtractionState.FAILED, failure=Failure.from_error(e, STAGE))
        finally:
            if candidate is not None:
                candidate.release()
            if best is not None:
                best.release()

    def _validate_input(self, video_path, max_retries: int) -> Optional[Failure]:
        if video_path is None or not str(video_path).strip():
            return Failure(ErrorKind.INVALID_INPUT, "Video path is empty", stage=STAGE)
        if max_retries < 1:
            return Failure(
                ErrorKind.INVALID_INPUT,
                f"max_retries must be at least 1, got {max_retries}",
                stage=STAGE,
            )
        if self.check_exists and not Path(video_path).is_file():
            return Failure(
                ErrorKind.INVALID_INPUT,
                f"Video not found: {video_path}",
                stage=STAGE,
                details={"video_path": str(video_path)},
            )
        return None

    def _decode(
        self,
        video_path: Union[str, Path],
        timestamp: float,
        cancel_event: Optional[threading.Event],
    ) -> Optional[RawFrame]:
        """Decode one candidate. Returns None for a skippable failure."""
        try:
            return self.decoder.decode_frame_at(video_path, timestamp, cancel_event)
        except (ExtractionCancelled, InvalidInputError):
            raise
        except PosterFrameError as e:
            logger.warning(f"Decode failed at {timestamp:.2f}s: {e}")
            return None
        except Exception as e:
            error_class = classify_error(e)
            if error_class is InvalidInputError:
                raise InvalidInputError(str(e), cause=e) from e
            logger.warning(f"Decode failed at {timestamp:.2f}s ({error_class.__name__}): {e}")
            return None

    @staticmethod
    def _finish(
        report: ExtractionReport,
        state: ExtractionState,
        failure: Optional[Failure] = None,
    ) -> ExtractionReport:
        report.state = state
        report.failure = failure
        report.states.append(state)
        return report
