"""
Frame Quality Scoring - rank candidate poster frames.

Scores a decoded frame on brightness and sharpness using a small
analysis copy, so that dark fades and motion-blurred frames lose out
to well-lit, detailed ones.
"""

import cv2
import numpy as np

from ..errors import AnalysisError
from ..models import QualityMetrics
from ..utils.imaging import analysis_copy, luma, to_rgba


class FrameQualityScorer:
    """
    Score frames for poster suitability.

    brightness  mean BT.709 luma in 0..1
    sharpness   mean squared discrete Laplacian of luma (0..255 scale)
    score       0.5 * min(brightness / 0.05, 1) + 0.5 * min(sharpness / 100, 1)
    """

    BRIGHTNESS_THRESHOLD = 0.05  # Mean luma above this is not a black frame
    SHARPNESS_THRESHOLD = 100.0  # Laplacian energy above this is in focus
    BRIGHTNESS_WEIGHT = 0.5
    ANALYSIS_SIZE = 200

    def __init__(self, analysis_size: int = ANALYSIS_SIZE):
        self.analysis_size = analysis_size

    def score(
        self,
        pixels: np.ndarray,
        channel_layout: str = "RGBA",
        premultiplied: bool = False,
    ) -> QualityMetrics:
        """
        Compute quality metrics for a frame.

        Args:
            pixels: Decoded frame data
            channel_layout: Layout of ``pixels`` (RGBA, RGB, BGR, BGRA, GRAY)
            premultiplied: Whether color channels are premultiplied by alpha

        Returns:
            QualityMetrics for the frame

        Raises:
            AnalysisError: If the buffer is empty or malformed
        """
        if (
            channel_layout.upper() != "RGBA"
            or premultiplied
            or getattr(pixels, "dtype", np.uint8) != np.uint8
        ):
            pixels = to_rgba(pixels, channel_layout, premultiplied)
        small = analysis_copy(pixels, self.analysis_size)
        y = luma(small)

        brightness = float(np.mean(y) / 255.0)
        sharpness = self._calculate_sharpness(y)
        return QualityMetrics(
            brightness=brightness,
            sharpness=sharpness,
            combined_score=self.combined_score(brightness, sharpness),
        )

    def _calculate_sharpness(self, y: np.ndarray) -> float:
        """Mean squared 4-neighbour Laplacian over interior pixels."""
        if y.shape[0] < 3 or y.shape[1] < 3:
            raise AnalysisError(f"Frame too small to analyze: {y.shape[1]}x{y.shape[0]}")

        laplacian = cv2.Laplacian(y, cv2.CV_64F, ksize=1)[1:-1, 1:-1]
        return float(np.mean(laplacian * laplacian))

    @classmethod
    def combined_score(cls, brightness: float, sharpness: float) -> float:
        """Weighted score in 0..1, non-decreasing in both inputs."""
        brightness_score = min(brightness / cls.BRIGHTNESS_THRESHOLD, 1.0)
        sharpness_score = min(sharpness / cls.SHARPNESS_THRESHOLD, 1.0)
        return (
            cls.BRIGHTNESS_WEIGHT * brightness_score
            + (1.0 - cls.BRIGHTNESS_WEIGHT) * sharpness_score
        )

    @classmethod
    def is_acceptable(cls, metrics: QualityMetrics) -> bool:
        """True if a frame is good enough to stop searching immediately."""
        return (
            metrics.brightness > cls.BRIGHTNESS_THRESHOLD
            and metrics.sharpness > cls.SHARPNESS_THRESHOLD
        )
