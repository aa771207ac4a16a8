"""Letterbox and pillarbox removal.

Detects uniform black bars along the four edges of a frame and crops
them away, refusing crops that would leave an implausibly small image.

Example:
    >>> detector = LetterboxDetector()
    >>> cropped = detector.detect_and_crop(frame, black_threshold=25, confidence=85)
    >>> if cropped is not frame:
    ...     frame = cropped
"""

import logging
from typing import Optional

import numpy as np

from ..models import CropBounds
from ..utils.imaging import luma, validate_bitmap

logger = logging.getLogger(__name__)


class LetterboxDetector:
    """Black bar detection on RGBA bitmaps.

    A row or column is a bar if at least ``confidence`` percent of its
    pixels have BT.709 luma at or below ``black_threshold``. Each edge is
    scanned inward, at most halfway, until the first non-bar line.
    """

    MIN_RESULT_FRACTION = 0.25  # Keep at least a quarter of each dimension

    def detect_bounds(
        self,
        bitmap: np.ndarray,
        black_threshold: int = 25,
        confidence: float = 85.0,
    ) -> Optional[CropBounds]:
        """
        Find the bar offsets on each edge.

        Args:
            bitmap: RGBA image
            black_threshold: Luma at or below which a pixel is black (0-255)
            confidence: Percent of a line that must be black (50-100)

        Returns:
            CropBounds if a safe crop was found, otherwise None
        """
        if not 0 <= black_threshold <= 255:
            raise ValueError("black_threshold must be between 0 and 255")
        if not 50 <= confidence <= 100:
            raise ValueError("confidence must be between 50 and 100")
        validate_bitmap(bitmap)

        height, width = bitmap.shape[:2]
        black = luma(bitmap) <= black_threshold
        required = confidence / 100.0

        row_is_bar = black.mean(axis=1) >= required
        col_is_bar = black.mean(axis=0) >= required

        bounds = CropBounds(
            left=self._count_bars(col_is_bar, width // 2),
            top=self._count_bars(row_is_bar, height // 2),
            right=self._count_bars(col_is_bar[::-1], width // 2),
            bottom=self._count_bars(row_is_bar[::-1], height // 2),
        )

        if bounds.is_empty:
            return None

        if not bounds.is_safe(width, height, self.MIN_RESULT_FRACTION):
            new_w, new_h = bounds.result_size(width, height)
            logger.warning(
                f"Rejected letterbox crop {width}x{height} -> {new_w}x{new_h} "
                f"(bars {bounds.to_dict()}); keeping original frame"
            )
            return None

        return bounds

    def detect_and_crop(
        self,
        bitmap: np.ndarray,
        black_threshold: int = 25,
        confidence: float = 85.0,
    ) -> np.ndarray:
        """
        Remove black bars.

        Returns the same object, unmodified, when no safe crop exists.
        Otherwise returns a new contiguous array; the caller decides
        whether to drop the source.
        """
        bounds = self.detect_bounds(bitmap, black_threshold, confidence)
        if bounds is None:
            return bitmap

        height, width = bitmap.shape[:2]
        cropped = bitmap[bounds.top:height - bounds.bottom, bounds.left:width - bounds.right].copy()
        logger.info(
            f"Removed black bars {width}x{height} -> {cropped.shape[1]}x{cropped.shape[0]} "
            f"(left={bounds.left}, top={bounds.top}, right={bounds.right}, bottom={bounds.bottom})"
        )
        return cropped

    @staticmethod
    def _count_bars(is_bar: np.ndarray, limit: int) -> int:
        """Length of the leading run of bar lines, capped at ``limit``."""
        window = is_bar[:limit]
        non_bar = np.flatnonzero(~window)
        if non_bar.size == 0:
            return int(window.size)
        return int(non_bar[0])
