"""Aspect ratio fill for poster canvases.

Brings a frame to the configured poster ratio:
- ORIGINAL keeps the frame as is
- FIT center-crops to the target ratio without scaling
- FILL stretches the whole frame into the target ratio (distorts)

Example:
    >>> transformer = AspectFillTransformer()
    >>> spec = FillSpec.parse("16:9", "fit")
    >>> poster = transformer.apply_fill(frame, spec)
"""

import logging
from typing import Tuple

import cv2
import numpy as np

from ..models import FillMode, FillSpec, parse_aspect_ratio
from ..utils.imaging import validate_bitmap

logger = logging.getLogger(__name__)

__all__ = ["AspectFillTransformer", "parse_aspect_ratio"]


class AspectFillTransformer:
    """Apply a FillSpec to an RGBA bitmap.

    Non-identity modes always allocate a new array. The input is never
    modified.
    """

    RATIO_TOLERANCE = 0.01  # Ratios closer than this are left alone

    def apply_fill(self, bitmap: np.ndarray, fill_spec: FillSpec) -> np.ndarray:
        """
        Transform ``bitmap`` to the target aspect ratio.

        Args:
            bitmap: RGBA image
            fill_spec: Target ratio and mode

        Returns:
            The same object for ORIGINAL or a matching ratio, else a new array
        """
        if fill_spec.mode == FillMode.ORIGINAL:
            return bitmap

        validate_bitmap(bitmap)
        height, width = bitmap.shape[:2]
        current_ratio = width / height
        target_ratio = fill_spec.target_ratio

        if abs(current_ratio - target_ratio) < self.RATIO_TOLERANCE:
            logger.debug(f"Ratio {current_ratio:.3f} already matches {target_ratio:.3f}")
            return bitmap

        if fill_spec.mode == FillMode.FIT:
            result = self._crop_to_ratio(bitmap, target_ratio)
        else:
            result = self._stretch_to_ratio(bitmap, target_ratio)

        logger.info(
            f"Applied {fill_spec.mode.value} fill {width}x{height} -> "
            f"{result.shape[1]}x{result.shape[0]}"
        )
        return result

    def fit_size(self, width: int, height: int, target_ratio: float) -> Tuple[int, int]:
        """Crop rectangle for FIT: full height if wider, else full width."""
        if width / height > target_ratio:
            return max(1, int(height * target_ratio)), height
        return width, max(1, int(width / target_ratio))

    def fill_size(self, width: int, height: int, target_ratio: float) -> Tuple[int, int]:
        """Output size for FILL: keep width if wider, else keep height."""
        if width / height > target_ratio:
            return width, max(1, int(width / target_ratio))
        return max(1, int(height * target_ratio)), height

    def _crop_to_ratio(self, bitmap: np.ndarray, target_ratio: float) -> np.ndarray:
        """Center crop to target ratio."""
        height, width = bitmap.shape[:2]
        new_w, new_h = self.fit_size(width, height, target_ratio)
        x = (width - new_w) // 2
        y = (height - new_h) // 2
        return bitmap[y:y + new_h, x:x + new_w].copy()

    def _stretch_to_ratio(self, bitmap: np.ndarray, target_ratio: float) -> np.ndarray:
        """Non-uniform Lanczos resize to target ratio."""
        height, width = bitmap.shape[:2]
        new_w, new_h = self.fill_size(width, height, target_ratio)
        return cv2.resize(bitmap, (new_w, new_h), interpolation=cv2.INTER_LANCZOS4)
