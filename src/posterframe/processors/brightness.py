"""Linear brightness adjustment for HDR-sourced frames."""

import logging

import numpy as np

from ..utils.imaging import analysis_copy, luma

logger = logging.getLogger(__name__)


class BrightnessAdjuster:
    """Scale RGB channels by a percentage, leaving alpha untouched."""

    BRIGHT_ENOUGH_THRESHOLD = 0.05

    def adjust(self, bitmap: np.ndarray, percent_increase: float) -> None:
        """Brighten ``bitmap`` in place.

        Each color channel is multiplied by ``1 + percent/100``, truncated
        toward zero and clamped to 255. Non-positive percentages are a no-op.

        Args:
            bitmap: RGBA uint8 image, modified in place
            percent_increase: Brightness increase in percent
        """
        if percent_increase <= 0:
            return

        multiplier = 1.0 + percent_increase / 100.0
        rgb = bitmap[:, :, :3]
        scaled = np.floor(rgb.astype(np.float64) * multiplier)
        np.minimum(scaled, 255.0, out=scaled)
        rgb[...] = scaled.astype(np.uint8)
        logger.debug(f"Brightened frame by {percent_increase}%")

    def average_brightness(self, bitmap: np.ndarray) -> float:
        """Mean BT.709 luma of a downscaled copy, in 0..1."""
        return float(np.mean(luma(analysis_copy(bitmap))) / 255.0)

    def is_bright_enough(self, bitmap: np.ndarray, threshold: float = BRIGHT_ENOUGH_THRESHOLD) -> bool:
        """True if the frame does not need brightening."""
        return self.average_brightness(bitmap) > threshold
