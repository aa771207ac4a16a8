"""Tests for frame quality scoring."""
import numpy as np
import pytest

from conftest import checker_frame, flat_frame

from posterframe.errors import AnalysisError
from posterframe.models import QualityMetrics
from posterframe.processors.frame_quality import FrameQualityScorer


class TestFrameQualityScorer:
    """Tests for FrameQualityScorer.score."""

    def test_flat_gray_frame(self):
        """Test a uniform frame has its gray level as brightness and no sharpness."""
        metrics = FrameQualityScorer().score(flat_frame(200, 100, 51))

        assert metrics.brightness == pytest.approx(0.2, abs=1e-4)
        assert metrics.sharpness == pytest.approx(0.0, abs=1e-3)
        assert metrics.combined_score == pytest.approx(0.5, abs=1e-4)

    def test_black_frame_scores_zero(self):
        """Test a black frame has zero score."""
        metrics = FrameQualityScorer().score(flat_frame(200, 100, 0))
        assert metrics.combined_score == 0.0

    def test_checkerboard_sharpness(self):
        """Test Laplacian energy of a checkerboard is (4 * step)^2."""
        metrics = FrameQualityScorer().score(checker_frame(200, 100, value=128, amplitude=1))

        assert metrics.sharpness == pytest.approx(64.0, rel=1e-3)
        assert metrics.combined_score == pytest.approx(0.82, abs=1e-3)

    def test_large_frame_is_downscaled(self):
        """Test frames larger than the analysis size are scored on a small copy."""
        frame = flat_frame(1920, 1080, 128)
        metrics = FrameQualityScorer().score(frame)

        assert metrics.brightness == pytest.approx(128 / 255, abs=1e-3)
        assert frame.shape == (1080, 1920, 4)

    def test_bgr_layout(self):
        """Test non-RGBA layouts are converted before scoring."""
        bgr = np.zeros((100, 200, 3), dtype=np.uint8)
        bgr[:, :, 0] = 255  # blue only

        metrics = FrameQualityScorer().score(bgr, channel_layout="BGR")
        assert metrics.brightness == pytest.approx(0.0722, abs=1e-3)

    def test_premultiplied_frame(self):
        """Test premultiplied color is scored as the straight-alpha image."""
        frame = flat_frame(200, 100, 64, alpha=128)

        metrics = FrameQualityScorer().score(frame, premultiplied=True)
        assert metrics.brightness == pytest.approx(128 / 255, abs=1e-3)

    def test_sixteen_bit_frame(self):
        """Test 16-bit buffers are reduced to their high byte."""
        frame = np.full((100, 200, 4), 0xFFFF, dtype=np.uint16)
        frame[:, :, :3] = 20000

        metrics = FrameQualityScorer().score(frame)
        assert metrics.brightness == pytest.approx(78 / 255, abs=1e-3)

    def test_empty_buffer_raises(self):
        """Test empty buffers raise AnalysisError."""
        with pytest.raises(AnalysisError):
            FrameQualityScorer().score(np.zeros((0, 0, 4), dtype=np.uint8))

    def test_none_buffer_raises(self):
        """Test a missing buffer raises AnalysisError."""
        with pytest.raises(AnalysisError):
            FrameQualityScorer().score(None)


class TestCombinedScore:
    """Tests for the weighted score."""

    def test_saturates_at_one(self):
        """Test both terms are capped."""
        assert FrameQualityScorer.combined_score(1.0, 10_000.0) == pytest.approx(1.0)

    @pytest.mark.parametrize("low,high", [(0.0, 0.01), (0.01, 0.04), (0.04, 0.2)])
    def test_monotone_in_brightness(self, low, high):
        """Test the score never decreases when brightness increases."""
        for sharpness in (0.0, 50.0, 500.0):
            assert (
                FrameQualityScorer.combined_score(high, sharpness)
                >= FrameQualityScorer.combined_score(low, sharpness)
            )

    @pytest.mark.parametrize("low,high", [(0.0, 10.0), (10.0, 99.0), (99.0, 1000.0)])
    def test_monotone_in_sharpness(self, low, high):
        """Test the score never decreases when sharpness increases."""
        for brightness in (0.0, 0.02, 0.5):
            assert (
                FrameQualityScorer.combined_score(brightness, high)
                >= FrameQualityScorer.combined_score(brightness, low)
            )


class TestIsAcceptable:
    """Tests for the early accept rule."""

    def test_requires_both_thresholds(self):
        """Test acceptance needs brightness and sharpness above threshold."""
        assert FrameQualityScorer.is_acceptable(QualityMetrics(0.5, 150.0, 1.0))
        assert not FrameQualityScorer.is_acceptable(QualityMetrics(0.5, 50.0, 0.75))
        assert not FrameQualityScorer.is_acceptable(QualityMetrics(0.01, 500.0, 0.6))

    def test_thresholds_are_strict(self):
        """Test values exactly on the thresholds are not accepted."""
        assert not FrameQualityScorer.is_acceptable(QualityMetrics(0.05, 100.0, 1.0))
