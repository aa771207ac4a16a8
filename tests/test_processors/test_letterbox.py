"""Tests for letterbox and pillarbox removal."""
import numpy as np
import pytest

from conftest import flat_frame, letterboxed_frame

from posterframe.errors import AnalysisError
from posterframe.models import CropBounds
from posterframe.processors.letterbox import LetterboxDetector


@pytest.fixture
def detector():
    return LetterboxDetector()


class TestDetectBounds:
    """Tests for LetterboxDetector.detect_bounds."""

    def test_no_bars(self, detector):
        """Test a mid-gray frame has no bars."""
        assert detector.detect_bounds(flat_frame(1920, 1080, 128)) is None

    def test_letterbox(self, detector):
        """Test top and bottom bars are found."""
        frame = letterboxed_frame(1920, 1080, top=140, bottom=140)
        assert detector.detect_bounds(frame) == CropBounds(left=0, top=140, right=0, bottom=140)

    def test_pillarbox(self, detector):
        """Test left and right bars are found."""
        frame = letterboxed_frame(1920, 1080, left=240, right=240)
        assert detector.detect_bounds(frame) == CropBounds(left=240, top=0, right=240, bottom=0)

    def test_asymmetric_bars(self, detector):
        """Test each edge is measured independently."""
        frame = letterboxed_frame(400, 300, top=10, bottom=30, left=5, right=0)
        assert detector.detect_bounds(frame) == CropBounds(left=5, top=10, right=0, bottom=30)

    def test_near_black_counts_as_black(self, detector):
        """Test dark gray below the threshold is treated as black."""
        frame = letterboxed_frame(400, 300, top=20, bottom=20)
        frame[:20, :, :3] = 24
        frame[280:, :, :3] = 26

        bounds = detector.detect_bounds(frame, black_threshold=25)
        assert bounds.top == 20
        assert bounds.bottom == 0

    def test_confidence_tolerates_noise(self, detector):
        """Test a bar with a few bright pixels still counts at 85%."""
        frame = letterboxed_frame(400, 300, top=20, bottom=20)
        frame[:20, :40, :3] = 200  # 10% of each bar row

        assert detector.detect_bounds(frame, confidence=85).top == 20
        assert detector.detect_bounds(frame, confidence=95).top == 0

    def test_all_black_is_rejected(self, detector):
        """Test a fully black frame is never cropped."""
        assert detector.detect_bounds(flat_frame(400, 300, 0)) is None

    def test_tiny_interior_is_rejected(self, detector, caplog):
        """Test crops leaving less than a quarter of a dimension are refused."""
        frame = letterboxed_frame(400, 300, top=120, bottom=120)

        with caplog.at_level("WARNING"):
            assert detector.detect_bounds(frame) is None
        assert "Rejected letterbox crop" in caplog.text

    def test_quarter_interior_is_kept(self, detector):
        """Test exactly a quarter of the height is still acceptable."""
        frame = letterboxed_frame(400, 400, top=150, bottom=150)
        assert detector.detect_bounds(frame) == CropBounds(top=150, bottom=150)

    @pytest.mark.parametrize("threshold,confidence", [(-1, 85), (256, 85), (25, 49), (25, 101)])
    def test_invalid_parameters(self, detector, threshold, confidence):
        """Test out-of-range thresholds are rejected."""
        with pytest.raises(ValueError):
            detector.detect_bounds(flat_frame(10, 10), threshold, confidence)

    def test_empty_bitmap(self, detector):
        """Test zero-sized bitmaps raise AnalysisError."""
        with pytest.raises(AnalysisError):
            detector.detect_bounds(np.zeros((0, 10, 4), dtype=np.uint8))


class TestDetectAndCrop:
    """Tests for LetterboxDetector.detect_and_crop."""

    def test_no_bars_returns_same_object(self, detector):
        """Test nothing is allocated when no crop happens."""
        frame = flat_frame(1920, 1080, 128)
        assert detector.detect_and_crop(frame) is frame

    def test_letterbox_crop_size(self, detector):
        """Test 140px bars on 1920x1080 give 1920x800."""
        frame = letterboxed_frame(1920, 1080, top=140, bottom=140)
        cropped = detector.detect_and_crop(frame)

        assert cropped is not frame
        assert cropped.shape == (800, 1920, 4)
        assert cropped.flags["C_CONTIGUOUS"]
        assert (cropped[:, :, :3] == 128).all()

    def test_source_untouched(self, detector):
        """Test the input bitmap is not modified."""
        frame = letterboxed_frame(400, 300, left=50, right=50)
        before = frame.copy()
        detector.detect_and_crop(frame)
        np.testing.assert_array_equal(frame, before)

    def test_rejected_crop_returns_same_object(self, detector):
        """Test an unsafe crop leaves the frame as is."""
        frame = flat_frame(400, 300, 0)
        assert detector.detect_and_crop(frame) is frame
