"""Tests for the ffmpeg helper functions."""
import itertools
import json
import subprocess
import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from posterframe.utils.ffmpeg import (
    FFmpegCancelled,
    FFmpegError,
    build_frame_command,
    check_ffmpeg_installed,
    extract_frame_png,
    get_video_duration,
    get_video_info,
    get_video_resolution,
)

MODULE = "posterframe.utils.ffmpeg"


@pytest.fixture
def tools_installed():
    with patch(f"{MODULE}.shutil.which", return_value="/usr/bin/ffmpeg"):
        yield


def probe_result(payload):
    return MagicMock(stdout=json.dumps(payload), stderr="", returncode=0)


def fake_process(stdout=b"PNGDATA", stderr=b"", returncode=0, poll=(None, 0)):
    process = MagicMock()
    process.poll.side_effect = list(poll)
    process.communicate.return_value = (stdout, stderr)
    process.returncode = returncode
    return process


class TestCheckInstalled:
    """Tests for check_ffmpeg_installed."""

    def test_installed(self, tools_installed):
        """Test True when both binaries are on PATH."""
        assert check_ffmpeg_installed() is True

    def test_missing_ffmpeg(self):
        """Test FFmpegError when ffmpeg is missing."""
        with patch(f"{MODULE}.shutil.which", return_value=None):
            with pytest.raises(FFmpegError, match="FFmpeg not found"):
                check_ffmpeg_installed()

    def test_missing_ffprobe(self):
        """Test FFmpegError when only ffprobe is missing."""
        with patch(f"{MODULE}.shutil.which", side_effect=lambda name: None if name == "ffprobe" else "/x"):
            with pytest.raises(FFmpegError, match="ffprobe not found"):
                check_ffmpeg_installed()


class TestProbe:
    """Tests for ffprobe wrappers."""

    def test_video_info(self, tools_installed):
        """Test ffprobe JSON is parsed."""
        payload = {"format": {"duration": "1200.5"}, "streams": []}
        with patch(f"{MODULE}.subprocess.run", return_value=probe_result(payload)) as run:
            assert get_video_info(Path("a.mkv")) == payload

        cmd = run.call_args[0][0]
        assert cmd[0] == "ffprobe"
        assert "v:0" in cmd
        assert cmd[-1] == "a.mkv"

    def test_duration(self, tools_installed):
        """Test duration is read from the container format."""
        payload = {"format": {"duration": "1200.5"}}
        with patch(f"{MODULE}.subprocess.run", return_value=probe_result(payload)):
            assert get_video_duration(Path("a.mkv")) == 1200.5

    @pytest.mark.parametrize("payload", [{}, {"format": {}}, {"format": {"duration": "N/A"}}])
    def test_duration_unknown(self, tools_installed, payload):
        """Test missing or unparseable durations give 0.0."""
        with patch(f"{MODULE}.subprocess.run", return_value=probe_result(payload)):
            assert get_video_duration(Path("a.mkv")) == 0.0

    def test_resolution(self, tools_installed):
        """Test the first video stream size is returned."""
        payload = {"streams": [{"codec_type": "video", "width": 1920, "height": 800}]}
        with patch(f"{MODULE}.subprocess.run", return_value=probe_result(payload)):
            assert get_video_resolution(Path("a.mkv")) == (1920, 800)

    def test_resolution_without_video(self, tools_installed):
        """Test (0, 0) when there is no video stream."""
        with patch(f"{MODULE}.subprocess.run", return_value=probe_result({"streams": []})):
            assert get_video_resolution(Path("a.mkv")) == (0, 0)

    def test_probe_failure(self, tools_installed):
        """Test a failing ffprobe raises FFmpegError with stderr."""
        error = subprocess.CalledProcessError(1, "ffprobe", stderr="a.mkv: No such file or directory")
        with patch(f"{MODULE}.subprocess.run", side_effect=error):
            with pytest.raises(FFmpegError) as exc_info:
                get_video_info(Path("a.mkv"))
        assert "No such file" in exc_info.value.stderr

    def test_bad_json(self, tools_installed):
        """Test unparseable output raises FFmpegError."""
        with patch(f"{MODULE}.subprocess.run", return_value=MagicMock(stdout="{oops")):
            with pytest.raises(FFmpegError, match="parse"):
                get_video_info(Path("a.mkv"))


class TestBuildFrameCommand:
    """Tests for the single-frame command line."""

    def test_command(self):
        """Test input seeking and PNG output on stdout."""
        cmd = build_frame_command(Path("ep.mkv"), 12.5)

        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-ss") + 1] == "12.500"
        assert cmd.index("-ss") < cmd.index("-i")
        assert cmd[cmd.index("-frames:v") + 1] == "1"
        assert cmd[cmd.index("-vcodec") + 1] == "png"
        assert cmd[cmd.index("-pix_fmt") + 1] == "rgba"
        assert cmd[-1] == "-"


class TestExtractFramePng:
    """Tests for extract_frame_png."""

    def test_returns_stdout(self, tools_installed):
        """Test the PNG bytes from stdout are returned."""
        with patch(f"{MODULE}.subprocess.Popen", return_value=fake_process()):
            assert extract_frame_png(Path("a.mkv"), 10.0) == b"PNGDATA"

    def test_polls_until_done(self, tools_installed):
        """Test communicate timeouts keep the loop going."""
        process = fake_process(poll=(None, None, 0))
        process.communicate.side_effect = [
            subprocess.TimeoutExpired("ffmpeg", 0.05),
            (b"PNGDATA", b""),
        ]
        with patch(f"{MODULE}.subprocess.Popen", return_value=process):
            assert extract_frame_png(Path("a.mkv"), 10.0) == b"PNGDATA"
        assert process.communicate.call_count == 2

    def test_nonzero_exit(self, tools_installed):
        """Test a failing ffmpeg raises FFmpegError carrying stderr."""
        process = fake_process(stdout=b"", stderr=b"Invalid data found", returncode=1)
        with patch(f"{MODULE}.subprocess.Popen", return_value=process):
            with pytest.raises(FFmpegError) as exc_info:
                extract_frame_png(Path("a.mkv"), 10.0)
        assert exc_info.value.stderr == "Invalid data found"

    def test_no_output(self, tools_installed):
        """Test an empty stdout raises FFmpegError."""
        with patch(f"{MODULE}.subprocess.Popen", return_value=fake_process(stdout=b"")):
            with pytest.raises(FFmpegError, match="no frame"):
                extract_frame_png(Path("a.mkv"), 10.0)

    def test_cancel_kills_process(self, tools_installed):
        """Test a set cancel event kills ffmpeg."""
        event = threading.Event()
        event.set()
        process = fake_process()

        with patch(f"{MODULE}.subprocess.Popen", return_value=process):
            with pytest.raises(FFmpegCancelled):
                extract_frame_png(Path("a.mkv"), 10.0, cancel_event=event)
        process.kill.assert_called()

    def test_timeout_kills_process(self, tools_installed):
        """Test a slow ffmpeg is killed after the timeout."""
        process = fake_process()
        with patch(f"{MODULE}.subprocess.Popen", return_value=process), \
                patch(f"{MODULE}.time.monotonic", side_effect=itertools.chain([0.0], itertools.repeat(5.0))):
            with pytest.raises(FFmpegError, match="timed out"):
                extract_frame_png(Path("a.mkv"), 10.0, timeout=1.0)
        process.kill.assert_called()

    def test_cancelled_is_ffmpeg_error(self):
        """Test FFmpegCancelled is an FFmpegError."""
        assert issubclass(FFmpegCancelled, FFmpegError)
