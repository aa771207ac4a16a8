"""
FFmpeg Helper Functions
Single-frame extraction and probing using FFmpeg and ffprobe.
"""

import json
import shutil
import subprocess
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


class FFmpegError(Exception):
    """Custom exception for FFmpeg-related errors."""

    def __init__(self, message: str, stderr: Optional[str] = None):
        super().__init__(message)
        self.stderr = stderr


class FFmpegCancelled(FFmpegError):
    """Raised when a running ffmpeg process was killed on request."""
    pass


POLL_INTERVAL = 0.05


def check_ffmpeg_installed() -> bool:
    """
    Check if FFmpeg and ffprobe are installed and available.

    Returns:
        bool: True if both FFmpeg and ffprobe are installed

    Raises:
        FFmpegError: If FFmpeg or ffprobe is not found
    """
    if not shutil.which('ffmpeg'):
        raise FFmpegError(
            "FFmpeg not found. Please install FFmpeg:\n"
            "  Ubuntu/Debian: sudo apt-get install ffmpeg\n"
            "  macOS: brew install ffmpeg\n"
            "  Windows: Download from https://ffmpeg.org/download.html"
        )

    if not shutil.which('ffprobe'):
        raise FFmpegError(
            "ffprobe not found. Please install FFmpeg (includes ffprobe)."
        )

    return True


def get_video_info(video_path: Path) -> Dict[str, Any]:
    """
    Get container and stream information using ffprobe.

    Args:
        video_path: Path to video file

    Returns:
        Dictionary containing video metadata

    Raises:
        FFmpegError: If ffprobe command fails
    """
    check_ffmpeg_installed()

    cmd = [
        'ffprobe',
        '-v', 'error',
        '-print_format', 'json',
        '-show_format',
        '-show_streams',
        '-select_streams', 'v:0',
        str(video_path)
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        return json.loads(result.stdout)
    except subprocess.CalledProcessError as e:
        raise FFmpegError(f"Failed to get video info: {e.stderr}", stderr=e.stderr)
    except json.JSONDecodeError as e:
        raise FFmpegError(f"Failed to parse ffprobe output: {e}")


def get_video_duration(video_path: Path) -> float:
    """
    Get video duration in seconds.

    Args:
        video_path: Path to video file

    Returns:
        Duration in seconds, 0.0 if the container does not report one
    """
    info = get_video_info(video_path)
    try:
        return float(info.get('format', {}).get('duration', 0.0))
    except (TypeError, ValueError):
        return 0.0


def get_video_resolution(video_path: Path) -> Tuple[int, int]:
    """
    Get video resolution (width, height).

    Args:
        video_path: Path to video file

    Returns:
        Tuple of (width, height)
    """
    info = get_video_info(video_path)

    for stream in info.get('streams', []):
        if stream.get('codec_type') == 'video':
            return (int(stream.get('width', 0)), int(stream.get('height', 0)))

    return (0, 0)


def build_frame_command(video_path: Path, timestamp: float) -> List[str]:
    """Command that writes one PNG frame at ``timestamp`` to stdout."""
    return [
        'ffmpeg',
        '-hide_banner',
        '-loglevel', 'error',
        '-ss', f'{timestamp:.3f}',
        '-i', str(video_path),
        '-frames:v', '1',
        '-pix_fmt', 'rgba',
        '-f', 'image2pipe',
        '-vcodec', 'png',
        '-',
    ]


def extract_frame_png(
    video_path: Path,
    timestamp: float,
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = 60.0,
) -> bytes:
    """
    Decode a single frame into PNG bytes without touching the disk.

    Args:
        video_path: Path to input video
        timestamp: Seek position in seconds
        cancel_event: Event polled while ffmpeg runs; setting it kills the process
        timeout: Seconds before the process is killed (None = no limit)

    Returns:
        PNG-encoded frame data

    Raises:
        FFmpegCancelled: If cancel_event was set
        FFmpegError: If ffmpeg fails or produces no output
    """
    check_ffmpeg_installed()
    cmd = build_frame_command(video_path, timestamp)

    process = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    started = time.monotonic()
    try:
        while process.poll() is None:
            if cancel_event is not None and cancel_event.is_set():
                process.kill()
                process.communicate()
                raise FFmpegCancelled("Frame extraction cancelled")
            if timeout is not None and time.monotonic() - started > timeout:
                process.kill()
                process.communicate()
                raise FFmpegError(f"ffmpeg timed out after {timeout}s")
            try:
                stdout, stderr = process.communicate(timeout=POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                continue
        else:
            stdout, stderr = process.communicate()
    finally:
        if process.poll() is None:
            process.kill()
            process.communicate()

    stderr_text = stderr.decode('utf-8', errors='replace') if stderr else ''
    if process.returncode != 0:
        raise FFmpegError(
            f"Failed to extract frame at {timestamp:.3f}s: {stderr_text.strip()}",
            stderr=stderr_text,
        )
    if not stdout:
        raise FFmpegError(
            f"ffmpeg produced no frame at {timestamp:.3f}s",
            stderr=stderr_text,
        )
    return stdout
