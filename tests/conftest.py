"""Shared pytest fixtures for PosterFrame tests."""
import random
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import pytest

from posterframe.models import RawFrame


# ============================================================================
# Synthetic frames
# ============================================================================
#
# Frames whose longest side is 200 px are scored without resampling, so
# their brightness and sharpness are exact:
#   flat gray v          -> brightness v/255, sharpness 0
#   checkerboard v +- a  -> brightness v/255, sharpness (4 * 2a)^2

def flat_frame(width: int, height: int, value: int = 128, alpha: int = 255) -> np.ndarray:
    """Uniform gray RGBA frame."""
    frame = np.empty((height, width, 4), dtype=np.uint8)
    frame[:, :, :3] = value
    frame[:, :, 3] = alpha
    return frame


def checker_frame(width: int, height: int, value: int = 128, amplitude: int = 10) -> np.ndarray:
    """Gray checkerboard alternating between value-amplitude and value+amplitude."""
    yy, xx = np.indices((height, width))
    pattern = np.where((xx + yy) % 2 == 0, value + amplitude, value - amplitude)
    frame = np.empty((height, width, 4), dtype=np.uint8)
    frame[:, :, :3] = pattern[:, :, np.newaxis].astype(np.uint8)
    frame[:, :, 3] = 255
    return frame


def letterboxed_frame(
    width: int,
    height: int,
    top: int = 0,
    bottom: int = 0,
    left: int = 0,
    right: int = 0,
    value: int = 128,
) -> np.ndarray:
    """Gray content surrounded by pure black bars."""
    frame = flat_frame(width, height, 0)
    frame[top:height - bottom, left:width - right, :3] = value
    return frame


# ============================================================================
# Decoder doubles
# ============================================================================

class ScriptedDecoder:
    """Decoder that replays a script of frames and exceptions.

    Each call consumes the next script item; the last item repeats once
    the script is exhausted. Every RawFrame handed out is recorded in
    ``produced`` so tests can check which ones were released.
    """

    def __init__(
        self,
        script: Sequence[Union[np.ndarray, BaseException]],
        duration: Union[float, BaseException] = 100.0,
        artifact_dir: Optional[Path] = None,
        on_decode=None,
        premultiplied: bool = False,
    ):
        self.script = list(script)
        self.duration = duration
        self.artifact_dir = artifact_dir
        self.on_decode = on_decode
        self.premultiplied = premultiplied
        self.produced: List[RawFrame] = []
        self.timestamps: List[float] = []
        self.duration_calls = 0

    @property
    def calls(self) -> int:
        return len(self.timestamps)

    def decode_frame_at(self, video_path, timestamp, cancel_event=None):
        self.timestamps.append(timestamp)
        if self.on_decode is not None:
            self.on_decode(self.calls)
        item = self.script[min(self.calls - 1, len(self.script) - 1)]
        if isinstance(item, BaseException):
            raise item

        artifact = None
        if self.artifact_dir is not None:
            artifact = self.artifact_dir / f"frame_{self.calls:03d}.png"
            artifact.write_bytes(b"png")
        frame = RawFrame(
            pixels=item.copy(),
            timestamp=timestamp,
            premultiplied=self.premultiplied,
            artifact_path=artifact,
        )
        self.produced.append(frame)
        return frame

    def get_duration(self, video_path):
        self.duration_calls += 1
        if isinstance(self.duration, BaseException):
            raise self.duration
        return self.duration

    def get_frame_size(self, video_path):
        first = next((i for i in self.script if isinstance(i, np.ndarray)), None)
        if first is None:
            return (0, 0)
        return (first.shape[1], first.shape[0])

    def unreleased(self, keep: Optional[RawFrame] = None) -> List[RawFrame]:
        """Produced frames that are still alive, ignoring ``keep``."""
        return [f for f in self.produced if f is not keep and not f.released]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging() so caplog sees posterframe records."""
    yield
    import logging

    from posterframe.utils import logging as pf_logging

    root = logging.getLogger(pf_logging.ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    root.propagate = True
    for name in list(logging.root.manager.loggerDict):
        if name.startswith(pf_logging.ROOT_LOGGER_NAME + "."):
            logging.getLogger(name).setLevel(logging.NOTSET)
    pf_logging._configured_loggers.clear()


@pytest.fixture
def video_file(tmp_path) -> Path:
    """An existing placeholder file standing in for a video."""
    path = tmp_path / "episode.mkv"
    path.write_bytes(b"\x00" * 16)
    return path


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for deterministic seek times."""
    return random.Random(1234)


@pytest.fixture
def sharp_frame() -> np.ndarray:
    """Bright, in-focus frame that passes both quality thresholds."""
    return checker_frame(200, 112, value=128, amplitude=10)


@pytest.fixture
def soft_frame() -> np.ndarray:
    """Bright frame with moderate detail: score 0.82, not acceptable."""
    return checker_frame(200, 112, value=128, amplitude=1)


@pytest.fixture
def black_frame() -> np.ndarray:
    """Fully black frame: score 0."""
    return flat_frame(200, 112, 0)


@pytest.fixture
def graphic_file(tmp_path) -> Path:
    """Solid red 100x50 PNG logo."""
    from PIL import Image

    path = tmp_path / "logo.png"
    Image.new("RGBA", (100, 50), (255, 0, 0, 255)).save(path)
    return path
