"""High level poster generation from PosterSettings.

Example:
    >>> from posterframe import PosterGenerator, PosterSettings
    >>> generator = PosterGenerator()
    >>> result = generator.generate("episode.mkv", PosterSettings(), output_path="posters/")
    >>> if not result:
    ...     print(result.message)
"""
import random
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

from .config import PosterSettings
from .decoders import FFmpegFrameDecoder, FrameDecoder
from .errors import EncodingError, Failure
from .models import EncodedImage
from .processors.compositor import CanvasCompositor, TextRenderer
from .utils.logging import get_logger

logger = get_logger("generator")

PathLike = Union[str, Path]
GenerateResult = Union[EncodedImage, Path, Failure]


class PosterGenerator:
    """Map settings onto a compositor run and optionally write the result."""

    def __init__(
        self,
        decoder: Optional[FrameDecoder] = None,
        text_renderer: Optional[TextRenderer] = None,
        compositor: Optional[CanvasCompositor] = None,
    ):
        self.decoder = decoder or FFmpegFrameDecoder()
        self.compositor = compositor or CanvasCompositor(
            decoder=self.decoder,
            text_renderer=text_renderer,
        )

    def generate(
        self,
        video_path: Optional[PathLike],
        settings: PosterSettings,
        *,
        episode: Optional[Any] = None,
        output_path: Optional[PathLike] = None,
        fallback_dimensions: Optional[Tuple[int, int]] = None,
        rng: Optional[random.Random] = None,
        cancel_event: Optional[threading.Event] = None,
        duration_hint: Optional[float] = None,
    ) -> GenerateResult:
        """
        Generate a poster for one video.

        Args:
            video_path: Source video, or None for a blank canvas
            settings: Poster settings
            episode: Metadata handed to the text renderer
            output_path: File or directory to write to; in-memory if None
            fallback_dimensions: Blank canvas size; probed from the video if None
            rng: Random source for seek times
            cancel_event: Set to abort
            duration_hint: Known duration in seconds

        Returns:
            EncodedImage, the written Path, or Failure
        """
        extract = settings.extract_poster and video_path is not None
        if not extract and fallback_dimensions is None:
            fallback_dimensions = self._fallback_dimensions(video_path, settings)

        result = self.compositor.compose(
            video_path if extract else None,
            fallback_dimensions,
            settings.overlay_spec(),
            settings.graphic_spec(),
            settings.fill_spec(),
            settings.letterbox_spec(),
            settings.brighten_hdr,
            settings.poster_file_type,
            extraction=settings.extraction_spec(),
            episode=episode,
            rng=rng,
            cancel_event=cancel_event,
            duration_hint=duration_hint,
            skip_bright_frames=settings.skip_bright_frames,
        )

        if isinstance(result, Failure) or output_path is None:
            return result
        return self._write(result, Path(output_path), video_path)

    def generate_many(
        self,
        video_paths: Sequence[PathLike],
        settings: PosterSettings,
        output_dir: Optional[PathLike] = None,
        max_workers: int = 4,
        seed: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[GenerateResult]:
        """
        Generate posters for several videos concurrently.

        Args:
            video_paths: Source videos
            settings: Poster settings shared by all jobs
            output_dir: Directory for written posters; in-memory if None
            max_workers: Worker thread count
            seed: Base seed; job i uses ``seed + i``
            cancel_event: Set to abort all jobs

        Returns:
            Results in the same order as ``video_paths``
        """
        def run(index: int, path: PathLike) -> GenerateResult:
            rng = random.Random(seed + index) if seed is not None else None
            return self.generate(
                path,
                settings,
                output_path=output_dir,
                rng=rng,
                cancel_event=cancel_event,
            )

        if output_dir is not None:
            Path(output_dir).mkdir(parents=True, exist_ok=True)

        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
            futures = [executor.submit(run, i, path) for i, path in enumerate(video_paths)]
            return [future.result() for future in futures]

    def _fallback_dimensions(
        self,
        video_path: Optional[PathLike],
        settings: PosterSettings,
    ) -> Tuple[int, int]:
        """Frame size of the video when the decoder can tell, else settings."""
        get_size = getattr(self.decoder, "get_frame_size", None)
        if video_path is not None and get_size is not None:
            try:
                width, height = get_size(video_path)
                if width > 0 and height > 0:
                    return width, height
            except Exception as e:
                logger.warning(f"Could not read frame size of {video_path}: {e}")
        return settings.fallback_width, settings.fallback_height

    @staticmethod
    def _write(image: EncodedImage, output_path: Path, video_path: Optional[PathLike]) -> GenerateResult:
        if output_path.is_dir():
            stem = Path(video_path).stem if video_path else "poster"
            output_path = output_path / f"{stem}{image.extension}"
        try:
            written = image.save(output_path)
        except OSError as e:
            error = EncodingError(f"Could not write poster to {output_path}: {e}", cause=e)
            logger.error(str(error))
            return Failure.from_error(error, "write")
        logger.info(
            f"Saved poster to {written}",
            path=str(written),
            format=image.file_type.value,
            width=image.width,
            height=image.height,
        )
        return written
