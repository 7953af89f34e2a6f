import logging
import shutil
from pathlib import Path
from typing import List, Optional, Union

from thumbnailer.domain.errors import MissingInputError, NotAVideoError
from thumbnailer.domain.ports import VideoEngine
from thumbnailer.infrastructure.ffmpeg_adapter import FfmpegEngine

logger = logging.getLogger(__name__)

FRAME_PREFIX = "frame"
FRAME_PATTERN = f"{FRAME_PREFIX}%04d.png"


def calculate_fps(duration: Optional[float], target_fps: float = 5) -> float:
    """
    Sampling rate that yields at least ``target_fps`` frames however short the
    source is; unknown durations fall back to ``target_fps`` itself.
    """
    if not duration or duration <= 0:
        return target_fps
    return max(1.0, target_fps / duration)


def prepare_output_directory(output_dir: Path) -> None:
    if output_dir.exists():
        shutil.rmtree(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)


def list_frames(output_dir: Path) -> List[Path]:
    return sorted(
        p for p in output_dir.iterdir() if p.is_file() and p.name.startswith(FRAME_PREFIX)
    )


class FrameExtractor:
    def __init__(
        self,
        engine: Optional[VideoEngine] = None,
        *,
        min_frame_count: int = 5,
        quality: int = 2,
    ) -> None:
        self.engine = engine or FfmpegEngine()
        self.min_frame_count = min_frame_count
        self.quality = quality

    def extract(self, video_path: Union[str, Path], output_dir: Union[str, Path]) -> List[Path]:
        """
        Sample still frames from ``video_path`` into ``output_dir``.

        ``output_dir`` is wiped first so a re-run never mixes frames from two
        inputs. Returns the frame files in temporal (= filename) order.
        """
        if not video_path or not output_dir:
            raise MissingInputError("Video path and output directory are required")

        video_path = Path(video_path)
        output_dir = Path(output_dir)
        if not video_path.is_file():
            raise MissingInputError(f"Input video file does not exist: {video_path}")

        info = self.engine.probe(video_path)
        if not info.has_video_stream:
            raise NotAVideoError(f"Input file is not a valid video: {video_path}")

        prepare_output_directory(output_dir)

        fps = calculate_fps(info.duration, self.min_frame_count)
        logger.debug(
            "Extracting frames from %s (duration=%s, fps=%.3f)", video_path, info.duration, fps
        )
        self.engine.transcode(
            str(video_path),
            output_dir / FRAME_PATTERN,
            [f"fps={fps}"],
            output_options={"qscale:v": self.quality},
        )
        return list_frames(output_dir)
