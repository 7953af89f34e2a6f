import logging
import shutil
from pathlib import Path
from typing import List, Optional, Sequence, Union

from thumbnailer.domain.errors import MissingInputError
from thumbnailer.domain.ports import VideoEngine
from thumbnailer.infrastructure.ffmpeg_adapter import FfmpegEngine

logger = logging.getLogger(__name__)

SEQUENCE_DIRNAME = "sequence"
SEQUENCE_PATTERN = "key%04d.png"


def build_filter_chain(fps: int, width: int, scale_flags: str = "lanczos") -> List[str]:
    """Frame rate, resize keeping aspect ratio, then a two-pass palette for the GIF."""
    return [
        f"fps={fps}",
        f"scale={width}:-1:flags={scale_flags}",
        "split[s0][s1];[s0]palettegen[p];[s1][p]paletteuse",
    ]


class GifAssembler:
    def __init__(
        self,
        engine: Optional[VideoEngine] = None,
        *,
        fps: int = 2,
        width: int = 320,
        loop: bool = True,
        scale_flags: str = "lanczos",
    ) -> None:
        self.engine = engine or FfmpegEngine()
        self.fps = fps
        self.width = width
        self.loop = loop
        self.scale_flags = scale_flags

    def _stage_sequence(self, frames: Sequence[Path]) -> Path:
        """
        Copy the selected frames into a gap-free ``key0001.png...`` run so the
        image2 demuxer can read them in order.
        """
        seq_dir = frames[0].parent / SEQUENCE_DIRNAME
        if seq_dir.exists():
            shutil.rmtree(seq_dir)
        seq_dir.mkdir(parents=True)
        for i, frame in enumerate(frames, start=1):
            shutil.copyfile(frame, seq_dir / (SEQUENCE_PATTERN % i))
        return seq_dir

    def assemble(self, frames: Sequence[Union[str, Path]], gif_path: Union[str, Path]) -> Path:
        """Encode ``frames`` (already in playback order) into an animated GIF."""
        if not frames:
            raise MissingInputError("No input frames provided")

        paths = [Path(f) for f in frames]
        for p in paths:
            if not p.is_file():
                raise MissingInputError(f"Input frame not found: {p}")

        gif_path = Path(gif_path)
        gif_path.parent.mkdir(parents=True, exist_ok=True)

        seq_dir = self._stage_sequence(paths)
        self.engine.transcode(
            str(seq_dir / SEQUENCE_PATTERN),
            gif_path,
            build_filter_chain(self.fps, self.width, self.scale_flags),
            input_options={"framerate": self.fps, "f": "image2"},
            output_options={"loop": 0 if self.loop else -1},
        )
        logger.debug("GIF generation completed: %s (%d frames)", gif_path, len(paths))
        return gif_path
