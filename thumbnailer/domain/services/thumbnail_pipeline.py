import logging
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional
from urllib.parse import urlparse

from thumbnailer.domain.models import DEFAULT_WEIGHTS, FrameScore, Job, ScoreWeights, Stage
from thumbnailer.domain.services.frame_extractor import FrameExtractor
from thumbnailer.domain.services.frame_scorer import score_frames, select_key_frames
from thumbnailer.domain.services.gif_assembler import GifAssembler
from thumbnailer.infrastructure.downloaders import VideoFetcher

logger = logging.getLogger(__name__)

StageCallback = Callable[[Stage], None]


def source_filename(url: str) -> str:
    """Scratch filename for the downloaded video, keeping the URL's extension."""
    suffix = PurePosixPath(urlparse(url).path).suffix.lower()
    if not suffix or len(suffix) > 8:
        suffix = ".mp4"
    return f"source{suffix}"


class ThumbnailPipeline:
    """
    One attempt at turning a job's URL into its GIF:
    fetch -> extract -> score -> select -> assemble, strictly in order.

    Any stage error propagates unchanged; retry decisions belong to the
    job service.
    """

    def __init__(
        self,
        fetcher: VideoFetcher,
        extractor: FrameExtractor,
        assembler: GifAssembler,
        *,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
        top_n: int = 10,
    ) -> None:
        self.fetcher = fetcher
        self.extractor = extractor
        self.assembler = assembler
        self.weights = weights
        self.top_n = top_n

    def run(self, job: Job, on_stage: Optional[StageCallback] = None) -> Path:
        def enter(stage: Stage) -> None:
            logger.info("Job %s: %s", job.id, stage.value)
            if on_stage:
                on_stage(stage)

        scratch = Path(job.scratch_dir)

        enter(Stage.FETCH)
        video_path = self.fetcher.fetch(job.video_url, scratch / source_filename(job.video_url))

        enter(Stage.EXTRACT)
        frames = self.extractor.extract(video_path, scratch / "frames")

        enter(Stage.SCORE)
        scores = score_frames(frames, self.weights)

        enter(Stage.SELECT)
        key_frames: List[FrameScore] = select_key_frames(scores, self.top_n)

        enter(Stage.ASSEMBLE)
        return self.assembler.assemble([k.file for k in key_frames], job.gif_path)
