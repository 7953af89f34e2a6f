import logging
from pathlib import Path
from typing import Optional, Sequence

import ffmpeg

from thumbnailer.domain.errors import EngineError
from thumbnailer.domain.models import VideoInfo

logger = logging.getLogger(__name__)


def _stderr_text(error: "ffmpeg.Error") -> str:
    stderr = getattr(error, "stderr", None) or b""
    return stderr.decode("utf-8", errors="replace").strip()


class FfmpegEngine:
    """
    Thin wrapper around ffmpeg / ffprobe via ffmpeg-python.

    Callers only see success or ``EngineError``; ffmpeg's diagnostics go to
    the debug log.
    """

    def probe(self, path: Path) -> VideoInfo:
        try:
            data = ffmpeg.probe(str(path))
        except FileNotFoundError as e:
            raise EngineError("ffprobe executable not found") from e
        except ffmpeg.Error as e:
            logger.debug("ffprobe failed for %s: %s", path, _stderr_text(e))
            return VideoInfo(has_video_stream=False, duration=None)

        has_video = any(s.get("codec_type") == "video" for s in data.get("streams", []))
        raw_duration = (data.get("format") or {}).get("duration")
        try:
            duration = float(raw_duration) if raw_duration is not None else None
        except (TypeError, ValueError):
            duration = None
        return VideoInfo(has_video_stream=has_video, duration=duration)

    def transcode(
        self,
        input_spec: str,
        output_path: Path,
        filter_chain: Sequence[str],
        *,
        input_options: Optional[dict] = None,
        output_options: Optional[dict] = None,
    ) -> None:
        """
        Run ``ffmpeg -i input_spec -vf <filter_chain> output_path``.

        ``filter_chain`` is joined with commas into a single ``-vf`` graph, so
        labelled filters such as ``split[s0][s1]`` are passed through as-is.
        """
        out_opts = dict(output_options or {})
        if filter_chain:
            out_opts["vf"] = ",".join(filter_chain)
        try:
            (
                ffmpeg.input(input_spec, **(input_options or {}))
                .output(str(output_path), **out_opts)
                .overwrite_output()
                .run(quiet=True)
            )
        except ffmpeg.Error as e:
            logger.debug("ffmpeg stderr for %s: %s", output_path, _stderr_text(e))
            raise EngineError(f"ffmpeg failed: {e}") from e
        except FileNotFoundError as e:
            raise EngineError("ffmpeg executable not found") from e
