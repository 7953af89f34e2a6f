"""
Process configuration, read from environment variables.

Every setting has a default so the service runs locally with no
environment at all.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

DEFAULT_ALLOWED_TYPES: Tuple[str, ...] = (
    "video/mp4",
    "video/webm",
    "video/ogg",
    "video/quicktime",
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    data_dir: Path = Path("data")
    gif_url: str = "http://localhost:8000/gifs"

    # Job orchestration
    max_attempts: int = 3
    dedup_ttl_seconds: int = 24 * 60 * 60
    worker_count: int = 1
    worker_poll_seconds: float = 1.0
    keep_scratch_on_success: bool = False
    keep_scratch_on_failure: bool = True
    # Terminal jobs older than this are dropped from the store; 0 keeps them forever.
    job_retention_seconds: int = 24 * 60 * 60

    # Fetch policy
    allowed_types: Tuple[str, ...] = field(default=DEFAULT_ALLOWED_TYPES)
    max_video_bytes: int = 100 * 1024 * 1024
    fetch_timeout_seconds: float = 120.0

    # Frame selection
    min_frame_count: int = 5
    top_n_frames: int = 10

    # GIF output
    gif_fps: int = 2
    gif_width: int = 320
    gif_loop: bool = True

    log_level: str = "INFO"

    @property
    def frames_dir(self) -> Path:
        return self.data_dir / "frames"

    @property
    def gifs_dir(self) -> Path:
        return self.data_dir / "gifs"

    @classmethod
    def from_env(cls) -> "Settings":
        max_video_mb = int(os.environ.get("MAX_VIDEO_MB", "100"))
        return cls(
            data_dir=Path(os.environ.get("THUMBNAILER_DATA_DIR", "data")),
            gif_url=os.environ.get("GIF_URL", "http://localhost:8000/gifs").rstrip("/"),
            max_attempts=int(os.environ.get("MAX_ATTEMPTS", "3")),
            dedup_ttl_seconds=int(os.environ.get("DEDUP_TTL_SECONDS", str(24 * 60 * 60))),
            worker_count=int(os.environ.get("WORKER_COUNT", "1")),
            worker_poll_seconds=float(os.environ.get("WORKER_POLL_SECONDS", "1.0")),
            keep_scratch_on_success=_env_bool("KEEP_SCRATCH_ON_SUCCESS", False),
            keep_scratch_on_failure=_env_bool("KEEP_SCRATCH_ON_FAILURE", True),
            job_retention_seconds=int(os.environ.get("JOB_RETENTION_SECONDS", str(24 * 60 * 60))),
            max_video_bytes=max_video_mb * 1024 * 1024,
            fetch_timeout_seconds=float(os.environ.get("FETCH_TIMEOUT_SECONDS", "120")),
            min_frame_count=int(os.environ.get("MIN_FRAME_COUNT", "5")),
            top_n_frames=int(os.environ.get("TOP_N_FRAMES", "10")),
            gif_fps=int(os.environ.get("GIF_FPS", "2")),
            gif_width=int(os.environ.get("GIF_WIDTH", "320")),
            gif_loop=_env_bool("GIF_LOOP", True),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
