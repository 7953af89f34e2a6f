from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobState(str, Enum):
    QUEUED = "queued"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


class Stage(str, Enum):
    FETCH = "fetch"
    EXTRACT = "extract"
    SCORE = "score"
    SELECT = "select"
    ASSEMBLE = "assemble"


@dataclass(frozen=True)
class ScoreWeights:
    brightness: float = 0.4
    contrast: float = 0.4
    saturation: float = 0.2


DEFAULT_WEIGHTS = ScoreWeights()


@dataclass(frozen=True)
class FrameScore:
    file: Path
    score: float  # 0–1 when the weights sum to 1
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0


@dataclass(frozen=True)
class VideoInfo:
    has_video_stream: bool
    duration: Optional[float] = None  # seconds; None when the container doesn't say


@dataclass
class Job:
    id: str
    video_url: str
    scratch_dir: Path
    gif_path: Path
    max_attempts: int = 3
    state: JobState = JobState.QUEUED
    stage: Optional[Stage] = None
    attempts: int = 0
    result: Optional[str] = None
    failed_reason: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def progress(self) -> str:
        """Coarse progress: the running stage while active, else the state."""
        if self.state == JobState.ACTIVE and self.stage is not None:
            return self.stage.value
        return self.state.value

    def touch(self) -> None:
        self.updated_at = _utcnow()
