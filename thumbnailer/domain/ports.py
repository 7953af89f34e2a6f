"""
Collaborator interfaces the domain services are built on.

Concrete implementations live under ``thumbnailer.infrastructure``; tests
substitute in-memory fakes.
"""
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from thumbnailer.domain.models import Job, JobState, VideoInfo


class VideoEngine(Protocol):
    def probe(self, path: Path) -> VideoInfo:
        ...

    def transcode(
        self,
        input_spec: str,
        output_path: Path,
        filter_chain: Sequence[str],
        *,
        input_options: Optional[dict] = None,
        output_options: Optional[dict] = None,
    ) -> None:
        ...


class JobQueue(Protocol):
    def enqueue(self, job: Job) -> Job:
        ...

    def dequeue(self, timeout: Optional[float] = None) -> Optional[str]:
        ...

    def get_job(self, job_id: str) -> Optional[Job]:
        ...

    def get_state(self, job_id: str) -> Optional[JobState]:
        ...

    def save(self, job: Job) -> None:
        ...

    def list_jobs(self) -> List[Job]:
        ...

    def remove(self, job_id: str) -> None:
        ...


class KeyValueCache(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str, ttl_seconds: Optional[float] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...
