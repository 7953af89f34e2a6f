from collections import deque
from threading import Condition, Lock
from typing import Deque, Dict, List, Optional

from thumbnailer.domain.models import Job, JobState


class InMemoryJobQueue:
    """
    Job store plus FIFO of job ids waiting for a worker.

    Good enough for a single process running worker threads. A multi-process
    deployment would back this with Redis or a database behind the same
    interface.
    """

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = Lock()
        self._pending: Deque[str] = deque()
        self._ready = Condition(Lock())

    def save(self, job: Job) -> None:
        job.touch()
        with self._lock:
            self._jobs[job.id] = job

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def get_state(self, job_id: str) -> Optional[JobState]:
        job = self.get_job(job_id)
        return job.state if job else None

    def list_jobs(self) -> List[Job]:
        with self._lock:
            return list(self._jobs.values())

    def enqueue(self, job: Job) -> Job:
        self.save(job)
        with self._ready:
            self._pending.append(job.id)
            self._ready.notify()
        return job

    def dequeue(self, timeout: Optional[float] = None) -> Optional[str]:
        """Block until a job id is available or ``timeout`` seconds pass."""
        with self._ready:
            if not self._ready.wait_for(lambda: bool(self._pending), timeout=timeout):
                return None
            return self._pending.popleft()

    def remove(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)

    def __len__(self) -> int:
        with self._ready:
            return len(self._pending)
