import logging
import shutil
import uuid
from pathlib import Path
from datetime import datetime, timedelta, timezone
from typing import Optional

from thumbnailer.config import Settings
from thumbnailer.domain.errors import AttemptsExhaustedError, ThumbnailError
from thumbnailer.domain.models import Job, JobState, Stage
from thumbnailer.domain.ports import JobQueue
from thumbnailer.domain.services.dedup_cache import DedupCache
from thumbnailer.domain.services.thumbnail_pipeline import ThumbnailPipeline
from thumbnailer.infrastructure.downloaders import validate_url

logger = logging.getLogger(__name__)


class ThumbnailJobService:
    """
    Owns the job lifecycle: queued -> active -> completed | failed.

    A failed attempt re-runs the whole pipeline from fetch; there is no
    per-stage checkpointing. Re-running the same job is safe because the
    scratch directory is wiped by extraction and the GIF path is fixed per
    job id.
    """

    def __init__(
        self,
        queue: JobQueue,
        dedup: DedupCache,
        pipeline: ThumbnailPipeline,
        settings: Settings,
    ) -> None:
        self.queue = queue
        self.dedup = dedup
        self.pipeline = pipeline
        self.settings = settings

    def create_job(self, video_url: str) -> Job:
        job_id = uuid.uuid4().hex
        return Job(
            id=job_id,
            video_url=video_url,
            scratch_dir=self.settings.frames_dir / job_id,
            gif_path=self.settings.gifs_dir / f"{job_id}.gif",
            max_attempts=self.settings.max_attempts,
        )

    def submit(self, video_url: str) -> Job:
        """
        Create and enqueue a job for ``video_url``, or return the job already
        created for it within the dedup TTL.
        """
        url = validate_url(video_url)

        cached_id = self.dedup.get(url)
        if cached_id:
            existing = self.queue.get_job(cached_id)
            if existing is not None and existing.state != JobState.FAILED:
                logger.info("Reusing job %s for %s", existing.id, url)
                return existing
            logger.info("Dedup entry for %s points at %s which is gone or failed", url, cached_id)

        job = self.queue.enqueue(self.create_job(url))
        self.dedup.put(url, job.id)
        logger.info("Job %s queued for %s", job.id, url)
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        return self.queue.get_job(job_id)

    def public_url(self, job: Job) -> str:
        return f"{self.settings.gif_url}/{Path(job.gif_path).name}"

    def process_next(self, timeout: Optional[float] = None) -> Optional[Job]:
        """Wait for the next queued job and run one attempt of it."""
        self.evict_expired_jobs()
        job_id = self.queue.dequeue(timeout)
        if job_id is None:
            return None

        job = self.queue.get_job(job_id)
        if job is None:
            logger.warning("Dequeued unknown job %s", job_id)
            return None
        if job.state.is_terminal:
            # Redelivery of a job that already finished.
            logger.info("Job %s already %s, skipping", job.id, job.state.value)
            return job
        return self.run_attempt(job)

    def evict_expired_jobs(self, now: Optional[datetime] = None) -> int:
        """
        Drop completed and failed jobs untouched for longer than
        ``job_retention_seconds``, along with any dedup entry still pointing
        at them. Returns how many jobs were removed.
        """
        retention = self.settings.job_retention_seconds
        if retention <= 0:
            return 0
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(seconds=retention)

        evicted = 0
        for job in self.queue.list_jobs():
            if not job.state.is_terminal or job.updated_at > cutoff:
                continue
            self.queue.remove(job.id)
            if self.dedup.get(job.video_url) == job.id:
                self.dedup.forget(job.video_url)
            evicted += 1
            logger.info("Evicted %s job %s", job.state.value, job.id)
        return evicted

    def run_attempt(self, job: Job) -> Job:
        job.state = JobState.ACTIVE
        job.stage = None
        self.queue.save(job)

        def on_stage(stage: Stage) -> None:
            job.stage = stage
            self.queue.save(job)

        try:
            self.pipeline.run(job, on_stage)
        except Exception as exc:  # noqa: BLE001 - top-level guard
            return self._handle_failure(job, exc)

        job.state = JobState.COMPLETED
        job.stage = None
        job.result = self.public_url(job)
        job.failed_reason = None
        self.queue.save(job)
        logger.info("Job %s completed: %s", job.id, job.result)

        if not self.settings.keep_scratch_on_success:
            self._remove_scratch(job)
        return job

    def _handle_failure(self, job: Job, exc: Exception) -> Job:
        job.attempts += 1
        reason = f"{type(exc).__name__}: {exc}"
        failed_stage = job.stage.value if job.stage else "start"
        job.stage = None

        # Only unexpected errors get a traceback.
        exc_info = None if isinstance(exc, ThumbnailError) else exc

        if job.attempts < job.max_attempts:
            logger.warning(
                "Job %s attempt %d/%d failed at %s: %s; retrying",
                job.id, job.attempts, job.max_attempts, failed_stage, reason,
                exc_info=exc_info,
            )
            job.state = JobState.QUEUED
            self.queue.enqueue(job)
            return job

        exhausted = AttemptsExhaustedError(job.id, job.attempts, reason)
        logger.error("Job %s failed at %s: %s", job.id, failed_stage, exhausted, exc_info=exc_info)
        job.state = JobState.FAILED
        job.failed_reason = str(exhausted)
        self.queue.save(job)

        if not self.settings.keep_scratch_on_failure:
            self._remove_scratch(job)
        return job

    def _remove_scratch(self, job: Job) -> None:
        scratch = Path(job.scratch_dir)
        if not scratch.exists():
            return
        try:
            shutil.rmtree(scratch)
        except OSError as e:
            logger.warning("Could not remove scratch dir %s for job %s: %s", scratch, job.id, e)
