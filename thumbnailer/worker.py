"""Worker threads that consume queued thumbnail jobs."""
import logging
import threading
from typing import Optional

from thumbnailer.domain.services.job_service import ThumbnailJobService

logger = logging.getLogger(__name__)


class Worker:
    """Runs queued jobs one at a time until stopped."""

    def __init__(
        self,
        service: ThumbnailJobService,
        worker_id: int = 1,
        poll_interval: float = 1.0,
    ) -> None:
        self.service = service
        self.worker_id = worker_id
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return not self._stop.is_set()

    def run(self) -> None:
        """
        Worker loop. A claimed job always runs to completion or failure;
        ``stop()`` takes effect between jobs.
        """
        logger.info("[Worker %d] Started", self.worker_id)
        while not self._stop.is_set():
            try:
                self.service.process_next(timeout=self.poll_interval)
            except Exception:  # noqa: BLE001 - keep the worker alive
                logger.exception("[Worker %d] Unexpected error", self.worker_id)
                self._stop.wait(self.poll_interval)
        logger.info("[Worker %d] Stopped", self.worker_id)

    def start(self) -> threading.Thread:
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run, name=f"thumbnail-worker-{self.worker_id}", daemon=True
        )
        self._thread.start()
        return self._thread

    def stop(self, join_timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=join_timeout)
            self._thread = None
