import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from thumbnailer.app.api import routes_jobs
from thumbnailer.config import Settings, configure_logging
from thumbnailer.domain.services.dedup_cache import DedupCache
from thumbnailer.domain.services.frame_extractor import FrameExtractor
from thumbnailer.domain.services.gif_assembler import GifAssembler
from thumbnailer.domain.services.job_service import ThumbnailJobService
from thumbnailer.domain.services.thumbnail_pipeline import ThumbnailPipeline
from thumbnailer.infrastructure.downloaders import VideoFetcher
from thumbnailer.infrastructure.ffmpeg_adapter import FfmpegEngine
from thumbnailer.infrastructure.persistence.in_memory_cache import InMemoryCache
from thumbnailer.infrastructure.persistence.in_memory_repo import InMemoryJobQueue
from thumbnailer.worker import Worker

logger = logging.getLogger("uvicorn.access")


class LogRequestsMiddleware(BaseHTTPMiddleware):
    """Log when a request is received, before the handler runs."""

    async def dispatch(self, request, call_next):
        logger.info("Request started: %s %s", request.method, request.url.path)
        return await call_next(request)


def build_job_service(settings: Settings) -> ThumbnailJobService:
    """Wire the production collaborators: ffmpeg, requests, in-memory stores."""
    engine = FfmpegEngine()
    pipeline = ThumbnailPipeline(
        fetcher=VideoFetcher(
            allowed_types=settings.allowed_types,
            max_bytes=settings.max_video_bytes,
            timeout=settings.fetch_timeout_seconds,
        ),
        extractor=FrameExtractor(engine, min_frame_count=settings.min_frame_count),
        assembler=GifAssembler(
            engine,
            fps=settings.gif_fps,
            width=settings.gif_width,
            loop=settings.gif_loop,
        ),
        top_n=settings.top_n_frames,
    )
    return ThumbnailJobService(
        queue=InMemoryJobQueue(),
        dedup=DedupCache(InMemoryCache(), ttl_seconds=settings.dedup_ttl_seconds),
        pipeline=pipeline,
        settings=settings,
    )


def create_app(
    settings: Optional[Settings] = None,
    job_service: Optional[ThumbnailJobService] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    job_service = job_service or build_job_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        workers: List[Worker] = [
            Worker(job_service, worker_id=i + 1, poll_interval=settings.worker_poll_seconds)
            for i in range(settings.worker_count)
        ]
        for w in workers:
            w.start()
        try:
            yield
        finally:
            for w in workers:
                w.stop(join_timeout=settings.worker_poll_seconds * 2)

    app = FastAPI(title="Thumbnailer API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.job_service = job_service

    app.add_middleware(LogRequestsMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(routes_jobs.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    settings.gifs_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/gifs", StaticFiles(directory=str(settings.gifs_dir)), name="gifs")

    return app


def get_app() -> FastAPI:
    """ASGI factory: ``uvicorn thumbnailer.main:get_app --factory``."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    return create_app(settings)
