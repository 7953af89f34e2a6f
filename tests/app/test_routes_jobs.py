"""End-to-end tests through the HTTP boundary with a real worker thread."""

import time
from dataclasses import replace
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from thumbnailer.domain.errors import EngineError
from thumbnailer.domain.services.dedup_cache import DedupCache
from thumbnailer.domain.services.frame_extractor import FrameExtractor
from thumbnailer.domain.services.gif_assembler import GifAssembler
from thumbnailer.domain.services.job_service import ThumbnailJobService
from thumbnailer.domain.services.thumbnail_pipeline import ThumbnailPipeline
from thumbnailer.infrastructure.downloaders import VideoFetcher
from thumbnailer.infrastructure.persistence.in_memory_cache import InMemoryCache
from thumbnailer.infrastructure.persistence.in_memory_repo import InMemoryJobQueue
from thumbnailer.main import create_app

VIDEO_URL = "https://videos.example.com/holiday.mp4"


class BrokenEngine:
    def probe(self, path):
        raise EngineError("ffprobe exploded")

    def transcode(self, *args, **kwargs):
        raise EngineError("ffmpeg exploded")


@pytest.fixture
def app_settings(settings):
    return replace(settings, worker_count=1, worker_poll_seconds=0.02)


def _service(settings, engine, fake_http):
    FakeSession, FakeResponse = fake_http
    session = FakeSession(
        FakeResponse(headers={"Content-Type": "video/mp4", "Content-Length": "16"}),
        FakeResponse(chunks=[b"0123456789abcdef"]),
    )
    pipeline = ThumbnailPipeline(
        fetcher=VideoFetcher(session=session),
        extractor=FrameExtractor(engine),
        assembler=GifAssembler(engine),
        top_n=settings.top_n_frames,
    )
    return ThumbnailJobService(
        queue=InMemoryJobQueue(),
        dedup=DedupCache(InMemoryCache()),
        pipeline=pipeline,
        settings=settings,
    )


def _poll(client, job_id, until=("completed", "failed"), timeout=5.0):
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/api/thumbnail-status/{job_id}").json()
        if body["state"] in until or time.monotonic() > deadline:
            return body
        time.sleep(0.02)


def test_submit_and_poll_until_completed(app_settings, fake_engine, fake_http):
    service = _service(app_settings, fake_engine(duration=0.5), fake_http)
    app = create_app(app_settings, service)

    with TestClient(app) as client:
        resp = client.post("/api/generate-thumbnail", json={"videoURL": VIDEO_URL})
        assert resp.status_code == 202
        created = resp.json()
        job_id = created["jobId"]
        assert created["status"] in ("queued", "active", "completed")

        status = _poll(client, job_id)

        assert status["jobId"] == job_id
        assert status["state"] == "completed"
        assert status["progress"] == "completed"
        assert status["failedReason"] is None
        assert status["data"]["gifUrl"] == f"http://testserver/gifs/{job_id}.gif"
        assert status["data"]["gifPath"] == str(app_settings.gifs_dir / f"{job_id}.gif")

        gif = client.get(f"/gifs/{job_id}.gif")
        assert gif.status_code == 200
        assert gif.content == b"GIF89a"


def test_resubmitting_same_url_returns_same_job(app_settings, fake_engine, fake_http):
    service = _service(app_settings, fake_engine(duration=0.5), fake_http)
    app = create_app(replace(app_settings, worker_count=0), service)

    with TestClient(app) as client:
        first = client.post("/api/generate-thumbnail", json={"videoURL": VIDEO_URL}).json()
        second = client.post("/api/generate-thumbnail", json={"videoURL": VIDEO_URL}).json()

    assert first["jobId"] == second["jobId"]


def test_failing_pipeline_ends_failed(app_settings, fake_http):
    settings = replace(app_settings, max_attempts=2)
    service = _service(settings, BrokenEngine(), fake_http)
    app = create_app(settings, service)

    with TestClient(app) as client:
        job_id = client.post("/api/generate-thumbnail", json={"videoURL": VIDEO_URL}).json()["jobId"]
        status = _poll(client, job_id)

    assert status["state"] == "failed"
    assert status["data"] is None
    assert "AttemptsExhausted" in status["failedReason"]
    assert service.get_job(job_id).attempts == 2


def test_queued_job_reports_queued(app_settings, fake_engine, fake_http):
    service = _service(app_settings, fake_engine(), fake_http)
    app = create_app(replace(app_settings, worker_count=0), service)

    with TestClient(app) as client:
        job_id = client.post("/api/generate-thumbnail", json={"videoURL": VIDEO_URL}).json()["jobId"]
        status = client.get(f"/api/thumbnail-status/{job_id}").json()

    assert status == {
        "jobId": job_id,
        "state": "queued",
        "progress": "queued",
        "data": None,
        "failedReason": None,
    }


def test_unknown_job_is_404(app_settings, fake_engine, fake_http):
    app = create_app(replace(app_settings, worker_count=0), _service(app_settings, fake_engine(), fake_http))

    with TestClient(app) as client:
        resp = client.get("/api/thumbnail-status/does-not-exist")

    assert resp.status_code == 404


def test_malformed_url_is_400(app_settings, fake_engine, fake_http):
    app = create_app(replace(app_settings, worker_count=0), _service(app_settings, fake_engine(), fake_http))

    with TestClient(app) as client:
        resp = client.post("/api/generate-thumbnail", json={"videoURL": "not a url"})

    assert resp.status_code == 400


def test_health(app_settings, fake_engine, fake_http):
    app = create_app(replace(app_settings, worker_count=0), _service(app_settings, fake_engine(), fake_http))

    with TestClient(app) as client:
        assert client.get("/health").json() == {"status": "ok"}


def test_evicted_job_is_404(app_settings, fake_engine, fake_http):
    settings = replace(app_settings, worker_count=0)
    service = _service(settings, fake_engine(), fake_http)
    app = create_app(settings, service)

    with TestClient(app) as client:
        job_id = client.post("/api/generate-thumbnail", json={"videoURL": VIDEO_URL}).json()["jobId"]
        service.process_next(timeout=0)
        assert client.get(f"/api/thumbnail-status/{job_id}").json()["state"] == "completed"

        job = service.get_job(job_id)
        service.evict_expired_jobs(now=job.updated_at + timedelta(seconds=settings.job_retention_seconds + 1))
        resp = client.get(f"/api/thumbnail-status/{job_id}")

    assert resp.status_code == 404
