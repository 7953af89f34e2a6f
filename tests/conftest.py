"""Shared fixtures: a fake video engine and a fake requests session."""

from pathlib import Path

import pytest
import requests
from requests.structures import CaseInsensitiveDict
from PIL import Image

from thumbnailer.config import Settings
from thumbnailer.domain.models import VideoInfo


class FakeEngine:
    """
    Stands in for ffmpeg. Frame extraction writes ``round(duration * fps)``
    small PNGs (one second's worth when duration is unknown); any other
    output gets a stub GIF header.
    """

    def __init__(self, duration=2.0, has_video=True):
        self.duration = duration
        self.has_video = has_video
        self.calls = []

    def probe(self, path):
        return VideoInfo(has_video_stream=self.has_video, duration=self.duration)

    def transcode(self, input_spec, output_path, filter_chain, *, input_options=None, output_options=None):
        output_path = Path(output_path)
        self.calls.append(
            {
                "input": input_spec,
                "output": output_path,
                "filters": list(filter_chain),
                "input_options": input_options or {},
                "output_options": output_options or {},
            }
        )
        if "%04d" in output_path.name:
            fps = float(filter_chain[0].split("=", 1)[1])
            seconds = self.duration if self.duration else 1.0
            count = max(1, round(seconds * fps))
            # Tint frames by source size so frames from different inputs differ.
            shade = len(Path(input_spec).read_bytes()) % 256
            for i in range(1, count + 1):
                img = Image.new("RGB", (8, 8), color=(shade, (i * 40) % 256, 0))
                img.save(output_path.parent / (output_path.name % i))
        else:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(b"GIF89a")


class FakeResponse:
    def __init__(self, headers=None, chunks=(), status=200):
        self.headers = CaseInsensitiveDict(headers or {})
        self.chunks = chunks
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def iter_content(self, chunk_size=1):
        for chunk in self.chunks:
            if isinstance(chunk, BaseException):
                raise chunk
            yield chunk

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeSession:
    def __init__(self, head_response, get_response=None):
        self.head_response = head_response
        self.get_response = get_response or FakeResponse()
        self.head_calls = []
        self.get_calls = []

    def head(self, url, **kwargs):
        self.head_calls.append(url)
        return self.head_response

    def get(self, url, **kwargs):
        self.get_calls.append(url)
        return self.get_response


@pytest.fixture
def fake_engine():
    return FakeEngine


@pytest.fixture
def fake_http():
    """Returns (FakeSession, FakeResponse) classes."""
    return FakeSession, FakeResponse


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=tmp_path / "data",
        gif_url="http://testserver/gifs",
        max_attempts=3,
        worker_count=0,
        worker_poll_seconds=0.05,
    )


@pytest.fixture
def make_image(tmp_path):
    def _make(name, color=(0, 0, 0), size=(16, 16), directory=None):
        target = (directory or tmp_path) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color=color).save(target)
        return target

    return _make
