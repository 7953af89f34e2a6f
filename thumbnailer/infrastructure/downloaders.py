"""
Download source videos from remote URLs.

Type and size policy is checked twice: once against the HEAD response
headers, and again while streaming, because a server may omit or lie
about Content-Length.
"""
import logging
import mimetypes
from pathlib import Path
from typing import Iterable, Optional, Tuple
from urllib.parse import urlparse

import requests

from thumbnailer.config import DEFAULT_ALLOWED_TYPES
from thumbnailer.domain.errors import (
    FetchError,
    InvalidUrlError,
    TooLargeError,
    UnsupportedTypeError,
    WriteFailedError,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MB per read

# Not every platform's mimetypes table knows these.
mimetypes.add_type("video/webm", ".webm")
mimetypes.add_type("video/ogg", ".ogv")
mimetypes.add_type("video/quicktime", ".mov")

# Content-Types that say nothing about the payload. Only these (or no
# header at all) defer to the URL extension.
GENERIC_TYPES = frozenset({"application/octet-stream", "binary/octet-stream"})


def validate_url(url: str) -> str:
    """Return the stripped URL, or raise InvalidUrlError if it isn't an http(s) URI."""
    candidate = (url or "").strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as e:
        raise InvalidUrlError(f"Invalid URL format: {url!r}") from e
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        raise InvalidUrlError(f"Invalid URL format: {url!r}")
    return candidate


def _declared_type(headers) -> Optional[str]:
    raw = headers.get("Content-Type")
    if not raw:
        return None
    return raw.split(";", 1)[0].strip().lower() or None


def _declared_length(headers) -> Optional[int]:
    raw = headers.get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _remove_partial(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove partial download %s: %s", path, e)


class VideoFetcher:
    def __init__(
        self,
        *,
        allowed_types: Iterable[str] = DEFAULT_ALLOWED_TYPES,
        max_bytes: int = 100 * 1024 * 1024,
        timeout: float = 120.0,
        chunk_size: int = CHUNK_SIZE,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.allowed_types: Tuple[str, ...] = tuple(t.lower() for t in allowed_types)
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = session or requests.Session()

    def _max_mb(self) -> str:
        return f"{self.max_bytes / (1024 * 1024):g}MB"

    def check_metadata(self, url: str) -> Optional[int]:
        """
        HEAD the URL and enforce the type allow-list and declared size.
        Returns the declared length (None when the server didn't send one).
        """
        try:
            resp = self.session.head(url, timeout=self.timeout, allow_redirects=True)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(f"Metadata probe failed for {url}: {e}") from e

        declared = _declared_type(resp.headers)
        if declared is None or declared in GENERIC_TYPES:
            guessed, _ = mimetypes.guess_type(urlparse(url).path)
            if guessed is None or guessed.lower() not in self.allowed_types:
                raise UnsupportedTypeError(
                    f"Invalid file type {declared or guessed or 'unknown'!r}. "
                    f"Only {', '.join(self.allowed_types)} are allowed"
                )
        elif declared not in self.allowed_types:
            raise UnsupportedTypeError(
                f"Invalid file type {declared!r}. "
                f"Only {', '.join(self.allowed_types)} are allowed"
            )

        length = _declared_length(resp.headers)
        if length is not None and length > self.max_bytes:
            raise TooLargeError(f"File size exceeds maximum allowed size of {self._max_mb()}")
        return length

    def fetch(self, url: str, destination: Path) -> Path:
        """
        Validate ``url`` and stream it to ``destination``.

        Nothing is left on disk unless the whole body was written.
        """
        url = validate_url(url)
        destination = Path(destination)
        self.check_metadata(url)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteFailedError(f"Cannot create {destination.parent}: {e}") from e

        written = 0
        try:
            with self.session.get(url, stream=True, timeout=self.timeout, allow_redirects=True) as resp:
                resp.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=self.chunk_size):
                        if not chunk:
                            continue
                        written += len(chunk)
                        if written > self.max_bytes:
                            raise TooLargeError(
                                f"Download exceeded maximum allowed size of {self._max_mb()}"
                            )
                        f.write(chunk)
        except TooLargeError:
            _remove_partial(destination)
            raise
        except requests.RequestException as e:
            _remove_partial(destination)
            raise FetchError(f"Download failed for {url}: {e}") from e
        except OSError as e:
            _remove_partial(destination)
            raise WriteFailedError(f"Error writing file {destination}: {e}") from e

        logger.info("Downloaded %s (%d bytes) to %s", url, written, destination)
        return destination
