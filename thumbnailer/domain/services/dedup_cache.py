from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from thumbnailer.domain.ports import KeyValueCache

KEY_PREFIX = "thumbnail:url:"
DEFAULT_TTL_SECONDS = 24 * 60 * 60


def normalize_url(url: str) -> str:
    """Lowercase scheme and host, drop the fragment; path and query are kept verbatim."""
    parts = urlsplit(url.strip())
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, "")
    )


class DedupCache:
    """
    Maps a source URL to the job already created for it.

    Not authoritative: entries can expire or outlive their job, so callers
    must check a hit against the job store.
    """

    def __init__(self, cache: KeyValueCache, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key_for(url: str) -> str:
        return KEY_PREFIX + normalize_url(url)

    def get(self, url: str) -> Optional[str]:
        return self.cache.get(self.key_for(url))

    def put(self, url: str, job_id: str, ttl: Optional[int] = None) -> None:
        self.cache.set(self.key_for(url), job_id, ttl if ttl is not None else self.ttl_seconds)

    def forget(self, url: str) -> None:
        self.cache.delete(self.key_for(url))
