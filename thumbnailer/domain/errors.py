from pathlib import Path
from typing import Optional, Union


class ThumbnailError(Exception):
    """Base class for every error raised by the thumbnail pipeline."""


class FetchError(ThumbnailError):
    pass


class InvalidUrlError(FetchError):
    pass


class UnsupportedTypeError(FetchError):
    pass


class TooLargeError(FetchError):
    pass


class WriteFailedError(FetchError):
    pass


class ExtractError(ThumbnailError):
    pass


class MissingInputError(ExtractError):
    pass


class NotAVideoError(ExtractError):
    pass


class ScoreError(ThumbnailError):
    """A frame could not be decoded; names the offending file."""

    def __init__(self, file: Union[str, Path], cause: Optional[BaseException] = None) -> None:
        self.file = Path(file)
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to analyze image {self.file}{detail}")


class EngineError(ThumbnailError):
    """The external video engine (ffmpeg) failed."""


class AttemptsExhaustedError(ThumbnailError):
    def __init__(self, job_id: str, attempts: int, last_error: str) -> None:
        self.job_id = job_id
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"AttemptsExhausted after {attempts} attempt(s): {last_error}")
