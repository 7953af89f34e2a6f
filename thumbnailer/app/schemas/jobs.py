from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from thumbnailer.domain.models import JobState


class _CamelModel(BaseModel):
    # Wire format is camelCase; Python code uses field names.
    model_config = ConfigDict(populate_by_name=True)


class ThumbnailRequest(_CamelModel):
    video_url: str = Field(alias="videoURL")


class JobCreatedResponse(_CamelModel):
    message: str = "Thumbnail generation started"
    job_id: str = Field(alias="jobId")
    status: JobState


class ThumbnailData(_CamelModel):
    gif_url: str = Field(alias="gifUrl")
    gif_path: str = Field(alias="gifPath")


class JobStatusResponse(_CamelModel):
    job_id: str = Field(alias="jobId")
    state: JobState
    progress: str
    data: Optional[ThumbnailData] = None
    failed_reason: Optional[str] = Field(default=None, alias="failedReason")
