from fastapi import APIRouter, Depends, HTTPException, Request

from thumbnailer.app.schemas.jobs import (
    JobCreatedResponse,
    JobStatusResponse,
    ThumbnailData,
    ThumbnailRequest,
)
from thumbnailer.domain.errors import InvalidUrlError
from thumbnailer.domain.models import JobState
from thumbnailer.domain.services.job_service import ThumbnailJobService

router = APIRouter(prefix="/api", tags=["thumbnails"])


def get_job_service(request: Request) -> ThumbnailJobService:
    return request.app.state.job_service


@router.post("/generate-thumbnail", response_model=JobCreatedResponse, status_code=202)
def generate_thumbnail(
    body: ThumbnailRequest,
    service: ThumbnailJobService = Depends(get_job_service),
):
    """
    Queue a thumbnail job for a video URL. Re-submitting a URL within the
    dedup window returns the existing job.
    """
    try:
        job = service.submit(body.video_url)
    except InvalidUrlError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return JobCreatedResponse(job_id=job.id, status=job.state)


@router.get("/thumbnail-status/{job_id}", response_model=JobStatusResponse)
def get_thumbnail_status(
    job_id: str,
    service: ThumbnailJobService = Depends(get_job_service),
):
    job = service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    data = None
    if job.state == JobState.COMPLETED and job.result:
        data = ThumbnailData(gif_url=job.result, gif_path=str(job.gif_path))

    return JobStatusResponse(
        job_id=job.id,
        state=job.state,
        progress=job.progress,
        data=data,
        failed_reason=job.failed_reason if job.state == JobState.FAILED else None,
    )
