"""API routes."""
import logging

from fastapi import APIRouter, HTTPException

from shortclips.api.schemas import (
    HealthResponse,
    RunCreate,
    RunCreatedResponse,
    RunStatusResponse,
)
from shortclips.utils.ffmpeg import check_ffmpeg_available, check_ffprobe_available
from shortclips.utils.ytdlp import check_ytdlp_available
from shortclips.workers.job_runner import job_runner

router = APIRouter()
logger = logging.getLogger(__name__)


# =============================================================================
# Health & System
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Check API health and dependencies."""
    ffmpeg_ok = check_ffmpeg_available()
    ffprobe_ok = check_ffprobe_available()
    ytdlp_ok = check_ytdlp_available()

    all_ok = ffmpeg_ok and ffprobe_ok and ytdlp_ok

    message = None
    if not all_ok:
        missing = []
        if not ffmpeg_ok:
            missing.append("ffmpeg")
        if not ffprobe_ok:
            missing.append("ffprobe")
        if not ytdlp_ok:
            missing.append("yt-dlp")
        message = f"Missing dependencies: {', '.join(missing)}"

    return HealthResponse(
        status="healthy" if all_ok else "degraded",
        ffmpeg_available=ffmpeg_ok,
        ffprobe_available=ffprobe_ok,
        ytdlp_available=ytdlp_ok,
        message=message,
    )


# =============================================================================
# Runs
# =============================================================================

@router.post("/runs", response_model=RunCreatedResponse, status_code=202)
async def start_run(data: RunCreate):
    """Start a clip pipeline run in the background."""
    try:
        job_id = await job_runner.start_job(data.to_pipeline_request(), data.suggestion_mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return RunCreatedResponse(job_id=job_id)


@router.get("/runs/{job_id}", response_model=RunStatusResponse)
async def get_run(job_id: str):
    """Get a run's job status and, once finished, its result."""
    status = job_runner.get_status(job_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Run not found")
    return status


@router.post("/runs/{job_id}/cancel")
async def cancel_run(job_id: str):
    """Cancel a running pipeline."""
    if not await job_runner.cancel_job(job_id):
        raise HTTPException(status_code=400, detail="Run is not running")
    return {"message": "Cancellation requested"}
