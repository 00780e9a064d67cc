"""Pydantic schemas for API requests and responses."""
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from shortclips.config import SuggestionMode, settings
from shortclips.models.media import VideoSource
from shortclips.models.pipeline import PipelineRequest
from shortclips.models.transcript import TranscriptionOptions


# =============================================================================
# Run Schemas
# =============================================================================

class RunCreate(BaseModel):
    """Request to start a pipeline run."""
    video_url: Optional[str] = Field(None, description="Remote video URL (downloaded before processing)")
    local_path: Optional[str] = Field(None, description="Path to a video file already on disk")
    output_dir: Optional[str] = Field(None, description="Where clips are written (defaults to the video's folder)")
    max_clips: Optional[int] = Field(None, ge=1, description="Maximum number of clips to render")
    convert_vertical: Optional[bool] = Field(None, description="Letterbox clips into a 9:16 frame (server default if omitted)")
    language: Optional[str] = Field(None, description="Transcript language (auto-detect if omitted)")
    suggestion_mode: Optional[SuggestionMode] = Field(
        None, description="Suggestion service routing (server default if omitted)"
    )

    @model_validator(mode="after")
    def check_input(self):
        if not self.video_url and not self.local_path:
            raise ValueError("Provide video_url or local_path")
        return self

    def to_pipeline_request(self) -> PipelineRequest:
        """A local file wins over a URL; the URL is only downloaded when no local path is given."""
        use_url = not self.local_path and bool(self.video_url)
        return PipelineRequest(
            source=VideoSource(url=self.video_url) if use_url else None,
            local_path=self.local_path,
            download_if_remote=use_url,
            output_dir=self.output_dir,
            max_clips=self.max_clips,
            convert_vertical=(
                settings.convert_to_vertical if self.convert_vertical is None else self.convert_vertical
            ),
            transcription_options=TranscriptionOptions(language=self.language, include_timestamps=True),
        )


class RunCreatedResponse(BaseModel):
    """Response after starting a run."""
    job_id: str


class JobResponse(BaseModel):
    """Job snapshot."""
    id: str
    status: str
    created_at: str
    updated_at: Optional[str]
    error: Optional[str]


class CutResponse(BaseModel):
    """A normalized cut."""
    start: float
    end: float
    duration: float
    description: Optional[str] = None


class GeneratedClipResponse(BaseModel):
    """A rendered clip."""
    index: int
    output_path: str
    cut: CutResponse


class StageTimingResponse(BaseModel):
    """Elapsed time of one stage."""
    stage: str
    elapsed_ms: int


class PipelineResultResponse(BaseModel):
    """Pipeline result."""
    success: bool
    resolved_input_path: Optional[str]
    cuts: List[CutResponse]
    generated_clips: List[GeneratedClipResponse]
    error: Optional[str]
    stage_timings: List[StageTimingResponse]
    warnings: List[str] = []


class RunStatusResponse(BaseModel):
    """Status of a run."""
    job: JobResponse
    running: bool
    result: Optional[PipelineResultResponse] = None


# =============================================================================
# System Schemas
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    ffmpeg_available: bool
    ffprobe_available: bool
    ytdlp_available: bool
    message: Optional[str] = None
