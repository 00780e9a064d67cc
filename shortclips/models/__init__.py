# Models module
from shortclips.models.cut import VideoCut
from shortclips.models.job import JobSnapshot, JobStatus, VideoProcessingJob
from shortclips.models.media import (
    DownloadOptions,
    DownloadResult,
    RenderRequest,
    RenderResult,
    VideoSource,
)
from shortclips.models.pipeline import (
    GeneratedClip,
    PipelineRequest,
    PipelineResult,
    Stage,
    StageTiming,
)
from shortclips.models.transcript import (
    TranscriptSegment,
    TranscriptionOptions,
    TranscriptionResult,
)

__all__ = [
    "VideoCut",
    "JobSnapshot",
    "JobStatus",
    "VideoProcessingJob",
    "DownloadOptions",
    "DownloadResult",
    "RenderRequest",
    "RenderResult",
    "VideoSource",
    "GeneratedClip",
    "PipelineRequest",
    "PipelineResult",
    "Stage",
    "StageTiming",
    "TranscriptSegment",
    "TranscriptionOptions",
    "TranscriptionResult",
]
