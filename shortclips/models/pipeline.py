"""Pipeline request/result containers."""
import enum
from dataclasses import dataclass, field
from typing import List, Optional

from shortclips.models.cut import VideoCut
from shortclips.models.media import VideoSource
from shortclips.models.transcript import TranscriptionOptions, TranscriptionResult


class Stage(str, enum.Enum):
    """Pipeline stage names used in timing telemetry."""
    RESOLVE = "resolve"
    TRANSCRIBE = "transcribe"
    SUGGEST = "suggest"
    RENDER = "render"


@dataclass(frozen=True)
class StageTiming:
    """Wall time spent in one executed stage."""
    stage: Stage
    elapsed_ms: int

    def to_dict(self) -> dict:
        return {"stage": self.stage.value, "elapsed_ms": self.elapsed_ms}


@dataclass(frozen=True)
class PipelineRequest:
    """Input of a pipeline run: a remote source or an already-local file."""
    source: Optional[VideoSource] = None
    local_path: Optional[str] = None
    download_if_remote: bool = False
    output_dir: Optional[str] = None
    max_clips: Optional[int] = None  # None = all normalized cuts
    convert_vertical: bool = False
    transcription_options: TranscriptionOptions = field(default_factory=TranscriptionOptions)


@dataclass(frozen=True)
class GeneratedClip:
    """A rendered clip and the cut it was made from."""
    cut: VideoCut
    output_path: str
    index: int  # 1-based, in render order

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "output_path": self.output_path,
            "cut": self.cut.to_dict(),
        }


@dataclass
class PipelineResult:
    """
    Outcome of a pipeline run.

    When ``success`` is False, ``cuts`` and ``generated_clips`` are empty and
    ``error`` says which stage ended the run; ``stage_timings`` holds one entry
    per stage executed before the stop.
    """
    success: bool
    resolved_input_path: Optional[str] = None
    transcript: Optional[TranscriptionResult] = None
    cuts: List[VideoCut] = field(default_factory=list)
    generated_clips: List[GeneratedClip] = field(default_factory=list)
    error: Optional[str] = None
    stage_timings: List[StageTiming] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)  # Non-fatal suggestion and render problems

    def to_dict(self, include_transcript: bool = False) -> dict:
        data = {
            "success": self.success,
            "resolved_input_path": self.resolved_input_path,
            "cuts": [c.to_dict() for c in self.cuts],
            "generated_clips": [c.to_dict() for c in self.generated_clips],
            "error": self.error,
            "stage_timings": [t.to_dict() for t in self.stage_timings],
            "warnings": list(self.warnings),
        }
        if include_transcript:
            data["transcript"] = self.transcript.to_dict() if self.transcript else None
        return data
