"""Transcription data containers."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class TranscriptSegment:
    """A timed piece of transcript text."""
    start: float
    end: float
    text: str

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end, "text": self.text}


@dataclass(frozen=True)
class TranscriptionOptions:
    """Options passed to the transcription collaborator."""
    language: Optional[str] = None  # ISO code; None = auto-detect
    include_timestamps: bool = True


@dataclass
class TranscriptionResult:
    """Result of a transcription call."""
    success: bool
    segments: List[TranscriptSegment] = field(default_factory=list)
    full_text: Optional[str] = None
    detected_language: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "segments": [s.to_dict() for s in self.segments],
            "full_text": self.full_text,
            "detected_language": self.detected_language,
            "error": self.error,
        }
