"""Download and render collaborator payloads."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VideoSource:
    """Remote video location."""
    url: str
    title: Optional[str] = None


@dataclass(frozen=True)
class DownloadOptions:
    """Options for a download call."""
    output_dir: Optional[str] = None
    format: Optional[str] = None
    quality: Optional[str] = None
    subdir: Optional[str] = None  # Per-run folder under output_dir


@dataclass
class DownloadResult:
    """Result of a download call."""
    success: bool
    local_path: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class RenderRequest:
    """One clip render: a single kept range of the input video."""
    input_path: str
    start: float
    end: float
    output_path: str
    vertical: bool = False


@dataclass
class RenderResult:
    """Result of a render call."""
    success: bool
    output_path: Optional[str] = None
    duration_seconds: Optional[float] = None
    error: Optional[str] = None
