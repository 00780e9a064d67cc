"""Narrow interfaces of the services the pipeline delegates to.

Any object with matching async methods can be plugged in; the concrete
implementations live in ``shortclips.utils`` and ``shortclips.services``.
"""
import asyncio
from typing import List, Optional, Protocol

from shortclips.models.cut import VideoCut
from shortclips.models.media import (
    DownloadOptions,
    DownloadResult,
    RenderRequest,
    RenderResult,
    VideoSource,
)
from shortclips.models.transcript import (
    TranscriptSegment,
    TranscriptionOptions,
    TranscriptionResult,
)


class Downloader(Protocol):
    async def download(self, source: VideoSource, options: DownloadOptions) -> DownloadResult:
        ...


class Transcriber(Protocol):
    async def transcribe(self, local_path: str, options: TranscriptionOptions) -> TranscriptionResult:
        ...


class ClipRenderer(Protocol):
    async def render(self, request: RenderRequest) -> RenderResult:
        ...


class TextCompleter(Protocol):
    """Raw completion-service call. Failures are raised, not returned."""

    async def complete(self, prompt: str) -> str:
        ...


class SuggestionProvider(Protocol):
    """
    Produces raw, unvalidated cuts from a transcript.

    Non-fatal problems are appended to ``warnings`` when a list is given.
    A set ``cancel_event`` raises ``asyncio.CancelledError`` before the next
    completion call.
    """

    async def suggest_from_segments(
        self,
        segments: List[TranscriptSegment],
        cancel_event: Optional[asyncio.Event] = None,
        warnings: Optional[List[str]] = None,
    ) -> List[VideoCut]:
        ...

    async def suggest_from_text(
        self,
        text: str,
        cancel_event: Optional[asyncio.Event] = None,
        warnings: Optional[List[str]] = None,
    ) -> List[VideoCut]:
        ...
