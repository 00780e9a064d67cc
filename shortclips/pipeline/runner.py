"""Clip pipeline runner.

Orchestrates one run: resolve input -> transcribe -> suggest -> normalize -> render.
"""
import asyncio
import logging
import os
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from shortclips.models.cut import VideoCut
from shortclips.models.job import VideoProcessingJob
from shortclips.models.media import DownloadOptions, RenderRequest
from shortclips.models.pipeline import (
    GeneratedClip,
    PipelineRequest,
    PipelineResult,
    Stage,
    StageTiming,
)
from shortclips.models.transcript import TranscriptionResult

from .collaborators import ClipRenderer, Downloader, SuggestionProvider, Transcriber
from .intervals import MAX_EXPANDED_SECONDS, MIN_VIABLE_SECONDS, normalize_cuts

logger = logging.getLogger(__name__)

DEFAULT_MIN_CLIP_SECONDS = 30.0


def clip_filename(index: int, cut: VideoCut) -> str:
    """Deterministic output name, e.g. ``clip_003_125s_170s.mp4``."""
    return f"clip_{index:03d}_{round(cut.start)}s_{round(cut.end)}s.mp4"


@contextmanager
def _timed_stage(stage: Stage, timings: List[StageTiming]) -> Iterator[None]:
    """Append the stage's wall time to timings, however the stage ends."""
    started = time.perf_counter()
    logger.info(f"Stage {stage.value} started")
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        timings.append(StageTiming(stage, elapsed_ms))
        logger.info(f"Stage {stage.value} finished in {elapsed_ms}ms")


def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise asyncio.CancelledError("Pipeline run cancelled")


class VideoClipPipeline:
    """
    Sequential clip pipeline over injected collaborators.

    Stages run strictly one after another. The instance keeps no per-run
    state, so one pipeline may serve several concurrent runs.

    Modeled failures (no usable input, failed transcription) return a result
    with ``success=False``. Suggestion and per-clip render failures never end
    the run. Any other exception marks the job failed and is re-raised.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        suggestions: SuggestionProvider,
        renderer: ClipRenderer,
        downloader: Optional[Downloader] = None,
        min_clip_seconds: float = DEFAULT_MIN_CLIP_SECONDS,
        max_expanded_clip_seconds: float = MAX_EXPANDED_SECONDS,
        min_viable_clip_seconds: float = MIN_VIABLE_SECONDS,
        default_max_clips: Optional[int] = None,
        default_output_dir: Optional[str] = None,
    ):
        self.transcriber = transcriber
        self.suggestions = suggestions
        self.renderer = renderer
        self.downloader = downloader
        self.min_clip_seconds = min_clip_seconds
        self.max_expanded_clip_seconds = max_expanded_clip_seconds
        self.min_viable_clip_seconds = min_viable_clip_seconds
        self.default_max_clips = default_max_clips
        self.default_output_dir = default_output_dir

    async def run(
        self,
        request: PipelineRequest,
        cancel_event: Optional[asyncio.Event] = None,
        job: Optional[VideoProcessingJob] = None,
    ) -> PipelineResult:
        """
        Run the full pipeline for one request.

        Args:
            request: What to process and how
            cancel_event: When set, the run stops before the next stage or clip
            job: Optional job record updated as the run progresses

        Returns:
            PipelineResult; success is False only for input or transcription failures

        Raises:
            asyncio.CancelledError: The run was cancelled
            Exception: Any unexpected error, after marking the job failed
        """
        source_url = request.source.url if request.source else None
        logger.info(
            f"Pipeline started. local_path={request.local_path}, source={source_url}, "
            f"download_if_remote={request.download_if_remote}"
        )
        if job:
            job.mark_processing()

        run_id = job.id if job else uuid.uuid4().hex
        started = time.perf_counter()
        try:
            result = await self._run_stages(request, cancel_event, run_id)
        except asyncio.CancelledError:
            logger.info("Pipeline cancelled")
            if job:
                job.mark_failed("Pipeline cancelled")
            raise
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            logger.exception(f"Pipeline failed after {elapsed_ms}ms: {e}")
            if job:
                job.mark_failed(str(e))
            raise

        if job:
            if result.success:
                job.mark_completed()
            else:
                job.mark_failed(result.error)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        timings = ", ".join(f"{t.stage.value}={t.elapsed_ms}ms" for t in result.stage_timings)
        logger.info(
            f"Pipeline finished. success={result.success}, total={elapsed_ms}ms, "
            f"cuts={len(result.cuts)}, clips={len(result.generated_clips)}. Stages: {timings}"
        )
        return result

    async def _run_stages(
        self,
        request: PipelineRequest,
        cancel_event: Optional[asyncio.Event],
        run_id: str,
    ) -> PipelineResult:
        timings: List[StageTiming] = []
        warnings: List[str] = []

        # Stage 1: resolve input
        _check_cancelled(cancel_event)
        with _timed_stage(Stage.RESOLVE, timings):
            local_path, error = await self._resolve_input(request, run_id)
        if local_path is None:
            logger.warning(f"Could not resolve input: {error}")
            return PipelineResult(success=False, error=error, stage_timings=timings)

        # Stage 2: transcribe
        _check_cancelled(cancel_event)
        with _timed_stage(Stage.TRANSCRIBE, timings):
            transcript = await self.transcriber.transcribe(local_path, request.transcription_options)
            logger.info(
                f"Transcription success={transcript.success}, segments={len(transcript.segments)}"
            )
        if not transcript.success:
            error = f"Transcription failed: {transcript.error or 'unknown error'}"
            logger.error(f"{error} (input={local_path})")
            return PipelineResult(
                success=False,
                resolved_input_path=local_path,
                error=error,
                stage_timings=timings,
            )

        # Stage 3: suggest
        _check_cancelled(cancel_event)
        with _timed_stage(Stage.SUGGEST, timings):
            raw_cuts = await self._suggest(transcript, cancel_event, warnings)

        # Stage 4: normalize
        cuts = normalize_cuts(
            raw_cuts,
            transcript.segments,
            self.min_clip_seconds,
            self.max_expanded_clip_seconds,
            self.min_viable_clip_seconds,
        )
        max_clips = request.max_clips if request.max_clips is not None else self.default_max_clips
        if max_clips is not None:
            cuts = cuts[:max(0, max_clips)]

        if not cuts:
            logger.info("No engaging moments detected; finishing with zero clips")
            return PipelineResult(
                success=True,
                resolved_input_path=local_path,
                transcript=transcript,
                stage_timings=timings,
                warnings=warnings,
            )

        # Stage 5: render
        _check_cancelled(cancel_event)
        output_dir = self._output_dir(request, local_path, run_id)
        with _timed_stage(Stage.RENDER, timings):
            clips = await self._render_clips(
                local_path, cuts, output_dir, request.convert_vertical, cancel_event, warnings
            )

        return PipelineResult(
            success=True,
            resolved_input_path=local_path,
            transcript=transcript,
            cuts=cuts,
            generated_clips=clips,
            stage_timings=timings,
            warnings=warnings,
        )

    async def _resolve_input(
        self, request: PipelineRequest, run_id: str
    ) -> Tuple[Optional[str], Optional[str]]:
        """Returns (local_path, None) or (None, error message). Downloads go to a per-run folder."""
        if request.source is not None and request.download_if_remote:
            if self.downloader is None:
                return None, "Download requested but no downloader is configured"

            options = DownloadOptions(
                output_dir=request.output_dir or self.default_output_dir,
                subdir=run_id,
            )
            result = await self.downloader.download(request.source, options)
            if result.success and result.local_path:
                logger.info(f"Downloaded {request.source.url} to {result.local_path}")
                return result.local_path, None
            return None, f"Download failed: {result.error or 'unknown error'}"

        if request.local_path and Path(request.local_path).is_file():
            logger.info(f"Using local video path {request.local_path}")
            return request.local_path, None

        if request.local_path:
            return None, f"Local video not found: {request.local_path}"
        return None, (
            "Could not resolve a local video path. Provide local_path, "
            "or a source with download_if_remote enabled"
        )

    async def _suggest(
        self,
        transcript: TranscriptionResult,
        cancel_event: Optional[asyncio.Event],
        warnings: List[str],
    ) -> List[VideoCut]:
        try:
            if transcript.segments:
                cuts = await self.suggestions.suggest_from_segments(
                    list(transcript.segments), cancel_event, warnings
                )
            else:
                cuts = await self.suggestions.suggest_from_text(
                    transcript.full_text or "", cancel_event, warnings
                )
        except Exception as e:
            logger.error(f"Suggestion provider failed; continuing with no cuts: {e}", exc_info=True)
            warnings.append(f"Suggestion provider failed: {e}")
            return []

        logger.info(f"Suggestion provider returned {len(cuts)} raw cuts")
        return cuts

    def _output_dir(self, request: PipelineRequest, local_path: str, run_id: str) -> Path:
        """Explicit request dir as-is; the shared default dir gets a per-run folder."""
        if request.output_dir:
            path = Path(request.output_dir)
        elif self.default_output_dir:
            path = Path(self.default_output_dir) / run_id
        else:
            path = Path(os.path.dirname(local_path) or ".")
        path.mkdir(parents=True, exist_ok=True)
        return path

    async def _render_clips(
        self,
        local_path: str,
        cuts: List[VideoCut],
        output_dir: Path,
        vertical: bool,
        cancel_event: Optional[asyncio.Event],
        warnings: List[str],
    ) -> List[GeneratedClip]:
        logger.info(f"Rendering {len(cuts)} clips to {output_dir} (vertical={vertical})")
        clips: List[GeneratedClip] = []

        for index, cut in enumerate(cuts, start=1):
            _check_cancelled(cancel_event)

            render_request = RenderRequest(
                input_path=local_path,
                start=cut.start,
                end=cut.end,
                output_path=str(output_dir / clip_filename(index, cut)),
                vertical=vertical,
            )
            clip_started = time.perf_counter()
            try:
                result = await self.renderer.render(render_request)
            except Exception as e:
                logger.error(
                    f"Clip {index} ({cut.start:.1f}s-{cut.end:.1f}s) render raised: {e}",
                    exc_info=True,
                )
                warnings.append(f"Clip {index} render raised: {e}")
                continue

            clip_ms = int((time.perf_counter() - clip_started) * 1000)
            if result.success and result.output_path:
                clips.append(GeneratedClip(cut=cut, output_path=result.output_path, index=index))
                logger.debug(f"Clip {index} rendered in {clip_ms}ms: {result.output_path}")
            else:
                logger.warning(f"Clip {index} render failed after {clip_ms}ms: {result.error}")
                warnings.append(f"Clip {index} render failed: {result.error or 'unknown error'}")

        return clips
