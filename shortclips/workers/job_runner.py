"""Background pipeline runner using asyncio."""
import asyncio
import logging
from typing import Callable, Dict, Optional

from shortclips.config import SuggestionMode, settings
from shortclips.models.job import VideoProcessingJob
from shortclips.models.pipeline import PipelineRequest, PipelineResult
from shortclips.pipeline.collaborators import SuggestionProvider
from shortclips.pipeline.runner import VideoClipPipeline
from shortclips.services.transcription import WhisperApiTranscriber
from shortclips.suggestions.clients import OllamaCompleter, OpenAIChatCompleter
from shortclips.suggestions.providers import (
    CompletionSuggestionProvider,
    FallbackSuggestionProvider,
)
from shortclips.utils.ffmpeg import FfmpegClipRenderer
from shortclips.utils.ytdlp import SourceRoutingDownloader

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[Optional[SuggestionMode]], VideoClipPipeline]


def _require_openai_key() -> str:
    if not settings.openai_api_key:
        raise ValueError("Set SHORTCLIPS_OPENAI_API_KEY to use the OpenAI-compatible API")
    return settings.openai_api_key


def build_suggestion_provider(mode: SuggestionMode) -> SuggestionProvider:
    """Build the provider chain for a suggestion mode."""
    common = dict(
        max_chunk_chars=settings.suggestion_chunk_max_chars,
        retry_count=settings.suggestion_retry_count,
        retry_delay=settings.suggestion_retry_delay_ms / 1000,
    )

    def ollama(strict: bool = False) -> CompletionSuggestionProvider:
        completer = OllamaCompleter(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            timeout=settings.suggestion_http_timeout_seconds,
        )
        return CompletionSuggestionProvider(completer, strict=strict, name="ollama", **common)

    def openai() -> CompletionSuggestionProvider:
        completer = OpenAIChatCompleter(
            api_key=_require_openai_key(),
            model=settings.openai_model,
            base_url=settings.openai_api_base,
            timeout=settings.suggestion_http_timeout_seconds,
        )
        return CompletionSuggestionProvider(completer, name="openai", **common)

    if mode == "ollama":
        return ollama()
    if mode == "ollama_then_openai":
        # Strict primary so exhausted retries route to the secondary
        return FallbackSuggestionProvider(ollama(strict=True), openai())
    if mode == "openai":
        return openai()
    raise ValueError(f"Unknown suggestion mode: {mode}")


def build_pipeline(mode: Optional[SuggestionMode] = None) -> VideoClipPipeline:
    """Wire settings into a pipeline with the concrete collaborators."""
    transcriber = WhisperApiTranscriber(
        api_key=_require_openai_key(),
        base_url=settings.openai_api_base,
        model=settings.transcription_model,
        timeout=settings.transcription_http_timeout_seconds,
    )
    return VideoClipPipeline(
        transcriber=transcriber,
        suggestions=build_suggestion_provider(mode or settings.suggestion_mode),
        renderer=FfmpegClipRenderer(),
        downloader=SourceRoutingDownloader(),
        min_clip_seconds=settings.min_clip_seconds,
        max_expanded_clip_seconds=settings.max_expanded_clip_seconds,
        min_viable_clip_seconds=settings.min_viable_clip_seconds,
        default_max_clips=settings.max_clips,
        default_output_dir=str(settings.output_dir) if settings.output_dir else None,
    )


class PipelineJobRunner:
    """
    Runs pipeline jobs as background asyncio tasks.

    Each run has exactly one writer (its own task) for its job record and
    result; status readers only ever receive snapshot copies.
    """

    def __init__(self, pipeline_factory: PipelineFactory = build_pipeline):
        self._pipeline_factory = pipeline_factory
        self._jobs: Dict[str, VideoProcessingJob] = {}
        self._results: Dict[str, PipelineResult] = {}
        self._running: Dict[str, asyncio.Task] = {}
        self._cancel_events: Dict[str, asyncio.Event] = {}

    async def start_job(
        self,
        request: PipelineRequest,
        mode: Optional[SuggestionMode] = None,
    ) -> str:
        """
        Start a pipeline run in the background.

        Args:
            request: Pipeline request
            mode: Suggestion mode override (settings default if None)

        Returns:
            ID of the created job

        Raises:
            ValueError: If the pipeline cannot be configured
        """
        pipeline = self._pipeline_factory(mode)
        job = VideoProcessingJob()
        cancel_event = asyncio.Event()

        self._jobs[job.id] = job
        self._cancel_events[job.id] = cancel_event
        self._running[job.id] = asyncio.create_task(
            self._run_job(job, pipeline, request, cancel_event)
        )
        logger.info(f"Job {job.id} started")
        return job.id

    async def _run_job(
        self,
        job: VideoProcessingJob,
        pipeline: VideoClipPipeline,
        request: PipelineRequest,
        cancel_event: asyncio.Event,
    ):
        """Run one pipeline; the pipeline itself drives the job transitions."""
        try:
            result = await pipeline.run(request, cancel_event=cancel_event, job=job)
            self._results[job.id] = result
            if result.success:
                logger.info(f"Job {job.id} completed with {len(result.generated_clips)} clips")
            else:
                logger.warning(f"Job {job.id} failed: {result.error}")

        except asyncio.CancelledError:
            job.mark_failed("Pipeline cancelled")
            logger.info(f"Job {job.id} was cancelled")

        except Exception as e:
            logger.error(f"Job {job.id} raised: {e}", exc_info=True)

        finally:
            self._running.pop(job.id, None)
            self._cancel_events.pop(job.id, None)

    def get_status(self, job_id: str) -> Optional[dict]:
        """Snapshot of a job and, once finished, its result."""
        job = self._jobs.get(job_id)
        if job is None:
            return None
        result = self._results.get(job_id)
        return {
            "job": job.snapshot().to_dict(),
            "running": job_id in self._running,
            "result": result.to_dict() if result else None,
        }

    def get_result(self, job_id: str) -> Optional[PipelineResult]:
        return self._results.get(job_id)

    async def cancel_job(self, job_id: str) -> bool:
        """Ask a running job to stop before its next stage or clip."""
        event = self._cancel_events.get(job_id)
        if event is None:
            return False
        event.set()
        return True

    def is_job_running(self, job_id: str) -> bool:
        """Check if a job is currently running."""
        return job_id in self._running

    async def shutdown(self):
        """Cancel all running jobs."""
        for task in list(self._running.values()):
            task.cancel()

        if self._running:
            await asyncio.gather(*self._running.values(), return_exceptions=True)

        self._running.clear()
        self._cancel_events.clear()


# Global job runner instance
job_runner = PipelineJobRunner()
