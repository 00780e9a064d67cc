"""Suggestion providers: direct completion calls and primary/secondary fallback."""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from shortclips.models.cut import VideoCut
from shortclips.models.transcript import TranscriptSegment
from shortclips.pipeline.collaborators import SuggestionProvider, TextCompleter

from .chunker import chunk_segments
from .parser import parse_cuts
from .prompts import build_user_prompt, format_segments

logger = logging.getLogger(__name__)


class SuggestionError(RuntimeError):
    """Raised by a strict provider when no completion call succeeded."""


def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise asyncio.CancelledError("Suggestion cancelled")


class CompletionSuggestionProvider:
    """
    Direct variant: formats the transcript, calls the completion service and
    parses the reply.

    Long transcripts are split with ``chunk_segments`` and each chunk is sent
    separately; the cuts of all chunks are concatenated and sorted by start.
    Every completion call is retried ``retry_count`` times with a fixed
    ``retry_delay`` (seconds) between attempts. A call that still fails
    contributes no cuts and is appended to the caller's ``warnings`` list.

    With ``strict=True`` the provider raises ``SuggestionError`` when no call
    succeeded at all, so it can sit behind a ``FallbackSuggestionProvider``.
    Cancellation is never retried; a set ``cancel_event`` stops the provider
    before its next chunk or attempt.

    The instance holds no per-call state and may serve concurrent runs.
    """

    def __init__(
        self,
        completer: TextCompleter,
        max_chunk_chars: int = 12000,
        retry_count: int = 2,
        retry_delay: float = 1.0,
        strict: bool = False,
        name: Optional[str] = None,
    ):
        self.completer = completer
        self.max_chunk_chars = max_chunk_chars
        self.retry_count = max(0, retry_count)
        self.retry_delay = retry_delay
        self.strict = strict
        self.name = name or type(completer).__name__

    def __repr__(self):
        return f"CompletionSuggestionProvider({self.name})"

    async def suggest_from_segments(
        self,
        segments: List[TranscriptSegment],
        cancel_event: Optional[asyncio.Event] = None,
        warnings: Optional[List[str]] = None,
    ) -> List[VideoCut]:
        if not segments:
            return []

        chunks = chunk_segments(segments, self.max_chunk_chars)
        if len(chunks) > 1:
            logger.info(f"[{self.name}] Transcript split into {len(chunks)} chunks")
        texts = [format_segments(chunk) for chunk in chunks]
        return await self._suggest_all(texts, cancel_event, warnings)

    async def suggest_from_text(
        self,
        text: str,
        cancel_event: Optional[asyncio.Event] = None,
        warnings: Optional[List[str]] = None,
    ) -> List[VideoCut]:
        if not text or not text.strip():
            return []
        return await self._suggest_all([text], cancel_event, warnings)

    async def _suggest_all(
        self,
        texts: List[str],
        cancel_event: Optional[asyncio.Event],
        warnings: Optional[List[str]],
    ) -> List[VideoCut]:
        cuts: List[VideoCut] = []
        succeeded = 0

        for index, text in enumerate(texts, start=1):
            _check_cancelled(cancel_event)
            label = f"chunk {index}/{len(texts)}" if len(texts) > 1 else "transcript"
            chunk_cuts = await self._complete_with_retry(text, label, cancel_event, warnings)
            if chunk_cuts is None:
                continue
            succeeded += 1
            cuts.extend(chunk_cuts)

        if succeeded == 0 and self.strict:
            raise SuggestionError(f"{self.name}: all completion attempts failed")

        cuts.sort(key=lambda c: c.start)
        return cuts

    async def _complete_with_retry(
        self,
        text: str,
        label: str,
        cancel_event: Optional[asyncio.Event],
        warnings: Optional[List[str]],
    ) -> Optional[List[VideoCut]]:
        """Returns parsed cuts, or None when every attempt failed."""
        prompt = build_user_prompt(text)
        max_attempts = self.retry_count + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            _check_cancelled(cancel_event)
            try:
                reply = await self.completer.complete(prompt)
            except Exception as e:
                last_error = e
                logger.warning(
                    f"[{self.name}] {label}: attempt {attempt}/{max_attempts} failed: {e}"
                )
                if attempt < max_attempts:
                    await asyncio.sleep(self.retry_delay)
                continue

            cuts = parse_cuts(reply)
            if not cuts and reply and reply.strip():
                logger.warning(f"[{self.name}] {label}: reply contained no valid cuts")
            return cuts

        message = f"{self.name} {label}: all {max_attempts} attempts failed: {last_error}"
        if warnings is not None:
            warnings.append(message)
        logger.error(f"{message}; returning no cuts")
        return None


class FallbackSuggestionProvider:
    """
    Tries ``primary`` and, if it raises, ``secondary``.

    The primary's failure is logged and appended to the caller's
    ``warnings`` list. Cancellation (``asyncio.CancelledError``) is not an
    ``Exception`` and propagates without falling back.
    """

    def __init__(self, primary: SuggestionProvider, secondary: SuggestionProvider):
        self.primary = primary
        self.secondary = secondary

    def __repr__(self):
        return f"FallbackSuggestionProvider({self.primary!r} -> {self.secondary!r})"

    async def suggest_from_segments(
        self,
        segments: List[TranscriptSegment],
        cancel_event: Optional[asyncio.Event] = None,
        warnings: Optional[List[str]] = None,
    ) -> List[VideoCut]:
        return await self._with_fallback(
            lambda p, w: p.suggest_from_segments(segments, cancel_event, w), warnings
        )

    async def suggest_from_text(
        self,
        text: str,
        cancel_event: Optional[asyncio.Event] = None,
        warnings: Optional[List[str]] = None,
    ) -> List[VideoCut]:
        return await self._with_fallback(
            lambda p, w: p.suggest_from_text(text, cancel_event, w), warnings
        )

    async def _with_fallback(
        self,
        invoke: Callable[[SuggestionProvider, Optional[List[str]]], Awaitable[List[VideoCut]]],
        warnings: Optional[List[str]],
    ) -> List[VideoCut]:
        # Primary notes are only kept when the primary's result is used
        primary_warnings: List[str] = []
        try:
            cuts = await invoke(self.primary, primary_warnings)
        except Exception as e:
            message = f"Primary provider {self.primary!r} failed; using {self.secondary!r}: {e}"
            logger.warning(message, exc_info=True)
            if warnings is not None:
                warnings.append(message)
            return await invoke(self.secondary, warnings)

        if warnings is not None:
            warnings.extend(primary_warnings)
        return cuts
