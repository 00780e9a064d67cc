"""Tests for suggestion providers."""
import asyncio

import pytest

from shortclips.models.cut import VideoCut
from shortclips.models.transcript import TranscriptSegment
from shortclips.suggestions import providers
from shortclips.suggestions.providers import (
    CompletionSuggestionProvider,
    FallbackSuggestionProvider,
    SuggestionError,
)


class _FakeCompleter:
    """Replays scripted replies; exceptions in the script are raised."""

    def __init__(self, *script):
        self._script = list(script)
        self.prompts = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        item = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(item, BaseException):
            raise item
        return item


class _FakeProvider:
    def __init__(self, cuts=None, error=None, notes=()):
        self._cuts = cuts or []
        self._error = error
        self._notes = list(notes)
        self.calls = 0
        self.cancel_events = []

    async def suggest_from_segments(self, segments, cancel_event=None, warnings=None):
        return await self._respond(cancel_event, warnings)

    async def suggest_from_text(self, text, cancel_event=None, warnings=None):
        return await self._respond(cancel_event, warnings)

    async def _respond(self, cancel_event, warnings):
        self.calls += 1
        self.cancel_events.append(cancel_event)
        if warnings is not None:
            warnings.extend(self._notes)
        if self._error is not None:
            raise self._error
        return list(self._cuts)


def _reply(*spans):
    items = ", ".join(f'{{"start": {s}, "end": {e}}}' for s, e in spans)
    return f'{{"cuts": [{items}]}}'


@pytest.fixture
def segments():
    return [TranscriptSegment(i * 10.0, (i + 1) * 10.0, f"line {i}") for i in range(6)]


@pytest.fixture
def sleeps(monkeypatch):
    """Record retry delays instead of sleeping."""
    recorded = []

    async def _fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(providers.asyncio, "sleep", _fake_sleep)
    return recorded


class TestCompletionSuggestionProvider:
    """Tests for the direct provider."""

    @pytest.mark.asyncio
    async def test_single_chunk(self, segments):
        completer = _FakeCompleter(_reply((0, 40)))
        provider = CompletionSuggestionProvider(completer)

        cuts = await provider.suggest_from_segments(segments)

        assert cuts == [VideoCut(0.0, 40.0)]
        assert len(completer.prompts) == 1
        assert "[0.0s - 10.0s] line 0" in completer.prompts[0]
        assert "[50.0s - 60.0s] line 5" in completer.prompts[0]

    @pytest.mark.asyncio
    async def test_plain_text(self):
        completer = _FakeCompleter(_reply((5, 50)))
        provider = CompletionSuggestionProvider(completer)

        cuts = await provider.suggest_from_text("just words")

        assert cuts == [VideoCut(5.0, 50.0)]
        assert completer.prompts[0].endswith("just words")

    @pytest.mark.asyncio
    async def test_empty_inputs_skip_the_call(self):
        completer = _FakeCompleter(_reply((0, 40)))
        provider = CompletionSuggestionProvider(completer)

        assert await provider.suggest_from_segments([]) == []
        assert await provider.suggest_from_text("   ") == []
        assert completer.prompts == []

    @pytest.mark.asyncio
    async def test_chunks_are_concatenated_and_sorted(self, segments):
        completer = _FakeCompleter(_reply((200, 240)), _reply((10, 50), (300, 340)), _reply((100, 140)))
        # Each segment costs 6 + 24 = 30 chars; 60 fits two per chunk
        provider = CompletionSuggestionProvider(completer, max_chunk_chars=60)

        cuts = await provider.suggest_from_segments(segments)

        assert len(completer.prompts) == 3
        assert [c.start for c in cuts] == [10.0, 100.0, 200.0, 300.0]

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, segments, sleeps):
        completer = _FakeCompleter(RuntimeError("boom"), RuntimeError("boom"), _reply((0, 40)))
        provider = CompletionSuggestionProvider(completer, retry_count=2, retry_delay=0.5)

        warnings = []
        cuts = await provider.suggest_from_segments(segments, warnings=warnings)

        assert cuts == [VideoCut(0.0, 40.0)]
        assert len(completer.prompts) == 3
        assert sleeps == [0.5, 0.5]
        assert warnings == []

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_empty(self, segments, sleeps):
        completer = _FakeCompleter(RuntimeError("down"))
        provider = CompletionSuggestionProvider(completer, retry_count=2, retry_delay=1.0)

        warnings = []
        cuts = await provider.suggest_from_segments(segments, warnings=warnings)

        assert cuts == []
        assert len(completer.prompts) == 3
        # No delay after the last attempt
        assert sleeps == [1.0, 1.0]
        assert len(warnings) == 1
        assert "transcript" in warnings[0]
        assert "down" in warnings[0]

    @pytest.mark.asyncio
    async def test_failed_chunk_is_omitted(self, segments, sleeps):
        completer = _FakeCompleter(_reply((0, 40)), RuntimeError("flaky"), _reply((40, 80)))
        provider = CompletionSuggestionProvider(completer, max_chunk_chars=60, retry_count=0)

        warnings = []
        cuts = await provider.suggest_from_segments(segments, warnings=warnings)

        assert [c.start for c in cuts] == [0.0, 40.0]
        assert len(warnings) == 1
        assert "chunk 2/3" in warnings[0]

    @pytest.mark.asyncio
    async def test_unparseable_reply_is_not_retried(self, segments, sleeps):
        completer = _FakeCompleter("Sorry, I can't help with that.")
        provider = CompletionSuggestionProvider(completer, retry_count=3)

        warnings = []
        assert await provider.suggest_from_segments(segments, warnings=warnings) == []
        assert len(completer.prompts) == 1
        assert warnings == []

    @pytest.mark.asyncio
    async def test_strict_raises_when_every_call_failed(self, segments, sleeps):
        provider = CompletionSuggestionProvider(
            _FakeCompleter(RuntimeError("down")), retry_count=1, strict=True
        )
        with pytest.raises(SuggestionError):
            await provider.suggest_from_segments(segments)

    @pytest.mark.asyncio
    async def test_strict_tolerates_partial_failure(self, segments, sleeps):
        completer = _FakeCompleter(RuntimeError("flaky"), _reply((20, 60)))
        provider = CompletionSuggestionProvider(
            completer, max_chunk_chars=90, retry_count=0, strict=True
        )

        assert await provider.suggest_from_segments(segments) == [VideoCut(20.0, 60.0)]

    @pytest.mark.asyncio
    async def test_cancellation_is_not_retried(self, segments, sleeps):
        completer = _FakeCompleter(asyncio.CancelledError())
        provider = CompletionSuggestionProvider(completer, retry_count=3)

        with pytest.raises(asyncio.CancelledError):
            await provider.suggest_from_segments(segments)
        assert len(completer.prompts) == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_cancel_event_stops_before_next_chunk(self, segments):
        cancel = asyncio.Event()

        class _CancellingCompleter(_FakeCompleter):
            async def complete(self, prompt):
                cancel.set()
                return await super().complete(prompt)

        completer = _CancellingCompleter(_reply((0, 40)))
        # Two segments per chunk, three chunks
        provider = CompletionSuggestionProvider(completer, max_chunk_chars=80)

        with pytest.raises(asyncio.CancelledError):
            await provider.suggest_from_segments(segments, cancel_event=cancel)
        assert len(completer.prompts) == 1

    @pytest.mark.asyncio
    async def test_cancel_event_stops_retries(self, segments, sleeps):
        cancel = asyncio.Event()

        class _CancellingCompleter(_FakeCompleter):
            async def complete(self, prompt):
                cancel.set()
                return await super().complete(prompt)

        completer = _CancellingCompleter(RuntimeError("timeout"))
        provider = CompletionSuggestionProvider(completer, retry_count=3, retry_delay=0.5)

        with pytest.raises(asyncio.CancelledError):
            await provider.suggest_from_text("some words", cancel_event=cancel)
        assert len(completer.prompts) == 1

    @pytest.mark.asyncio
    async def test_already_cancelled_makes_no_call(self, segments):
        cancel = asyncio.Event()
        cancel.set()
        completer = _FakeCompleter(_reply((0, 40)))

        with pytest.raises(asyncio.CancelledError):
            await CompletionSuggestionProvider(completer).suggest_from_segments(segments, cancel)
        assert completer.prompts == []

    @pytest.mark.asyncio
    async def test_concurrent_runs_keep_warnings_apart(self, segments, sleeps):
        completer = _FakeCompleter(RuntimeError("down"), _reply((0, 40)))
        provider = CompletionSuggestionProvider(completer, retry_count=0)
        first, second = [], []

        await provider.suggest_from_segments(segments, warnings=first)
        await provider.suggest_from_segments(segments, warnings=second)

        assert len(first) == 1
        assert second == []


class TestFallbackSuggestionProvider:
    """Tests for primary/secondary fallback."""

    @pytest.mark.asyncio
    async def test_primary_success_skips_secondary(self, segments):
        primary = _FakeProvider([VideoCut(0.0, 40.0, "p")])
        secondary = _FakeProvider([VideoCut(50.0, 90.0, "s")])
        provider = FallbackSuggestionProvider(primary, secondary)

        warnings = []
        assert await provider.suggest_from_segments(segments, warnings=warnings) == [VideoCut(0.0, 40.0, "p")]
        assert secondary.calls == 0
        assert warnings == []

    @pytest.mark.asyncio
    async def test_primary_error_routes_to_secondary(self, segments):
        secondary_cuts = [VideoCut(50.0, 90.0, "s"), VideoCut(100.0, 140.0, "t")]
        primary = _FakeProvider(error=RuntimeError("primary down"))
        secondary = _FakeProvider(secondary_cuts)
        provider = FallbackSuggestionProvider(primary, secondary)

        warnings = []
        assert await provider.suggest_from_segments(segments, warnings=warnings) == secondary_cuts
        assert len(warnings) == 1
        assert "primary down" in warnings[0]

    @pytest.mark.asyncio
    async def test_plain_text_falls_back_too(self):
        primary = _FakeProvider(error=ValueError("bad"))
        secondary = _FakeProvider([VideoCut(1.0, 40.0)])
        provider = FallbackSuggestionProvider(primary, secondary)

        assert await provider.suggest_from_text("hello") == [VideoCut(1.0, 40.0)]
        assert secondary.calls == 1

    @pytest.mark.asyncio
    async def test_cancellation_does_not_fall_back(self, segments):
        primary = _FakeProvider(error=asyncio.CancelledError())
        secondary = _FakeProvider([VideoCut(1.0, 40.0)])
        provider = FallbackSuggestionProvider(primary, secondary)

        warnings = []
        with pytest.raises(asyncio.CancelledError):
            await provider.suggest_from_segments(segments, warnings=warnings)
        assert secondary.calls == 0
        assert warnings == []

    @pytest.mark.asyncio
    async def test_secondary_error_propagates(self, segments):
        provider = FallbackSuggestionProvider(
            _FakeProvider(error=RuntimeError("one")),
            _FakeProvider(error=RuntimeError("two")),
        )
        with pytest.raises(RuntimeError, match="two"):
            await provider.suggest_from_segments(segments)

    @pytest.mark.asyncio
    async def test_cancel_event_is_forwarded(self, segments):
        cancel = asyncio.Event()
        primary = _FakeProvider(error=RuntimeError("down"))
        secondary = _FakeProvider([VideoCut(1.0, 40.0)])
        provider = FallbackSuggestionProvider(primary, secondary)

        await provider.suggest_from_segments(segments, cancel_event=cancel)

        assert primary.cancel_events == [cancel]
        assert secondary.cancel_events == [cancel]

    @pytest.mark.asyncio
    async def test_primary_notes_kept_on_success(self, segments):
        primary = _FakeProvider([VideoCut(0.0, 40.0)], notes=["primary chunk 2/3 failed"])
        provider = FallbackSuggestionProvider(primary, _FakeProvider())
        warnings = []

        await provider.suggest_from_text("hello", warnings=warnings)

        assert warnings == ["primary chunk 2/3 failed"]

    @pytest.mark.asyncio
    async def test_strict_direct_primary_falls_back(self, segments, sleeps):
        primary = CompletionSuggestionProvider(
            _FakeCompleter(RuntimeError("ollama offline")), retry_count=1, strict=True
        )
        secondary = CompletionSuggestionProvider(_FakeCompleter(_reply((0, 45))))
        provider = FallbackSuggestionProvider(primary, secondary)

        warnings = []
        assert await provider.suggest_from_segments(segments, warnings=warnings) == [VideoCut(0.0, 45.0)]
        # The primary's own chunk notes are dropped once its result is discarded
        assert len(warnings) == 1
        assert warnings[0].startswith("Primary provider")
