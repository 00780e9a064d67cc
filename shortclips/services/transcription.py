"""Transcription via an OpenAI-compatible audio transcription API."""
import logging
import tempfile
import uuid
from pathlib import Path
from typing import Optional

import httpx

from shortclips.models.transcript import (
    TranscriptSegment,
    TranscriptionOptions,
    TranscriptionResult,
)
from shortclips.utils.ffmpeg import FFmpegError, extract_audio

logger = logging.getLogger(__name__)
DEFAULT_TIMEOUT_SECONDS = 600.0


def parse_verbose_transcription(payload: dict) -> TranscriptionResult:
    """Map a ``verbose_json`` transcription payload to a TranscriptionResult."""
    segments = []
    for item in payload.get("segments") or []:
        try:
            start = float(item["start"])
            end = float(item["end"])
        except (KeyError, TypeError, ValueError):
            continue
        if start < 0 or end <= start:
            continue
        segments.append(TranscriptSegment(start, end, (item.get("text") or "").strip()))

    segments.sort(key=lambda s: s.start)
    return TranscriptionResult(
        success=True,
        segments=segments,
        full_text=payload.get("text"),
        detected_language=payload.get("language"),
    )


class WhisperApiTranscriber:
    """
    Extracts the audio track with ffmpeg and uploads it to
    ``{base_url}/audio/transcriptions``.

    Failures of any kind are reported as ``TranscriptionResult(success=False)``.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "whisper-1",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = client

    async def transcribe(self, local_path: str, options: TranscriptionOptions) -> TranscriptionResult:
        if not Path(local_path).is_file():
            return TranscriptionResult(success=False, error=f"Video file not found: {local_path}")

        audio_path = Path(tempfile.gettempdir()) / "shortclips" / f"{uuid.uuid4().hex}.mp3"
        try:
            await extract_audio(local_path, audio_path)
            return await self._upload(audio_path, options)
        except FFmpegError as e:
            return TranscriptionResult(success=False, error=str(e))
        finally:
            audio_path.unlink(missing_ok=True)

    async def _upload(self, audio_path: Path, options: TranscriptionOptions) -> TranscriptionResult:
        data = {
            "model": self.model,
            "response_format": "verbose_json" if options.include_timestamps else "json",
        }
        if options.language:
            data["language"] = options.language

        url = f"{self.base_url}/audio/transcriptions"
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            with open(audio_path, "rb") as f:
                files = {"file": (audio_path.name, f, "audio/mpeg")}
                if self._client is not None:
                    response = await self._client.post(url, data=data, files=files, headers=headers)
                else:
                    async with httpx.AsyncClient(timeout=self.timeout) as client:
                        response = await client.post(url, data=data, files=files, headers=headers)
        except httpx.TimeoutException:
            return TranscriptionResult(success=False, error="Transcription request timed out")
        except httpx.RequestError as e:
            return TranscriptionResult(success=False, error=f"Unable to reach transcription API: {e}")

        if response.status_code != 200:
            return TranscriptionResult(
                success=False,
                error=f"API error ({response.status_code}): {response.text[:500]}",
            )

        try:
            payload = response.json()
        except ValueError:
            return TranscriptionResult(success=False, error="Invalid transcription API response")
        if not isinstance(payload, dict):
            return TranscriptionResult(success=False, error="Invalid transcription API response")

        result = parse_verbose_transcription(payload)
        logger.info(
            f"Transcribed {audio_path.name}: {len(result.segments)} segments, "
            f"language={result.detected_language}"
        )
        return result
