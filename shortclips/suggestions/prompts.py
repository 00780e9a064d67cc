"""Prompt text for moment suggestion."""
from typing import Sequence

from shortclips.models.transcript import TranscriptSegment

SYSTEM_PROMPT = (
    "You are an expert at identifying the most engaging moments in long-form "
    "content for short-form clips (TikTok, Reels, Shorts).\n"
    "Given a transcript (optionally with timestamps), return a JSON object with "
    'exactly one property "cuts" that is an array of objects.\n'
    'Each object must have "start" (number, seconds), "end" (number, seconds) '
    'and "description" (string, brief reason why this moment is engaging).\n'
    "Use the timestamps from the transcript when available; otherwise estimate. "
    "Return only valid JSON, no markdown or extra text."
)

TASK_PROMPT = "Identify the most engaging moments for short-form content."


def format_segments(segments: Sequence[TranscriptSegment]) -> str:
    """Render segments as ``[12.0s - 15.5s] text`` lines."""
    return "\n".join(
        f"[{s.start:.1f}s - {s.end:.1f}s] {s.text.strip()}" for s in segments
    )


def build_user_prompt(transcript_text: str) -> str:
    return f"{TASK_PROMPT}\n\nTranscript:\n{transcript_text}"
