"""Split transcripts into size-bounded groups for completion calls."""
from typing import List, Sequence

from shortclips.models.transcript import TranscriptSegment

# Characters added per segment by the "[12.0s - 15.5s] " line prefix and newline
SEGMENT_OVERHEAD_CHARS = 24


def chunk_segments(
    segments: Sequence[TranscriptSegment],
    max_chars: int,
    overhead: int = SEGMENT_OVERHEAD_CHARS,
) -> List[List[TranscriptSegment]]:
    """
    Group consecutive segments so each group's formatted size fits max_chars.

    A segment costs ``len(text) + overhead``. Segments are never split: one
    that is larger than the budget on its own still forms its own group.
    Order is preserved, so concatenating the groups gives back the input.

    Args:
        segments: Ordered transcript segments
        max_chars: Character budget per group; <= 0 disables chunking
        overhead: Fixed per-segment formatting cost

    Returns:
        List of segment groups (empty for empty input)
    """
    if not segments:
        return []
    if max_chars <= 0:
        return [list(segments)]

    chunks: List[List[TranscriptSegment]] = []
    current: List[TranscriptSegment] = []
    current_size = 0

    for segment in segments:
        cost = len(segment.text) + overhead
        if current and current_size + cost > max_chars:
            chunks.append(current)
            current = []
            current_size = 0
        current.append(segment)
        current_size += cost

    if current:
        chunks.append(current)

    return chunks
