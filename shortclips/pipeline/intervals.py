"""Interval utilities for suggested cuts.

Pure functions over VideoCut lists: validity filtering, expansion of short
cuts against transcript segment boundaries, and overlap resolution. The
normalization order is filter -> (conditional) expand -> resolve overlaps.
"""
import logging
from typing import List, Sequence

from shortclips.models.cut import VideoCut
from shortclips.models.transcript import TranscriptSegment

logger = logging.getLogger(__name__)

MAX_EXPANDED_SECONDS = 120.0
MIN_VIABLE_SECONDS = 5.0


def is_valid_range(start: float, end: float) -> bool:
    """A range is usable when it starts at or after 0 and has positive length."""
    return start >= 0 and end > start


def filter_valid(cuts: Sequence[VideoCut]) -> List[VideoCut]:
    """Drop cuts with a negative start or a non-positive length."""
    return [c for c in cuts if is_valid_range(c.start, c.end)]


def expand_to_minimum(
    cuts: Sequence[VideoCut],
    segments: Sequence[TranscriptSegment],
    min_duration: float,
    max_duration: float = MAX_EXPANDED_SECONDS,
    min_viable: float = MIN_VIABLE_SECONDS,
) -> List[VideoCut]:
    """
    Widen short cuts to whole transcript segments until they reach min_duration.

    For each cut, the contiguous run of segments overlapping [start, end) is
    located and used as the new range. The range then grows one segment at a
    time, extending the end first and the start only once no segment is left
    after it. Growth stops at min_duration or when segments run out on both
    sides; the result is capped at max_duration. Cuts that overlap no segment,
    or that stay below min_viable, are discarded.

    Args:
        cuts: Candidate cuts (usually already filtered for validity)
        segments: Transcript segments; sorted by start before use
        min_duration: Target duration in seconds
        max_duration: Upper bound on an expanded cut
        min_viable: Cuts shorter than this after expansion are dropped

    Returns:
        Expanded cuts, in input order
    """
    if not segments:
        return list(cuts)

    ordered = sorted(segments, key=lambda s: s.start)
    result = []

    for cut in cuts:
        # First segment ending after the cut starts
        i = 0
        while i < len(ordered) and ordered[i].end <= cut.start:
            i += 1
        # One past the last segment starting before the cut ends
        j = i
        while j < len(ordered) and ordered[j].start < cut.end:
            j += 1

        if j <= i:
            logger.debug(f"No transcript segment overlaps {cut!r}; dropping")
            continue

        new_start = ordered[i].start
        new_end = ordered[j - 1].end

        while new_end - new_start < min_duration:
            if j < len(ordered):
                new_end = ordered[j].end
                j += 1
            elif i > 0:
                i -= 1
                new_start = ordered[i].start
            else:
                break

        if new_end - new_start > max_duration:
            new_end = new_start + max_duration

        if new_end - new_start >= min_viable:
            result.append(VideoCut(new_start, new_end, cut.description))
        else:
            logger.debug(
                f"Cut {cut!r} only reached {new_end - new_start:.2f}s "
                f"(< {min_viable}s) after expansion; dropping"
            )

    return result


def resolve_overlaps(cuts: Sequence[VideoCut], min_duration: float) -> List[VideoCut]:
    """
    Make cuts non-overlapping with a greedy earliest-start-wins pass.

    Cuts are sorted by start. Each candidate whose start precedes the end of
    the last accepted cut is clamped forward to that end; it is kept only if
    it still lasts at least min_duration. A later cut is never preferred over
    an earlier one, whatever its length or description.

    Returns:
        Sorted cuts where end[i] <= start[i + 1] and every duration >= min_duration
    """
    if not cuts:
        return []

    ordered = sorted(cuts, key=lambda c: c.start)
    kept: List[VideoCut] = []

    for cut in ordered:
        start = cut.start
        if kept and start < kept[-1].end:
            start = kept[-1].end
        if cut.end - start >= min_duration:
            kept.append(VideoCut(start, cut.end, cut.description))

    if len(kept) < len(ordered):
        logger.info(
            f"Removed {len(ordered) - len(kept)} overlapping or too-short cuts "
            f"(kept {len(kept)} non-overlapping)"
        )
    return kept


def normalize_cuts(
    raw_cuts: Sequence[VideoCut],
    segments: Sequence[TranscriptSegment],
    min_duration: float,
    max_duration: float = MAX_EXPANDED_SECONDS,
    min_viable: float = MIN_VIABLE_SECONDS,
) -> List[VideoCut]:
    """
    Turn raw suggestions into the final ordered, non-overlapping cut list.

    Expansion is only a recovery path: it runs when raw suggestions existed
    but none of the valid ones reaches min_duration.
    """
    valid = filter_valid(raw_cuts)
    cuts = [c for c in valid if c.duration >= min_duration]

    if len(cuts) < len(raw_cuts):
        logger.warning(
            f"Filtered out {len(raw_cuts) - len(cuts)} invalid or shorter than "
            f"{min_duration}s cuts (kept {len(cuts)})"
        )
        if not cuts and raw_cuts and segments:
            cuts = expand_to_minimum(valid, segments, min_duration, max_duration, min_viable)
            logger.info(
                f"Expanded {len(cuts)} short cuts towards {min_duration}s "
                f"using transcript boundaries"
            )

    return resolve_overlaps(cuts, min_duration)
