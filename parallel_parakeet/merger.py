"""Merge per-chunk segment lists into one ordered transcript."""

from collections.abc import Iterable

from .types import Segment

# Segments starting within this many seconds with identical text are the
# same words recognized twice in a chunk overlap region.
DUPLICATE_WINDOW_SECONDS = 1.0


def _is_duplicate(previous: Segment, current: Segment) -> bool:
    return (
        abs(previous.start_time - current.start_time) < DUPLICATE_WINDOW_SECONDS
        and previous.text.strip() == current.text.strip()
    )


def merge_segments(chunk_segments: Iterable[Iterable[Segment]]) -> list[Segment]:
    """
    Concatenate, sort and de-duplicate segments from all chunks.

    Sorting is stable on ``start_time`` so ties keep emission order. A
    segment is dropped when it duplicates the last kept one. Indices are
    reassigned as the 0-based position in the result.

    This is an exact-text heuristic: overlap text transcribed differently
    by the two neighbouring chunks is kept twice.
    """
    ordered = sorted(
        (seg for segments in chunk_segments for seg in segments),
        key=lambda seg: seg.start_time,
    )

    merged: list[Segment] = []
    for seg in ordered:
        if merged and _is_duplicate(merged[-1], seg):
            continue
        merged.append(seg)

    return [
        Segment(index=i, start_time=seg.start_time, end_time=seg.end_time, text=seg.text)
        for i, seg in enumerate(merged)
    ]
