"""Output formatters for transcription results."""

import json
from collections.abc import Sequence
from datetime import datetime, timezone

from .types import Segment, TranscriptionResult

# Schema version for JSON output (for future compatibility)
JSON_SCHEMA_VERSION = "1.0"


def _split_timestamp(seconds: float) -> tuple[int, int, int, int]:
    """Split seconds into (hours, minutes, seconds, millis) by floor truncation."""
    total_millis = int(max(seconds, 0.0) * 1000)
    total_secs, millis = divmod(total_millis, 1000)
    hours, rem = divmod(total_secs, 3600)
    minutes, secs = divmod(rem, 60)
    return hours, minutes, secs, millis


def format_timestamp_srt(seconds: float) -> str:
    """Format seconds as SRT timestamp: HH:MM:SS,mmm (comma for milliseconds)."""
    hours, minutes, secs, millis = _split_timestamp(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def format_timestamp_vtt(seconds: float) -> str:
    """Format seconds as VTT timestamp: HH:MM:SS.mmm (dot for milliseconds)."""
    hours, minutes, secs, millis = _split_timestamp(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def _format_timestamp_simple(seconds: float) -> str:
    """Format seconds as simple timestamp: MM:SS or HH:MM:SS for longer audio."""
    hours, minutes, secs, _ = _split_timestamp(seconds)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_srt(segments: Sequence[Segment]) -> str:
    """
    Format segments as SRT (SubRip) subtitles.

    Cue numbers are ``index + 1``, so segments must come from the merger.
    """
    lines = []
    for segment in segments:
        lines.append(str(segment.index + 1))
        lines.append(
            f"{format_timestamp_srt(segment.start_time)} --> {format_timestamp_srt(segment.end_time)}"
        )
        lines.append(segment.text.strip())
        lines.append("")  # Blank line between cues
    return "\n".join(lines)


def format_vtt(segments: Sequence[Segment]) -> str:
    """Format segments as WebVTT subtitles."""
    lines = ["WEBVTT", ""]  # Header and blank line
    for segment in segments:
        lines.append(
            f"{format_timestamp_vtt(segment.start_time)} --> {format_timestamp_vtt(segment.end_time)}"
        )
        lines.append(segment.text.strip())
        lines.append("")
    return "\n".join(lines)


def format_txt(
    result: TranscriptionResult, timestamps: bool = False, pause_threshold: float = 2.0
) -> str:
    """
    Format transcription as plain text.

    Args:
        result: Transcription result
        timestamps: If True, include timestamps for each segment
        pause_threshold: Insert paragraph break when gap between segments exceeds this (seconds)

    Returns:
        Plain text transcript with one segment per line and paragraph breaks on pauses
    """
    if not result.segments:
        return result.full_text

    lines = []
    prev_end = 0.0

    for segment in result.segments:
        if lines and (segment.start_time - prev_end) > pause_threshold:
            lines.append("")

        if timestamps:
            lines.append(f"[{_format_timestamp_simple(segment.start_time)}] {segment.text}")
        else:
            lines.append(segment.text)

        prev_end = segment.end_time

    return "\n".join(lines)


def format_json(result: TranscriptionResult) -> str:
    """Format transcription as structured JSON."""
    data = {
        "schema_version": JSON_SCHEMA_VERSION,
        "generated_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "language": result.language,
        "text": result.full_text,
        "duration_seconds": round(result.duration, 3),
        "segments": [
            {
                "index": seg.index,
                "text": seg.text,
                "start": round(seg.start_time, 3),
                "end": round(seg.end_time, 3),
            }
            for seg in result.segments
        ],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


# Mapping of format names to writers taking a TranscriptionResult
FORMATTERS = {
    "txt": format_txt,
    "srt": lambda result: result.srt,
    "vtt": lambda result: result.vtt,
    "json": format_json,
}

# File extensions for each format
EXTENSIONS = {
    "txt": ".txt",
    "srt": ".srt",
    "vtt": ".vtt",
    "json": ".json",
}
