"""Transcription data types.

Contains the dataclasses shared between the batch pipeline, the live
session manager, the formatters and the engine backends.
"""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np


@dataclass(frozen=True)
class AudioChunk:
    """A window of mono float32 samples starting at ``offset_seconds``."""

    index: int
    samples: np.ndarray
    offset_seconds: float
    sample_rate: int = 16000

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate

    @property
    def end_seconds(self) -> float:
        return self.offset_seconds + self.duration


@dataclass
class Segment:
    """A timed piece of recognized text.

    ``index`` is reassigned after the global merge sort, so it is a display
    position and not an identity.
    """

    index: int
    start_time: float  # seconds
    end_time: float  # seconds
    text: str

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class TranscriptionResult:
    """Complete result of one batch transcription job."""

    full_text: str
    srt: str
    vtt: str
    language: str
    segments: tuple[Segment, ...] = ()

    @property
    def duration(self) -> float:
        """Total duration based on last segment end time."""
        if not self.segments:
            return 0.0
        return self.segments[-1].end_time

    def to_dict(self) -> dict:
        return {
            "text": self.full_text,
            "subtitles_srt": self.srt,
            "subtitles_vtt": self.vtt,
            "language": self.language,
            "segments": [
                {
                    "index": seg.index,
                    "start_time": seg.start_time,
                    "end_time": seg.end_time,
                    "text": seg.text,
                }
                for seg in self.segments
            ],
        }


class ProgressStage(str, Enum):
    """Logical stages of a batch job, in emission order."""

    CONVERTING = "converting"
    DETECTING_LANGUAGE = "detecting_language"
    LANGUAGE_DETECTED = "language_detected"
    TRANSCRIBING = "transcribing"
    GENERATING_SUBTITLES = "generating_subtitles"
    COMPLETE = "complete"

    def __str__(self) -> str:
        return self.value

    @property
    def order(self) -> int:
        return list(ProgressStage).index(self)


@dataclass(frozen=True)
class ProgressEvent:
    """Progress notification for a batch job.

    Only the payload field matching ``stage`` is set. Build events through
    the classmethods rather than the constructor.
    """

    stage: ProgressStage
    message: str | None = None
    language: str | None = None
    percent: int | None = None
    subtitle_format: str | None = None

    @classmethod
    def converting(cls, message: str = "") -> "ProgressEvent":
        return cls(ProgressStage.CONVERTING, message=message)

    @classmethod
    def detecting_language(cls) -> "ProgressEvent":
        return cls(ProgressStage.DETECTING_LANGUAGE)

    @classmethod
    def language_detected(cls, language: str) -> "ProgressEvent":
        return cls(ProgressStage.LANGUAGE_DETECTED, language=language)

    @classmethod
    def transcribing(cls, percent: int) -> "ProgressEvent":
        if not 0 <= percent <= 100:
            raise ValueError(f"percent must be 0-100, got {percent}")
        return cls(ProgressStage.TRANSCRIBING, percent=percent)

    @classmethod
    def generating_subtitles(cls) -> "ProgressEvent":
        return cls(ProgressStage.GENERATING_SUBTITLES)

    @classmethod
    def complete(cls, subtitle_format: str) -> "ProgressEvent":
        return cls(ProgressStage.COMPLETE, subtitle_format=subtitle_format)

    def to_dict(self) -> dict:
        """Render the event as the JSON payload sent to UI listeners."""
        payload: dict = {"type": self.stage.value}
        if self.stage is ProgressStage.CONVERTING:
            payload["message"] = self.message or ""
        elif self.stage is ProgressStage.LANGUAGE_DETECTED:
            payload["language"] = self.language
        elif self.stage is ProgressStage.TRANSCRIBING:
            payload["progress"] = self.percent
        elif self.stage is ProgressStage.COMPLETE:
            payload["subtitle_format"] = self.subtitle_format
        return payload


@dataclass(frozen=True)
class LiveResult:
    """Text produced by one live frame."""

    text: str
    is_partial: bool


class DecodingState(str, Enum):
    """Recognizer state after accepting a streaming frame."""

    FINALIZED = "finalized"  # utterance boundary detected
    RUNNING = "running"  # utterance still in progress
    FAILED = "failed"


class SessionState(str, Enum):
    ACTIVE = "active"
    FINALIZED = "finalized"


@dataclass
class EngineSegment:
    """Chunk-local segment as returned by an engine."""

    start: float
    end: float
    text: str


@dataclass
class EngineOutput:
    """Raw output of one engine decode call."""

    segments: list[EngineSegment] = field(default_factory=list)
    language: str | None = None
