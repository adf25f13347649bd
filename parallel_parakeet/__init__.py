"""Chunked parallel and live speech-to-text on top of Parakeet/Whisper engines."""

__version__ = "0.1.0"

from .config import DecodingSettings, Settings
from .errors import (
    ConfigurationError,
    ConversionError,
    DecodeError,
    EngineLoadError,
    InputNotFound,
    ModelNotFound,
    SessionNotFound,
    TaskJoinError,
    TranscriptionCancelled,
    TranscriptionError,
)
from .service import TranscriptionService
from .transcriber import Transcriber
from .types import LiveResult, ProgressEvent, ProgressStage, Segment, TranscriptionResult

__all__ = [
    "ConfigurationError",
    "ConversionError",
    "DecodeError",
    "DecodingSettings",
    "EngineLoadError",
    "InputNotFound",
    "LiveResult",
    "ModelNotFound",
    "ProgressEvent",
    "ProgressStage",
    "Segment",
    "SessionNotFound",
    "Settings",
    "TaskJoinError",
    "TranscriptionCancelled",
    "TranscriptionError",
    "TranscriptionResult",
    "TranscriptionService",
    "Transcriber",
    "__version__",
]
