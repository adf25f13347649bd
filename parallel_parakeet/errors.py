"""Error taxonomy for batch and live transcription.

Every error carries a human-readable message; callers are expected to
surface ``str(error)`` directly. Nothing in this package retries.
"""


class TranscriptionError(RuntimeError):
    """Base class for all errors raised by parallel-parakeet."""


class ConfigurationError(TranscriptionError, ValueError):
    """Invalid caller configuration (e.g. overlap >= chunk duration)."""


class InputNotFound(TranscriptionError):
    def __init__(self, path):
        super().__init__(f"Input file not found: {path}")
        self.path = path


class ModelNotFound(TranscriptionError):
    def __init__(self, model_name: str, searched: list | None = None):
        message = f"Model not found: '{model_name}'"
        if searched:
            message += f". Searched: {', '.join(str(p) for p in searched)}"
        super().__init__(message)
        self.model_name = model_name


class ConversionError(TranscriptionError):
    """External audio conversion failed."""


class EngineLoadError(TranscriptionError):
    """A recognition engine instance could not be created."""


class DecodeError(TranscriptionError):
    """A recognition engine failed while decoding audio."""


class SessionNotFound(TranscriptionError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class TaskJoinError(TranscriptionError):
    """A worker unit terminated abnormally."""


class TranscriptionCancelled(TranscriptionError):
    """The batch job was cancelled before completion."""
