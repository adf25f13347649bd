"""Backend capability contracts for STT engines."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    import numpy as np

    from ..config import DecodingSettings
    from ..types import DecodingState, EngineOutput


class Backend(str, Enum):
    """Supported transcription backends."""

    PARAKEET = "parakeet"
    MLX_AUDIO = "mlx-audio"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class STTCapabilities:
    """Capability flags for speech-to-text backends.

    Describes what features a backend/model combination supports.
    """

    supports_timestamps: bool = True
    """Whether the model provides segment timestamps."""

    supports_language_detection: bool = False
    """Whether the model can identify the spoken language."""

    supports_language_hint: bool = False
    """Whether the model accepts a language hint for transcription."""

    supports_streaming: bool = False
    """Whether the model can be fed incrementally in a live session."""


@dataclass
class ModelInfo:
    """Metadata for a curated STT model."""

    model_id: str
    """HuggingFace model identifier (e.g., 'mlx-community/parakeet-tdt-0.6b-v3')."""

    backend: Backend
    """Which transcription backend to use."""

    capabilities: STTCapabilities
    """What features this model supports."""

    description: str = ""
    """Human-readable description for CLI display."""

    aliases: list[str] = field(default_factory=list)
    """Short names for CLI convenience (e.g., ['parakeet', 'v3'])."""


@runtime_checkable
class Engine(Protocol):
    """One isolated, stateful engine instance.

    Instances are never shared between concurrent callers.
    """

    def transcribe(
        self,
        samples: "np.ndarray",
        language: str,
        decoding: "DecodingSettings",
    ) -> "EngineOutput":
        """Decode mono 16 kHz float32 samples.

        Args:
            samples: Audio to decode.
            language: ``"auto"`` or an explicit language code.
            decoding: Decoding options.

        Returns:
            EngineOutput with chunk-local segments.
        """
        ...

    def detect_language(self, samples: "np.ndarray") -> str:
        """Return the spoken language code, or ``"unknown"``."""
        ...

    def close(self) -> None:
        """Release the instance's memory."""
        ...


class EngineFactory(Protocol):
    """Creates isolated engine instances from a resolved model path."""

    backend: Backend

    def load(self, model_path: "Path") -> Engine:
        """Load a fresh instance. Raises EngineLoadError on failure."""
        ...


@runtime_checkable
class StreamingRecognizer(Protocol):
    """Incremental recognizer bound to one loaded streaming model."""

    def accept_waveform(self, samples: "np.ndarray") -> "DecodingState":
        """Feed float32 samples at the model rate and report decoding state."""
        ...

    def result(self) -> str:
        """Text of the utterance that just finalized."""
        ...

    def partial_result(self) -> str:
        """Best current hypothesis for the in-progress utterance."""
        ...

    def final_result(self) -> str:
        """Flush and return any trailing text."""
        ...

    def close(self) -> None:
        ...


class StreamingModel(Protocol):
    """A loaded model that recognizers are constructed from."""

    sample_rate: int

    def create_recognizer(self) -> StreamingRecognizer:
        ...

    def close(self) -> None:
        ...


class StreamingModelFactory(Protocol):
    backend: Backend

    def load(self, model_path: "Path") -> StreamingModel:
        """Load a streaming model. Raises EngineLoadError on failure."""
        ...
