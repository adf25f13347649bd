"""Backend contracts and registry for STT engines.

This module provides:
- Backend enum for selecting transcription engines
- STTCapabilities dataclass for capability flags
- ModelInfo dataclass for model metadata
- Engine / StreamingModel protocols for backend implementations
- Parakeet factories (batch and streaming) for Parakeet TDT models
- MlxAudioEngineFactory for Whisper models (optional)
"""

from .base import (
    Backend,
    Engine,
    EngineFactory,
    ModelInfo,
    STTCapabilities,
    StreamingModel,
    StreamingModelFactory,
    StreamingRecognizer,
)
from .parakeet import ParakeetEngineFactory, ParakeetStreamingModelFactory

__all__ = [
    "Backend",
    "Engine",
    "EngineFactory",
    "MlxAudioEngineFactory",
    "ModelInfo",
    "ParakeetEngineFactory",
    "ParakeetStreamingModelFactory",
    "STTCapabilities",
    "StreamingModel",
    "StreamingModelFactory",
    "StreamingRecognizer",
    "engine_factory_for",
    "streaming_factory_for",
]


def __getattr__(name: str):
    """Lazy import MlxAudioEngineFactory to avoid importing mlx-audio when not needed."""
    if name == "MlxAudioEngineFactory":
        from .mlx_audio import MlxAudioEngineFactory

        return MlxAudioEngineFactory
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def engine_factory_for(backend: Backend) -> EngineFactory:
    """Return the batch engine factory for a backend."""
    if backend == Backend.MLX_AUDIO:
        from .mlx_audio import MlxAudioEngineFactory

        return MlxAudioEngineFactory()
    return ParakeetEngineFactory()


def streaming_factory_for(backend: Backend) -> StreamingModelFactory:
    """Return the streaming model factory for a backend.

    Raises:
        ValueError: If the backend has no streaming mode.
    """
    if backend == Backend.PARAKEET:
        return ParakeetStreamingModelFactory()
    raise ValueError(f"Backend '{backend}' does not support live sessions")
