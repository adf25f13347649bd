"""Curated model registry for STT models.

Provides a registry of known models with their backend assignments
and capability metadata. Used by the CLI for model listing and by the
model store for name resolution.
"""

from .base import Backend, ModelInfo, STTCapabilities

# Curated registry of known STT models
MODEL_REGISTRY: dict[str, ModelInfo] = {
    # Parakeet TDT v3 - best quality, streaming capable
    "mlx-community/parakeet-tdt-0.6b-v3": ModelInfo(
        model_id="mlx-community/parakeet-tdt-0.6b-v3",
        backend=Backend.PARAKEET,
        capabilities=STTCapabilities(
            supports_timestamps=True,
            supports_language_detection=False,
            supports_language_hint=False,
            supports_streaming=True,
        ),
        description="Parakeet TDT 0.6B v3 - High accuracy, 25 European languages",
        aliases=["parakeet-v3", "parakeet"],
    ),
    # Parakeet TDT v2 - English only
    "mlx-community/parakeet-tdt-0.6b-v2": ModelInfo(
        model_id="mlx-community/parakeet-tdt-0.6b-v2",
        backend=Backend.PARAKEET,
        capabilities=STTCapabilities(
            supports_timestamps=True,
            supports_language_detection=False,
            supports_language_hint=False,
            supports_streaming=True,
        ),
        description="Parakeet TDT 0.6B v2 - English only",
        aliases=["parakeet-v2"],
    ),
    # Whisper Large v3 Turbo - fast, multilingual
    "mlx-community/whisper-large-v3-turbo": ModelInfo(
        model_id="mlx-community/whisper-large-v3-turbo",
        backend=Backend.MLX_AUDIO,
        capabilities=STTCapabilities(
            supports_timestamps=True,
            supports_language_detection=True,
            supports_language_hint=True,
            supports_streaming=False,
        ),
        description="Whisper Large v3 Turbo - Fast, 100+ languages, language detection",
        aliases=["whisper-turbo", "whisper"],
    ),
    "mlx-community/whisper-tiny": ModelInfo(
        model_id="mlx-community/whisper-tiny",
        backend=Backend.MLX_AUDIO,
        capabilities=STTCapabilities(
            supports_timestamps=True,
            supports_language_detection=True,
            supports_language_hint=True,
            supports_streaming=False,
        ),
        description="Whisper Tiny - Fastest, lowest accuracy. Good for testing.",
        aliases=["whisper-tiny", "tiny"],
    ),
}


def get_model_info(model_id: str) -> ModelInfo | None:
    """Get model info by exact model ID."""
    return MODEL_REGISTRY.get(model_id)


def list_models(backend: Backend | None = None) -> list[ModelInfo]:
    """List all curated models, optionally filtered by backend.

    Args:
        backend: Filter to specific backend, or None for all.

    Returns:
        List of ModelInfo for matching models.
    """
    models = list(MODEL_REGISTRY.values())
    if backend is not None:
        models = [m for m in models if m.backend == backend]
    return models


def resolve_model(model_id: str) -> ModelInfo:
    """Resolve a model ID or alias to ModelInfo.

    Args:
        model_id: Full model ID or short alias.

    Returns:
        ModelInfo for the resolved model.

    Raises:
        ValueError: If model ID is not found in registry.
    """
    if model_id in MODEL_REGISTRY:
        return MODEL_REGISTRY[model_id]

    for info in MODEL_REGISTRY.values():
        if model_id in info.aliases:
            return info

    supported = sorted(MODEL_REGISTRY.keys())
    aliases = sorted(
        alias for info in MODEL_REGISTRY.values() for alias in info.aliases
    )

    raise ValueError(
        f"Unknown model: '{model_id}'. "
        f"Supported models: {supported}. "
        f"Aliases: {aliases}."
    )
