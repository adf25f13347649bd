"""mlx-audio backend implementation.

This backend uses the mlx-audio library to run Whisper models, which
accept a language hint and can identify the spoken language.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np

from ..config import SAMPLE_RATE, DecodingSettings
from ..errors import EngineLoadError
from ..types import EngineOutput, EngineSegment
from .base import Backend

logger = logging.getLogger(__name__)

# Whisper identifies the language from the first 30 s window
LANGUAGE_PROBE_SECONDS = 30.0

# Flag to track if mlx-audio is available
_mlx_audio_available: bool | None = None


def _check_mlx_audio_available() -> bool:
    """Check if mlx-audio is installed and available."""
    global _mlx_audio_available
    if _mlx_audio_available is None:
        try:
            import mlx_audio.stt  # noqa: F401

            _mlx_audio_available = True
        except ImportError:
            _mlx_audio_available = False
    return _mlx_audio_available


def is_mlx_audio_available() -> bool:
    """Check if mlx-audio is installed and available.

    Returns:
        True if mlx-audio can be imported, False otherwise.
    """
    return _check_mlx_audio_available()


def build_generate_kwargs(language: str, decoding: DecodingSettings) -> dict[str, Any]:
    """Build keyword arguments for ``model.generate()`` from decoding settings."""
    kwargs: dict[str, Any] = {
        "language": None if language == "auto" else language,
        "temperature": decoding.temperature,
        "condition_on_previous_text": not decoding.no_context,
    }
    if decoding.initial_prompt:
        kwargs["initial_prompt"] = decoding.initial_prompt
    if decoding.no_speech_threshold is not None:
        kwargs["no_speech_threshold"] = decoding.no_speech_threshold
    if decoding.entropy_threshold is not None:
        kwargs["compression_ratio_threshold"] = decoding.entropy_threshold
    if decoding.max_text_context == 0:
        kwargs["condition_on_previous_text"] = False
    elif decoding.max_text_context is not None:
        logger.info(
            "mlx-audio Whisper cannot cap the text context at %d tokens; ignoring",
            decoding.max_text_context,
        )

    if decoding.strategy == "beam_search":
        logger.info("Beam search is not available for mlx-audio Whisper; using greedy decoding")
    elif decoding.temperature > 0:
        # best_of is only valid when sampling
        kwargs["best_of"] = decoding.best_of
    return kwargs


def _segment_fields(seg: Any) -> tuple[float, float, str] | None:
    if isinstance(seg, dict):
        return seg.get("start", 0.0), seg.get("end", 0.0), seg.get("text", "") or ""
    if hasattr(seg, "text"):
        return getattr(seg, "start", 0.0), getattr(seg, "end", 0.0), seg.text or ""
    return None


def convert_output(result: Any) -> EngineOutput:
    """Convert mlx-audio output (object or dict segments) to EngineOutput."""
    segments: list[EngineSegment] = []
    for seg in getattr(result, "segments", None) or []:
        fields = _segment_fields(seg)
        if fields is None:
            continue
        start, end, text = fields
        segments.append(EngineSegment(start=float(start), end=float(end), text=text))
    return EngineOutput(segments=segments, language=getattr(result, "language", None))


class WhisperEngine:
    """One isolated mlx-audio Whisper instance."""

    def __init__(self, model: Any):
        self._model = model

    def transcribe(
        self,
        samples: np.ndarray,
        language: str,
        decoding: DecodingSettings,
    ) -> EngineOutput:
        result = self._model.generate(samples, **build_generate_kwargs(language, decoding))
        return convert_output(result)

    def detect_language(self, samples: np.ndarray) -> str:
        probe = samples[: int(LANGUAGE_PROBE_SECONDS * SAMPLE_RATE)]
        result = self._model.generate(probe, language=None, temperature=0.0)
        return getattr(result, "language", None) or "unknown"

    def close(self) -> None:
        self._model = None
        import mlx.core as mx

        mx.clear_cache()


class MlxAudioEngineFactory:
    backend = Backend.MLX_AUDIO

    def load(self, model_path: Path) -> WhisperEngine:
        if not _check_mlx_audio_available():
            raise EngineLoadError(
                "mlx-audio is required for this backend but not installed. "
                "Install with: pip install 'parallel-parakeet[mlx-audio]'"
            )
        from mlx_audio.stt.utils import load_model

        try:
            return WhisperEngine(load_model(str(model_path)))
        except Exception as exc:
            raise EngineLoadError(f"Failed to load mlx-audio model from {model_path}: {exc}") from exc
