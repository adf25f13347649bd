"""Parakeet TDT backend implementation.

This backend wraps parakeet-mlx for high-accuracy batch decoding and for
incremental (streaming) recognition in live sessions. parakeet-mlx is
imported lazily so the rest of the package works without MLX.
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Any

import numpy as np

from ..config import SAMPLE_RATE, DecodingSettings
from ..errors import EngineLoadError
from ..types import DecodingState, EngineOutput, EngineSegment
from .base import Backend

logger = logging.getLogger(__name__)

# Token endings that close an utterance in streaming mode
SENTENCE_ENDINGS = (".", "?", "!", "。", "？", "！")


def _load_parakeet(model_path: Path) -> Any:
    """Load a parakeet-mlx model from a local directory or HF cache path."""
    try:
        from parakeet_mlx import from_pretrained
    except ImportError as exc:
        raise EngineLoadError(
            "parakeet-mlx is required for this backend but not installed. "
            "Install with: pip install parakeet-mlx"
        ) from exc

    try:
        return from_pretrained(str(model_path))
    except Exception as exc:
        raise EngineLoadError(f"Failed to load Parakeet model from {model_path}: {exc}") from exc


def _build_config(decoding: DecodingSettings) -> Any:
    """Map decoding settings onto a parakeet-mlx DecodingConfig."""
    from parakeet_mlx import Beam, DecodingConfig, Greedy

    if decoding.strategy == "beam_search":
        patience = decoding.patience if decoding.patience > 0 else 1.0
        return DecodingConfig(decoding=Beam(beam_size=decoding.beam_size, patience=patience))
    return DecodingConfig(decoding=Greedy())


class ParakeetEngine:
    """One isolated Parakeet instance used for a single chunk."""

    def __init__(self, model: Any):
        self._model = model

    def transcribe(
        self,
        samples: np.ndarray,
        language: str,
        decoding: DecodingSettings,
    ) -> EngineOutput:
        # Parakeet has no language input; the hint is accepted and ignored.
        import mlx.core as mx
        from parakeet_mlx.audio import get_logmel

        preprocessor = self._model.preprocessor_config
        if len(samples) < preprocessor.hop_length:
            return EngineOutput()  # prevent zero-length log mel

        mel = get_logmel(mx.array(samples), preprocessor)
        result = self._model.generate(mel, decoding_config=_build_config(decoding))[0]

        return EngineOutput(
            segments=[
                EngineSegment(start=sent.start, end=sent.end, text=sent.text)
                for sent in result.sentences
            ],
        )

    def detect_language(self, samples: np.ndarray) -> str:
        return "unknown"

    def close(self) -> None:
        self._model = None
        import mlx.core as mx

        mx.clear_cache()


class ParakeetEngineFactory:
    backend = Backend.PARAKEET

    def load(self, model_path: Path) -> ParakeetEngine:
        return ParakeetEngine(_load_parakeet(model_path))


class ParakeetStreamingRecognizer:
    """Streaming recognizer over a parakeet-mlx ``StreamingParakeet`` context.

    Finalized tokens are committed as an utterance when one of them ends a
    sentence; everything after the last committed token is the partial text.
    """

    def __init__(self, model: Any, context_size: tuple[int, int] = (256, 256)):
        self._stack = contextlib.ExitStack()
        self._stream = self._stack.enter_context(
            model.transcribe_stream(context_size=context_size)
        )
        self._committed = 0
        self._utterance = ""

    @staticmethod
    def _text(tokens) -> str:
        return "".join(tok.text for tok in tokens).strip()

    def accept_waveform(self, samples: np.ndarray) -> DecodingState:
        import mlx.core as mx

        try:
            self._stream.add_audio(mx.array(samples))
        except Exception:
            logger.warning("Parakeet streaming decode failed", exc_info=True)
            return DecodingState.FAILED

        pending = self._stream.finalized_tokens[self._committed:]
        boundary = None
        for i, token in enumerate(pending):
            if token.text.rstrip().endswith(SENTENCE_ENDINGS):
                boundary = i + 1
        if boundary is None:
            return DecodingState.RUNNING

        self._utterance = self._text(pending[:boundary])
        self._committed += boundary
        return DecodingState.FINALIZED

    def result(self) -> str:
        return self._utterance

    def partial_result(self) -> str:
        pending = self._stream.finalized_tokens[self._committed:]
        return self._text(list(pending) + list(self._stream.draft_tokens))

    def final_result(self) -> str:
        text = self.partial_result()
        self._committed = len(self._stream.finalized_tokens)
        return text

    def close(self) -> None:
        self._stack.close()


class ParakeetStreamingModel:
    """A Parakeet model owned by exactly one live session."""

    sample_rate = SAMPLE_RATE

    def __init__(self, model: Any):
        self._model = model
        self.sample_rate = model.preprocessor_config.sample_rate

    def create_recognizer(self) -> ParakeetStreamingRecognizer:
        if self._model is None:
            raise EngineLoadError("Streaming model has been closed")
        return ParakeetStreamingRecognizer(self._model)

    def close(self) -> None:
        self._model = None


class ParakeetStreamingModelFactory:
    backend = Backend.PARAKEET

    def load(self, model_path: Path) -> ParakeetStreamingModel:
        return ParakeetStreamingModel(_load_parakeet(model_path))
