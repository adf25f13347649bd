"""Tests for worker.py."""

import threading
from pathlib import Path
from unittest.mock import MagicMock

import numpy as np
import pytest

from parallel_parakeet.config import DecodingSettings
from parallel_parakeet.errors import DecodeError, EngineLoadError, TranscriptionCancelled
from parallel_parakeet.types import AudioChunk, EngineOutput, EngineSegment
from parallel_parakeet.worker import ChunkWorker


def make_chunk(offset: float = 30.0, index: int = 1) -> AudioChunk:
    return AudioChunk(index=index, samples=np.zeros(16000, dtype=np.float32), offset_seconds=offset)


def make_factory(output=None, error=None) -> MagicMock:
    engine = MagicMock()
    if error is not None:
        engine.transcribe.side_effect = error
    else:
        engine.transcribe.return_value = output or EngineOutput(segments=[])
    factory = MagicMock()
    factory.load.return_value = engine
    return factory


class TestChunkWorker:
    """Tests for ChunkWorker.run."""

    def test_segments_shifted_and_trimmed(self):
        output = EngineOutput(
            segments=[
                EngineSegment(0.5, 1.0, " hello "),
                EngineSegment(1.0, 1.2, ""),
                EngineSegment(2.0, 3.0, "world"),
            ]
        )
        factory = make_factory(output)
        worker = ChunkWorker(factory, Path("/models/p"), language="de")

        segments = worker.run(make_chunk(offset=30.0))

        assert [(s.start_time, s.end_time, s.text) for s in segments] == [
            (30.5, 31.0, "hello"),
            (32.0, 33.0, "world"),
        ]
        factory.load.assert_called_once_with(Path("/models/p"))
        engine = factory.load.return_value
        args = engine.transcribe.call_args.args
        assert args[1] == "de"
        assert isinstance(args[2], DecodingSettings)
        engine.close.assert_called_once()

    def test_decode_failure_wrapped_and_engine_closed(self):
        factory = make_factory(error=RuntimeError("NaN in logits"))
        worker = ChunkWorker(factory, Path("/models/p"))

        with pytest.raises(DecodeError, match="chunk 1 at 30.00s: NaN in logits"):
            worker.run(make_chunk())
        factory.load.return_value.close.assert_called_once()

    def test_load_failure_wrapped(self):
        factory = MagicMock()
        factory.load.side_effect = OSError("no such file")
        with pytest.raises(EngineLoadError, match="no such file"):
            ChunkWorker(factory, Path("/models/p")).run(make_chunk())

    def test_cancelled_before_load(self):
        factory = make_factory()
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(TranscriptionCancelled):
            ChunkWorker(factory, Path("/models/p"), cancel=cancel).run(make_chunk())
        factory.load.assert_not_called()


class TestDetectLanguage:
    """Tests for ChunkWorker.detect_language."""

    def test_returns_engine_answer(self):
        factory = make_factory()
        factory.load.return_value.detect_language.return_value = "ja"
        assert ChunkWorker(factory, Path("/m")).detect_language(make_chunk()) == "ja"
        factory.load.return_value.close.assert_called_once()

    def test_empty_answer_is_unknown(self):
        factory = make_factory()
        factory.load.return_value.detect_language.return_value = ""
        assert ChunkWorker(factory, Path("/m")).detect_language(make_chunk()) == "unknown"
