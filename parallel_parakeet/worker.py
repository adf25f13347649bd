"""Run one recognition pass over one chunk with an isolated engine."""

import logging
import threading
from pathlib import Path

from .backends.base import Engine, EngineFactory
from .config import DecodingSettings
from .errors import DecodeError, EngineLoadError, TranscriptionCancelled, TranscriptionError
from .types import AudioChunk, Segment

logger = logging.getLogger(__name__)


class ChunkWorker:
    """Decodes chunks, one fresh engine instance per chunk.

    Engine instances are never reused across chunks: the engines do not
    support concurrent use of one instance from several threads.
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        model_path: Path,
        language: str = "auto",
        decoding: DecodingSettings | None = None,
        cancel: threading.Event | None = None,
    ):
        self.engine_factory = engine_factory
        self.model_path = model_path
        self.language = language
        self.decoding = decoding or DecodingSettings()
        self.cancel = cancel

    def _check_cancelled(self) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise TranscriptionCancelled("Transcription cancelled")

    def load_engine(self) -> Engine:
        """Load a fresh engine instance.

        Raises:
            EngineLoadError: If the model cannot be instantiated.
        """
        try:
            return self.engine_factory.load(self.model_path)
        except EngineLoadError:
            raise
        except Exception as exc:
            raise EngineLoadError(f"Failed to load model {self.model_path}: {exc}") from exc

    def run(self, chunk: AudioChunk) -> list[Segment]:
        """Decode one chunk and return its segments in absolute time.

        Segments with empty text are dropped. ``index`` is a placeholder
        until the merger renumbers the transcript.

        Raises:
            EngineLoadError: If the engine cannot be loaded.
            DecodeError: If decoding fails.
            TranscriptionCancelled: If the job was cancelled.
        """
        self._check_cancelled()
        engine = self.load_engine()
        try:
            self._check_cancelled()
            logger.debug(
                "Decoding chunk %d at %.2fs (%.2fs)",
                chunk.index, chunk.offset_seconds, chunk.duration,
            )
            try:
                output = engine.transcribe(chunk.samples, self.language, self.decoding)
            except TranscriptionError:
                raise
            except Exception as exc:
                raise DecodeError(
                    f"Decoding failed for chunk {chunk.index} at {chunk.offset_seconds:.2f}s: {exc}"
                ) from exc
        finally:
            engine.close()

        segments = []
        for seg in output.segments:
            text = seg.text.strip()
            if not text:
                continue
            segments.append(
                Segment(
                    index=len(segments),
                    start_time=chunk.offset_seconds + seg.start,
                    end_time=chunk.offset_seconds + seg.end,
                    text=text,
                )
            )
        return segments

    def detect_language(self, chunk: AudioChunk) -> str:
        """Identify the language of a chunk with its own engine instance."""
        self._check_cancelled()
        engine = self.load_engine()
        try:
            return engine.detect_language(chunk.samples) or "unknown"
        except TranscriptionError:
            raise
        except Exception as exc:
            raise DecodeError(f"Language detection failed: {exc}") from exc
        finally:
            engine.close()
