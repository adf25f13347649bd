"""Concurrent chunked transcription pipeline."""

import contextlib
import logging
import os
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import numpy as np

from .audio import AudioConverter, read_wav
from .backends.base import EngineFactory, STTCapabilities
from .chunker import split_into_chunks
from .config import SAMPLE_RATE, DecodingSettings
from .errors import InputNotFound, TaskJoinError, TranscriptionCancelled, TranscriptionError
from .formatters import format_srt, format_vtt
from .gate import ConcurrencyGate
from .merger import merge_segments
from .progress import ProgressAggregator, ProgressListener, emit
from .types import AudioChunk, ProgressEvent, Segment, TranscriptionResult
from .worker import ChunkWorker

logger = logging.getLogger(__name__)

# Language used when auto-detection is turned off
DEFAULT_LANGUAGE = "en"


class Transcriber:
    """
    Chunked, bounded-parallel transcriber for one model.

    Audio is split into overlapping chunks; each chunk is decoded by its own
    engine instance on a thread pool while a ConcurrencyGate bounds how many
    instances are resident at once. Any chunk failure aborts the whole job.
    """

    def __init__(
        self,
        model_path: Path | str,
        engine_factory: EngineFactory,
        chunk_duration: float = 30.0,
        overlap_duration: float = 2.0,
        gate: ConcurrencyGate | None = None,
        max_workers: int = 32,
        decoding: DecodingSettings | None = None,
        capabilities: STTCapabilities | None = None,
        converter: AudioConverter | None = None,
        temp_dir: Path | str | None = None,
    ):
        """
        Initialize the transcriber.

        Args:
            model_path: Local directory of the model
            engine_factory: Creates one isolated engine instance per chunk
            chunk_duration: Split audio into chunks of this length (seconds)
            overlap_duration: Overlap between chunks to prevent word-cutting (seconds)
            gate: Bounds resident engine instances (default: one slot)
            max_workers: Upper bound on worker threads
            decoding: Decoding options forwarded to the engine
            capabilities: Model capabilities; skips language detection when unsupported
            converter: Media to PCM converter (default: ffmpeg)
            temp_dir: Where the intermediate WAV is written
        """
        self.model_path = Path(model_path)
        self.engine_factory = engine_factory
        self.chunk_duration = chunk_duration
        self.overlap_duration = overlap_duration
        self.gate = gate or ConcurrencyGate(1)
        self.max_workers = max_workers
        self.decoding = decoding or DecodingSettings()
        self.capabilities = capabilities
        self.converter = converter or AudioConverter(SAMPLE_RATE)
        self.temp_dir = Path(temp_dir) if temp_dir else None
        self._jobs: set[threading.Event] = set()
        self._jobs_lock = threading.Lock()

    def cancel(self) -> None:
        """Abort every job currently running on this transcriber.

        In-flight workers stop before their next load or decode step and
        waiting workers give up their place at the gate. Jobs started after
        the call are not affected.
        """
        logger.info("Cancelling transcription")
        with self._jobs_lock:
            for cancel in self._jobs:
                cancel.set()

    @contextlib.contextmanager
    def _job(self):
        """Register a cancel event for one job; each job aborts independently."""
        cancel = threading.Event()
        with self._jobs_lock:
            self._jobs.add(cancel)
        try:
            yield cancel
        finally:
            with self._jobs_lock:
                self._jobs.discard(cancel)

    def transcribe(
        self,
        audio_path: Path | str,
        auto_detect_language: bool = True,
        listener: ProgressListener | None = None,
    ) -> TranscriptionResult:
        """
        Transcribe a media file.

        Args:
            audio_path: Path to any media file ffmpeg can read
            auto_detect_language: Detect the language, or assume English
            listener: Optional callback receiving ProgressEvent

        Returns:
            TranscriptionResult with text, subtitles and timed segments
        """
        audio_path = Path(audio_path)
        if not audio_path.is_file():
            raise InputNotFound(audio_path)

        with self._job() as cancel:
            fd, wav_name = tempfile.mkstemp(
                prefix="parallel-parakeet-", suffix=".wav", dir=self.temp_dir
            )
            os.close(fd)
            wav_path = Path(wav_name)
            try:
                emit(listener, ProgressEvent.converting("Converting audio to 16kHz mono WAV"))
                self.converter.convert(audio_path, wav_path)
                samples, duration = read_wav(wav_path)
                logger.info("Converted %s (%.1fs of audio)", audio_path, duration)
                if cancel.is_set():
                    raise TranscriptionCancelled("Transcription cancelled")

                result = self._transcribe(samples, auto_detect_language, listener, cancel)
            finally:
                wav_path.unlink(missing_ok=True)

        emit(listener, ProgressEvent.complete("srt"))
        return result

    def transcribe_samples(
        self,
        samples: np.ndarray,
        auto_detect_language: bool = True,
        listener: ProgressListener | None = None,
    ) -> TranscriptionResult:
        """Transcribe mono 16 kHz float32 samples (no conversion stage).

        Several calls may run on one instance at once; each is a separate
        job with its own cancellation.
        """
        with self._job() as cancel:
            return self._transcribe(samples, auto_detect_language, listener, cancel)

    def _transcribe(
        self,
        samples: np.ndarray,
        auto_detect_language: bool,
        listener: ProgressListener | None,
        cancel: threading.Event,
    ) -> TranscriptionResult:
        chunks = split_into_chunks(
            samples, SAMPLE_RATE, self.chunk_duration, self.overlap_duration
        )
        logger.info(
            "Transcribing %d chunk(s) with %d engine slot(s)", len(chunks), self.gate.capacity
        )

        language = self._resolve_language(chunks, auto_detect_language, listener, cancel)
        hint = "auto" if language == "unknown" else language
        worker = ChunkWorker(self.engine_factory, self.model_path, hint, self.decoding, cancel)

        chunk_segments = self._run_chunks(chunks, worker, listener)

        emit(listener, ProgressEvent.generating_subtitles())
        segments = merge_segments(chunk_segments)
        return TranscriptionResult(
            full_text=" ".join(seg.text for seg in segments),
            srt=format_srt(segments),
            vtt=format_vtt(segments),
            language=language,
            segments=tuple(segments),
        )

    def _resolve_language(
        self,
        chunks: list[AudioChunk],
        auto_detect_language: bool,
        listener: ProgressListener | None,
        cancel: threading.Event,
    ) -> str:
        if not auto_detect_language:
            emit(listener, ProgressEvent.language_detected(DEFAULT_LANGUAGE))
            return DEFAULT_LANGUAGE

        emit(listener, ProgressEvent.detecting_language())
        language = "unknown"
        can_detect = self.capabilities is None or self.capabilities.supports_language_detection
        if chunks and can_detect:
            worker = ChunkWorker(self.engine_factory, self.model_path, "auto", self.decoding, cancel)
            with self.gate.slot(cancel):
                language = worker.detect_language(chunks[0])
        logger.info("Language: %s", language)
        emit(listener, ProgressEvent.language_detected(language))
        return language

    def _run_chunk(
        self,
        worker: ChunkWorker,
        chunk: AudioChunk,
        progress: ProgressAggregator,
    ) -> list[Segment]:
        try:
            with self.gate.slot(worker.cancel):
                return worker.run(chunk)
        finally:
            progress.notify()

    def _run_chunks(
        self,
        chunks: list[AudioChunk],
        worker: ChunkWorker,
        listener: ProgressListener | None,
    ) -> list[list[Segment]]:
        if not chunks:
            emit(listener, ProgressEvent.transcribing(100))
            return []

        results: list[list[Segment]] = [[] for _ in chunks]
        workers = max(1, min(len(chunks), self.max_workers))
        with ProgressAggregator(len(chunks), listener) as progress, ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="chunk-worker"
        ) as pool:
            futures = {
                pool.submit(self._run_chunk, worker, chunk, progress): chunk
                for chunk in chunks
            }
            try:
                for future in as_completed(futures):
                    chunk = futures[future]
                    try:
                        results[chunk.index] = future.result()
                    except TranscriptionError:
                        raise
                    except Exception as exc:
                        raise TaskJoinError(
                            f"Worker for chunk {chunk.index} terminated abnormally: {exc}"
                        ) from exc
                    logger.debug(
                        "Chunk %d done (%d segment(s))", chunk.index, len(results[chunk.index])
                    )
            except BaseException:
                # Abort the job: stop in-flight workers, drop queued ones
                worker.cancel.set()
                for pending in futures:
                    pending.cancel()
                raise
        return results
