"""Process-wide transcription service: batch jobs and live sessions."""

import logging
from pathlib import Path

from .audio import AudioConverter
from .backends import engine_factory_for, streaming_factory_for
from .backends.base import Backend, EngineFactory, StreamingModelFactory
from .config import SAMPLE_RATE, DecodingSettings, Settings
from .errors import ConfigurationError, InputNotFound
from .gate import ConcurrencyGate
from .live import LiveSessionManager
from .progress import ProgressListener
from .storage import ModelStore
from .transcriber import Transcriber
from .types import LiveResult, TranscriptionResult

logger = logging.getLogger(__name__)


class TranscriptionService:
    """
    Entry points for batch transcription and live sessions.

    Create one per process and close it at shutdown; closing ends every
    live session still open. The engine gate is shared by all batch jobs
    run through the service.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        model_store: ModelStore | None = None,
        converter: AudioConverter | None = None,
        engine_factories: dict[Backend, EngineFactory] | None = None,
        streaming_factories: dict[Backend, StreamingModelFactory] | None = None,
    ):
        self.settings = settings or Settings()
        self.model_store = model_store or ModelStore(self.settings.models_dir)
        self.converter = converter or AudioConverter(SAMPLE_RATE, self.settings.ffmpeg_timeout)
        self.gate = ConcurrencyGate(self.settings.engine_slots)
        self.sessions = LiveSessionManager()
        self._engine_factories = dict(engine_factories or {})
        self._streaming_factories = dict(streaming_factories or {})

    def _engine_factory(self, backend: Backend) -> EngineFactory:
        if backend not in self._engine_factories:
            self._engine_factories[backend] = engine_factory_for(backend)
        return self._engine_factories[backend]

    def _streaming_factory(self, backend: Backend) -> StreamingModelFactory:
        if backend not in self._streaming_factories:
            try:
                self._streaming_factories[backend] = streaming_factory_for(backend)
            except ValueError as exc:
                raise ConfigurationError(str(exc)) from exc
        return self._streaming_factories[backend]

    def transcriber(
        self,
        model_name: str | None = None,
        decoding: DecodingSettings | None = None,
        chunk_duration: float | None = None,
        overlap_duration: float | None = None,
    ) -> Transcriber:
        """Build a Transcriber for a model, resolving it from storage."""
        model = self.model_store.resolve(model_name or self.settings.default_model)
        return Transcriber(
            model_path=model.path,
            engine_factory=self._engine_factory(model.backend),
            chunk_duration=chunk_duration or self.settings.chunk_duration,
            overlap_duration=(
                self.settings.overlap_duration if overlap_duration is None else overlap_duration
            ),
            gate=self.gate,
            max_workers=self.settings.max_worker_threads,
            decoding=decoding,
            capabilities=model.info.capabilities if model.info else None,
            converter=self.converter,
            temp_dir=self.settings.temp_dir,
        )

    def transcribe(
        self,
        file_path: Path | str,
        model_name: str | None = None,
        auto_detect_language: bool = True,
        listener: ProgressListener | None = None,
        decoding: DecodingSettings | None = None,
    ) -> TranscriptionResult:
        """Transcribe a media file into text and SRT/VTT subtitles."""
        if not Path(file_path).is_file():
            raise InputNotFound(file_path)
        transcriber = self.transcriber(model_name, decoding)
        return transcriber.transcribe(file_path, auto_detect_language, listener)

    def start_session(self, model_name: str | None = None, sample_rate: float | None = None) -> str:
        """Start a live session and return its id."""
        model = self.model_store.resolve(model_name or self.settings.default_model)
        return self.sessions.start(
            model.path,
            sample_rate or self.settings.live_sample_rate,
            model_factory=self._streaming_factory(model.backend),
        )

    def process_chunk(self, session_id: str, pcm_frame) -> LiveResult:
        return self.sessions.process(session_id, pcm_frame)

    def end_session(self, session_id: str) -> str:
        return self.sessions.end(session_id)

    def close(self) -> None:
        """End all live sessions."""
        if self.sessions.active_sessions:
            logger.info("Closing %d live session(s)", self.sessions.active_sessions)
        self.sessions.close_all()

    def __enter__(self) -> "TranscriptionService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
