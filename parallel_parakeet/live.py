"""Live (streaming) transcription sessions keyed by session id."""

import itertools
import logging
import threading
from pathlib import Path

from .audio import pcm16_to_float32, resample
from .backends.base import StreamingModel, StreamingModelFactory
from .config import SAMPLE_RATE
from .errors import DecodeError, EngineLoadError, SessionNotFound
from .types import DecodingState, LiveResult, SessionState

logger = logging.getLogger(__name__)


class LiveSession:
    """One streaming recognition context.

    The session owns its model and builds its recognizer from it, so the
    recognizer is always closed before the model it depends on.
    """

    def __init__(self, session_id: str, model: StreamingModel, sample_rate: float):
        self.id = session_id
        self.sample_rate = sample_rate
        self.state = SessionState.ACTIVE
        self.lock = threading.Lock()
        self._model = model
        self.recognizer = model.create_recognizer()

    def process(self, pcm_frame) -> LiveResult:
        """Feed one frame; decoding failures yield an empty partial result."""
        try:
            samples = resample(
                pcm16_to_float32(pcm_frame), self.sample_rate, self._model.sample_rate
            )
            state = self.recognizer.accept_waveform(samples)
            if state is DecodingState.FINALIZED:
                return LiveResult(self.recognizer.result(), is_partial=False)
            if state is DecodingState.RUNNING:
                return LiveResult(self.recognizer.partial_result(), is_partial=True)
        except Exception:
            logger.warning("Session %s: frame decoding raised", self.id, exc_info=True)
            return LiveResult("", is_partial=True)

        logger.warning("Session %s: frame decoding failed", self.id)
        return LiveResult("", is_partial=True)

    def finalize(self) -> str:
        """Flush trailing text and release the recognizer, then the model."""
        self.state = SessionState.FINALIZED
        try:
            return self.recognizer.final_result()
        except Exception as exc:
            raise DecodeError(f"Failed to finalize session {self.id}: {exc}") from exc
        finally:
            self.recognizer.close()
            self._model.close()


class LiveSessionManager:
    """
    Table of independent live sessions.

    The table lock guards insert, lookup and remove only. Decoding happens
    under each session's own lock, so a slow frame on one session never
    blocks work on another.
    """

    def __init__(self, model_factory: StreamingModelFactory | None = None):
        self.model_factory = model_factory
        self._lock = threading.Lock()
        self._sessions: dict[str, LiveSession] = {}
        self._ids = itertools.count(1)

    @property
    def active_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)

    def start(
        self,
        model_path: Path | str,
        sample_rate: float = SAMPLE_RATE,
        model_factory: StreamingModelFactory | None = None,
    ) -> str:
        """
        Create a session with its own freshly loaded model.

        Returns:
            The new session id

        Raises:
            EngineLoadError: If the model or recognizer cannot be created
        """
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        factory = model_factory or self.model_factory
        if factory is None:
            raise EngineLoadError("No streaming model factory configured")

        try:
            model = factory.load(Path(model_path))
        except EngineLoadError:
            raise
        except Exception as exc:
            raise EngineLoadError(f"Failed to load streaming model {model_path}: {exc}") from exc

        with self._lock:
            session_id = f"live-{next(self._ids)}"
        try:
            session = LiveSession(session_id, model, sample_rate)
        except Exception as exc:
            model.close()
            raise EngineLoadError(
                f"Failed to create recognizer for sample rate {sample_rate}: {exc}"
            ) from exc

        with self._lock:
            self._sessions[session_id] = session
        logger.info("Live session started: %s", session_id)
        return session_id

    def _lookup(self, session_id: str) -> LiveSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def process(self, session_id: str, pcm_frame) -> LiveResult:
        """Feed a PCM frame (int16 bytes, array or sequence) to a session.

        Raises:
            SessionNotFound: If the session does not exist or has ended
        """
        session = self._lookup(session_id)
        with session.lock:
            if session.state is not SessionState.ACTIVE:
                raise SessionNotFound(session_id)
            result = session.process(pcm_frame)
        if result.text and not result.is_partial:
            logger.debug("Session %s final: %s", session_id, result.text)
        return result

    def end(self, session_id: str) -> str:
        """Finalize and remove a session, returning its trailing text.

        Raises:
            SessionNotFound: If the session does not exist or has ended
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(session_id)

        with session.lock:
            text = session.finalize()
        logger.info("Live session ended: %s", session_id)
        return text

    def close_all(self) -> None:
        """End every session; used at service shutdown."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            with session.lock:
                try:
                    session.finalize()
                except DecodeError:
                    logger.warning("Session %s did not finalize cleanly", session.id, exc_info=True)
