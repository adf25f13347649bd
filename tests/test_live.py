"""Tests for live session management."""

import threading

import numpy as np
import pytest

from conftest import FakeStreamingFactory, FakeStreamingModel
from parallel_parakeet.errors import EngineLoadError, SessionNotFound
from parallel_parakeet.live import LiveSessionManager
from parallel_parakeet.types import DecodingState, LiveResult

FRAME = np.zeros(1600, dtype=np.int16)


class TestSessionLifecycle:
    """Tests for start/end and the session table."""

    def test_ids_are_unique_and_counted(self, model_dir):
        manager = LiveSessionManager(FakeStreamingFactory())
        first = manager.start(model_dir)
        second = manager.start(model_dir)

        assert first == "live-1"
        assert second == "live-2"
        assert manager.active_sessions == 2

    def test_each_session_loads_its_own_model(self, model_dir):
        factory = FakeStreamingFactory()
        manager = LiveSessionManager(factory)
        manager.start(model_dir)
        manager.start(model_dir)
        assert len(factory.models) == 2
        assert factory.models[0] is not factory.models[1]

    def test_end_returns_trailing_text_and_releases(self, model_dir):
        factory = FakeStreamingFactory(trailing_text="see you")
        manager = LiveSessionManager(factory)
        session_id = manager.start(model_dir)

        assert manager.end(session_id) == "see you"
        assert manager.active_sessions == 0
        model = factory.models[0]
        assert model.closed
        assert model.recognizers[0].closed

    def test_unknown_session(self):
        manager = LiveSessionManager(FakeStreamingFactory())
        with pytest.raises(SessionNotFound, match="Session not found: live-99"):
            manager.process("live-99", FRAME)
        with pytest.raises(SessionNotFound):
            manager.end("live-99")

    def test_session_unusable_after_end(self, model_dir):
        manager = LiveSessionManager(FakeStreamingFactory())
        session_id = manager.start(model_dir)
        manager.end(session_id)

        with pytest.raises(SessionNotFound):
            manager.process(session_id, FRAME)
        with pytest.raises(SessionNotFound):
            manager.end(session_id)

    def test_load_failure(self, model_dir):
        manager = LiveSessionManager(FakeStreamingFactory(fail_load=True))
        with pytest.raises(EngineLoadError, match="model directory is empty"):
            manager.start(model_dir)
        assert manager.active_sessions == 0

    def test_no_factory(self, model_dir):
        with pytest.raises(EngineLoadError):
            LiveSessionManager().start(model_dir)

    def test_factory_per_call_overrides_default(self, model_dir):
        default, override = FakeStreamingFactory(), FakeStreamingFactory()
        manager = LiveSessionManager(default)
        manager.start(model_dir, model_factory=override)
        assert not default.models
        assert len(override.models) == 1

    def test_rejects_non_positive_sample_rate(self, model_dir):
        with pytest.raises(ValueError):
            LiveSessionManager(FakeStreamingFactory()).start(model_dir, sample_rate=0)

    def test_close_all(self, model_dir):
        factory = FakeStreamingFactory()
        manager = LiveSessionManager(factory)
        manager.start(model_dir)
        manager.start(model_dir)

        manager.close_all()
        assert manager.active_sessions == 0
        assert all(model.closed for model in factory.models)


class TestProcess:
    """Tests for per-frame results."""

    def test_state_classification(self, model_dir):
        script = [
            (DecodingState.RUNNING, "hel"),
            (DecodingState.FINALIZED, "hello"),
            (DecodingState.FAILED, "ignored"),
            ("raise", ""),
            (DecodingState.RUNNING, "wor"),
        ]
        manager = LiveSessionManager(FakeStreamingFactory(script=script))
        session_id = manager.start(model_dir)

        results = [manager.process(session_id, FRAME) for _ in script]
        assert results == [
            LiveResult("hel", is_partial=True),
            LiveResult("hello", is_partial=False),
            LiveResult("", is_partial=True),
            LiveResult("", is_partial=True),
            LiveResult("wor", is_partial=True),
        ]

    def test_accepts_raw_bytes(self, model_dir):
        factory = FakeStreamingFactory()
        manager = LiveSessionManager(factory)
        session_id = manager.start(model_dir)

        manager.process(session_id, (np.full(4, 16384, dtype="<i2")).tobytes())
        frame = factory.models[0].recognizers[0].frames[0]
        assert frame.dtype == np.float32
        assert np.allclose(frame, 0.5)

    def test_resamples_to_model_rate(self, model_dir):
        factory = FakeStreamingFactory()
        manager = LiveSessionManager(factory)
        session_id = manager.start(model_dir, sample_rate=8000)

        manager.process(session_id, np.zeros(800, dtype=np.int16))
        frame = factory.models[0].recognizers[0].frames[0]
        assert len(frame) == 1600

    def test_sessions_are_independent(self, model_dir):
        script = [(DecodingState.FINALIZED, "one")]
        manager = LiveSessionManager(FakeStreamingFactory(script=script))
        a = manager.start(model_dir)
        b = manager.start(model_dir)

        assert manager.process(a, FRAME).text == "one"
        manager.end(a)
        assert manager.process(b, FRAME).text == "one"

    def test_concurrent_frames_on_many_sessions(self, model_dir):
        script = [(DecodingState.RUNNING, "x")] * 20
        manager = LiveSessionManager(FakeStreamingFactory(script=script))
        ids = [manager.start(model_dir) for _ in range(4)]
        errors = []

        def feed(session_id):
            try:
                for _ in range(20):
                    manager.process(session_id, FRAME)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=feed, args=(sid,)) for sid in ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert manager.active_sessions == 4

    def test_malformed_frame_recovers(self, model_dir):
        script = [(DecodingState.FINALIZED, "still here")]
        manager = LiveSessionManager(FakeStreamingFactory(script=script))
        session_id = manager.start(model_dir)

        assert manager.process(session_id, b"\x01\x02\x03") == LiveResult("", is_partial=True)
        assert manager.process(session_id, FRAME) == LiveResult("still here", is_partial=False)
        assert manager.active_sessions == 1


class GatedStreamingFactory:
    """Builds models whose recognizer blocks in accept_waveform until released."""

    backend = FakeStreamingFactory.backend

    def __init__(self, entered: threading.Event, release: threading.Event):
        self.entered = entered
        self.release = release

    def load(self, model_path):
        model = FakeStreamingModel()
        recognizer_factory = model.create_recognizer

        def create_recognizer():
            recognizer = recognizer_factory()
            accept = recognizer.accept_waveform

            def blocking_accept(samples):
                self.entered.set()
                self.release.wait(timeout=10)
                return accept(samples)

            recognizer.accept_waveform = blocking_accept
            return recognizer

        model.create_recognizer = create_recognizer
        return model


class TestSessionIsolation:
    """A slow decode on one session never blocks another session."""

    def test_other_sessions_progress_while_one_decodes(self, model_dir):
        entered, release = threading.Event(), threading.Event()
        manager = LiveSessionManager(
            FakeStreamingFactory(script=[(DecodingState.FINALIZED, "fast")])
        )
        slow = manager.start(model_dir, model_factory=GatedStreamingFactory(entered, release))
        fast = manager.start(model_dir)

        slow_thread = threading.Thread(target=manager.process, args=(slow, FRAME))
        slow_thread.start()
        try:
            assert entered.wait(timeout=2)
            outcomes = []

            def use_other_sessions():
                outcomes.append(manager.process(fast, FRAME))
                extra = manager.start(model_dir)
                outcomes.append(manager.active_sessions)
                outcomes.append(manager.end(fast))
                outcomes.append(manager.end(extra))

            other = threading.Thread(target=use_other_sessions)
            other.start()
            other.join(timeout=2)

            assert not other.is_alive()
            assert outcomes == [LiveResult("fast", is_partial=False), 3, "goodbye", "goodbye"]
            assert slow_thread.is_alive()
        finally:
            release.set()
            slow_thread.join(timeout=2)

        assert manager.end(slow) == "goodbye"
