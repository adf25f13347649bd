"""Shared fakes for engine-free tests."""

import threading
import time

import numpy as np
import pytest

from parallel_parakeet.backends.base import Backend
from parallel_parakeet.config import SAMPLE_RATE
from parallel_parakeet.types import DecodingState, EngineOutput, EngineSegment


def time_ramp(seconds: float, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Samples whose value is their own timestamp, so fakes can locate a chunk."""
    return (np.arange(int(seconds * sample_rate)) / sample_rate).astype(np.float64)


def one_segment_per_chunk(samples: np.ndarray) -> list[EngineSegment]:
    offset = float(samples[0])
    duration = len(samples) / SAMPLE_RATE
    return [EngineSegment(0.0, duration, f"chunk at {offset:.1f}")]


class FakeEngine:
    def __init__(self, factory: "FakeEngineFactory"):
        self.factory = factory
        self.closed = False

    def transcribe(self, samples, language, decoding):
        self.factory.languages.append(language)
        if self.factory.delay:
            time.sleep(self.factory.delay)
        offset = round(float(samples[0]), 3)
        if offset in self.factory.fail_offsets:
            raise RuntimeError(f"boom at {offset}")
        return EngineOutput(segments=self.factory.segments_fn(samples))

    def detect_language(self, samples):
        return self.factory.detected_language

    def close(self):
        self.closed = True
        with self.factory.lock:
            self.factory.resident -= 1


class FakeEngineFactory:
    """Counts resident engine instances and their peak."""

    backend = Backend.PARAKEET

    def __init__(
        self,
        segments_fn=one_segment_per_chunk,
        delay: float = 0.0,
        fail_offsets=(),
        fail_load: bool = False,
        detected_language: str = "fr",
    ):
        self.segments_fn = segments_fn
        self.delay = delay
        self.fail_offsets = set(fail_offsets)
        self.fail_load = fail_load
        self.detected_language = detected_language
        self.lock = threading.Lock()
        self.resident = 0
        self.peak = 0
        self.loads = 0
        self.languages: list[str] = []
        self.engines: list[FakeEngine] = []

    def load(self, model_path):
        if self.fail_load:
            raise RuntimeError("weights missing")
        with self.lock:
            self.loads += 1
            self.resident += 1
            self.peak = max(self.peak, self.resident)
            engine = FakeEngine(self)
            self.engines.append(engine)
        return engine


class FakeConverter:
    """Writes a WAV of a time ramp instead of calling ffmpeg."""

    def __init__(self, seconds: float = 10.0, fail: bool = False):
        self.seconds = seconds
        self.fail = fail
        self.outputs = []

    def convert(self, input_path, output_path):
        import wave

        from parallel_parakeet.errors import ConversionError

        self.outputs.append(output_path)
        if self.fail:
            raise ConversionError("ffmpeg conversion failed: bad header")
        pcm = (np.sin(np.arange(int(self.seconds * SAMPLE_RATE)) / 10) * 1000).astype("<i2")
        with wave.open(str(output_path), "wb") as wav:
            wav.setnchannels(1)
            wav.setsampwidth(2)
            wav.setframerate(SAMPLE_RATE)
            wav.writeframes(pcm.tobytes())
        return output_path


class FakeRecognizer:
    """Scripted recognizer: each frame pops the next (state, text) step."""

    def __init__(self, model: "FakeStreamingModel"):
        self.model = model
        self.steps = list(model.script)
        self.text = ""
        self.closed = False
        self.frames = []

    def accept_waveform(self, samples):
        self.frames.append(samples)
        if not self.steps:
            return DecodingState.RUNNING
        state, text = self.steps.pop(0)
        if state == "raise":
            raise RuntimeError("decoder exploded")
        self.text = text
        return state

    def result(self):
        return self.text

    def partial_result(self):
        return self.text

    def final_result(self):
        return self.model.trailing_text

    def close(self):
        assert not self.model.closed, "recognizer closed after its model"
        self.closed = True


class FakeStreamingModel:
    sample_rate = SAMPLE_RATE

    def __init__(self, script=(), trailing_text="goodbye"):
        self.script = script
        self.trailing_text = trailing_text
        self.closed = False
        self.recognizers = []

    def create_recognizer(self):
        recognizer = FakeRecognizer(self)
        self.recognizers.append(recognizer)
        return recognizer

    def close(self):
        self.closed = True


class FakeStreamingFactory:
    backend = Backend.PARAKEET

    def __init__(self, script=(), trailing_text="goodbye", fail_load=False):
        self.script = script
        self.trailing_text = trailing_text
        self.fail_load = fail_load
        self.models: list[FakeStreamingModel] = []

    def load(self, model_path):
        if self.fail_load:
            raise RuntimeError("model directory is empty")
        model = FakeStreamingModel(self.script, self.trailing_text)
        self.models.append(model)
        return model


@pytest.fixture
def model_dir(tmp_path):
    path = tmp_path / "models" / "parakeet-tdt-0.6b-v3"
    path.mkdir(parents=True)
    (path / "config.json").write_text("{}")
    return path


@pytest.fixture
def media_file(tmp_path):
    path = tmp_path / "talk.mp3"
    path.write_bytes(b"ID3 fake")
    return path
