"""Runtime configuration.

``Settings`` reads process-wide defaults from the environment (prefix
``PARALLEL_PARAKEET_``). ``DecodingSettings`` carries the per-job decoding
options that are forwarded to the engine backends.
"""

import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings

# Default model - optimized for Apple Silicon
DEFAULT_MODEL = "mlx-community/parakeet-tdt-0.6b-v3"

# Canonical engine sample rate (mono 16-bit PCM)
SAMPLE_RATE = 16000


class Settings(BaseSettings):
    """Process-wide defaults, overridable via environment variables."""

    models_dir: Path = Path.home() / ".cache" / "parallel-parakeet" / "models"
    temp_dir: Path = Path(tempfile.gettempdir())
    default_model: str = DEFAULT_MODEL
    chunk_duration: float = 30.0
    overlap_duration: float = 2.0
    max_engine_instances: int = 1
    max_worker_threads: int = 32
    live_sample_rate: int = SAMPLE_RATE
    ffmpeg_timeout: float = 600.0

    model_config = {"env_prefix": "PARALLEL_PARAKEET_"}

    @property
    def engine_slots(self) -> int:
        """Number of engine instances allowed to be resident at once."""
        return max(1, min(self.max_engine_instances, os.cpu_count() or 1))


SamplingStrategy = Literal["greedy", "beam_search"]


@dataclass(frozen=True)
class DecodingSettings:
    """Decoding options for batch jobs.

    Backends apply the options they understand and ignore the rest.
    Whisper (mlx-audio) reads ``max_text_context`` only as an on/off switch:
    0 disables conditioning on previous text, any other limit is logged and
    ignored. Parakeet uses ``strategy``, ``beam_size`` and ``patience`` only.
    """

    preset: str = "balanced"
    strategy: SamplingStrategy = "greedy"
    best_of: int = 5
    beam_size: int = 5
    patience: float = -1.0
    temperature: float = 0.0
    no_context: bool = True
    initial_prompt: str | None = None
    max_text_context: int | None = None
    entropy_threshold: float | None = None
    no_speech_threshold: float | None = None

    def __post_init__(self):
        if self.strategy not in ("greedy", "beam_search"):
            raise ValueError(f"strategy must be 'greedy' or 'beam_search', got {self.strategy!r}")
        if not 1 <= self.best_of <= 10:
            raise ValueError(f"best_of must be 1-10, got {self.best_of}")
        if not 2 <= self.beam_size <= 10 and self.strategy == "beam_search":
            raise ValueError(f"beam_size must be 2-10, got {self.beam_size}")
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(f"temperature must be 0.0-1.0, got {self.temperature}")

    @classmethod
    def from_preset(cls, name: str) -> "DecodingSettings":
        try:
            return PRESETS[name]
        except KeyError:
            raise ValueError(
                f"Unknown preset '{name}'. Use: {sorted(PRESETS)}"
            ) from None

    def with_overrides(self, **changes) -> "DecodingSettings":
        """Return a ``custom`` copy with the given fields replaced."""
        return replace(self, preset="custom", **changes)


PRESETS: dict[str, DecodingSettings] = {
    "fast": DecodingSettings(preset="fast", strategy="greedy", best_of=1),
    "balanced": DecodingSettings(preset="balanced", strategy="greedy", best_of=5),
    "best": DecodingSettings(
        preset="best",
        strategy="beam_search",
        beam_size=5,
        patience=1.0,
        no_context=False,
    ),
}
