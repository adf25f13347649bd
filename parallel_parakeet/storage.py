"""Model storage: resolve a model name to a local filesystem path.

Models are never downloaded here. A name resolves when it is an existing
directory, when it exists under the models directory, or when it is
already present in the local Hugging Face cache.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from huggingface_hub import snapshot_download
from huggingface_hub.utils import HFValidationError, LocalEntryNotFoundError

from .backends.base import Backend, ModelInfo
from .backends.registry import resolve_model
from .errors import ModelNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedModel:
    """A model name resolved to its files and backend."""

    name: str
    path: Path
    backend: Backend
    info: ModelInfo | None = None


def guess_backend(model_id: str) -> Backend:
    """Pick a backend for models missing from the registry."""
    if "whisper" in model_id.lower():
        return Backend.MLX_AUDIO
    return Backend.PARAKEET


class ModelStore:
    """Resolves model names, aliases and paths to local model directories."""

    def __init__(self, models_dir: Path | str, use_hf_cache: bool = True):
        self.models_dir = Path(models_dir).expanduser()
        self.use_hf_cache = use_hf_cache

    def _candidates(self, model_id: str) -> list[Path]:
        return [
            self.models_dir / model_id,
            self.models_dir / model_id.replace("/", "--"),
            self.models_dir / model_id.rsplit("/", 1)[-1],
        ]

    def _from_hf_cache(self, model_id: str) -> Path | None:
        if not self.use_hf_cache or "/" not in model_id:
            return None
        try:
            return Path(snapshot_download(repo_id=model_id, local_files_only=True))
        except (LocalEntryNotFoundError, HFValidationError, FileNotFoundError):
            return None

    def resolve(self, model_name: str) -> ResolvedModel:
        """Resolve ``model_name`` (registry ID, alias or directory path).

        Raises:
            ModelNotFound: If no local copy of the model exists.
        """
        direct = Path(model_name).expanduser()
        if direct.is_dir():
            return ResolvedModel(model_name, direct, guess_backend(model_name))

        try:
            info = resolve_model(model_name)
            model_id = info.model_id
            backend = info.backend
        except ValueError:
            info = None
            model_id = model_name
            backend = guess_backend(model_name)

        candidates = self._candidates(model_id)
        for candidate in candidates:
            if candidate.is_dir():
                logger.debug("Resolved model %s -> %s", model_name, candidate)
                return ResolvedModel(model_id, candidate, backend, info)

        cached = self._from_hf_cache(model_id)
        if cached is not None:
            logger.debug("Resolved model %s from Hugging Face cache -> %s", model_name, cached)
            return ResolvedModel(model_id, cached, backend, info)

        raise ModelNotFound(model_name, searched=candidates)
