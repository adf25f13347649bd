"""Split PCM samples into overlapping fixed-duration chunks."""

import numpy as np

from .errors import ConfigurationError
from .types import AudioChunk


def split_into_chunks(
    samples: np.ndarray,
    sample_rate: int,
    chunk_duration: float,
    overlap_duration: float,
) -> list[AudioChunk]:
    """
    Split audio into overlapping chunks covering the whole input.

    A chunk starts every ``chunk - overlap`` samples. The final chunk is
    truncated to the remaining samples rather than padded, and splitting
    stops as soon as a chunk reaches the end of the input.

    Args:
        samples: Mono float32 samples
        sample_rate: Samples per second
        chunk_duration: Chunk length in seconds
        overlap_duration: Overlap between consecutive chunks in seconds

    Returns:
        Ordered list of AudioChunk (empty for empty input)

    Raises:
        ConfigurationError: If the durations would give a non-positive stride
    """
    if sample_rate <= 0:
        raise ConfigurationError(f"sample_rate must be positive, got {sample_rate}")
    if chunk_duration <= 0:
        raise ConfigurationError(f"chunk_duration must be positive, got {chunk_duration}")
    if overlap_duration < 0:
        raise ConfigurationError(f"overlap_duration must be >= 0, got {overlap_duration}")
    if overlap_duration >= chunk_duration:
        raise ConfigurationError(
            f"overlap_duration ({overlap_duration}s) must be smaller than "
            f"chunk_duration ({chunk_duration}s)"
        )

    chunk_samples = int(chunk_duration * sample_rate)
    overlap_samples = int(overlap_duration * sample_rate)
    stride = chunk_samples - overlap_samples
    if stride <= 0:
        raise ConfigurationError(
            f"chunk_duration {chunk_duration}s is too short for sample rate {sample_rate}"
        )

    total = len(samples)
    chunks: list[AudioChunk] = []
    start = 0
    while start < total:
        end = min(start + chunk_samples, total)
        chunks.append(
            AudioChunk(
                index=len(chunks),
                samples=samples[start:end],
                offset_seconds=start / sample_rate,
                sample_rate=sample_rate,
            )
        )
        if end >= total:
            break
        start += stride

    return chunks
