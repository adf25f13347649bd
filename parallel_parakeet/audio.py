"""Audio file discovery, conversion and PCM helpers."""

import logging
import shutil
import subprocess
import wave
from pathlib import Path

import numpy as np

from .config import SAMPLE_RATE
from .errors import ConversionError, InputNotFound

logger = logging.getLogger(__name__)

# Containers ffmpeg can demux into an audio stream
SUPPORTED_EXTENSIONS = frozenset({
    ".wav", ".mp3", ".m4a", ".flac", ".ogg", ".webm", ".aac", ".wma",
    ".mp4", ".mkv", ".mov",
})


def is_supported_audio(path: Path) -> bool:
    """Check if a file has a supported media extension."""
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def discover_audio_files(paths: list[Path], recursive: bool = False) -> list[Path]:
    """
    Discover audio files from a list of paths.

    Args:
        paths: List of file or directory paths
        recursive: If True, search directories recursively

    Returns:
        List of audio file paths, sorted alphabetically
    """
    audio_files: list[Path] = []

    for path in paths:
        if path.is_file():
            if is_supported_audio(path):
                audio_files.append(path)
        elif path.is_dir():
            pattern = "**/*" if recursive else "*"
            for file_path in path.glob(pattern):
                if file_path.is_file() and is_supported_audio(file_path):
                    audio_files.append(file_path)

    return sorted(set(audio_files))


def check_ffmpeg() -> bool:
    """Check if ffmpeg is available on the system."""
    return shutil.which("ffmpeg") is not None


def probe_duration(path: Path, timeout: float = 10.0) -> float | None:
    """
    Media duration in seconds as reported by ffprobe.

    Used for dry-run previews; returns None when ffprobe is missing or
    cannot read the container.
    """
    ffprobe = shutil.which("ffprobe")
    if ffprobe is None:
        return None

    cmd = [
        ffprobe,
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (subprocess.TimeoutExpired, OSError):
        logger.debug("ffprobe did not finish on %s", path, exc_info=True)
        return None
    if result.returncode != 0:
        logger.debug("ffprobe failed on %s: %s", path, (result.stderr or "").strip())
        return None

    try:
        return float(result.stdout.strip())
    except ValueError:
        # Streams without a container duration print "N/A"
        return None


class AudioConverter:
    """Converts arbitrary media into mono 16 kHz 16-bit PCM WAV via ffmpeg."""

    def __init__(self, sample_rate: int = SAMPLE_RATE, timeout: float | None = 600.0):
        self.sample_rate = sample_rate
        self.timeout = timeout

    def convert(self, input_path: Path | str, output_path: Path | str) -> Path:
        """Write a canonical WAV for ``input_path`` to ``output_path``.

        Raises:
            InputNotFound: If the input file does not exist.
            ConversionError: If ffmpeg is missing or fails.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)
        if not input_path.is_file():
            raise InputNotFound(input_path)

        ffmpeg = shutil.which("ffmpeg")
        if ffmpeg is None:
            raise ConversionError("ffmpeg not found. Install with: brew install ffmpeg")

        cmd = [
            ffmpeg,
            "-nostdin",
            "-y",
            "-i", str(input_path),
            "-ar", str(self.sample_rate),
            "-ac", "1",
            "-c:a", "pcm_s16le",
            str(output_path),
        ]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as exc:
            raise ConversionError(f"ffmpeg timed out after {self.timeout}s on {input_path}") from exc
        except OSError as exc:
            raise ConversionError(f"Failed to run ffmpeg: {exc}") from exc

        if result.returncode != 0:
            stderr = (result.stderr or "").strip().splitlines()
            detail = stderr[-1] if stderr else f"exit code {result.returncode}"
            raise ConversionError(f"ffmpeg conversion failed for {input_path}: {detail}")
        return output_path


def read_wav(path: Path | str) -> tuple[np.ndarray, float]:
    """Read a mono 16-bit WAV into float32 samples.

    Returns:
        (samples, duration_seconds)

    Raises:
        ConversionError: If the file is not mono 16-bit PCM.
    """
    try:
        with wave.open(str(path), "rb") as wav:
            channels = wav.getnchannels()
            width = wav.getsampwidth()
            rate = wav.getframerate()
            frames = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError) as exc:
        raise ConversionError(f"Invalid WAV file {path}: {exc}") from exc

    if width != 2:
        raise ConversionError(f"Expected 16-bit PCM audio, got {width * 8} bits")
    if channels != 1:
        raise ConversionError(f"Expected mono audio, got {channels} channels")

    samples = pcm16_to_float32(frames)
    return samples, len(samples) / rate


def pcm16_to_float32(pcm) -> np.ndarray:
    """Convert little-endian int16 PCM (bytes, array or sequence) to float32 in [-1, 1)."""
    if isinstance(pcm, (bytes, bytearray, memoryview)):
        data = np.frombuffer(pcm, dtype="<i2")
    else:
        data = np.asarray(pcm)
        if data.dtype.kind == "f":
            return data.astype(np.float32, copy=False)
        data = data.astype(np.int16, copy=False)
    return data.astype(np.float32) / 32768.0


def resample(samples: np.ndarray, source_rate: float, target_rate: float) -> np.ndarray:
    """Linearly resample mono float32 samples."""
    if source_rate == target_rate or len(samples) == 0:
        return samples
    target_len = max(1, int(round(len(samples) * target_rate / source_rate)))
    src_times = np.arange(len(samples)) / source_rate
    dst_times = np.arange(target_len) / target_rate
    return np.interp(dst_times, src_times, samples).astype(np.float32)
