from __future__ import annotations

import io
from collections.abc import Sequence
from typing import Any

import numpy as np
import soundfile as sf  # type: ignore[import]
from numpy.typing import NDArray

FloatArray = NDArray[np.float64]
AudioNumbers = NDArray[np.floating[Any]] | Sequence[float]

SAMPLE_RATE = 44_100


def to_pcm16(samples: AudioNumbers) -> NDArray[np.int16]:
    """Clamp to [-1, 1] and quantise: negatives scale by 32768, positives by 32767."""

    mono = np.clip(np.asarray(samples, dtype=np.float64).reshape(-1), -1.0, 1.0)
    scaled = np.where(mono < 0, mono * 32768.0, mono * 32767.0)
    # Round half up.
    return np.floor(scaled + 0.5).astype("<i2")


def encode_wav(samples: AudioNumbers, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Encode float samples as a mono 16-bit PCM RIFF/WAVE byte string."""

    pcm = to_pcm16(samples)
    buffer = io.BytesIO()
    # Quantise ourselves; soundfile would scale float input symmetrically.
    sf.write(buffer, pcm, sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


def decode_wav(data: bytes) -> tuple[FloatArray, int]:
    """Decode a WAV byte string back to float samples in [-1, 1)."""

    samples, sample_rate = sf.read(io.BytesIO(data), dtype="float64", always_2d=False)
    return np.asarray(samples, dtype=np.float64), int(sample_rate)
