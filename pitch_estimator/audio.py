"""Load an audio file as mono float32 samples at the model sample rate."""
from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import soundfile as sf

from pitch_estimator.predictor import SAMPLE_RATE


logger = logging.getLogger(__name__)


def load_clip(audio_path: str | Path, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Read *audio_path*, mix down to mono and resample to *sample_rate*.

    Args:
        audio_path: Path to a file soundfile can read (wav, flac, ogg, ...).
        sample_rate: Target sample rate in Hz.

    Returns:
        1-D float32 numpy array.
    """
    audio_path = Path(audio_path)
    if not audio_path.exists():
        raise FileNotFoundError(f"Audio file not found: {audio_path}")

    # (samples, channels)
    audio_np, sr = sf.read(str(audio_path), always_2d=True, dtype="float32")
    audio_np = audio_np.mean(axis=1)

    if sr != sample_rate:
        import librosa
        audio_np = librosa.resample(audio_np, orig_sr=sr, target_sr=sample_rate)
        logger.debug("Resampled %s from %d Hz to %d Hz", audio_path.name, sr, sample_rate)

    return audio_np.astype(np.float32)
