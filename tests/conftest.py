"""Shared test fixtures."""
from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from pitch_estimator.predictor import PitchPredictor, expected_frame_count


class FakePredictor(PitchPredictor):
    """Returns fixed pitch/uncertainty frames regardless of the input."""

    def __init__(self, pitch=None, uncertainty=None, error: Exception | None = None):
        self.pitch = pitch
        self.uncertainty = uncertainty
        self.error = error
        self.calls: list[int] = []
        self.closed = False

    def predict(self, samples: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        self.calls.append(len(samples))
        if self.error is not None:
            raise self.error
        n = expected_frame_count(len(samples))
        pitch = np.full(n, 0.5, dtype=np.float32) if self.pitch is None else self.pitch
        uncertainty = (
            np.zeros(n, dtype=np.float32) if self.uncertainty is None else self.uncertainty
        )
        return np.asarray(pitch), np.asarray(uncertainty)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_predictor_cls():
    return FakePredictor


@pytest.fixture(scope="session")
def sine_440hz_wav(tmp_path_factory) -> Path:
    """Generate a 2-second 440Hz (A4) sine wave WAV file at 44.1 kHz."""
    sr = 44100
    duration = 2.0
    t = np.linspace(0, duration, int(sr * duration), endpoint=False)
    audio = (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
    path = tmp_path_factory.mktemp("fixtures") / "sine_440hz.wav"
    sf.write(str(path), audio, sr)
    return path


@pytest.fixture(scope="session")
def stereo_16k_wav(tmp_path_factory) -> Path:
    """Generate a 2-second stereo WAV at 16 kHz: left 0.4, right -0.2 (DC)."""
    sr = 16000
    n = sr * 2
    audio = np.stack([np.full(n, 0.4), np.full(n, -0.2)], axis=1).astype(np.float32)
    path = tmp_path_factory.mktemp("fixtures") / "stereo_16k.wav"
    sf.write(str(path), audio, sr, subtype="FLOAT")
    return path
