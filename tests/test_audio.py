"""Tests for pitch_estimator/audio.py."""
from __future__ import annotations

import numpy as np
import pytest

from pitch_estimator.audio import load_clip


class TestLoadClip:
    def test_resamples_to_model_rate(self, sine_440hz_wav):
        audio = load_clip(sine_440hz_wav)
        assert audio.ndim == 1
        assert audio.dtype == np.float32
        assert len(audio) == pytest.approx(32000, abs=2)

    def test_resampled_audio_keeps_pitch(self, sine_440hz_wav):
        audio = load_clip(sine_440hz_wav)
        spectrum = np.abs(np.fft.rfft(audio))
        freqs = np.fft.rfftfreq(len(audio), d=1 / 16000)
        assert freqs[np.argmax(spectrum)] == pytest.approx(440.0, abs=1.0)

    def test_mixes_stereo_to_mono(self, stereo_16k_wav):
        audio = load_clip(stereo_16k_wav)
        assert audio.shape == (32000,)
        assert np.allclose(audio, 0.1, atol=1e-6)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_clip(tmp_path / "nope.wav")
