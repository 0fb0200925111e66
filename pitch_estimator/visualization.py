"""Visualization: pitch contour of confident frames."""
from __future__ import annotations

from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from pitch_estimator.postprocess import PitchEstimate
from pitch_estimator.predictor import HOP_LENGTH, SAMPLE_RATE


_REFERENCE_NOTES = [("C2", 65.41), ("E2", 82.41), ("A2", 110.0),
                    ("C3", 130.81), ("E3", 164.81), ("A3", 220.0),
                    ("C4", 261.63), ("E4", 329.63), ("A4", 440.0),
                    ("C5", 523.25), ("E5", 659.25), ("A5", 880.0),
                    ("C6", 1046.5)]


def plot_pitch_contour(
    estimate: PitchEstimate,
    title: str = "Pitch Contour",
    output_path: str | Path | None = None,
    show: bool = False,
    hop_seconds: float = HOP_LENGTH / SAMPLE_RATE,
) -> None:
    """Plot confident Hz values over time, annotated with the ideal offset."""
    hz = np.asarray(estimate.hz_values)
    frame_idx = np.flatnonzero((hz > 0) & np.isfinite(hz))
    if len(frame_idx) == 0:
        raise ValueError("No confident frames to plot.")

    times = frame_idx * hop_seconds
    freqs = hz[frame_idx]

    fig, ax = plt.subplots(figsize=(12, 5))
    ax.plot(times, freqs, "o", markersize=3, color="#1565C0", alpha=0.8)
    ax.set_yscale("log")
    ax.set_xlabel("Time (seconds)")
    ax.set_ylabel("Frequency (Hz)")
    fig.suptitle(title, fontsize=14, fontweight="bold")

    if not estimate.has_offset:
        subtitle = "Offset: no confident frames"
    else:
        subtitle = f"Offset: {estimate.ideal_offset:+.3f} semitones"
    ax.set_title(subtitle, fontsize=10, color="#888")

    # Note name gridlines
    for note_name, freq in _REFERENCE_NOTES:
        if freqs.min() * 0.8 <= freq <= freqs.max() * 1.2:
            ax.axhline(y=freq, color="gray", linestyle=":", alpha=0.3, linewidth=0.5)
            ax.text(times.max() * 1.01, freq, note_name, fontsize=7, va="center", color="gray")

    plt.tight_layout()

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(str(output_path), dpi=150, bbox_inches="tight")

    if show:
        plt.show()
    plt.close(fig)
