"""Post-processing of SPICE output: confidence filter, Hz conversion, chromatic offset."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np


logger = logging.getLogger(__name__)

# Calibration of the model's pitch output to constant-Q bins
PT_OFFSET = 25.58
PT_SLOPE = 63.07
FMIN = 10.0
BINS_PER_OCTAVE = 12.0

# Tuning reference: C in octave 0
C0 = 16.351597831287414

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F",
              "F#", "G", "G#", "A", "A#", "B"]


class PitchEstimationError(Exception):
    """Base class for pitch estimation failures."""
    pass


class ShapeMismatchError(PitchEstimationError, ValueError):
    """Raised when paired pitch/uncertainty sequences do not line up."""
    pass


class EmptySequenceError(PitchEstimationError):
    """Raised when no confident frames are left to average."""
    pass


@dataclass(frozen=True)
class PostprocessConfig:
    """Configuration for turning raw model output into Hz values."""
    confidence_threshold: float = 0.9

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be within [0, 1], got {self.confidence_threshold}"
            )


@dataclass(frozen=True)
class PitchEstimate:
    """Result of one clip: per-frame Hz values and the mean chromatic offset.

    ``hz_values`` keeps one entry per model frame, with ``0.0`` where no
    confident pitch was found. ``ideal_offset`` is ``None`` when no frame
    passed the confidence filter.
    """
    hz_values: np.ndarray
    ideal_offset: float | None

    def __post_init__(self) -> None:
        hz_values = np.array(self.hz_values, dtype=np.float64)
        hz_values.setflags(write=False)
        object.__setattr__(self, "hz_values", hz_values)

    @property
    def voiced_count(self) -> int:
        return int(np.count_nonzero(self.hz_values > 0))

    @property
    def has_offset(self) -> bool:
        return self.ideal_offset is not None

    def note_names(self) -> list[str | None]:
        """Offset-corrected note name per frame (``None`` at unvoiced frames)."""
        return offset_corrected_note_names(self.hz_values, self.ideal_offset)


def _as_frames(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64)
    if arr.ndim != 1:
        raise ShapeMismatchError(f"{name} must be one-dimensional, got shape {arr.shape}")
    return arr


def filter_by_confidence(
    pitches,
    uncertainties,
    confidence_threshold: float = 0.9,
) -> np.ndarray:
    """Zero out pitch frames whose confidence (1 - uncertainty) is below the threshold.

    Args:
        pitches: Normalized model pitch per frame.
        uncertainties: Model uncertainty per frame, paired with *pitches* by index.
        confidence_threshold: Minimum confidence to keep a frame (inclusive).

    Returns:
        Float64 array of the same length as the inputs.

    Raises:
        ShapeMismatchError: If the two sequences differ in length or are not 1-D.
    """
    pitch = _as_frames(pitches, "pitches")
    uncertainty = _as_frames(uncertainties, "uncertainties")
    if pitch.shape != uncertainty.shape:
        raise ShapeMismatchError(
            f"Got {len(pitch)} pitch frames but {len(uncertainty)} uncertainty frames"
        )

    confidence = 1.0 - uncertainty
    filtered = np.where(confidence >= confidence_threshold, pitch, 0.0)
    logger.debug(
        "%d of %d frames at or above %.0f%% confidence",
        int(np.count_nonzero(confidence >= confidence_threshold)),
        len(pitch),
        confidence_threshold * 100,
    )
    return filtered


def pitch_to_hz(value: float) -> float:
    """Convert a normalized model pitch to Hz. ``0.0`` stays ``0.0`` (no estimate)."""
    if value == 0.0:
        return 0.0
    cqt_bin = value * PT_SLOPE + PT_OFFSET
    with np.errstate(over="ignore"):
        return float(FMIN * np.exp2(cqt_bin / BINS_PER_OCTAVE))


def pitches_to_hz(values) -> np.ndarray:
    """Elementwise :func:`pitch_to_hz`, preserving order and length.

    Values outside [0, 1] are not rejected; they extrapolate through the
    calibration and are reported with a warning. Values too large to
    represent saturate to ``inf``.
    """
    values = _as_frames(values, "values")
    out_of_range = int(np.count_nonzero((values < 0.0) | (values > 1.0)))
    if out_of_range:
        logger.warning(
            "%d normalized pitch values outside [0, 1]; extrapolating", out_of_range
        )

    cqt_bins = values * PT_SLOPE + PT_OFFSET
    with np.errstate(over="ignore"):
        hz = FMIN * np.exp2(cqt_bins / BINS_PER_OCTAVE)
    return np.where(values == 0.0, 0.0, hz)


def nearest_semitone(semitones: float) -> int:
    """Round to the nearest semitone, halves rounding down.

    Rounding halves down keeps the residual ``semitones - nearest`` within
    (-0.5, 0.5].
    """
    return int(math.ceil(semitones - 0.5))


def hz_to_semitones(freq_hz: float) -> float:
    """Fractional semitones above C0."""
    if not math.isfinite(freq_hz) or freq_hz <= 0:
        raise ValueError(f"Frequency must be positive and finite, got {freq_hz}")
    return 12 * math.log2(freq_hz / C0)


def hz_to_offset(freq_hz: float) -> float:
    """Fractional deviation of *freq_hz* from the nearest equal-tempered note."""
    semitones = hz_to_semitones(freq_hz)
    return semitones - nearest_semitone(semitones)


def average_offset(hz_values) -> float:
    """Mean chromatic offset over the positive, finite entries of *hz_values*.

    Raises:
        EmptySequenceError: If no entry is positive and finite.
    """
    hz = _as_frames(hz_values, "hz_values")
    voiced = hz[(hz > 0) & np.isfinite(hz)]
    if len(voiced) < np.count_nonzero(hz > 0):
        logger.warning(
            "Skipping %d non-finite Hz values", int(np.count_nonzero(hz > 0)) - len(voiced)
        )
    if len(voiced) == 0:
        raise EmptySequenceError("No confident frames to compute an offset from")
    offsets = [hz_to_offset(float(h)) for h in voiced]
    return float(np.mean(offsets))


def semitone_to_note_name(semitone: int) -> str:
    """Convert semitones above C0 to a note name (e.g., 57 -> 'A4')."""
    octave = semitone // 12
    return f"{NOTE_NAMES[semitone % 12]}{octave}"


def offset_corrected_note_names(
    hz_values,
    ideal_offset: float | None,
) -> list[str | None]:
    """Name the nearest note of each voiced frame after removing the singer's offset.

    Frames without a finite positive Hz value get ``None``.
    """
    offset = ideal_offset or 0.0
    names: list[str | None] = []
    for h in _as_frames(hz_values, "hz_values"):
        if h <= 0 or not np.isfinite(h):
            names.append(None)
            continue
        names.append(semitone_to_note_name(nearest_semitone(hz_to_semitones(h) - offset)))
    return names


def collapse_note_names(names: list[str | None]) -> list[tuple[str, int]]:
    """Collapse consecutive equal note names into (name, frame_count) runs.

    Unvoiced frames end the current run and are not reported.
    """
    runs: list[tuple[str, int]] = []
    current: str | None = None
    count = 0
    for name in names:
        if name == current:
            count += 1
            continue
        if current is not None:
            runs.append((current, count))
        current = name
        count = 1
    if current is not None:
        runs.append((current, count))
    return runs


def postprocess(
    pitches,
    uncertainties,
    config: PostprocessConfig | None = None,
) -> PitchEstimate:
    """Run the full post-processing chain: confidence filter → Hz → offset."""
    if config is None:
        config = PostprocessConfig()

    filtered = filter_by_confidence(pitches, uncertainties, config.confidence_threshold)
    hz_values = pitches_to_hz(filtered)
    logger.debug("Hz values: %s", hz_values)

    try:
        ideal_offset: float | None = average_offset(hz_values)
    except EmptySequenceError:
        logger.debug("No confident frames; offset unavailable")
        ideal_offset = None
    else:
        logger.debug("Average offset: %.4f semitones", ideal_offset)

    return PitchEstimate(hz_values=hz_values, ideal_offset=ideal_offset)
