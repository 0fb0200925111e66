"""End-to-end pitch estimation for a single clip."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Generator

import numpy as np

from pitch_estimator.postprocess import (
    PitchEstimate, PostprocessConfig, ShapeMismatchError, postprocess,
)
from pitch_estimator.predictor import (
    PitchPredictor, PredictorFailureError, expected_frame_count,
)


logger = logging.getLogger(__name__)


@contextmanager
def _timer() -> Generator[dict[str, float], None, None]:
    result: dict[str, float] = {}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["elapsed"] = time.perf_counter() - start


class PitchEstimator:
    """Runs a pitch predictor on a clip and post-processes its output.

    Args:
        predictor: Model producing normalized pitch and uncertainty per frame.
        config: Post-processing options. Defaults to 90% confidence.
    """

    def __init__(
        self,
        predictor: PitchPredictor,
        config: PostprocessConfig | None = None,
    ) -> None:
        self.predictor = predictor
        self.config = config if config is not None else PostprocessConfig()

    def execute(self, samples) -> PitchEstimate:
        """Estimate per-frame pitch in Hz and the singer's chromatic offset.

        Args:
            samples: Mono float32 audio at the model sample rate.

        Returns:
            PitchEstimate with one Hz value per model frame.

        Raises:
            ShapeMismatchError: If *samples* is not 1-D or the predictor's
                pitch and uncertainty outputs differ in length.
            PredictorFailureError: If inference raises or returns the wrong
                number of frames.
        """
        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim != 1:
            raise ShapeMismatchError(f"samples must be one-dimensional, got shape {samples.shape}")

        with _timer() as t:
            try:
                pitches, uncertainties = self.predictor.predict(samples)
            except PredictorFailureError:
                raise
            except Exception as e:
                raise PredictorFailureError(f"Pitch model inference failed: {e}") from e
        logger.debug("Inference on %d samples took %.3fs", len(samples), t["elapsed"])

        pitches = np.asarray(pitches)
        uncertainties = np.asarray(uncertainties)
        if pitches.shape != uncertainties.shape:
            raise ShapeMismatchError(
                f"Predictor returned {pitches.shape} pitches but {uncertainties.shape} uncertainties"
            )
        expected = expected_frame_count(len(samples))
        if pitches.shape != (expected,):
            raise PredictorFailureError(
                f"Predictor returned {pitches.shape} frames, expected ({expected},)"
            )

        return postprocess(pitches, uncertainties, self.config)

    def close(self) -> None:
        self.predictor.close()

    def __enter__(self) -> PitchEstimator:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
