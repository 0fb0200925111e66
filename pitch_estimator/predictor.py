"""Pitch model inference: predictor interface and the SPICE TFLite adapter."""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from pitch_estimator.postprocess import PitchEstimationError


logger = logging.getLogger(__name__)

SAMPLE_RATE = 16_000
HOP_LENGTH = 512
DEFAULT_MODEL = "lite-model_spice_1.tflite"

# Clip length the model was exported for; other lengths yield one extra frame
_REFERENCE_LENGTH = 32_000


class PredictorFailureError(PitchEstimationError):
    """Raised when model inference fails or returns malformed output."""
    pass


def expected_frame_count(num_samples: int) -> int:
    """Number of (pitch, uncertainty) frames the model emits for *num_samples*."""
    frames = math.ceil(num_samples / HOP_LENGTH)
    if num_samples == _REFERENCE_LENGTH:
        return frames
    return frames + 1


class PitchPredictor(ABC):
    """Black-box model mapping audio samples to normalized pitch and uncertainty."""

    @abstractmethod
    def predict(self, samples: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Return (pitch, uncertainty), both one value per frame in [0, 1]."""
        ...

    def close(self) -> None:
        pass

    def __enter__(self) -> PitchPredictor:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@dataclass
class SpiceConfig:
    """Configuration for the SPICE TFLite interpreter."""
    model_path: str | Path = DEFAULT_MODEL
    num_threads: int = 4


def _output_index(details: list[dict], name: str, position: int) -> int:
    """Find an output tensor by name, falling back to its position."""
    for detail in details:
        if name in str(detail.get("name", "")).lower():
            return detail["index"]
    return details[position]["index"]


class SpicePredictor(PitchPredictor):
    """SPICE (Self-supervised PItch Estimation) running on the LiteRT interpreter."""

    def __init__(self, config: SpiceConfig | None = None) -> None:
        if config is None:
            config = SpiceConfig()
        try:
            from ai_edge_litert.interpreter import Interpreter
        except ImportError:
            raise ImportError(
                "ai-edge-litert is required to run the SPICE model. "
                "Install with: pip install 'pitch-estimator[spice]'"
            )

        model_path = Path(config.model_path)
        if not model_path.exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")

        self.config = config
        self._interpreter = Interpreter(
            model_path=str(model_path), num_threads=config.num_threads
        )
        logger.info("Loaded SPICE model from %s (%d threads)", model_path, config.num_threads)

    def predict(self, samples: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        samples = np.asarray(samples, dtype=np.float32)
        interpreter = self._interpreter

        input_index = interpreter.get_input_details()[0]["index"]
        interpreter.resize_tensor_input(input_index, [len(samples)], strict=False)
        interpreter.allocate_tensors()
        interpreter.set_tensor(input_index, samples)
        interpreter.invoke()

        details = interpreter.get_output_details()
        pitch = interpreter.get_tensor(_output_index(details, "pitch", 0))
        uncertainty = interpreter.get_tensor(_output_index(details, "uncertainty", 1))
        return np.array(pitch).reshape(-1), np.array(uncertainty).reshape(-1)

    def close(self) -> None:
        # LiteRT releases the model when the interpreter is collected
        self._interpreter = None
