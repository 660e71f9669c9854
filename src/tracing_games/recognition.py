"""
Recognition of drawn glyphs.

Digits go through a pretrained classifier. The preprocessing here is fixed by
what that classifier was trained on: one intensity channel, 28x28 bilinear
resize, values divided by 255, and an NHWC batch of one. Changing any of it
does not raise, it just makes predictions wrong, so shapes are checked on
both sides of inference.

Letters have no classifier yet. ``PlaceholderPolicy`` stands in for one by
drawing a random number; it says nothing about the drawing.
"""

from __future__ import annotations

import math
import random
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import cv2
import numpy as np

from . import constants
from .errors import InvalidModelOutputError, ShapeMismatchError


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores (``round`` rounds to even)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class RecognitionResult:
    label: str
    confidence: float
    probabilities: Tuple[float, ...] = ()


def to_intensity(snapshot: np.ndarray) -> np.ndarray:
    """Collapse an RGB/RGBA/gray raster to a single uint8 channel."""
    image = np.asarray(snapshot)
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[-1] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[-1] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    if image.ndim == 3 and image.shape[-1] == 3:
        return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    raise ShapeMismatchError("snapshot", ("H", "W", 3), image.shape)


def preprocess_snapshot(snapshot: np.ndarray, size: int = constants.MODEL_INPUT_SIZE) -> np.ndarray:
    """Turn a canvas snapshot into the classifier's ``[1, size, size, 1]`` float32 input."""
    gray = to_intensity(snapshot).astype(np.float32)
    resized = cv2.resize(gray, (size, size), interpolation=cv2.INTER_LINEAR)
    normalized = resized / 255.0
    return normalized.reshape(1, size, size, 1)


def check_input_shape(batch: np.ndarray, model: Any) -> None:
    expected = constants.MODEL_INPUT_SHAPE
    if tuple(batch.shape) != expected:
        raise ShapeMismatchError("model input", expected, batch.shape)
    model_shape = getattr(model, "input_shape", None)
    if model_shape is None:
        return
    model_shape = tuple(model_shape)
    if len(model_shape) != len(expected) or any(
        dim is not None and dim != actual for dim, actual in zip(model_shape[1:], expected[1:])
    ):
        raise ShapeMismatchError("model input", model_shape, batch.shape)


@contextmanager
def inference_buffers() -> Iterator[Dict[str, np.ndarray]]:
    """
    Scratch space for the arrays of one inference.

    The arrays are only referenced from the yielded dict, so clearing it on
    exit frees them, whether the block returns or raises.
    """
    buffers: Dict[str, np.ndarray] = {}
    try:
        yield buffers
    finally:
        buffers.clear()


class DigitRecognizer:
    """Classify a snapshot with a loaded 10-class digit model."""

    def __init__(self, model: Any, labels: Optional[List[str]] = None) -> None:
        self.model = model
        self.labels = labels or list(constants.DIGIT_LABELS)

    def recognize(self, snapshot: np.ndarray) -> RecognitionResult:
        expected = (1, len(self.labels))
        with inference_buffers() as buffers:
            buffers["batch"] = preprocess_snapshot(snapshot)
            check_input_shape(buffers["batch"], self.model)

            buffers["output"] = np.asarray(self.model.predict(buffers["batch"], verbose=0),
                                           dtype=np.float32)
            if tuple(buffers["output"].shape) != expected:
                raise ShapeMismatchError("model output", expected, buffers["output"].shape)
            if not np.all(np.isfinite(buffers["output"])):
                raise InvalidModelOutputError(buffers["output"][0])

            probabilities = tuple(float(p) for p in buffers["output"][0])

        index = int(np.argmax(probabilities))
        return RecognitionResult(
            label=self.labels[index],
            confidence=min(max(probabilities[index], 0.0), 1.0),
            probabilities=probabilities,
        )


class PlaceholderPolicy:
    """
    Randomized stand-in used when a game has no recognition model.

    This is not a classifier: the drawing is ignored. A uniform draw in
    [0, 1) above ``threshold`` counts as a success worth
    ``round(draw * 100)`` points. Replace it with a real recognizer once a
    letter model exists.
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 threshold: float = constants.PLACEHOLDER_SUCCESS_THRESHOLD) -> None:
        self.rng = rng if rng is not None else random.Random()
        self.threshold = float(threshold)

    def judge(self) -> Tuple[bool, int, float]:
        """Return ``(success, points, draw)``."""
        value = float(self.rng.random())
        if value > self.threshold:
            return True, round_half_up(value * 100), value
        return False, 0, value
