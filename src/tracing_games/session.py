"""
State of one play-through of a tracing game.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import numpy as np

from . import constants
from .config import GameConfig, Settings
from .drawing import DrawingSurface
from .errors import RecognitionError
from .models import LoadState, ModelHandle, ModelLoaderFn
from .recognition import DigitRecognizer, PlaceholderPolicy, round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one Check action."""

    success: bool
    points: int
    label: Optional[str]
    confidence: float
    feedback: str
    used_model: bool


class GameSession:
    """
    Progress, score and feedback for the selected game.

    The session owns the drawing surface so that every item change can wipe
    it. If the game names a model, loading starts immediately in the
    background; until it resolves (and for good, if it fails) checks use the
    placeholder policy.
    """

    def __init__(self, config: GameConfig, loader: Optional[ModelLoaderFn] = None,
                 settings: Optional[Settings] = None,
                 placeholder: Optional[PlaceholderPolicy] = None) -> None:
        self.config = config
        self.settings = settings or Settings()
        self.surface = DrawingSurface(
            size=self.settings.canvas_size,
            stroke_width=self.settings.stroke_width,
            ink_color=self.settings.ink_color,
            background_color=self.settings.background_color,
        )
        self.placeholder = placeholder or PlaceholderPolicy(threshold=self.settings.success_threshold)
        self.index = 0
        self.score = 0
        self.feedback = ""
        self.last_result: Optional[CheckResult] = None
        self.model_handle: Optional[ModelHandle] = None
        self._recognizer: Optional[DigitRecognizer] = None

        if config.model_uri:
            if loader is None:
                raise ValueError(f"Game {config.id!r} needs a model loader for {config.model_uri!r}")
            self.model_handle = ModelHandle.start(config.model_uri, loader, self.settings.model_timeout)
        else:
            logger.debug("Game %s has no recognition model; using placeholder scoring", config.id)

    @property
    def items(self) -> Tuple[str, ...]:
        return self.config.items

    @property
    def current_item(self) -> str:
        return self.items[self.index]

    @property
    def loading(self) -> bool:
        return self.model_handle is not None and not self.model_handle.done

    @property
    def model(self) -> Any:
        return self.model_handle.model if self.model_handle is not None else None

    @property
    def complete(self) -> bool:
        return self.index == len(self.items) - 1

    @property
    def progress(self) -> float:
        return (self.index + 1) / len(self.items) * 100

    def begin_stroke(self, x, y):
        self.feedback = ""
        self.surface.begin_stroke(x, y)

    def extend_stroke(self, x, y):
        self.surface.extend_stroke(x, y)

    def end_stroke(self):
        self.surface.end_stroke()

    def clear(self):
        self.surface.clear()
        self.feedback = ""

    def advance(self) -> bool:
        return self._move_to(self.index + 1)

    def retreat(self) -> bool:
        return self._move_to(self.index - 1)

    def _move_to(self, index: int) -> bool:
        if not 0 <= index < len(self.items):
            return False
        self.index = index
        self.clear()
        return True

    def _digit_recognizer(self) -> Optional[DigitRecognizer]:
        if self.model_handle is None:
            return None
        if self.model_handle.state is LoadState.PENDING:
            self.model_handle.wait()
        model = self.model_handle.model
        if model is None:
            return None
        if self._recognizer is None or self._recognizer.model is not model:
            self._recognizer = DigitRecognizer(model)
        return self._recognizer

    def check_current_drawing(self, snapshot: Optional[np.ndarray] = None) -> CheckResult:
        """Score the drawing against the current item and update feedback."""
        item = self.current_item
        if snapshot is None:
            snapshot = self.surface.snapshot()

        recognizer = self._digit_recognizer()
        if recognizer is not None:
            result = self._check_with_model(recognizer, snapshot, item)
        else:
            result = self._check_with_placeholder(item)

        self.score += result.points
        self.feedback = result.feedback
        self.last_result = result
        return result

    def _check_with_model(self, recognizer: DigitRecognizer, snapshot: np.ndarray, item: str) -> CheckResult:
        try:
            prediction = recognizer.recognize(snapshot)
        except RecognitionError as exc:
            logger.error("Recognition aborted for %s item %r: %s", self.config.id, item, exc)
            return CheckResult(False, 0, None, 0.0,
                               constants.CHECK_ERROR_FEEDBACK.format(error=exc), True)

        if prediction.label == item:
            points = round_half_up(prediction.confidence * 100)
            feedback = constants.MATCH_FEEDBACK.format(item=item, points=points)
            return CheckResult(True, points, prediction.label, prediction.confidence, feedback, True)
        feedback = constants.MISMATCH_FEEDBACK.format(label=prediction.label, item=item)
        return CheckResult(False, 0, prediction.label, prediction.confidence, feedback, True)

    def _check_with_placeholder(self, item: str) -> CheckResult:
        success, points, value = self.placeholder.judge()
        if success:
            feedback = constants.PLACEHOLDER_SUCCESS_FEEDBACK.format(item=item, points=points)
        else:
            feedback = constants.PLACEHOLDER_FAILURE_FEEDBACK.format(item=item)
        return CheckResult(success, points, None, value, feedback, False)
