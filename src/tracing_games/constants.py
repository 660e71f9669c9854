"""
Built-in game table and fixed values shared by the tracing games.
"""

from __future__ import annotations

from typing import Any, Dict, List

# Shape the pretrained digit classifier was trained on (NHWC, batch of one).
MODEL_INPUT_SIZE: int = 28
MODEL_INPUT_SHAPE = (1, MODEL_INPUT_SIZE, MODEL_INPUT_SIZE, 1)
NUM_DIGIT_CLASSES: int = 10
DIGIT_LABELS: List[str] = [str(i) for i in range(NUM_DIGIT_CLASSES)]

CANVAS_SIZE: int = 400
STROKE_WIDTH: int = 20
INK_COLOR: str = "black"
BACKGROUND_COLOR: str = "white"

# Placeholder policy: draws strictly above this value count as a success.
PLACEHOLDER_SUCCESS_THRESHOLD: float = 0.3

DEFAULT_MODEL_TIMEOUT: float = 30.0
DIGIT_MODEL_FILENAME: str = "cnn_model.h5"

# Ordered like the selection screen shows them.
BUILTIN_GAMES: List[Dict[str, Any]] = [
    {
        "id": "letter-trace",
        "name": "Letter Tracing",
        "description": "Trace letters from A to Z",
        "items": "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
        "model_uri": None,
        "theme": "blue",
    },
    {
        "id": "number-trace",
        "name": "Number Tracing",
        "description": "Trace numbers from 0 to 9",
        "items": "0123456789",
        "model_uri": DIGIT_MODEL_FILENAME,
        "theme": "green",
    },
]

# Display colours for theme tags (GUI only).
THEME_COLORS: Dict[str, str] = {
    "blue": "#3b82f6",
    "green": "#22c55e",
    "purple": "#a855f7",
    "orange": "#f97316",
}

MATCH_FEEDBACK = "✅ Perfect! That's a {item}! (+{points} points)"
MISMATCH_FEEDBACK = "❌ That looks like a {label}. Try drawing {item} again!"
PLACEHOLDER_SUCCESS_FEEDBACK = "✅ Great job! That's a {item}! (+{points} points)"
PLACEHOLDER_FAILURE_FEEDBACK = "❌ Not quite! Try drawing {item} again!"
CHECK_ERROR_FEEDBACK = "⚠️ Could not check this drawing: {error}"
