"""
Error types raised by the tracing games.

None of these are fatal to the application: each one narrows what the
current screen can do but leaves it usable.
"""


class GameError(Exception):
    """Base class for all tracing game errors."""


class ModelLoadError(GameError):
    """The recognition model could not be fetched or parsed."""

    def __init__(self, uri, reason=None):
        self.uri = uri
        self.reason = reason
        message = f"Could not load recognition model from {uri!r}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class ModelLoadTimeout(ModelLoadError):
    """The recognition model did not finish loading in time."""

    def __init__(self, uri, timeout):
        self.timeout = timeout
        super().__init__(uri, f"timed out after {timeout:.1f}s")


class UnknownGameError(GameError, KeyError):
    """A game id that is not in the catalog was selected."""

    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__(game_id)

    def __str__(self):
        return f"Unknown game: {self.game_id!r}"


class RecognitionError(GameError, ValueError):
    """A single check could not be scored by the model."""


class ShapeMismatchError(RecognitionError):
    """Recognition input or output does not have the shape the model expects."""

    def __init__(self, what, expected, actual):
        self.what = what
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        super().__init__(f"{what} shape {self.actual} does not match expected {self.expected}")


class InvalidModelOutputError(RecognitionError):
    """The model returned probabilities that are not finite numbers."""

    def __init__(self, output):
        self.output = tuple(float(p) for p in output)
        super().__init__(f"model output is not a finite distribution: {self.output}")


class ConfigError(GameError, ValueError):
    """A game catalog file is malformed."""
