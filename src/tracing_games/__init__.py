"""
Tracing Games
Educational drawing games: trace letters and numbers on a canvas and get
scored by handwriting recognition.
"""

from .config import GameConfig, Settings, default_game_catalog, load_game_catalog
from .router import GameRouter, View
from .session import CheckResult, GameSession

__version__ = "1.0.0"
__author__ = "Tracing Games Team"

__all__ = [
    "CheckResult",
    "GameConfig",
    "GameRouter",
    "GameSession",
    "Settings",
    "View",
    "default_game_catalog",
    "load_game_catalog",
]
