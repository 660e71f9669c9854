"""
Screen routing between the game selection screen and an active game.
"""

from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Any, Callable, Dict, Optional

from . import commands
from .config import GameCatalog, GameConfig, Settings
from .errors import UnknownGameError
from .models import KerasModelLoader, ModelLoaderFn
from .recognition import PlaceholderPolicy
from .session import GameSession

logger = logging.getLogger(__name__)


class View(Enum):
    SELECTION = "selection"
    GAME = "game"


class GameRouter:
    """Holds which screen is active and the session of the selected game."""

    def __init__(self, games: GameCatalog, settings: Optional[Settings] = None,
                 loader: Optional[ModelLoaderFn] = None,
                 rng: Optional[random.Random] = None) -> None:
        self.games = games
        self.settings = settings or Settings()
        self.loader = loader if loader is not None else KerasModelLoader.from_settings(self.settings)
        self.rng = rng
        self.view = View.SELECTION
        self.selected_id: Optional[str] = None
        self.session: Optional[GameSession] = None
        self.error_message = ""
        self._handlers: Dict[type, Callable[[Any], Any]] = {
            commands.SelectGame: lambda cmd: self.select_game(cmd.game_id),
            commands.Back: lambda cmd: self.go_back(),
            commands.BeginStroke: lambda cmd: self.session.begin_stroke(cmd.x, cmd.y),
            commands.ExtendStroke: lambda cmd: self.session.extend_stroke(cmd.x, cmd.y),
            commands.EndStroke: lambda cmd: self.session.end_stroke(),
            commands.Clear: lambda cmd: self.session.clear(),
            commands.Check: lambda cmd: self.session.check_current_drawing(),
            commands.Advance: lambda cmd: self.session.advance(),
            commands.Retreat: lambda cmd: self.session.retreat(),
        }

    @property
    def selected_game(self) -> Optional[GameConfig]:
        return self.games.get(self.selected_id) if self.selected_id else None

    def select_game(self, game_id: str) -> GameSession:
        """Start a new session for ``game_id``; unknown ids leave the selection screen up."""
        config = self.games.get(game_id)
        if config is None:
            raise UnknownGameError(game_id)
        placeholder = PlaceholderPolicy(rng=self.rng, threshold=self.settings.success_threshold)
        self.session = GameSession(config, loader=self.loader, settings=self.settings,
                                   placeholder=placeholder)
        self.selected_id = game_id
        self.view = View.GAME
        self.error_message = ""
        logger.info("Started game %s (%d items)", game_id, len(config.items))
        return self.session

    def go_back(self) -> None:
        if self.selected_id is not None:
            logger.info("Left game %s", self.selected_id)
        self.session = None
        self.selected_id = None
        self.view = View.SELECTION

    def dispatch(self, command: "commands.Command") -> Any:
        """Apply one command and return what its handler returns."""
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {command!r}")
        if isinstance(command, commands.SESSION_COMMANDS) and self.session is None:
            logger.warning("Ignoring %s: no game is active", type(command).__name__)
            return None
        try:
            return handler(command)
        except UnknownGameError as exc:
            self.error_message = str(exc)
            logger.warning("%s; staying on the selection screen", exc)
            return None
