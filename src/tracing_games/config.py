"""
Game configuration and application settings.

The game catalog is built once at start-up and handed to the router by
reference. It can come from the built-in table in ``constants`` or from a
JSON file with the same fields.
"""

from __future__ import annotations

import json
import logging
import os
from collections import OrderedDict
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from . import constants
from .errors import ConfigError

logger = logging.getLogger(__name__)

GameCatalog = Mapping[str, "GameConfig"]


@dataclass(frozen=True)
class GameConfig:
    """Static description of one playable game."""

    id: str
    name: str
    description: str
    items: Tuple[str, ...]
    model_uri: Optional[str] = None
    theme: str = "blue"

    def __post_init__(self) -> None:
        if not self.items:
            raise ConfigError(f"Game {self.id!r} has no items to draw")

    @property
    def uses_model(self) -> bool:
        return bool(self.model_uri)

    @property
    def item_kind(self) -> str:
        """'number' when every item is a digit, else 'letter'."""
        return "number" if all(item.isdigit() for item in self.items) else "letter"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameConfig":
        try:
            game_id = str(data["id"])
            items = data["items"]
        except KeyError as exc:
            raise ConfigError(f"Game entry is missing field {exc.args[0]!r}") from exc
        if isinstance(items, str):
            items = list(items)
        if not isinstance(items, (list, tuple)) or not all(isinstance(i, str) and i for i in items):
            raise ConfigError(f"Game {game_id!r}: items must be a string or a list of non-empty strings")
        return cls(
            id=game_id,
            name=str(data.get("name", game_id)),
            description=str(data.get("description", "")),
            items=tuple(items),
            model_uri=data.get("model_uri") or None,
            theme=str(data.get("theme", "blue")),
        )


def build_catalog(configs: Iterable[GameConfig]) -> GameCatalog:
    """Freeze an ordered, read-only id -> GameConfig mapping."""
    table: "OrderedDict[str, GameConfig]" = OrderedDict()
    for config in configs:
        if config.id in table:
            raise ConfigError(f"Duplicate game id: {config.id!r}")
        table[config.id] = config
    return MappingProxyType(table)


def default_game_catalog() -> GameCatalog:
    return build_catalog(GameConfig.from_dict(entry) for entry in constants.BUILTIN_GAMES)


def load_game_catalog(path: str) -> GameCatalog:
    """Load a catalog from a JSON file of the form ``{"games": [...]}``."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise ConfigError(f"Could not read game catalog {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Game catalog {path} is not valid JSON: {exc}") from exc

    entries = data.get("games") if isinstance(data, dict) else data
    if not isinstance(entries, list) or not entries:
        raise ConfigError(f"Game catalog {path} must contain a non-empty 'games' list")
    catalog = build_catalog(GameConfig.from_dict(entry) for entry in entries)
    logger.info("Loaded %d games from %s", len(catalog), path)
    return catalog


def _default_model_dirs() -> Tuple[str, ...]:
    package_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(os.path.dirname(package_dir))
    return (os.path.join(project_root, "models"), os.path.join(package_dir, "models"))


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the drawing surface and model loading."""

    canvas_size: int = constants.CANVAS_SIZE
    stroke_width: int = constants.STROKE_WIDTH
    ink_color: str = constants.INK_COLOR
    background_color: str = constants.BACKGROUND_COLOR
    model_timeout: float = constants.DEFAULT_MODEL_TIMEOUT
    model_dirs: Tuple[str, ...] = field(default_factory=_default_model_dirs)
    cache_dir: Optional[str] = None
    success_threshold: float = constants.PLACEHOLDER_SUCCESS_THRESHOLD

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None, **overrides: Any) -> "Settings":
        """Build settings from ``TRACING_GAMES_*`` environment variables."""
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        timeout = env.get("TRACING_GAMES_MODEL_TIMEOUT")
        if timeout:
            try:
                values["model_timeout"] = float(timeout)
            except ValueError as exc:
                raise ConfigError(f"TRACING_GAMES_MODEL_TIMEOUT must be a number, got {timeout!r}") from exc
        model_dir = env.get("TRACING_GAMES_MODEL_DIR")
        if model_dir:
            values["model_dirs"] = (model_dir,) + _default_model_dirs()
        cache_dir = env.get("TRACING_GAMES_CACHE_DIR")
        if cache_dir:
            values["cache_dir"] = cache_dir
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
