"""
Closed set of user commands understood by ``GameRouter.dispatch``.

The GUI turns pointer and button events into these; tests build them
directly, so no rendering surface is needed to drive a game.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class SelectGame:
    game_id: str


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class BeginStroke:
    x: float
    y: float


@dataclass(frozen=True)
class ExtendStroke:
    x: float
    y: float


@dataclass(frozen=True)
class EndStroke:
    pass


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Check:
    pass


@dataclass(frozen=True)
class Advance:
    pass


@dataclass(frozen=True)
class Retreat:
    pass


Command = Union[SelectGame, Back, BeginStroke, ExtendStroke, EndStroke, Clear, Check, Advance, Retreat]

SESSION_COMMANDS = (BeginStroke, ExtendStroke, EndStroke, Clear, Check, Advance, Retreat)
