"""Database models"""

from .base import Base
from .user import User
from .game import Game
from .interaction import (
    Interaction,
    ArchivedInteraction,
    ActionKind,
    ACTED_UPON_ACTIONS,
    QUALIFYING_ACTIONS,
)

__all__ = [
    "Base",
    "User",
    "Game",
    "Interaction",
    "ArchivedInteraction",
    "ActionKind",
    "ACTED_UPON_ACTIONS",
    "QUALIFYING_ACTIONS",
]
