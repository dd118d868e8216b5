"""Interaction models"""

from enum import Enum
from sqlalchemy import Column, Integer, Float, String, DateTime, ForeignKey, JSON, Index
from .base import Base, utcnow


class ActionKind(str, Enum):
    """What a user did with a game card"""

    SUPER_LIKE = "super_like"
    WISHLIST_ADD = "wishlist_add"
    LIKE = "like"
    VIEW_DETAILS = "view_details"
    VIEW = "view"
    SKIP = "skip"
    DISLIKE = "dislike"


# Games the user has explicitly decided on; never recommended again
ACTED_UPON_ACTIONS = frozenset({
    ActionKind.LIKE.value,
    ActionKind.DISLIKE.value,
    ActionKind.WISHLIST_ADD.value,
    ActionKind.SUPER_LIKE.value,
    ActionKind.SKIP.value,
})

# Fresh positive signals that invalidate the cached list
QUALIFYING_ACTIONS = frozenset({
    ActionKind.LIKE.value,
    ActionKind.SUPER_LIKE.value,
    ActionKind.WISHLIST_ADD.value,
})


class Interaction(Base):
    """Append-only log of user-game interaction events"""

    __tablename__ = "interactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    game_id = Column(Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(32), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    session_id = Column(String(64))
    view_duration = Column(Float)  # Seconds the card was on screen
    user_genres_snapshot = Column(JSON, default=list)
    game_genres_snapshot = Column(JSON, default=list)
    game_tags_snapshot = Column(JSON, default=list)

    __table_args__ = (
        Index('ix_interactions_user_created', 'user_id', 'created_at'),
        Index('ix_interactions_game', 'game_id'),
    )

    def __repr__(self):
        return f"<Interaction(user_id={self.user_id}, game_id={self.game_id}, action='{self.action}')>"


class ArchivedInteraction(Base):
    """Interactions moved out of the hot log after the retention window"""

    __tablename__ = "archived_interactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, index=True)
    game_id = Column(Integer, nullable=False)
    action = Column(String(32), nullable=False)
    created_at = Column(DateTime, nullable=False)
    session_id = Column(String(64))
    view_duration = Column(Float)
    user_genres_snapshot = Column(JSON, default=list)
    game_genres_snapshot = Column(JSON, default=list)
    game_tags_snapshot = Column(JSON, default=list)
    archived_at = Column(DateTime, default=utcnow, nullable=False)
