"""User model"""

from sqlalchemy import Column, Integer, String, JSON
from .base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Minimal mirror of an app user: only what the recommender reads"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    onboarding_genres = Column(JSON, default=list)  # Genres picked during onboarding

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
