"""Game model"""

from sqlalchemy import Column, Integer, String, Text, JSON, Float
from .base import Base, TimestampMixin


class Game(Base, TimestampMixin):
    """Read-only mirror of the external game catalog"""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False, index=True)
    description = Column(Text)
    genres = Column(JSON, default=list)  # First entry is the primary genre
    tags = Column(JSON, default=list)
    price = Column(Float, default=0.0)
    popularity_score = Column(Float, default=0.0)

    @property
    def primary_genre(self) -> str:
        return self.genres[0] if self.genres else "uncategorized"

    def __repr__(self):
        return f"<Game(id={self.id}, title='{self.title}')>"
