"""Game schemas"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class GameBase(BaseModel):
    """Base game schema"""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    genres: List[str] = []
    tags: List[str] = []
    price: float = Field(default=0.0, ge=0)


class GameCreate(GameBase):
    """Schema for mirroring a catalog game"""

    id: Optional[int] = None
    popularity_score: float = Field(default=0.0, ge=0)


class GameUpdate(BaseModel):
    """Schema for updating a game"""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    genres: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    popularity_score: Optional[float] = Field(None, ge=0)


class GameResponse(GameBase):
    """Schema for game response"""

    id: int
    popularity_score: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
