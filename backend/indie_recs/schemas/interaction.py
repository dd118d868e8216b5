"""Interaction schemas"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from ..models import ActionKind


class InteractionBase(BaseModel):
    """Base interaction schema"""

    user_id: int
    game_id: int
    action: ActionKind
    session_id: Optional[str] = Field(None, max_length=64)
    view_duration: Optional[float] = Field(None, ge=0)


class InteractionCreate(InteractionBase):
    """Schema for recording an interaction; snapshots are filled server-side"""

    created_at: Optional[datetime] = None


class InteractionResponse(InteractionBase):
    """Schema for interaction response"""

    id: int
    created_at: datetime
    user_genres_snapshot: List[str] = []
    game_genres_snapshot: List[str] = []
    game_tags_snapshot: List[str] = []

    class Config:
        from_attributes = True
