"""User schemas"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class UserBase(BaseModel):
    """Base user schema"""

    username: str = Field(..., min_length=3, max_length=100)
    onboarding_genres: List[str] = []


class UserCreate(UserBase):
    """Schema for creating a user"""

    pass


class UserUpdate(BaseModel):
    """Schema for updating a user"""

    username: Optional[str] = Field(None, min_length=3, max_length=100)
    onboarding_genres: Optional[List[str]] = None


class UserResponse(UserBase):
    """Schema for user response"""

    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
