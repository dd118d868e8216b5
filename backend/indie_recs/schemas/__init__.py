"""Pydantic schemas for request/response validation"""

from .user import UserCreate, UserUpdate, UserResponse
from .game import GameCreate, GameUpdate, GameResponse
from .interaction import InteractionCreate, InteractionResponse
from .recommendation import (
    RecommendationResponse,
    SimilarGameResponse,
    SimilarGamesResponse,
    ExplanationResponse,
)

__all__ = [
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "GameCreate",
    "GameUpdate",
    "GameResponse",
    "InteractionCreate",
    "InteractionResponse",
    "RecommendationResponse",
    "SimilarGameResponse",
    "SimilarGamesResponse",
    "ExplanationResponse",
]
