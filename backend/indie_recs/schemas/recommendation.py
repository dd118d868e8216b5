"""Recommendation schemas"""

from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime


class RecommendationResponse(BaseModel):
    """Ranked list of game ids for one user"""

    user_id: int
    game_ids: List[int]
    generated_at: datetime
    cached: bool


class SimilarGameResponse(BaseModel):
    """A game similar to the source game"""

    game_id: int
    title: str
    genres: List[str]
    similarity_score: float
    rank: int


class SimilarGamesResponse(BaseModel):
    source_game_id: int
    source_game_title: str
    similar_games: List[SimilarGameResponse]


class ComponentExplanation(BaseModel):
    """Contribution of one signal to the final score"""

    available: bool
    raw_score: Optional[float]
    normalized_score: Optional[float]
    configured_weight: float
    effective_weight: float
    contribution: float


class ExplanationResponse(BaseModel):
    user_id: int
    game_id: int
    game_title: str
    acted_upon: bool
    final_score: float
    components: Dict[str, ComponentExplanation]
