"""Contextual signal: current session behaviour and time-of-day habits"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from ..config import settings
from ..models import Interaction
from ..models.base import utcnow
from .feature_builder import FeatureBuilder, GameFeatureVector

SESSION_WEIGHT = 0.6
TIME_OF_DAY_WEIGHT = 0.4


@dataclass
class RecommendationContext:
    """Request-time context; defaults to now and the user's latest session"""

    now: datetime = field(default_factory=utcnow)
    session_id: Optional[str] = None


class ContextualService:
    """
    Scores games by the genres the user is engaging with right now

    Two genre affinities are blended: what the user responded to in the
    current session, and what they usually engage with around this hour.
    """

    def __init__(self, feature_builder: FeatureBuilder, hour_window: int = settings.CONTEXT_HOUR_WINDOW):
        self.feature_builder = feature_builder
        self.hour_window = hour_window

    def score_candidates(
        self,
        history: List[Interaction],
        game_vectors: Mapping[int, GameFeatureVector],
        candidates: Iterable[int],
        context: RecommendationContext,
    ) -> Optional[Dict[int, float]]:
        """game_id -> raw score, or None when there is no contextual evidence"""
        if not history:
            return None

        session_id = context.session_id or history[-1].session_id
        session_genres = self._genre_affinity(
            i for i in history if session_id is not None and i.session_id == session_id
        )
        hourly_genres = self._genre_affinity(
            i for i in history if self._near_hour(i.created_at, context.now)
        )

        affinity: Dict[str, float] = defaultdict(float)
        for genre, weight in session_genres.items():
            affinity[genre] += SESSION_WEIGHT * weight
        for genre, weight in hourly_genres.items():
            affinity[genre] += TIME_OF_DAY_WEIGHT * weight

        if not any(weight > 0 for weight in affinity.values()):
            return None

        scores = {}
        for game_id in candidates:
            vector = game_vectors.get(game_id)
            if vector is None or not vector.genres:
                continue
            scores[game_id] = sum(affinity.get(g, 0.0) for g in vector.genres) / len(vector.genres)

        return scores or None

    def _genre_affinity(self, interactions: Iterable[Interaction]) -> Dict[str, float]:
        affinity: Dict[str, float] = defaultdict(float)
        for interaction in interactions:
            weight = self.feature_builder.weight_of(interaction)
            for genre in interaction.game_genres_snapshot or []:
                affinity[genre] += weight
        return affinity

    def _near_hour(self, when: datetime, now: datetime) -> bool:
        distance = abs(when.hour - now.hour)
        return min(distance, 24 - distance) <= self.hour_window
