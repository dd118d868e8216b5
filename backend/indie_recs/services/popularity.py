"""Popularity signal: recent positive engagement across all users"""

from collections import defaultdict
from typing import Dict, Iterable, Mapping, Optional

from ..models import Game, Interaction
from .feature_builder import FeatureBuilder


class PopularityService:
    """Sums positive interaction weights per game plus its catalog popularity"""

    def __init__(self, feature_builder: FeatureBuilder):
        self.feature_builder = feature_builder

    def score_candidates(
        self,
        recent_interactions: Iterable[Interaction],
        games: Mapping[int, Game],
        candidates: Iterable[int],
    ) -> Optional[Dict[int, float]]:
        """game_id -> raw popularity, or None when nothing is popular at all"""
        engagement: Dict[int, float] = defaultdict(float)
        for interaction in recent_interactions:
            weight = self.feature_builder.weight_of(interaction)
            if weight > 0:
                engagement[interaction.game_id] += weight

        scores = {}
        for game_id in candidates:
            game = games.get(game_id)
            base = float(game.popularity_score or 0.0) if game is not None else 0.0
            scores[game_id] = engagement.get(game_id, 0.0) + base

        if not any(score > 0 for score in scores.values()):
            return None
        return scores
