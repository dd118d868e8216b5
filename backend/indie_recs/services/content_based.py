"""Content signal: match between a game's static attributes and the user profile"""

from typing import Dict, Iterable, Mapping, Optional

from .feature_builder import GameFeatureVector, UserFeatureProfile
from .similarity import cosine_similarity

PRICE_TERM_WEIGHT = 0.15


class ContentBasedService:
    """
    Content-based filtering over genre/tag preference weights

    The score is the cosine between the user's accumulated attribute
    weights and the game's attribute vector, blended with how close the
    game's price is to the user's price affinity when one is known.
    """

    def __init__(self, price_term_weight: float = PRICE_TERM_WEIGHT):
        self.price_term_weight = price_term_weight

    def score_candidates(
        self,
        profile: UserFeatureProfile,
        game_vectors: Mapping[int, GameFeatureVector],
        candidates: Iterable[int],
    ) -> Optional[Dict[int, float]]:
        """game_id -> raw score, or None for a profile with no positive preference"""
        if profile.is_empty:
            return None

        profile_attributes = profile.attribute_weights()
        scores = {}

        for game_id in candidates:
            vector = game_vectors.get(game_id)
            if vector is None:
                continue

            score = cosine_similarity(profile_attributes, vector.attributes)
            if profile.price_affinity is not None:
                score = (
                    (1 - self.price_term_weight) * score
                    + self.price_term_weight * self._price_closeness(vector.price, profile.price_affinity)
                )
            scores[game_id] = score

        return scores or None

    @staticmethod
    def _price_closeness(price: float, affinity: float) -> float:
        """1.0 at the affinity price, decaying with relative distance"""
        scale = max(affinity, 1.0)
        return 1.0 / (1.0 + abs(price - affinity) / scale)
