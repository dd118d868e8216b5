"""Collaborative signal: what similar users did with each candidate game"""

from collections import defaultdict
from typing import Dict, Iterable, Mapping, Optional

from ..config import settings
from ..utils.logging import get_logger
from .similarity import SimilarityEngine

logger = get_logger(__name__)


class CollaborativeFilteringService:
    """
    User-based collaborative filtering

    Finds the k users whose weighted interaction vectors are most similar to
    the target's and predicts a score for each candidate as the
    similarity-weighted mean of the neighbours' interaction weights.
    """

    def __init__(self, similarity: SimilarityEngine, k_neighbors: int = settings.SIMILAR_USERS_K):
        self.similarity = similarity
        self.k_neighbors = k_neighbors

    def score_candidates(
        self,
        user_id: int,
        interaction_vectors: Mapping[int, Mapping[int, float]],
        candidates: Iterable[int],
    ) -> Optional[Dict[int, float]]:
        """
        Predicted interaction strength per candidate game

        Returns:
            game_id -> raw score, or None when the user has no history or no
            neighbour with positive similarity (cold start)
        """
        target = interaction_vectors.get(user_id)
        if not target or not any(target.values()):
            return None

        pool = {
            other_id: vector
            for other_id, vector in interaction_vectors.items()
            if other_id != user_id
        }
        neighbours = [
            (other_id, sim)
            for other_id, sim in self.similarity.top_k_similar_users(target, pool, self.k_neighbors)
            if sim > 0
        ]
        if not neighbours:
            return None

        candidate_ids = set(candidates)
        weighted_sums: Dict[int, float] = defaultdict(float)
        similarity_sums: Dict[int, float] = defaultdict(float)

        for other_id, sim in neighbours:
            for game_id, weight in pool[other_id].items():
                if game_id in candidate_ids:
                    weighted_sums[game_id] += sim * weight
                    similarity_sums[game_id] += sim

        scores = {
            game_id: weighted_sums[game_id] / similarity_sums[game_id]
            for game_id in weighted_sums
            if similarity_sums[game_id] > 0
        }

        logger.debug(
            "Collaborative scores computed",
            user_id=user_id,
            neighbours=len(neighbours),
            scored=len(scores),
        )
        return scores or None
