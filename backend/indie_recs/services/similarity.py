"""Similarity Engine: user-user and game-game similarity"""

import heapq
import math
from typing import Hashable, Iterable, List, Mapping, Tuple

import numpy as np

from ..config import settings
from ..exceptions import DataIntegrityError
from .feature_builder import GameFeatureVector


def _check_finite(vector: Mapping[Hashable, float]) -> None:
    for key, value in vector.items():
        if value is None or not math.isfinite(value):
            raise DataIntegrityError(f"Non-finite component {key!r}: {value!r}")


def _aligned(a: Mapping, b: Mapping) -> Tuple[np.ndarray, np.ndarray]:
    """Dense copies of two sparse vectors over their sorted key union"""
    keys = sorted(set(a) | set(b))
    va = np.array([float(a.get(k, 0.0)) for k in keys])
    vb = np.array([float(b.get(k, 0.0)) for k in keys])
    return va, vb


def cosine_similarity(a: Mapping[Hashable, float], b: Mapping[Hashable, float]) -> float:
    """
    Cosine similarity of two sparse vectors, in [-1, 1]

    Symmetric: components are combined in a fixed key order, so
    cosine_similarity(a, b) == cosine_similarity(b, a) exactly.
    Returns 0.0 when either vector has zero norm.
    """
    _check_finite(a)
    _check_finite(b)
    if not a or not b:
        return 0.0

    va, vb = _aligned(a, b)
    norm = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if norm == 0:
        return 0.0
    return max(-1.0, min(1.0, float(np.dot(va, vb)) / norm))


def dense_cosine(a, b) -> float:
    """
    Cosine similarity of two dense vectors

    Raises:
        DataIntegrityError: If the vectors are not 1-d, differ in dimension
            or contain non-finite values
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.ndim != 1 or vb.ndim != 1:
        raise DataIntegrityError(f"Expected 1-d vectors, got shapes {va.shape} and {vb.shape}")
    if va.shape != vb.shape:
        raise DataIntegrityError(f"Dimension mismatch: {va.shape[0]} != {vb.shape[0]}")
    if not (np.all(np.isfinite(va)) and np.all(np.isfinite(vb))):
        raise DataIntegrityError("Non-finite component in dense vector")

    norm = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if norm == 0:
        return 0.0
    return max(-1.0, min(1.0, float(np.dot(va, vb)) / norm))


def weighted_jaccard(a: Mapping[Hashable, float], b: Mapping[Hashable, float]) -> float:
    """
    Weighted Jaccard index sum(min) / sum(max), in [0, 1]

    Raises:
        DataIntegrityError: On negative or non-finite weights
    """
    _check_finite(a)
    _check_finite(b)
    for vector in (a, b):
        if any(value < 0 for value in vector.values()):
            raise DataIntegrityError("Weighted Jaccard requires non-negative weights")

    va, vb = _aligned(a, b)
    denominator = float(np.maximum(va, vb).sum())
    if denominator == 0:
        return 0.0
    return float(np.minimum(va, vb).sum()) / denominator


def _top_k(scored: Iterable[Tuple[int, float]], k: int) -> List[Tuple[int, float]]:
    """Highest scores first; equal scores by ascending id"""
    return heapq.nsmallest(k, scored, key=lambda pair: (-pair[1], pair[0]))


class SimilarityEngine:
    """
    Top-K neighbour search for users and games

    Users are compared by cosine over their weighted interaction vectors.
    Games are compared by a blend of weighted Jaccard over genre/tag
    attributes and cosine over the text embedding of their description.
    """

    def __init__(
        self,
        jaccard_weight: float = settings.ITEM_JACCARD_WEIGHT,
        text_weight: float = settings.ITEM_TEXT_WEIGHT,
    ):
        total = jaccard_weight + text_weight
        if jaccard_weight < 0 or text_weight < 0 or total <= 0:
            raise ValueError("Item similarity weights must be non-negative and not both zero")
        self.jaccard_weight = jaccard_weight / total
        self.text_weight = text_weight / total

    def user_similarity(self, a: Mapping[int, float], b: Mapping[int, float]) -> float:
        return cosine_similarity(a, b)

    def game_similarity(self, a: GameFeatureVector, b: GameFeatureVector) -> float:
        jaccard = weighted_jaccard(a.attributes, b.attributes)
        text = dense_cosine(a.embedding, b.embedding)
        return max(0.0, self.jaccard_weight * jaccard + self.text_weight * max(text, 0.0))

    def top_k_similar_users(
        self,
        target: Mapping[int, float],
        pool: Mapping[int, Mapping[int, float]],
        k: int,
    ) -> List[Tuple[int, float]]:
        """
        The k users of the pool most similar to the target vector

        Args:
            target: Sparse interaction vector of the target user
            pool: Candidate user id -> sparse interaction vector
            k: Number of neighbours (>= 1)

        Returns:
            List of (user_id, similarity), best first; [] for an empty pool
        """
        if k < 1:
            raise ValueError("k must be >= 1")
        if not pool:
            return []

        scored = [
            (user_id, self.user_similarity(target, vector))
            for user_id, vector in pool.items()
        ]
        return _top_k(scored, k)

    def top_k_similar_games(
        self,
        target: GameFeatureVector,
        pool: Iterable[GameFeatureVector],
        k: int,
    ) -> List[Tuple[int, float]]:
        """The k games of the pool most similar to the target (target excluded)"""
        if k < 1:
            raise ValueError("k must be >= 1")

        scored = [
            (vector.game_id, self.game_similarity(target, vector))
            for vector in pool
            if vector.game_id != target.game_id
        ]
        if not scored:
            return []
        return _top_k(scored, k)
