"""Recommendation services"""

from .cache import RankedList, RecommendationCache, RedisCacheBackend, InMemoryCacheBackend
from .diversity import DiversityPass, ExplorationSampler
from .feature_builder import FeatureBuilder, GameFeatureVector, UserFeatureProfile, interaction_weight
from .recommendation_engine import RecommendationEngine
from .repositories import GameCatalog, InteractionStore, UserDirectory
from .scorer import HybridScorer
from .similarity import SimilarityEngine

__all__ = [
    "RankedList",
    "RecommendationCache",
    "RedisCacheBackend",
    "InMemoryCacheBackend",
    "DiversityPass",
    "ExplorationSampler",
    "FeatureBuilder",
    "GameFeatureVector",
    "UserFeatureProfile",
    "interaction_weight",
    "RecommendationEngine",
    "GameCatalog",
    "InteractionStore",
    "UserDirectory",
    "HybridScorer",
    "SimilarityEngine",
]
