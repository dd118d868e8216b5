"""Dependency providers for FastAPI routes"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .database import get_db
from ..config import settings
from ..services.cache import RecommendationCache, RedisCacheBackend
from ..services.diversity import DiversityPass
from ..services.feature_builder import FeatureBuilder
from ..services.recommendation_engine import RecommendationEngine
from ..services.repositories import GameCatalog, InteractionStore, UserDirectory
from ..services.scorer import HybridScorer


def build_recommendation_cache() -> RecommendationCache:
    """Redis-backed cache shared by every worker process"""
    return RecommendationCache(RedisCacheBackend(), ttl=settings.CACHE_TTL)


def build_engine(db: Session, cache: RecommendationCache, feature_builder: FeatureBuilder) -> RecommendationEngine:
    """Wire an engine around one database session"""
    return RecommendationEngine(
        catalog=GameCatalog(db),
        interactions=InteractionStore(db),
        users=UserDirectory(db),
        cache=cache,
        feature_builder=feature_builder,
        scorer=HybridScorer(settings.SCORER_WEIGHTS),
        diversity=DiversityPass(
            max_consecutive=settings.DIVERSITY_MAX_CONSECUTIVE,
            exploration_fraction=settings.EXPLORATION_FRACTION,
        ),
    )


def get_recommendation_cache(request: Request) -> RecommendationCache:
    """Long-lived cache held on the application state"""
    return request.app.state.recommendation_cache


def get_feature_builder(request: Request) -> FeatureBuilder:
    return request.app.state.feature_builder


def get_interaction_store(db: Session = Depends(get_db)) -> InteractionStore:
    return InteractionStore(db)


def get_engine(
    db: Session = Depends(get_db),
    cache: RecommendationCache = Depends(get_recommendation_cache),
    feature_builder: FeatureBuilder = Depends(get_feature_builder),
) -> RecommendationEngine:
    return build_engine(db, cache, feature_builder)
