"""Recommendation engine: the single entry point for ranked game lists"""

from datetime import timedelta
from functools import partial
from typing import Dict, List, Optional, Tuple

from ..config import settings
from ..models import ACTED_UPON_ACTIONS
from ..utils.logging import get_logger
from ..utils.metrics import track_generation_time
from .cache import RankedList, RecommendationCache
from .collaborative_filtering import CollaborativeFilteringService
from .content_based import ContentBasedService
from .contextual import ContextualService, RecommendationContext
from .diversity import DiversityPass
from .feature_builder import FeatureBuilder
from .popularity import PopularityService
from .repositories import GameCatalog, InteractionStore, UserDirectory
from .scorer import HybridScorer
from .similarity import SimilarityEngine

logger = get_logger(__name__)


class RecommendationEngine:
    """
    Produces, caches and serves per-user ranked lists of game ids

    Pipeline: fetch history and catalog, build features, compute the four
    signals, blend them with the hybrid scorer, then run the diversity and
    exploration pass. Every collaborator is passed in; nothing is looked up
    from module-level state.
    """

    def __init__(
        self,
        catalog: GameCatalog,
        interactions: InteractionStore,
        users: UserDirectory,
        cache: RecommendationCache,
        feature_builder: Optional[FeatureBuilder] = None,
        similarity: Optional[SimilarityEngine] = None,
        scorer: Optional[HybridScorer] = None,
        diversity: Optional[DiversityPass] = None,
        popularity_window_days: int = settings.POPULARITY_WINDOW_DAYS,
        cold_start_protected_head: int = settings.COLD_START_PROTECTED_HEAD,
        default_size: int = settings.DEFAULT_LIMIT,
    ):
        self.catalog = catalog
        self.interactions = interactions
        self.users = users
        self.cache = cache
        self.feature_builder = feature_builder or FeatureBuilder()
        self.similarity = similarity or SimilarityEngine()
        self.scorer = scorer or HybridScorer()
        self.diversity = diversity or DiversityPass()
        self.collaborative = CollaborativeFilteringService(self.similarity)
        self.content = ContentBasedService()
        self.contextual = ContextualService(self.feature_builder)
        self.popularity = PopularityService(self.feature_builder)
        self.popularity_window = timedelta(days=popularity_window_days)
        self.cold_start_protected_head = cold_start_protected_head
        self.default_size = default_size

    def get_recommendations(self, user_id: int, limit: int) -> List[int]:
        """Ordered game ids for the user, at most limit of them"""
        ranked, _ = self.get_ranked_list(user_id, limit)
        return ranked.game_ids

    def get_ranked_list(
        self,
        user_id: int,
        limit: int,
        use_cache: bool = True,
        context: Optional[RecommendationContext] = None,
    ) -> Tuple[RankedList, bool]:
        """
        Ranked list trimmed to limit, plus whether it was served from cache

        Games the user acted on after the list was generated are filtered
        out on the way out, so a stale generation never resurfaces them.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")

        size = max(limit, self.default_size)
        generate = track_generation_time("request")(partial(self._generate, user_id, context=context))

        if use_cache:
            ranked, cached = self.cache.get_or_generate(user_id, generate, size)
        else:
            ranked, cached = self.cache.refresh(user_id, generate, size), False

        acted = self.interactions.acted_upon_game_ids(user_id)
        served = [game_id for game_id in ranked.game_ids if game_id not in acted][:limit]

        logger.info(
            "Recommendations served",
            user_id=user_id,
            limit=limit,
            returned=len(served),
            cached=cached,
        )
        return RankedList(user_id=user_id, game_ids=served, generated_at=ranked.generated_at, size=ranked.size), cached

    def regenerate(self, user_id: int, size: Optional[int] = None) -> RankedList:
        """Rebuild and store the user's list regardless of cache state"""
        generate = track_generation_time("batch")(partial(self._generate, user_id))
        return self.cache.refresh(user_id, generate, size or self.default_size)

    def invalidate(self, user_id: int) -> None:
        self.cache.invalidate(user_id)

    def explain(self, user_id: int, game_id: int, context: Optional[RecommendationContext] = None) -> Dict[str, object]:
        """Contribution of each signal to one game's score for the user"""
        games = self.catalog.list_games()
        history = self.interactions.history_for_user(user_id)
        components = self._components(user_id, games, history, [g.id for g in games], context)
        explanation = self.scorer.explain(components, game_id)
        explanation["acted_upon"] = any(
            i.game_id == game_id and i.action in ACTED_UPON_ACTIONS for i in history
        )
        return explanation

    def similar_games(self, game_id: int, k: int = 10) -> List[Tuple[int, float]]:
        """Item-item neighbours of a game by attributes and description"""
        games = self.catalog.list_games()
        vectors = self.feature_builder.build_game_vectors(games)
        target = vectors.get(game_id)
        if target is None:
            return []
        return self.similarity.top_k_similar_games(target, vectors.values(), k)

    def _generate(self, user_id: int, size: int, context: Optional[RecommendationContext] = None) -> List[int]:
        games = self.catalog.list_games()
        history = self.interactions.history_for_user(user_id)
        onboarding_genres = self.users.onboarding_genres(user_id)

        acted = {i.game_id for i in history if i.action in ACTED_UPON_ACTIONS}
        candidates = [game.id for game in games if game.id not in acted]
        if not candidates:
            logger.info("No candidates left", user_id=user_id, catalog_size=len(games))
            return []

        vectors = self.feature_builder.build_game_vectors(games)
        components = self._components(user_id, games, history, candidates, context, onboarding_genres)
        ordered = [game_id for game_id, _ in self.scorer.score(candidates, components)]

        protected_head = 0
        if not history and onboarding_genres:
            # Cold start: onboarding genres lead the list
            wanted = set(onboarding_genres)
            matching = [g for g in ordered if wanted.intersection(vectors[g].genres)]
            others = [g for g in ordered if not wanted.intersection(vectors[g].genres)]
            ordered = matching + others
            protected_head = self.cold_start_protected_head

        result = self.diversity.apply(
            ordered,
            vectors,
            size,
            exploration_pool=candidates,
            protected_head=protected_head,
        )

        logger.debug(
            "Ranked list generated",
            user_id=user_id,
            candidates=len(candidates),
            signals=sorted(name for name, scores in components.items() if scores),
            returned=len(result),
        )
        return result

    def _components(self, user_id, games, history, candidates, context=None, onboarding_genres=None):
        context = context or RecommendationContext()
        if onboarding_genres is None:
            onboarding_genres = self.users.onboarding_genres(user_id)

        games_by_id = {game.id: game for game in games}
        vectors = self.feature_builder.build_game_vectors(games)

        all_interactions = self.interactions.all_interactions()
        interaction_vectors = self.feature_builder.build_interaction_vectors(all_interactions)
        recent_cutoff = context.now - self.popularity_window
        recent = self.interactions.all_interactions(since=recent_cutoff)

        profile = self.feature_builder.build_user_profile(
            user_id, history, onboarding_genres, games_by_id
        )

        return {
            "collaborative": self.collaborative.score_candidates(user_id, interaction_vectors, candidates),
            "content": self.content.score_candidates(profile, vectors, candidates),
            "contextual": self.contextual.score_candidates(history, vectors, candidates, context),
            "popularity": self.popularity.score_candidates(recent, games_by_id, candidates),
        }
