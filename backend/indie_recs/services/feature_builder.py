"""Feature Builder: per-user preference profiles and per-game feature vectors"""

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer

from ..config import settings
from ..models import ActionKind, Game, Interaction
from ..utils.logging import get_logger

logger = get_logger(__name__)

INTERACTION_WEIGHTS = {
    ActionKind.SUPER_LIKE.value: 10.0,
    ActionKind.WISHLIST_ADD.value: 8.0,
    ActionKind.LIKE.value: 5.0,
    ActionKind.VIEW_DETAILS.value: 3.0,
    ActionKind.SKIP.value: 0.0,
    ActionKind.DISLIKE.value: -3.0,
}
LONG_VIEW_WEIGHT = 2.0


def interaction_weight(
    action: str,
    view_duration: Optional[float] = None,
    long_view_seconds: float = settings.LONG_VIEW_SECONDS,
) -> float:
    """Fixed score of one interaction; a plain view only counts when it is long"""
    if action == ActionKind.VIEW.value:
        if view_duration is not None and view_duration > long_view_seconds:
            return LONG_VIEW_WEIGHT
        return 0.0
    return INTERACTION_WEIGHTS.get(action, 0.0)


@dataclass
class UserFeatureProfile:
    """Derived preference profile; rebuilt from history, never edited"""

    user_id: int
    genre_weights: Dict[str, float] = field(default_factory=dict)
    tag_weights: Dict[str, float] = field(default_factory=dict)
    price_affinity: Optional[float] = None
    interaction_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not any(w > 0 for w in self.genre_weights.values()) and \
            not any(w > 0 for w in self.tag_weights.values())

    def attribute_weights(self) -> Dict[str, float]:
        """Profile in the same attribute space as GameFeatureVector.attributes"""
        attributes = {f"genre:{g}": w for g, w in self.genre_weights.items()}
        attributes.update({f"tag:{t}": w for t, w in self.tag_weights.items()})
        return attributes


@dataclass
class GameFeatureVector:
    """Derived from static catalog attributes only"""

    game_id: int
    attributes: Dict[str, float]
    genres: Tuple[str, ...]
    primary_genre: str
    price: float
    embedding: np.ndarray


class FeatureBuilder:
    """
    Builds feature vectors from the interaction log and the game catalog

    Game vectors depend only on catalog attributes and are memoised until
    the catalog changes.
    """

    def __init__(
        self,
        genre_weight: float = settings.GENRE_ATTRIBUTE_WEIGHT,
        tag_weight: float = settings.TAG_ATTRIBUTE_WEIGHT,
        onboarding_weight: float = settings.ONBOARDING_GENRE_WEIGHT,
        long_view_seconds: float = settings.LONG_VIEW_SECONDS,
    ):
        self.genre_weight = genre_weight
        self.tag_weight = tag_weight
        self.onboarding_weight = onboarding_weight
        self.long_view_seconds = long_view_seconds
        self._lock = threading.Lock()
        self._catalog_fingerprint = None
        self._game_vectors: Dict[int, GameFeatureVector] = {}

    def weight_of(self, interaction: Interaction) -> float:
        return interaction_weight(
            interaction.action, interaction.view_duration, self.long_view_seconds
        )

    # User features

    def build_user_profile(
        self,
        user_id: int,
        interactions: Iterable[Interaction],
        onboarding_genres: Iterable[str] = (),
        games: Optional[Mapping[int, Game]] = None,
    ) -> UserFeatureProfile:
        """
        Accumulate genre/tag preference weights from a user's history

        Onboarding genres seed the profile so cold-start users still have a
        content signal. Price affinity is the weight-averaged price of the
        positively rated games found in the catalog.
        """
        genre_weights: Dict[str, float] = defaultdict(float)
        tag_weights: Dict[str, float] = defaultdict(float)

        for genre in onboarding_genres:
            genre_weights[genre] += self.onboarding_weight

        price_sum = 0.0
        price_weight = 0.0
        count = 0

        for interaction in interactions:
            count += 1
            weight = self.weight_of(interaction)
            if weight == 0:
                continue

            for genre in interaction.game_genres_snapshot or []:
                genre_weights[genre] += weight
            for tag in interaction.game_tags_snapshot or []:
                tag_weights[tag] += weight * self.tag_weight

            if weight > 0 and games is not None:
                game = games.get(interaction.game_id)
                if game is not None and game.price is not None:
                    price_sum += game.price * weight
                    price_weight += weight

        return UserFeatureProfile(
            user_id=user_id,
            genre_weights=dict(genre_weights),
            tag_weights=dict(tag_weights),
            price_affinity=price_sum / price_weight if price_weight > 0 else None,
            interaction_count=count,
        )

    def build_interaction_vectors(
        self, interactions: Iterable[Interaction]
    ) -> Dict[int, Dict[int, float]]:
        """Sparse user -> {game_id: summed interaction weight} vectors"""
        vectors: Dict[int, Dict[int, float]] = defaultdict(lambda: defaultdict(float))
        for interaction in interactions:
            vectors[interaction.user_id][interaction.game_id] += self.weight_of(interaction)
        return {user_id: dict(vector) for user_id, vector in vectors.items()}

    # Game features

    def build_game_vectors(self, games: List[Game]) -> Dict[int, GameFeatureVector]:
        """Feature vectors for the whole catalog, recomputed only when it changes"""
        fingerprint = tuple(
            (game.id, game.updated_at, tuple(game.genres or []), tuple(game.tags or []),
             game.price, game.description)
            for game in games
        )
        with self._lock:
            if fingerprint == self._catalog_fingerprint:
                return self._game_vectors

            embeddings = self._text_embeddings(games)
            vectors = {
                game.id: self._build_game_vector(game, embeddings[idx])
                for idx, game in enumerate(games)
            }
            self._catalog_fingerprint = fingerprint
            self._game_vectors = vectors

        logger.debug("Game feature vectors rebuilt", games=len(games))
        return vectors

    def _build_game_vector(self, game: Game, embedding: np.ndarray) -> GameFeatureVector:
        attributes: Dict[str, float] = {}
        for genre in game.genres or []:
            attributes[f"genre:{genre}"] = self.genre_weight
        for tag in game.tags or []:
            attributes[f"tag:{tag}"] = self.tag_weight

        genres = tuple(game.genres or [])
        return GameFeatureVector(
            game_id=game.id,
            attributes=attributes,
            genres=genres,
            primary_genre=genres[0] if genres else "uncategorized",
            price=float(game.price or 0.0),
            embedding=embedding,
        )

    def _text_embeddings(self, games: List[Game]) -> np.ndarray:
        """TF-IDF rows of title + description, one per game"""
        if not games:
            return np.zeros((0, 1))

        texts = [" ".join(filter(None, [game.title, game.description])) for game in games]
        vectorizer = TfidfVectorizer(
            max_features=500,
            stop_words='english',
            ngram_range=(1, 2)
        )
        try:
            return vectorizer.fit_transform(texts).toarray()
        except ValueError:
            # Empty vocabulary: no usable text in the catalog
            return np.zeros((len(games), 1))
