"""Diversity / exploration pass over a scored candidate list"""

import random
from typing import Generic, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, TypeVar

from ..config import settings
from ..utils.logging import get_logger
from .feature_builder import GameFeatureVector

logger = get_logger(__name__)

T = TypeVar("T")

UNCATEGORIZED = "uncategorized"


class ExplorationSampler(Generic[T]):
    """
    Lazy random draw without replacement

    Each pass is an incremental Fisher-Yates shuffle, so only as many
    elements as are drawn get shuffled. restart() begins a fresh,
    independent pass over the same candidates.
    """

    def __init__(self, candidates: Iterable[T], rng: Optional[random.Random] = None):
        self._candidates = list(candidates)
        self._rng = rng or random.Random()
        self._current = iter(self)

    def __iter__(self) -> Iterator[T]:
        pool = list(self._candidates)
        for i in range(len(pool)):
            j = self._rng.randrange(i, len(pool))
            pool[i], pool[j] = pool[j], pool[i]
            yield pool[i]

    def __len__(self) -> int:
        return len(self._candidates)

    def draw(self) -> Optional[T]:
        """Next element of the current pass, or None once it is exhausted"""
        return next(self._current, None)

    def restart(self) -> None:
        self._current = iter(self)


class DiversityPass:
    """
    Reorders a ranked list for variety and injects exploration picks

    1. No more than max_consecutive entries in a row share a primary genre.
       At each position the first remaining entry that keeps the run within
       the cap is taken, so entries that are not moved keep their order.
    2. A fraction of the tail is replaced by games drawn at random from
       genres that do not appear in the head of the list.
    """

    def __init__(
        self,
        max_consecutive: int = settings.DIVERSITY_MAX_CONSECUTIVE,
        exploration_fraction: float = settings.EXPLORATION_FRACTION,
        rng: Optional[random.Random] = None,
    ):
        if max_consecutive < 1:
            raise ValueError("max_consecutive must be >= 1")
        if not 0.0 <= exploration_fraction <= 1.0:
            raise ValueError("exploration_fraction must be within [0, 1]")
        self.max_consecutive = max_consecutive
        self.exploration_fraction = exploration_fraction
        self.rng = rng

    def apply(
        self,
        ranked: Sequence[int],
        game_vectors: Mapping[int, GameFeatureVector],
        limit: int,
        exploration_pool: Iterable[int] = (),
        protected_head: int = 0,
    ) -> List[int]:
        """
        Diversified list of at most limit game ids

        Args:
            ranked: Game ids in score order
            game_vectors: Feature vectors used to look up genres
            limit: Requested output size
            exploration_pool: Games eligible for exploration injection
            protected_head: Leading positions exploration must not replace

        Returns:
            Up to limit game ids; fewer when the pool is smaller, never padded
        """
        if limit < 1 or not ranked:
            return []

        result = self.cap_consecutive(ranked, game_vectors, limit)
        injected = self.inject_exploration(result, game_vectors, exploration_pool, protected_head)

        logger.debug(
            "Diversity pass applied",
            requested=limit,
            returned=len(result),
            explored=injected,
        )
        return result

    def cap_consecutive(
        self,
        ranked: Sequence[int],
        game_vectors: Mapping[int, GameFeatureVector],
        limit: int,
    ) -> List[int]:
        pending = list(ranked)
        result: List[int] = []

        while pending and len(result) < limit:
            for idx, game_id in enumerate(pending):
                if self._fits(result, len(result), self._genre(game_id, game_vectors), game_vectors):
                    result.append(pending.pop(idx))
                    break
            else:
                # Every remaining entry would break the cap here
                break

        return result

    def inject_exploration(
        self,
        result: List[int],
        game_vectors: Mapping[int, GameFeatureVector],
        exploration_pool: Iterable[int],
        protected_head: int = 0,
    ) -> int:
        """Replace tail entries in place; returns how many were replaced"""
        tail_size = int(round(len(result) * self.exploration_fraction))
        start = max(len(result) - tail_size, protected_head)
        if tail_size == 0 or start >= len(result):
            return 0

        head_genres: Set[str] = set()
        for game_id in result[:start]:
            head_genres.update(self._genres(game_id, game_vectors))

        present = set(result)
        unexplored = [
            game_id for game_id in exploration_pool
            if game_id not in present
            and game_id in game_vectors
            and not head_genres.intersection(self._genres(game_id, game_vectors))
        ]
        if not unexplored:
            return 0

        sampler = ExplorationSampler(unexplored, rng=self.rng)
        deferred: List[int] = []
        replaced = 0

        for position in range(start, len(result)):
            pick = self._next_fitting(result, position, sampler, deferred, game_vectors)
            if pick is None:
                break
            result[position] = pick
            replaced += 1

        return replaced

    def _next_fitting(self, result, position, sampler, deferred, game_vectors) -> Optional[int]:
        for idx, game_id in enumerate(deferred):
            if self._fits(result, position, self._genre(game_id, game_vectors), game_vectors):
                return deferred.pop(idx)

        while True:
            game_id = sampler.draw()
            if game_id is None:
                return None
            if self._fits(result, position, self._genre(game_id, game_vectors), game_vectors):
                return game_id
            deferred.append(game_id)

    def _fits(self, result: List[int], position: int, genre: str, game_vectors) -> bool:
        """Whether genre at position keeps the surrounding run within the cap"""
        run = 1

        idx = position - 1
        while idx >= 0 and self._genre(result[idx], game_vectors) == genre:
            run += 1
            idx -= 1

        idx = position + 1
        while idx < len(result) and self._genre(result[idx], game_vectors) == genre:
            run += 1
            idx += 1

        return run <= self.max_consecutive

    @staticmethod
    def _genre(game_id: int, game_vectors: Mapping[int, GameFeatureVector]) -> str:
        vector = game_vectors.get(game_id)
        return vector.primary_genre if vector is not None else UNCATEGORIZED

    @staticmethod
    def _genres(game_id: int, game_vectors: Mapping[int, GameFeatureVector]) -> Set[str]:
        vector = game_vectors.get(game_id)
        if vector is None or not vector.genres:
            return {UNCATEGORIZED}
        return set(vector.genres)
