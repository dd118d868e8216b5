"""Hybrid Scorer: weighted blend of collaborative, content, contextual and popularity signals"""

import math
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..config import settings
from ..exceptions import DataIntegrityError

COMPONENTS = ("collaborative", "content", "contextual", "popularity")

ComponentScores = Mapping[str, Optional[Mapping[int, float]]]


class HybridScorer:
    """
    Combines four independently computed signals into one score per game

    final = w_collab * collaborative + w_content * content
          + w_context * contextual + w_pop * popularity

    Each component is min-max normalised to [0, 1] first. A component that
    is unavailable (None or empty, e.g. no collaborative data for a
    cold-start user) gives its weight to the available ones in proportion
    to their own weights instead of counting as zero.
    """

    def __init__(self, weights: Optional[Mapping[str, float]] = None):
        """
        Args:
            weights: Component name -> weight. If None, uses value from settings
        """
        weights = dict(weights if weights is not None else settings.SCORER_WEIGHTS)

        unknown = set(weights) - set(COMPONENTS)
        if unknown:
            raise ValueError(f"Unknown scorer components: {sorted(unknown)}")
        if any(w < 0 for w in weights.values()) or sum(weights.values()) <= 0:
            raise ValueError("Scorer weights must be non-negative with a positive sum")

        self.weights = {name: float(weights.get(name, 0.0)) for name in COMPONENTS}

    def effective_weights(self, components: ComponentScores) -> Dict[str, float]:
        """Weights after redistributing those of unavailable components"""
        available = {
            name: self.weights[name]
            for name in COMPONENTS
            if components.get(name)
        }
        total = sum(available.values())
        if total <= 0:
            return {}
        return {name: weight / total for name, weight in available.items()}

    def score(
        self,
        candidates: Iterable[int],
        components: ComponentScores,
    ) -> List[Tuple[int, float]]:
        """
        Final score for every candidate

        Returns:
            List of (game_id, score) sorted by score descending, ties broken
            by ascending game id
        """
        self._check_components(components)

        weights = self.effective_weights(components)
        normalized = {
            name: self._normalize_scores(components[name])
            for name in weights
        }

        scored = []
        for game_id in set(candidates):
            final = sum(
                weight * normalized[name].get(game_id, 0.0)
                for name, weight in weights.items()
            )
            scored.append((game_id, final))

        scored.sort(key=lambda pair: (-pair[1], pair[0]))
        return scored

    def explain(self, components: ComponentScores, game_id: int) -> Dict[str, object]:
        """Per-component contribution to one game's final score"""
        self._check_components(components)

        weights = self.effective_weights(components)
        explanation: Dict[str, object] = {}
        final = 0.0

        for name in COMPONENTS:
            scores = components.get(name)
            available = name in weights
            normalized = self._normalize_scores(scores).get(game_id, 0.0) if available else None
            contribution = weights[name] * normalized if available else 0.0
            final += contribution
            explanation[name] = {
                "available": available,
                "raw_score": scores.get(game_id) if scores else None,
                "normalized_score": normalized,
                "configured_weight": self.weights[name],
                "effective_weight": weights.get(name, 0.0),
                "contribution": contribution,
            }

        explanation["final_score"] = final
        return explanation

    def _check_components(self, components: ComponentScores) -> None:
        unknown = set(components) - set(COMPONENTS)
        if unknown:
            raise ValueError(f"Unknown scorer components: {sorted(unknown)}")
        for name, scores in components.items():
            if not scores:
                continue
            for game_id, value in scores.items():
                if value is None or not math.isfinite(value):
                    raise DataIntegrityError(f"Non-finite {name} score for game {game_id}: {value!r}")

    def _normalize_scores(self, scores: Mapping[int, float]) -> Dict[int, float]:
        """
        Normalize scores to [0, 1] range using min-max normalization

        Args:
            scores: Dictionary of game_id -> score

        Returns:
            Dictionary of game_id -> normalized_score
        """

        if not scores:
            return {}

        values = list(scores.values())
        min_score = min(values)
        max_score = max(values)

        # Avoid division by zero
        if max_score == min_score:
            return {k: 1.0 for k in scores.keys()}

        return {
            k: (v - min_score) / (max_score - min_score)
            for k, v in scores.items()
        }
