"""Tests for the Hybrid Scorer"""

import math

import pytest

from indie_recs.exceptions import DataIntegrityError
from indie_recs.services.scorer import HybridScorer

WEIGHTS = {"collaborative": 0.4, "content": 0.3, "contextual": 0.2, "popularity": 0.1}


@pytest.fixture
def scorer():
    return HybridScorer(WEIGHTS)


def test_scores_sorted_descending(scorer):
    components = {
        "collaborative": {1: 1.0, 2: 5.0, 3: 3.0},
        "content": {1: 0.1, 2: 0.9, 3: 0.5},
        "contextual": {1: 0.0, 2: 2.0, 3: 1.0},
        "popularity": {1: 10.0, 2: 30.0, 3: 20.0},
    }

    result = scorer.score([1, 2, 3], components)

    assert [game_id for game_id, _ in result] == [2, 3, 1]
    scores = [score for _, score in result]
    assert scores == sorted(scores, reverse=True)
    assert result[0][1] == pytest.approx(1.0)
    assert result[-1][1] == pytest.approx(0.0)


def test_ties_broken_by_ascending_id(scorer):
    components = {"popularity": {7: 1.0, 3: 1.0, 5: 1.0}}

    result = scorer.score([7, 3, 5], components)

    assert [game_id for game_id, _ in result] == [3, 5, 7]


def test_deterministic(scorer):
    components = {
        "content": {game_id: (game_id * 37) % 11 for game_id in range(1, 40)},
        "popularity": {game_id: (game_id * 13) % 7 for game_id in range(1, 40)},
    }

    first = scorer.score(range(1, 40), components)
    second = scorer.score(reversed(range(1, 40)), components)

    assert first == second


def test_unavailable_components_redistribute_weight(scorer):
    """Missing signals hand their weight to the rest proportionally"""

    components = {
        "collaborative": None,
        "content": {1: 1.0, 2: 0.0},
        "contextual": {},
        "popularity": {1: 0.0, 2: 1.0},
    }

    weights = scorer.effective_weights(components)
    result = dict(scorer.score([1, 2], components))

    assert weights == pytest.approx({"content": 0.75, "popularity": 0.25})
    assert result[1] == pytest.approx(0.75)
    assert result[2] == pytest.approx(0.25)


def test_no_components_scores_zero(scorer):
    result = scorer.score([2, 1], {"collaborative": None})

    assert result == [(1, 0.0), (2, 0.0)]


def test_equal_values_normalise_to_one(scorer):
    assert scorer._normalize_scores({1: 4.0, 2: 4.0}) == {1: 1.0, 2: 1.0}


def test_negative_raw_scores_normalise_into_unit_range(scorer):
    normalized = scorer._normalize_scores({1: -3.0, 2: 0.0, 3: 3.0})

    assert normalized == pytest.approx({1: 0.0, 2: 0.5, 3: 1.0})


def test_non_finite_component_raises(scorer):
    with pytest.raises(DataIntegrityError):
        scorer.score([1], {"content": {1: math.nan}})


def test_unknown_component_raises(scorer):
    with pytest.raises(ValueError):
        scorer.score([1], {"editorial": {1: 1.0}})


def test_invalid_weights():
    with pytest.raises(ValueError):
        HybridScorer({"content": -1.0, "popularity": 1.0})

    with pytest.raises(ValueError):
        HybridScorer({"content": 0.0})

    with pytest.raises(ValueError):
        HybridScorer({"editorial": 1.0})


def test_explain_contributions_sum_to_final(scorer):
    components = {
        "collaborative": None,
        "content": {1: 0.2, 2: 0.8},
        "contextual": {1: 1.0, 2: 0.0},
        "popularity": {1: 5.0, 2: 5.0},
    }

    explanation = scorer.explain(components, 2)
    final = dict(scorer.score([1, 2], components))[2]

    assert explanation["collaborative"]["available"] is False
    assert explanation["collaborative"]["contribution"] == 0.0
    assert explanation["content"]["raw_score"] == 0.8
    assert explanation["content"]["normalized_score"] == pytest.approx(1.0)
    assert explanation["content"]["effective_weight"] == pytest.approx(0.5)
    assert explanation["final_score"] == pytest.approx(final)
    assert sum(
        explanation[name]["contribution"]
        for name in ("collaborative", "content", "contextual", "popularity")
    ) == pytest.approx(final)
