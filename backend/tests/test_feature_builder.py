"""Tests for the feature builder"""

import numpy as np
import pytest

from indie_recs.models import Game, Interaction
from indie_recs.services.feature_builder import FeatureBuilder, interaction_weight


@pytest.fixture
def builder():
    return FeatureBuilder(genre_weight=1.0, tag_weight=0.5, onboarding_weight=5.0, long_view_seconds=30.0)


def swipe(user_id, game_id, action, genres=(), tags=(), view_duration=None, session_id=None):
    return Interaction(
        user_id=user_id,
        game_id=game_id,
        action=action,
        view_duration=view_duration,
        session_id=session_id,
        game_genres_snapshot=list(genres),
        game_tags_snapshot=list(tags),
    )


@pytest.mark.parametrize("action,duration,expected", [
    ("super_like", None, 10.0),
    ("wishlist_add", None, 8.0),
    ("like", None, 5.0),
    ("view_details", None, 3.0),
    ("view", 45.0, 2.0),
    ("view", 30.0, 0.0),
    ("view", None, 0.0),
    ("skip", None, 0.0),
    ("dislike", None, -3.0),
])
def test_interaction_weights(action, duration, expected):
    assert interaction_weight(action, duration, long_view_seconds=30.0) == expected


def test_profile_accumulates_genres_and_tags(builder):
    history = [
        swipe(1, 4, "like", genres=["rpg", "roguelike"], tags=["pixel-art"]),
        swipe(1, 5, "super_like", genres=["rpg"], tags=["story-rich"]),
        swipe(1, 7, "dislike", genres=["racing"]),
        swipe(1, 3, "skip", genres=["puzzle"]),
    ]

    profile = builder.build_user_profile(1, history)

    assert profile.genre_weights == {"rpg": 15.0, "roguelike": 5.0, "racing": -3.0}
    assert profile.tag_weights == {"pixel-art": 2.5, "story-rich": 5.0}
    assert profile.interaction_count == 4
    assert not profile.is_empty
    assert profile.attribute_weights()["genre:rpg"] == 15.0


def test_onboarding_genres_seed_profile(builder):
    profile = builder.build_user_profile(4, [], onboarding_genres=["rpg", "puzzle"])

    assert profile.genre_weights == {"rpg": 5.0, "puzzle": 5.0}
    assert profile.interaction_count == 0
    assert not profile.is_empty


def test_empty_history_gives_empty_profile(builder):
    assert builder.build_user_profile(1, []).is_empty


def test_price_affinity_from_positive_interactions(builder):
    games = {
        4: Game(id=4, title="Dungeon Lore", price=20.0),
        5: Game(id=5, title="Rune Echo", price=10.0),
        7: Game(id=7, title="Neon Racer", price=99.0),
    }
    history = [
        swipe(1, 4, "like"),
        swipe(1, 5, "like"),
        swipe(1, 7, "dislike"),
    ]

    profile = builder.build_user_profile(1, history, games=games)

    assert profile.price_affinity == pytest.approx(15.0)


def test_interaction_vectors_sum_per_game(builder):
    interactions = [
        swipe(1, 4, "view_details"),
        swipe(1, 4, "like"),
        swipe(2, 4, "dislike"),
        swipe(2, 5, "view", view_duration=40.0),
    ]

    vectors = builder.build_interaction_vectors(interactions)

    assert vectors == {1: {4: 8.0}, 2: {4: -3.0, 5: 2.0}}


def test_game_vectors(builder, catalog):
    vectors = builder.build_game_vectors(catalog)

    dungeon = vectors[4]
    assert dungeon.primary_genre == "rpg"
    assert dungeon.genres == ("rpg", "roguelike")
    assert dungeon.attributes == {"genre:rpg": 1.0, "genre:roguelike": 1.0, "tag:pixel-art": 0.5}
    assert dungeon.price == 20.0
    assert dungeon.embedding.ndim == 1
    assert len({v.embedding.shape for v in vectors.values()}) == 1


def test_game_vectors_memoised_until_catalog_changes(builder, catalog):
    first = builder.build_game_vectors(catalog)
    assert builder.build_game_vectors(catalog) is first

    catalog[0].tags = ["souls-like"]
    rebuilt = builder.build_game_vectors(catalog)

    assert rebuilt is not first
    assert rebuilt[1].attributes == {"genre:metroidvania": 1.0, "genre:action": 1.0, "tag:souls-like": 0.5}


def test_games_without_text_get_zero_embeddings(builder):
    games = [Game(id=1, title="", genres=["rpg"]), Game(id=2, title="", genres=[])]

    vectors = builder.build_game_vectors(games)

    assert vectors[2].primary_genre == "uncategorized"
    assert np.all(vectors[1].embedding == 0)
