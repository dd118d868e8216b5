"""Shared fixtures"""

import numpy as np
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from indie_recs.models import Game, User
from indie_recs.models.base import Base
from indie_recs.services.feature_builder import GameFeatureVector


CATALOG = [
    # id, title, genres, tags, price, description
    (1, "Hollow Depths", ["metroidvania", "action"], ["souls-like", "pixel-art"], 15.0,
     "Explore a sunken kingdom full of ancient bosses"),
    (2, "Starfield Farm", ["simulation", "farming"], ["cozy"], 10.0,
     "Grow crops on a tiny planet and befriend the locals"),
    (3, "Tile Quest", ["puzzle"], ["relaxing"], 5.0,
     "Slide tiles to rebuild a broken mosaic"),
    (4, "Dungeon Lore", ["rpg", "roguelike"], ["pixel-art"], 20.0,
     "Descend procedurally generated dungeons with a party of misfits"),
    (5, "Rune Echo", ["rpg"], ["story-rich"], 25.0,
     "A story rich adventure about a bard who forgot every song"),
    (6, "Block Logic", ["puzzle", "strategy"], ["minimalist"], 8.0,
     "Push blocks onto switches in hand crafted levels"),
    (7, "Neon Racer", ["racing"], ["synthwave"], 12.0,
     "Drift through neon cities at breakneck speed"),
    (8, "Void Drifter", ["action", "shooter"], ["space"], 18.0,
     "Pilot a salvaged ship through an endless asteroid field"),
    (9, "Mossy Garden", ["simulation"], ["cozy", "relaxing"], 6.0,
     "Tend a garden of moss and tiny mushrooms"),
    (10, "Circuit Mind", ["puzzle"], ["programming"], 4.0,
     "Wire logic gates to solve electronic riddles"),
    (11, "Crown of Ash", ["rpg", "strategy"], ["tactical"], 30.0,
     "Lead a rebellion in turn based tactical battles"),
    (12, "Quiet Harbor", ["adventure"], ["narrative"], 9.0,
     "Solve the mystery of a fishing village lighthouse"),
]


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads"""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    """Create a test database session"""

    session = session_factory()

    yield session

    session.close()


@pytest.fixture
def catalog(db_session):
    """Mirror a small indie catalog"""

    games = [
        Game(id=game_id, title=title, genres=genres, tags=tags, price=price, description=description)
        for game_id, title, genres, tags, price, description in CATALOG
    ]
    db_session.add_all(games)
    db_session.commit()

    return games


@pytest.fixture
def users(db_session):
    """A returning player, two like-minded players and a fresh onboarding"""

    players = [
        User(id=1, username="alice"),
        User(id=2, username="bruno"),
        User(id=3, username="chen"),
        User(id=4, username="dara", onboarding_genres=["rpg", "puzzle"]),
    ]
    db_session.add_all(players)
    db_session.commit()

    return players


def make_vector(game_id, genres, attributes=None, embedding=None, price=0.0):
    """GameFeatureVector built by hand for pure-function tests"""

    genres = tuple(genres)
    if attributes is None:
        attributes = {f"genre:{genre}": 1.0 for genre in genres}
    return GameFeatureVector(
        game_id=game_id,
        attributes=attributes,
        genres=genres,
        primary_genre=genres[0] if genres else "uncategorized",
        price=price,
        embedding=np.zeros(1) if embedding is None else np.asarray(embedding, dtype=float),
    )


@pytest.fixture
def vector():
    return make_vector
