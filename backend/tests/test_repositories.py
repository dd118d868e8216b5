"""Tests for the interaction store, game catalog and user directory"""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from indie_recs.exceptions import UpstreamFetchFailure
from indie_recs.models import ArchivedInteraction, Interaction
from indie_recs.services.repositories import GameCatalog, InteractionStore, UserDirectory


@pytest.fixture
def store(db_session, catalog, users):
    return InteractionStore(db_session)


def test_record_appends_with_snapshots(store, db_session):
    recorded = store.record(
        user_id=1,
        game_id=4,
        action="like",
        session_id="s-1",
        user_genres=["rpg"],
        game_genres=["rpg", "roguelike"],
        game_tags=["pixel-art"],
    )

    assert recorded.id is not None
    assert recorded.game_genres_snapshot == ["rpg", "roguelike"]
    assert recorded.user_genres_snapshot == ["rpg"]
    assert db_session.query(Interaction).count() == 1


def test_record_rejects_unknown_action(store):
    with pytest.raises(ValueError):
        store.record(user_id=1, game_id=4, action="poke")


def test_repeated_actions_are_kept(store):
    store.record(user_id=1, game_id=4, action="view")
    store.record(user_id=1, game_id=4, action="view")
    store.record(user_id=1, game_id=4, action="like")

    assert [i.action for i in store.history_for_user(1)] == ["view", "view", "like"]
    assert store.counts_by_action(1) == {"view": 2, "like": 1}


def test_history_is_oldest_first(store):
    now = datetime(2026, 3, 1, 12, 0)
    store.record(user_id=1, game_id=5, action="like", created_at=now)
    store.record(user_id=1, game_id=4, action="like", created_at=now - timedelta(hours=1))

    assert [i.game_id for i in store.history_for_user(1)] == [4, 5]


def test_acted_upon_excludes_views(store):
    store.record(user_id=1, game_id=1, action="like")
    store.record(user_id=1, game_id=2, action="skip")
    store.record(user_id=1, game_id=3, action="dislike")
    store.record(user_id=1, game_id=4, action="view_details")
    store.record(user_id=1, game_id=5, action="view", view_duration=90.0)
    store.record(user_id=2, game_id=6, action="like")

    assert store.acted_upon_game_ids(1) == {1, 2, 3}


def test_active_user_ids(store):
    now = datetime(2026, 3, 1, 12, 0)
    store.record(user_id=1, game_id=1, action="like", created_at=now - timedelta(days=40))
    store.record(user_id=2, game_id=1, action="like", created_at=now - timedelta(days=2))
    store.record(user_id=3, game_id=1, action="view", created_at=now - timedelta(days=1))

    assert store.active_user_ids(now - timedelta(days=30)) == [2, 3]


def test_archive_before_moves_old_rows(store, db_session):
    now = datetime(2026, 3, 1, 12, 0)
    store.record(user_id=1, game_id=1, action="like", created_at=now - timedelta(days=400))
    store.record(user_id=1, game_id=2, action="skip", created_at=now - timedelta(days=10))

    archived = store.archive_before(now - timedelta(days=365))

    assert archived == 1
    assert [i.game_id for i in store.history_for_user(1)] == [2]
    moved = db_session.query(ArchivedInteraction).one()
    assert (moved.user_id, moved.game_id, moved.action) == (1, 1, "like")


def test_archive_before_with_nothing_to_move(store):
    assert store.archive_before(datetime(2000, 1, 1)) == 0


def test_catalog_lookups(db_session, catalog):
    games = GameCatalog(db_session)

    assert [g.id for g in games.list_games()] == list(range(1, 13))
    assert games.get_game(4).title == "Dungeon Lore"
    assert games.get_game(99) is None
    assert set(games.get_games([4, 5, 99])) == {4, 5}


def test_onboarding_genres(db_session, users):
    directory = UserDirectory(db_session)

    assert directory.onboarding_genres(4) == ["rpg", "puzzle"]
    assert directory.onboarding_genres(1) == []
    assert directory.onboarding_genres(99) == []


def test_database_errors_become_upstream_failures():
    db = MagicMock()
    db.query.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

    with pytest.raises(UpstreamFetchFailure) as excinfo:
        InteractionStore(db).history_for_user(1)

    assert excinfo.value.source == "interaction store"

    with pytest.raises(UpstreamFetchFailure):
        GameCatalog(db).list_games()


def test_failed_write_rolls_back_and_reports_upstream_failure():
    db = MagicMock()
    db.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))

    with pytest.raises(UpstreamFetchFailure) as excinfo:
        InteractionStore(db).record(user_id=1, game_id=4, action="like")

    assert excinfo.value.source == "interaction store"
    db.rollback.assert_called_once()
