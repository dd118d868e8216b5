"""Data accessors for the interaction log, game catalog and user directory"""

from datetime import datetime
from functools import wraps
from typing import Callable, Dict, Iterable, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import UpstreamFetchFailure
from ..models import (
    ACTED_UPON_ACTIONS,
    ActionKind,
    ArchivedInteraction,
    Game,
    Interaction,
    User,
)
from ..models.base import utcnow
from ..utils.logging import get_logger

logger = get_logger(__name__)


def upstream(source: str):
    """Translate database errors raised by a fetch into UpstreamFetchFailure"""

    def decorator(func: Callable):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                logger.warning("Upstream fetch failed", source=source, operation=func.__name__, error=str(e))
                raise UpstreamFetchFailure(source, str(e)) from e

        return wrapper

    return decorator


class InteractionStore:
    """
    Append-only log of user-game interactions

    Rows are never updated. The only removal path is archive_before(),
    which moves rows older than the retention window into the archive table.
    """

    def __init__(self, db: Session):
        self.db = db

    @upstream("interaction store")
    def record(
        self,
        user_id: int,
        game_id: int,
        action: str,
        session_id: Optional[str] = None,
        view_duration: Optional[float] = None,
        created_at: Optional[datetime] = None,
        user_genres: Iterable[str] = (),
        game_genres: Iterable[str] = (),
        game_tags: Iterable[str] = (),
    ) -> Interaction:
        """
        Append one interaction event

        Raises:
            ValueError: If the action is not a known ActionKind
            UpstreamFetchFailure: If the write fails; nothing is stored
        """
        action = ActionKind(action).value

        interaction = Interaction(
            user_id=user_id,
            game_id=game_id,
            action=action,
            created_at=created_at or utcnow(),
            session_id=session_id,
            view_duration=view_duration,
            user_genres_snapshot=list(user_genres),
            game_genres_snapshot=list(game_genres),
            game_tags_snapshot=list(game_tags),
        )
        try:
            self.db.add(interaction)
            self.db.commit()
            self.db.refresh(interaction)
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.debug("Interaction recorded", user_id=user_id, game_id=game_id, action=action)
        return interaction

    @upstream("interaction store")
    def history_for_user(self, user_id: int) -> List[Interaction]:
        """All interactions of one user, oldest first"""
        return (
            self.db.query(Interaction)
            .filter(Interaction.user_id == user_id)
            .order_by(Interaction.created_at, Interaction.id)
            .all()
        )

    @upstream("interaction store")
    def all_interactions(self, since: Optional[datetime] = None) -> List[Interaction]:
        """Every interaction in the hot log, optionally limited to a window"""
        query = self.db.query(Interaction)
        if since is not None:
            query = query.filter(Interaction.created_at >= since)
        return query.order_by(Interaction.created_at, Interaction.id).all()

    @upstream("interaction store")
    def acted_upon_game_ids(self, user_id: int, since: Optional[datetime] = None) -> Set[int]:
        """Games the user liked, disliked, wishlisted, super-liked or skipped"""
        query = self.db.query(Interaction.game_id).filter(
            Interaction.user_id == user_id,
            Interaction.action.in_(sorted(ACTED_UPON_ACTIONS)),
        )
        if since is not None:
            query = query.filter(Interaction.created_at >= since)
        return {game_id for (game_id,) in query.all()}

    @upstream("interaction store")
    def active_user_ids(self, since: datetime) -> List[int]:
        """Users with at least one interaction since the given time"""
        rows = (
            self.db.query(Interaction.user_id)
            .filter(Interaction.created_at >= since)
            .distinct()
            .order_by(Interaction.user_id)
            .all()
        )
        return [user_id for (user_id,) in rows]

    @upstream("interaction store")
    def counts_by_action(self, user_id: int) -> Dict[str, int]:
        rows = (
            self.db.query(Interaction.action, func.count(Interaction.id))
            .filter(Interaction.user_id == user_id)
            .group_by(Interaction.action)
            .all()
        )
        return {action: count for action, count in rows}

    def archive_before(self, cutoff: datetime) -> int:
        """
        Move interactions older than cutoff into the archive table

        Returns:
            Number of archived interactions
        """
        expired = (
            self.db.query(Interaction)
            .filter(Interaction.created_at < cutoff)
            .all()
        )
        if not expired:
            return 0

        archived_at = utcnow()
        try:
            for interaction in expired:
                self.db.add(ArchivedInteraction(
                    user_id=interaction.user_id,
                    game_id=interaction.game_id,
                    action=interaction.action,
                    created_at=interaction.created_at,
                    session_id=interaction.session_id,
                    view_duration=interaction.view_duration,
                    user_genres_snapshot=interaction.user_genres_snapshot,
                    game_genres_snapshot=interaction.game_genres_snapshot,
                    game_tags_snapshot=interaction.game_tags_snapshot,
                    archived_at=archived_at,
                ))
                self.db.delete(interaction)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info("Archived interactions", count=len(expired), cutoff=cutoff.isoformat())
        return len(expired)


class GameCatalog:
    """Read-only accessor over the mirrored game catalog"""

    def __init__(self, db: Session):
        self.db = db

    @upstream("game catalog")
    def list_games(self) -> List[Game]:
        return self.db.query(Game).order_by(Game.id).all()

    @upstream("game catalog")
    def get_game(self, game_id: int) -> Optional[Game]:
        return self.db.query(Game).filter(Game.id == game_id).first()

    @upstream("game catalog")
    def get_games(self, game_ids: Iterable[int]) -> Dict[int, Game]:
        ids = list(game_ids)
        if not ids:
            return {}
        games = self.db.query(Game).filter(Game.id.in_(ids)).all()
        return {game.id: game for game in games}


class UserDirectory:
    """Read access to the onboarding preferences of users"""

    def __init__(self, db: Session):
        self.db = db

    @upstream("user directory")
    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def onboarding_genres(self, user_id: int) -> List[str]:
        user = self.get_user(user_id)
        if user is None:
            return []
        return list(user.onboarding_genres or [])
