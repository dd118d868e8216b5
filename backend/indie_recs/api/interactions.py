"""Interaction API endpoints"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from ..schemas.interaction import InteractionCreate, InteractionResponse
from ..models import Game, Interaction, User, QUALIFYING_ACTIONS
from ..services.cache import RecommendationCache
from ..services.repositories import InteractionStore
from ..utils.database import get_db
from ..utils.dependencies import get_interaction_store, get_recommendation_cache
from ..utils.logging import get_logger
from ..utils.metrics import record_interaction

router = APIRouter()
logger = get_logger(__name__)


@router.post("/", response_model=InteractionResponse, status_code=status.HTTP_201_CREATED)
def create_interaction(
    interaction: InteractionCreate,
    db: Session = Depends(get_db),
    store: InteractionStore = Depends(get_interaction_store),
    cache: RecommendationCache = Depends(get_recommendation_cache),
):
    """
    Record a swipe or view

    The user's genre preferences and the game's genres/tags are
    snapshotted onto the event. Likes, super-likes and wishlist adds evict
    the user's cached list.
    """

    user = db.query(User).filter(User.id == interaction.user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    game = db.query(Game).filter(Game.id == interaction.game_id).first()
    if not game:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Game not found"
        )

    recorded = store.record(
        user_id=user.id,
        game_id=game.id,
        action=interaction.action.value,
        session_id=interaction.session_id,
        view_duration=interaction.view_duration,
        created_at=interaction.created_at,
        user_genres=user.onboarding_genres or [],
        game_genres=game.genres or [],
        game_tags=game.tags or [],
    )
    record_interaction(recorded.action)

    if recorded.action in QUALIFYING_ACTIONS:
        cache.invalidate(user.id)

    logger.info(
        "Interaction recorded",
        user_id=user.id,
        game_id=game.id,
        action=recorded.action,
    )
    return recorded


@router.get("/user/{user_id}", response_model=List[InteractionResponse])
def get_user_interactions(user_id: int, skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    """Get the interactions of a user, newest first"""

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    interactions = (
        db.query(Interaction)
        .filter(Interaction.user_id == user_id)
        .order_by(Interaction.created_at.desc(), Interaction.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )

    return interactions


@router.get("/stats/user/{user_id}")
def get_user_interaction_stats(
    user_id: int,
    db: Session = Depends(get_db),
    store: InteractionStore = Depends(get_interaction_store),
):
    """Get interaction counts per action for a user"""

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    by_action = store.counts_by_action(user_id)

    return {
        "user_id": user_id,
        "total_interactions": sum(by_action.values()),
        "by_action": by_action
    }
