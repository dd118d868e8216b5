"""Recommendation API endpoints"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from ..config import settings
from ..schemas.recommendation import (
    ExplanationResponse,
    RecommendationResponse,
    SimilarGameResponse,
    SimilarGamesResponse,
)
from ..models import Game, User
from ..services.recommendation_engine import RecommendationEngine
from ..utils.database import get_db
from ..utils.dependencies import get_engine
from ..utils.rate_limit import limiter

router = APIRouter()


@router.get("/user/{user_id}", response_model=RecommendationResponse)
@limiter.limit(settings.RECOMMENDATIONS_RATE_LIMIT)
def get_user_recommendations(
    request: Request,
    user_id: int,
    limit: int = Query(settings.DEFAULT_LIMIT, ge=1, le=settings.MAX_LIMIT),
    use_cache: bool = Query(True, description="Serve the cached list if it is still fresh"),
    db: Session = Depends(get_db),
    engine: RecommendationEngine = Depends(get_engine),
):
    """
    Ordered game ids for a user

    Never contains a game the user has liked, disliked, wishlisted,
    super-liked or skipped.
    """

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    ranked, cached = engine.get_ranked_list(user_id, limit, use_cache=use_cache)

    return RecommendationResponse(
        user_id=user_id,
        game_ids=ranked.game_ids,
        generated_at=ranked.generated_at,
        cached=cached
    )


@router.delete("/user/{user_id}/cache", status_code=status.HTTP_204_NO_CONTENT)
def invalidate_user_recommendations(
    user_id: int,
    engine: RecommendationEngine = Depends(get_engine),
):
    """Evict the user's cached list; the next request regenerates it"""

    engine.invalidate(user_id)
    return None


@router.get("/similar-games/{game_id}", response_model=SimilarGamesResponse)
def get_similar_games(
    game_id: int,
    top_n: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    engine: RecommendationEngine = Depends(get_engine),
):
    """Games similar to a specific game by genres, tags and description"""

    game = db.query(Game).filter(Game.id == game_id).first()
    if not game:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Game not found"
        )

    similar = engine.similar_games(game_id, top_n)
    games = engine.catalog.get_games(similar_id for similar_id, _ in similar)

    similar_games = [
        SimilarGameResponse(
            game_id=similar_id,
            title=games[similar_id].title,
            genres=games[similar_id].genres or [],
            similarity_score=score,
            rank=rank
        )
        for rank, (similar_id, score) in enumerate(similar, 1)
        if similar_id in games
    ]

    return SimilarGamesResponse(
        source_game_id=game_id,
        source_game_title=game.title,
        similar_games=similar_games
    )


@router.get("/explain", response_model=ExplanationResponse)
def explain_recommendation(
    user_id: int = Query(..., description="User ID"),
    game_id: int = Query(..., description="Game ID"),
    db: Session = Depends(get_db),
    engine: RecommendationEngine = Depends(get_engine),
):
    """
    Explain how a game scores for a user

    Returns each signal's normalised score, effective weight after
    redistribution, and contribution to the final score.
    """

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    game = db.query(Game).filter(Game.id == game_id).first()
    if not game:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Game not found"
        )

    explanation = engine.explain(user_id, game_id)
    final_score = explanation.pop("final_score")
    acted_upon = explanation.pop("acted_upon")

    return ExplanationResponse(
        user_id=user_id,
        game_id=game_id,
        game_title=game.title,
        acted_upon=acted_upon,
        final_score=final_score,
        components=explanation
    )
