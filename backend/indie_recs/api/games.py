"""Game catalog API endpoints"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ..schemas.game import GameCreate, GameUpdate, GameResponse
from ..models import Game
from ..utils.database import get_db

router = APIRouter()


@router.post("/", response_model=GameResponse, status_code=status.HTTP_201_CREATED)
def create_game(game: GameCreate, db: Session = Depends(get_db)):
    """Mirror a game from the external catalog"""

    if game.id is not None and db.query(Game).filter(Game.id == game.id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Game already exists"
        )

    db_game = Game(**game.model_dump(exclude_none=True))
    db.add(db_game)
    db.commit()
    db.refresh(db_game)

    return db_game


@router.get("/", response_model=List[GameResponse])
def list_games(
    skip: int = 0,
    limit: int = 100,
    genre: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """List games with optional genre filter"""

    query = db.query(Game).order_by(Game.id)

    if not genre:
        return query.offset(skip).limit(limit).all()

    # genres is a JSON list column
    games = [game for game in query.all() if genre in (game.genres or [])]
    return games[skip:skip + limit]


@router.get("/{game_id}", response_model=GameResponse)
def get_game(game_id: int, db: Session = Depends(get_db)):
    """Get a specific game"""

    game = db.query(Game).filter(Game.id == game_id).first()
    if not game:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Game not found"
        )

    return game


@router.put("/{game_id}", response_model=GameResponse)
def update_game(game_id: int, game_update: GameUpdate, db: Session = Depends(get_db)):
    """Update catalog attributes; feature vectors are rebuilt on next use"""

    game = db.query(Game).filter(Game.id == game_id).first()
    if not game:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Game not found"
        )

    update_data = game_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(game, field, value)

    db.commit()
    db.refresh(game)

    return game
