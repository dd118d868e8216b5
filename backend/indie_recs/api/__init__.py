"""API routes"""

from fastapi import APIRouter
from .users import router as users_router
from .games import router as games_router
from .interactions import router as interactions_router
from .recommendations import router as recommendations_router

api_router = APIRouter()

api_router.include_router(users_router, prefix="/users", tags=["users"])
api_router.include_router(games_router, prefix="/games", tags=["games"])
api_router.include_router(interactions_router, prefix="/interactions", tags=["interactions"])
api_router.include_router(recommendations_router, prefix="/recommendations", tags=["recommendations"])
