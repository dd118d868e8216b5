"""
Indie Game Recommendations - Main FastAPI Application

Swipe-driven recommendation service for indie games:
- Hybrid scoring (collaborative, content, contextual, popularity)
- Genre diversity and exploration
- Per-user ranked list cache with invalidation on qualifying swipes
- Rate Limiting
- Structured Logging
- Prometheus Metrics
- Background regeneration with Celery
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .api import api_router
from .config import settings
from .exceptions import DataIntegrityError, UpstreamFetchFailure
from .services.cache import CacheLockTimeout
from .services.feature_builder import FeatureBuilder
from .utils.database import SessionLocal, init_db
from .utils.dependencies import build_recommendation_cache
from .utils.logging import configure_uvicorn_logging, get_logger, setup_logging
from .utils.metrics import setup_metrics
from .utils.rate_limit import limiter

# Setup structured logging
setup_logging(log_level=settings.LOG_LEVEL)
configure_uvicorn_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""

    # Startup
    logger.info("Starting Indie Game Recommendations", version=settings.VERSION)

    logger.info("Initializing database")
    init_db()

    logger.info("Checking Redis connection")
    if app.state.recommendation_cache.health_check():
        logger.info("Redis connection successful")
    else:
        logger.warning("Redis connection failed - recommendations will not be cached")

    logger.info("Indie Game Recommendations started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Indie Game Recommendations")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
    # Indie Game Recommendations API

    Personalised, diversified game lists for a swipe-based discovery app.

    ## Signals

    - `collaborative`: games liked by players with similar swipe histories
    - `content`: genre, tag and price affinity from the player's own history
    - `contextual`: genres of the current session and time of day
    - `popularity`: recent engagement across all players

    Unavailable signals hand their weight to the others.

    ## Quick Start

    1. Create users (optionally with onboarding genres) and games
    2. Record swipes and views
    3. Fetch recommendations; liked, disliked, wishlisted, super-liked
       and skipped games never come back
    """,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "users", "description": "Player profiles and onboarding genres"},
        {"name": "games", "description": "Game catalog"},
        {"name": "interactions", "description": "Swipe and view tracking"},
        {"name": "recommendations", "description": "Ranked lists, similar games and score explanations"},
    ]
)

# Long-lived collaborators shared across requests
app.state.recommendation_cache = build_recommendation_cache()
app.state.feature_builder = FeatureBuilder()

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Setup Prometheus metrics
setup_metrics(app)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.exception_handler(DataIntegrityError)
async def data_integrity_handler(request: Request, exc: DataIntegrityError):
    logger.error("Malformed feature data", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)}
    )


@app.exception_handler(UpstreamFetchFailure)
async def upstream_failure_handler(request: Request, exc: UpstreamFetchFailure):
    logger.error("Upstream fetch failed", path=request.url.path, source=exc.source, error=exc.detail)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)}
    )


@app.exception_handler(CacheLockTimeout)
async def cache_lock_timeout_handler(request: Request, exc: CacheLockTimeout):
    logger.warning("Timed out waiting for regeneration", path=request.url.path, key=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Recommendations are being regenerated, retry shortly"}
    )


# Middleware for logging requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests"""
    logger.info(
        "Request received",
        method=request.method,
        url=str(request.url),
        client=request.client.host if request.client else None
    )

    response = await call_next(request)

    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code
    )

    return response


@app.get("/", tags=["root"])
def root():
    """Root endpoint"""
    return {
        "message": "Indie Game Recommendations API",
        "version": settings.VERSION,
        "docs": "/docs",
        "status": "operational"
    }


@app.get("/health", tags=["root"], status_code=status.HTTP_200_OK)
def health_check():
    """Health check endpoint"""

    redis_healthy = app.state.recommendation_cache.health_check()

    db_healthy = True
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        db_healthy = False
    finally:
        db.close()

    overall_healthy = redis_healthy and db_healthy

    return {
        "status": "healthy" if overall_healthy else "degraded",
        "redis": "connected" if redis_healthy else "disconnected",
        "database": "connected" if db_healthy else "disconnected",
        "version": settings.VERSION
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "indie_recs.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
