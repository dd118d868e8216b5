"""Configuration settings for the indie game recommendation service"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Indie Game Recommendations"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Database Settings
    POSTGRES_USER: str = "recommender"
    POSTGRES_PASSWORD: str = "recommender_pass"
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "indie_recs"

    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Redis Settings
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # Celery Settings
    CELERY_BROKER_URL: str = "redis://redis:6379/2"
    CELERY_RESULT_BACKEND: str = "redis://redis:6379/3"
    BATCH_REGENERATION_HOURS: int = 6
    UPSTREAM_MAX_RETRIES: int = 5
    UPSTREAM_RETRY_BACKOFF_MAX: int = 600  # seconds

    # Hybrid scorer weights
    COLLABORATIVE_WEIGHT: float = 0.40
    CONTENT_WEIGHT: float = 0.30
    CONTEXTUAL_WEIGHT: float = 0.20
    POPULARITY_WEIGHT: float = 0.10

    # Similarity Settings
    SIMILAR_USERS_K: int = 20
    ITEM_JACCARD_WEIGHT: float = 0.7
    ITEM_TEXT_WEIGHT: float = 0.3
    GENRE_ATTRIBUTE_WEIGHT: float = 1.0
    TAG_ATTRIBUTE_WEIGHT: float = 0.5

    # Feature Settings
    LONG_VIEW_SECONDS: float = 30.0
    ONBOARDING_GENRE_WEIGHT: float = 5.0
    CONTEXT_HOUR_WINDOW: int = 2
    POPULARITY_WINDOW_DAYS: int = 14

    # Diversity Settings
    DIVERSITY_MAX_CONSECUTIVE: int = 3
    EXPLORATION_FRACTION: float = 0.2
    COLD_START_PROTECTED_HEAD: int = 10

    # Recommendation Settings
    DEFAULT_LIMIT: int = 20
    MAX_LIMIT: int = 100

    # Cache Settings
    CACHE_TTL: int = 6 * 3600  # 6 hours
    CACHE_LOCK_TIMEOUT: int = 120  # seconds a regeneration may hold the key lock

    # Interaction retention
    INTERACTION_RETENTION_DAYS: int = 365
    ACTIVE_USER_WINDOW_DAYS: int = 30

    # Rate limiting
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RECOMMENDATIONS_RATE_LIMIT: str = "60/minute"

    @property
    def SCORER_WEIGHTS(self) -> dict:
        return {
            "collaborative": self.COLLABORATIVE_WEIGHT,
            "content": self.CONTENT_WEIGHT,
            "contextual": self.CONTEXTUAL_WEIGHT,
            "popularity": self.POPULARITY_WEIGHT,
        }

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
