"""Background task definitions"""

from datetime import timedelta

from .celery_config import celery_app
from ..config import settings
from ..exceptions import UpstreamFetchFailure
from ..models.base import utcnow
from ..services.feature_builder import FeatureBuilder
from ..services.repositories import InteractionStore
from ..utils.database import SessionLocal
from ..utils.dependencies import build_engine, build_recommendation_cache
from ..utils.logging import get_logger

logger = get_logger(__name__)

# One feature builder per worker process so game vectors are reused across tasks
feature_builder = FeatureBuilder()


@celery_app.task(name="indie_recs.tasks.celery_tasks.regenerate_active_users")
def regenerate_active_users():
    """
    Queue a regeneration for every recently active user

    Each user gets an independent task, so one failing user is retried on
    its own without holding up the rest of the batch.
    """
    since = utcnow() - timedelta(days=settings.ACTIVE_USER_WINDOW_DAYS)
    db = SessionLocal()

    try:
        user_ids = InteractionStore(db).active_user_ids(since)
    finally:
        db.close()

    for user_id in user_ids:
        regenerate_user_recommendations.delay(user_id)

    logger.info("Queued batch regeneration", users=len(user_ids), since=since.isoformat())

    return {
        "status": "success",
        "timestamp": utcnow().isoformat(),
        "users_queued": len(user_ids),
    }


@celery_app.task(
    bind=True,
    name="indie_recs.tasks.celery_tasks.regenerate_user_recommendations",
    autoretry_for=(UpstreamFetchFailure,),
    retry_backoff=True,
    retry_backoff_max=settings.UPSTREAM_RETRY_BACKOFF_MAX,
    retry_jitter=True,
    max_retries=settings.UPSTREAM_MAX_RETRIES,
)
def regenerate_user_recommendations(self, user_id: int, size: int = settings.DEFAULT_LIMIT):
    """
    Rebuild and cache one user's ranked list

    Args:
        user_id: User to regenerate
        size: Length of the list to store
    """
    logger.info("Regenerating recommendations", user_id=user_id, attempt=self.request.retries)
    db = SessionLocal()

    try:
        engine = build_engine(db, build_recommendation_cache(), feature_builder)
        ranked = engine.regenerate(user_id, size)

        return {
            "status": "success",
            "user_id": user_id,
            "generated_at": ranked.generated_at.isoformat(),
            "recommendations_count": len(ranked.game_ids),
        }

    except UpstreamFetchFailure as e:
        logger.warning("Regeneration deferred", user_id=user_id, source=e.source, attempt=self.request.retries)
        raise
    finally:
        db.close()


@celery_app.task(name="indie_recs.tasks.celery_tasks.archive_old_interactions")
def archive_old_interactions():
    """Move interactions past the retention window into the archive table"""
    cutoff = utcnow() - timedelta(days=settings.INTERACTION_RETENTION_DAYS)
    db = SessionLocal()

    try:
        archived = InteractionStore(db).archive_before(cutoff)
        return {
            "status": "success",
            "timestamp": utcnow().isoformat(),
            "archived": archived,
        }

    except Exception:
        logger.error("Error archiving interactions", exc_info=True)
        raise
    finally:
        db.close()
