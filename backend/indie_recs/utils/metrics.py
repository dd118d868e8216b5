"""Prometheus metrics configuration"""

from prometheus_client import Counter, Histogram, Info
from prometheus_fastapi_instrumentator import Instrumentator
from typing import Callable
import time
from functools import wraps

app_info = Info('indie_recs', 'Indie game recommendation service information')
app_info.info({
    'version': '1.0.0',
    'service': 'indie-recs'
})

recommendation_generation_duration_seconds = Histogram(
    'recommendation_generation_duration_seconds',
    'Time taken to generate a ranked list for one user',
    ['trigger']
)

recommendation_regenerations_total = Counter(
    'recommendation_regenerations_total',
    'Ranked lists generated',
    ['trigger', 'outcome']
)

interactions_created_total = Counter(
    'interactions_created_total',
    'Total interactions recorded',
    ['action']
)

cache_hits_total = Counter(
    'cache_hits_total',
    'Total cache hits',
    ['cache_type']
)

cache_misses_total = Counter(
    'cache_misses_total',
    'Total cache misses',
    ['cache_type']
)

cache_invalidations_total = Counter(
    'cache_invalidations_total',
    'Cached lists evicted by qualifying interactions or explicit requests',
    ['cache_type']
)


def setup_metrics(app):
    """
    Setup Prometheus metrics for FastAPI app

    Args:
        app: FastAPI application instance
    """
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics"],
        env_var_name="ENABLE_METRICS",
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True
    )

    instrumentator.instrument(app).expose(app, endpoint="/metrics")

    return instrumentator


def track_generation_time(trigger: str):
    """
    Decorator to track ranked list generation time

    Usage:
        @track_generation_time("request")
        def regenerate():
            pass
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception:
                recommendation_regenerations_total.labels(trigger=trigger, outcome="error").inc()
                raise
            finally:
                duration = time.time() - start_time
                recommendation_generation_duration_seconds.labels(
                    trigger=trigger
                ).observe(duration)
            recommendation_regenerations_total.labels(trigger=trigger, outcome="success").inc()
            return result

        return wrapper

    return decorator


def increment_cache_hit(cache_type: str = "redis"):
    """Increment cache hit counter"""
    cache_hits_total.labels(cache_type=cache_type).inc()


def increment_cache_miss(cache_type: str = "redis"):
    """Increment cache miss counter"""
    cache_misses_total.labels(cache_type=cache_type).inc()


def increment_cache_invalidation(cache_type: str = "redis"):
    """Increment cache invalidation counter"""
    cache_invalidations_total.labels(cache_type=cache_type).inc()


def record_interaction(action: str):
    """Record interaction creation"""
    interactions_created_total.labels(action=action).inc()
