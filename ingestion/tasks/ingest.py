"""Celery task wrapping one full ingestion run."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Dict

from celery import Task, shared_task

from ingestion.db.models import Base
from ingestion.db.session import get_engine, session_scope
from ingestion.models.domain import IngestionReport
from ingestion.pipeline import IngestionOrchestrator
from ingestion.repositories.articles import JobRunRecorder, SqlArticleGateway
from ingestion.repositories.sources import SourceRegistry, SqlSourceRegistry
from ingestion.services.throttle import FetchThrottle, InMemoryThrottle, NullThrottle, RedisThrottle
from ingestion.settings import Settings, get_settings
from ingestion.utils.logging import get_logger

# Factories are kept pluggable for tests.
ORCHESTRATOR_FACTORY: Callable[[Settings, FetchThrottle], IngestionOrchestrator] | None = None
REGISTRY_FACTORY: Callable[[Settings], SourceRegistry] | None = None


def _ensure_schema() -> None:
    # For local runs/tests, ensure schema exists (idempotent)
    engine = get_engine()
    Base.metadata.create_all(bind=engine)


def build_throttle(settings: Settings, logger: logging.Logger) -> FetchThrottle:
    interval = float(settings.source_min_interval_seconds)
    if interval <= 0:
        return NullThrottle()
    try:
        import redis as redislib

        client = redislib.Redis.from_url(settings.redis_url, socket_connect_timeout=0.2)
        # 연결 확인; 실패 시 폴백
        try:
            client.ping()
        except redislib.RedisError:
            logger.info("throttle.memory", extra={"reason": "redis_ping_failed"})
            return InMemoryThrottle(interval)
        logger.info("throttle.redis", extra={"redis_url": settings.redis_url})
        return RedisThrottle(client, interval, prefix="feed-throttle")
    except ImportError:  # pragma: no cover - redis-py absent
        logger.info("throttle.memory", extra={"reason": "redis_lib_unavailable"})
        return InMemoryThrottle(interval)


class ThrottleHolder:
    """Throttle owned by one long-lived worker (a Celery task instance or the API app).

    Built lazily on first use so repeated runs inside that worker keep their
    spacing.
    """

    def __init__(self) -> None:
        self._throttle: FetchThrottle | None = None
        self._lock = threading.Lock()

    def get(self, settings: Settings, logger: logging.Logger | None = None) -> FetchThrottle:
        with self._lock:
            if self._throttle is None:
                self._throttle = build_throttle(settings, logger or get_logger(__name__))
            return self._throttle

    def reset(self) -> None:
        with self._lock:
            self._throttle = None


def _get_orchestrator(settings: Settings, throttle: FetchThrottle) -> IngestionOrchestrator:
    if ORCHESTRATOR_FACTORY is not None:
        return ORCHESTRATOR_FACTORY(settings, throttle)
    return IngestionOrchestrator.from_settings(SqlArticleGateway(), throttle=throttle, settings=settings)


def _get_registry(settings: Settings) -> SourceRegistry:
    if REGISTRY_FACTORY is not None:
        return REGISTRY_FACTORY(settings)
    return SqlSourceRegistry()


def ingest_core(throttles: ThrottleHolder | None = None) -> IngestionReport:
    """Core logic to enumerate sources and ingest their feeds; test-friendly.

    ``throttles`` is the caller's worker-scoped holder; without one the run
    gets a throttle of its own. Raises ConfigurationError / RegistryError
    when the run cannot start.
    """
    settings = get_settings()
    settings.require_store_credentials()
    _ensure_schema()
    trace_id = str(uuid.uuid4())
    logger = get_logger(__name__)
    logger.info("ingest.start", extra={"trace_id": trace_id})
    throttle = (throttles or ThrottleHolder()).get(settings, logger)

    with session_scope() as session, JobRunRecorder(session, task_name="ingest_feeds", trace_id=trace_id) as job:
        sources = _get_registry(settings).list_sources()
        logger.info("ingest.sources", extra={"trace_id": trace_id, "sources": [s.id for s in sources]})
        report = _get_orchestrator(settings, throttle).run(sources)
        job.source_count = len(report.results)
        job.article_count = report.total_articles
        logger.info(
            "ingest.done",
            extra={"trace_id": trace_id, "sources": len(report.results), "articles": report.total_articles},
        )
        return report


class IngestTask(Task):
    """Task base holding the worker process's throttle."""

    _throttles: ThrottleHolder | None = None

    @property
    def throttles(self) -> ThrottleHolder:
        if self._throttles is None:
            self._throttles = ThrottleHolder()
        return self._throttles


@shared_task(bind=True, base=IngestTask, name="ingestion.tasks.ingest.ingest_feeds")
def ingest_feeds(self: IngestTask) -> Dict[str, Any]:  # pragma: no cover - wrapper
    return ingest_core(self.throttles).model_dump(mode="json", by_alias=True)
