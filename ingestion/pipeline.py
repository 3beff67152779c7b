"""Feed ingestion orchestrator.

Every source runs fetch → parse → detect → normalize → persist as one
sequential pipeline; sources run concurrently on a bounded thread pool. Each
source and each item is a failure boundary: errors are logged and turned
into SourceResult data, never raised to the caller.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from ingestion.connectors.base import ConnectorError
from ingestion.connectors.rss import FeedFetcher
from ingestion.errors import FeedParseError
from ingestion.models.domain import ArticleDraft, IngestionReport, Source, SourceResult, SourceStatus
from ingestion.parsing.detector import FeedFormat, detect
from ingestion.parsing.document import parse_document
from ingestion.parsing.normalizer import normalize_item
from ingestion.repositories.articles import ArticleGateway
from ingestion.services.throttle import FetchThrottle, NullThrottle
from ingestion.settings import Settings, get_settings
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)

NO_SOURCES_MESSAGE = "No sources to fetch"


class Fetcher(Protocol):
    def fetch(self, url: str) -> bytes: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def success_message(total: int) -> str:
    return f"Feeds updated successfully. Processed {total} articles."


class IngestionOrchestrator:
    def __init__(
        self,
        fetcher: Fetcher,
        gateway: ArticleGateway,
        *,
        throttle: Optional[FetchThrottle] = None,
        max_workers: int = 4,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._fetcher = fetcher
        self._gateway = gateway
        self._throttle = throttle or NullThrottle()
        self._max_workers = max(1, max_workers)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        gateway: ArticleGateway,
        *,
        throttle: Optional[FetchThrottle] = None,
        settings: Settings | None = None,
    ) -> "IngestionOrchestrator":
        cfg = settings or get_settings()
        return cls(
            FeedFetcher.from_settings(cfg),
            gateway,
            throttle=throttle,
            max_workers=int(cfg.max_workers),
        )

    def run(self, sources: Sequence[Source]) -> IngestionReport:
        if not sources:
            logger.info("ingest.run.no_sources")
            return IngestionReport(success=True, message=NO_SOURCES_MESSAGE)

        logger.info("ingest.run.start", extra={"sources": len(sources)})
        workers = min(self._max_workers, len(sources))
        if workers == 1:
            results = [self.ingest_source(s) for s in sources]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ingest") as pool:
                results = list(pool.map(self.ingest_source, sources))

        report = IngestionReport(success=True, results=results)
        report.message = success_message(report.total_articles)
        logger.info(
            "ingest.run.done",
            extra={
                "sources": len(results),
                "errors": sum(1 for r in results if r.status is SourceStatus.ERROR),
                "articles": report.total_articles,
            },
        )
        return report

    def ingest_source(self, source: Source) -> SourceResult:
        """Run one source's pipeline; any failure becomes an ERROR result."""
        try:
            return self._ingest(source)
        except (ConnectorError, FeedParseError) as exc:
            logger.warning(
                "ingest.source.failed",
                extra={"source_id": source.id, "rss_url": source.rss_url, "error": str(exc)},
            )
            return SourceResult.failure(source.id, str(exc))
        except Exception as exc:
            logger.exception("ingest.source.crashed", extra={"source_id": source.id})
            return SourceResult.failure(source.id, f"{type(exc).__name__}: {exc}")

    def _ingest(self, source: Source) -> SourceResult:
        logger.info("ingest.source.start", extra={"source_id": source.id, "rss_url": source.rss_url})
        self._throttle.wait(source.id)
        payload = self._fetcher.fetch(source.rss_url)
        feed_format, items = detect(parse_document(payload))
        if not items:
            logger.info("ingest.source.empty", extra={"source_id": source.id})
            return SourceResult(source_id=source.id, status=SourceStatus.SUCCESS, count=0)

        drafts, skipped = self._normalize(source, items, feed_format)
        saved, failed = self._persist(source, drafts)
        logger.info(
            "ingest.source.done",
            extra={
                "source_id": source.id,
                "format": feed_format.value if feed_format else None,
                "fetched": len(items),
                "skipped": skipped,
                "saved": saved,
                "failed": failed,
            },
        )
        result = SourceResult(
            source_id=source.id,
            status=SourceStatus.SUCCESS,
            count=saved,
            fetched=len(items),
            skipped=skipped,
            failed=failed,
        )
        if failed and not saved:
            result.status = SourceStatus.ERROR
            result.error = f"{failed} articles failed to persist"
        return result

    def _normalize(
        self, source: Source, items: Sequence[object], feed_format: Optional[FeedFormat]
    ) -> Tuple[List[ArticleDraft], int]:
        now = self._clock()
        drafts: List[ArticleDraft] = []
        skipped = 0
        for item in items:
            try:
                draft = normalize_item(item, source.id, now=now, feed_format=feed_format)
            except Exception as exc:
                logger.warning("ingest.item.invalid", extra={"source_id": source.id, "error": str(exc)})
                draft = None
            if draft is None:
                skipped += 1
                continue
            drafts.append(draft)
        return drafts, skipped

    def _persist(self, source: Source, drafts: Sequence[ArticleDraft]) -> Tuple[int, int]:
        """Bulk upsert first; on failure retry each draft on its own."""
        if not drafts:
            return 0, 0
        try:
            return self._gateway.upsert_many(drafts), 0
        except Exception as exc:
            logger.warning(
                "ingest.bulk_failed",
                extra={"source_id": source.id, "drafts": len(drafts), "error": str(exc)},
            )

        # collapse by url like upsert_many (last wins)
        unique = list({d.url: d for d in drafts}.values())
        saved = failed = 0
        for draft in unique:
            try:
                self._gateway.upsert(draft)
            except Exception as exc:
                failed += 1
                logger.warning(
                    "ingest.item.persist_failed",
                    extra={"source_id": source.id, "url": draft.url, "error": str(exc)},
                )
            else:
                saved += 1
        return saved, failed
