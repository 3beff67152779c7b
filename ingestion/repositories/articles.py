"""Repositories for persisting articles and job runs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, ContextManager, Dict, List, Protocol, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ingestion.db.models import Article, JobRun, JobStatus
from ingestion.db.session import session_scope
from ingestion.errors import PersistenceError
from ingestion.models.domain import ArticleDraft

SessionFactory = Callable[[], ContextManager[Session]]

# columns overwritten when the url already exists (last write wins)
UPSERT_COLUMNS = ("title", "content", "published_at", "source_id", "verified")


class ArticleGateway(Protocol):
    def upsert(self, draft: ArticleDraft) -> None: ...
    def upsert_many(self, drafts: Sequence[ArticleDraft]) -> int: ...


def build_upsert(session: Session, rows: List[Dict[str, Any]]):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise PersistenceError(f"upsert를 지원하지 않는 dialect입니다: {dialect}")

    stmt = insert(Article).values(rows)
    updates: Dict[str, Any] = {col: stmt.excluded[col] for col in UPSERT_COLUMNS}
    updates["updated_at"] = func.now()
    return stmt.on_conflict_do_update(index_elements=[Article.url], set_=updates)


class SqlArticleGateway:
    """Upsert-by-URL over SQLAlchemy; one transaction per call."""

    def __init__(self, session_factory: SessionFactory = session_scope) -> None:
        self._session_factory = session_factory

    def upsert(self, draft: ArticleDraft) -> None:
        self._execute([draft.to_record()])

    def upsert_many(self, drafts: Sequence[ArticleDraft]) -> int:
        if not drafts:
            return 0
        # a single statement may not touch the same url twice; keep the last occurrence
        rows = list({d.url: d.to_record() for d in drafts}.values())
        self._execute(rows)
        return len(rows)

    def _execute(self, rows: List[Dict[str, Any]]) -> None:
        try:
            with self._session_factory() as session:
                session.execute(build_upsert(session, rows))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"article upsert 실패: {str(exc)[:480]}") from exc


class JobRunRecorder:
    """Context manager to record job run lifecycle."""

    def __init__(
        self,
        session: Session,
        *,
        task_name: str,
        trace_id: str | None = None,
    ) -> None:
        self._session = session
        self._job = JobRun(
            status=JobStatus.RUNNING,
            task_name=task_name,
            trace_id=trace_id,
            started_at=datetime.now(timezone.utc),
        )

    def __enter__(self) -> JobRun:
        self._session.add(self._job)
        # Commit initial RUNNING state so we have a durable record even if later work fails
        self._session.commit()
        return self._job

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        if exc is None:
            self._job.status = JobStatus.SUCCEEDED
        else:
            self._job.status = JobStatus.FAILED
            self._job.error_message = str(exc)[:512]
        self._job.finished_at = datetime.now(timezone.utc)
        self._session.add(self._job)
        # Commit final state before outer transaction may roll back
        try:
            self._session.commit()
        except SQLAlchemyError:  # pragma: no cover - do not mask original error
            self._session.rollback()
