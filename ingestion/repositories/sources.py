"""Read-only access to the source registry."""

from __future__ import annotations

from typing import List, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ingestion.db.models import FeedSource, UserSource
from ingestion.db.session import session_scope
from ingestion.errors import RegistryError
from ingestion.models.domain import Source

from .articles import SessionFactory


class SourceRegistry(Protocol):
    def list_sources(self) -> List[Source]: ...


def get_subscribed_source_ids(session: Session) -> List[str]:
    stmt = select(UserSource.source_id).distinct().order_by(UserSource.source_id)
    return [row[0] for row in session.execute(stmt)]


def get_sources(session: Session, ids: Sequence[str]) -> List[Source]:
    if not ids:
        return []
    stmt = select(FeedSource).where(FeedSource.id.in_(list(ids))).order_by(FeedSource.id)
    return [
        Source(id=row.id, rss_url=row.rss_url, name=row.name)
        for row in session.execute(stmt).scalars()
    ]


class SqlSourceRegistry:
    """Sources that at least one user subscribes to."""

    def __init__(self, session_factory: SessionFactory = session_scope) -> None:
        self._session_factory = session_factory

    def list_sources(self) -> List[Source]:
        try:
            with self._session_factory() as session:
                ids = get_subscribed_source_ids(session)
                return get_sources(session, ids)
        except SQLAlchemyError as exc:
            raise RegistryError(f"소스 목록 조회 실패: {str(exc)[:480]}") from exc

