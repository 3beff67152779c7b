"""Domain DTOs for ingestion pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


class Source(BaseModel):
    """Registered feed origin; read-only for the pipeline."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="소스 식별자")
    rss_url: str = Field("", description="피드 엔드포인트 URL")
    name: str = Field("", description="표시 이름")

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, value: object) -> str:
        return str(value)

    @field_validator("rss_url", "name", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> str:
        return "" if value is None else str(value)


class ArticleDraft(BaseModel):
    """Normalized, not-yet-persisted article record."""

    model_config = ConfigDict(frozen=True)

    title: str
    url: str = Field(..., description="upsert 자연 키")
    content: str = ""
    published_at: datetime
    source_id: str
    verified: bool = True

    @field_validator("title", "url")
    @classmethod
    def _require_text(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("title/url은 공백일 수 없습니다.")
        return text

    @field_validator("published_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def to_record(self) -> dict:
        """Row shape written to the article store."""
        return {
            "title": self.title,
            "url": self.url,
            "content": self.content,
            "published_at": self.published_at,
            "source_id": self.source_id,
            "verified": self.verified,
        }


class SourceStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class SourceResult(BaseModel):
    """Outcome of one source's fetch→persist pipeline."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_id: str
    status: SourceStatus
    count: int = 0
    error: Optional[str] = None
    fetched: int = 0
    skipped: int = 0
    failed: int = 0

    @classmethod
    def failure(cls, source_id: str, error: str) -> "SourceResult":
        return cls(source_id=source_id, status=SourceStatus.ERROR, error=error)


class IngestionReport(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    message: str = ""
    results: List[SourceResult] = Field(default_factory=list)

    @computed_field(alias="totalArticles")  # type: ignore[prop-decorator]
    @property
    def total_articles(self) -> int:
        return sum(r.count for r in self.results)
