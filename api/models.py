from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ingestion.models.domain import IngestionReport, SourceResult


class FetchRssResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: Literal["success", "error"]
    success: bool
    message: str
    results: List[SourceResult] = Field(default_factory=list)
    total_articles: int = 0

    @classmethod
    def from_report(cls, report: IngestionReport) -> "FetchRssResponse":
        return cls(
            status="success" if report.success else "error",
            success=report.success,
            message=report.message,
            results=report.results,
            total_articles=report.total_articles,
        )


class ErrorResponse(BaseModel):
    error: str
