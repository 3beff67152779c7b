from __future__ import annotations

from typing import Annotated, Callable

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from ingestion.errors import IngestionError
from ingestion.models.domain import IngestionReport
from ingestion.tasks.ingest import ThrottleHolder, ingest_core
from ingestion.utils.logging import get_logger

from .models import ErrorResponse, FetchRssResponse

logger = get_logger(__name__)

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

IngestRunner = Callable[[], IngestionReport]


def ingest_runner(request: Request) -> IngestRunner:
    throttles: ThrottleHolder | None = getattr(request.app.state, "throttles", None)
    return lambda: ingest_core(throttles)


RunnerDep = Annotated[IngestRunner, Depends(ingest_runner)]


@router.api_route(
    "/functions/fetch-rss",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    tags=["ingestion"],
)
def fetch_rss(request: Request, runner: RunnerDep) -> Response:
    """Run the full ingestion pipeline; OPTIONS answers the CORS preflight."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    try:
        report = runner()
    except IngestionError as exc:
        logger.error("fetch_rss.failed", extra={"error": str(exc)})
        return _error_response(str(exc))
    except Exception as exc:
        logger.exception("fetch_rss.crashed")
        return _error_response(f"{type(exc).__name__}: {exc}")

    # partial failures are reported per source; the HTTP status stays 200
    body = FetchRssResponse.from_report(report).model_dump(mode="json", by_alias=True, exclude_none=True)
    return JSONResponse(body, status_code=200, headers=CORS_HEADERS)


def _error_response(message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=500, headers=CORS_HEADERS)
