"""Map raw feed items onto ArticleDraft."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

from dateutil import parser as date_parser

from ingestion.models.domain import ArticleDraft
from ingestion.utils.logging import get_logger

from .detector import FeedFormat
from .extractor import extract, extract_first

logger = get_logger(__name__)

TITLE_PATHS = ("title",)
LINK_PATHS = ("link",)
# RSS description/RDF description land in summary, content:encoded in content
CONTENT_PATHS = ("summary", "content")
# Atom bodies: <content> before <summary>
ATOM_CONTENT_PATHS = ("content", "summary")
# pubDate/published → published; dc:date/updated → updated
DATE_PATHS = ("published", "updated", "created")

# Common timezone abbreviations seen in RFC 822 dates
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "MST": timezone(timedelta(hours=-7)),
    "MDT": timezone(timedelta(hours=-6)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "Z": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
    "KST": timezone(timedelta(hours=9)),
}


def extract_link(item: Any) -> str:
    """Text-style ``link`` first, then ``links[].href`` (``rel="alternate"`` preferred)."""
    text = extract_first(item, LINK_PATHS).strip()
    if text:
        return text

    links = item.get("links") if isinstance(item, Mapping) else None
    candidates: List[Any] = links if isinstance(links, list) else [links]
    fallback = ""
    for link in candidates:
        href = extract(link, "href").strip()
        if not href:
            continue
        rel = extract(link, "rel").strip() or "alternate"
        if rel == "alternate":
            return href
        fallback = fallback or href
    return fallback


def parse_published(value: str, *, fallback: datetime) -> datetime:
    """Parse an RSS/Atom date; ``fallback`` when absent, unparsable or out of range."""
    text = value.strip()
    if not text:
        return fallback
    try:
        parsed = date_parser.parse(text, tzinfos=TZINFOS)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as exc:
        logger.debug("normalize.date_unparsable", extra={"raw_date": text[:64], "error": str(exc)})
        return fallback


def content_paths(feed_format: Optional[FeedFormat]) -> Tuple[str, ...]:
    return ATOM_CONTENT_PATHS if feed_format is FeedFormat.ATOM else CONTENT_PATHS


def normalize_item(
    raw: Any,
    source_id: str,
    *,
    now: Optional[datetime] = None,
    feed_format: Optional[FeedFormat] = None,
) -> Optional[ArticleDraft]:
    """Build a draft from one raw item, or ``None`` when title/link is missing."""
    if not isinstance(raw, Mapping):
        return None

    title = extract_first(raw, TITLE_PATHS).strip()
    url = extract_link(raw)
    if not title or not url:
        return None

    ingested_at = now or datetime.now(timezone.utc)
    return ArticleDraft(
        title=title,
        url=url,
        content=extract_first(raw, content_paths(feed_format)).strip(),
        published_at=parse_published(extract_first(raw, DATE_PATHS), fallback=ingested_at),
        source_id=source_id,
        verified=True,
    )
