"""Feed shape detection (RSS 2.0, Atom, RSS 1.0/RDF)."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, List, Optional, Tuple


class FeedFormat(str, Enum):
    RSS2 = "rss2"
    ATOM = "atom"
    RDF = "rdf"


# feedparser version strings; RSS 0.90 and 1.0 are the RDF dialects
RDF_VERSIONS = frozenset(("rss090", "rss10"))


def format_for_version(version: str) -> Optional[FeedFormat]:
    if version in RDF_VERSIONS:
        return FeedFormat.RDF
    if version.startswith("rss"):
        return FeedFormat.RSS2
    if version.startswith("atom"):
        return FeedFormat.ATOM
    return None


def detect(doc: Any) -> Tuple[Optional[FeedFormat], List[Any]]:
    if not isinstance(doc, Mapping):
        return None, []
    feed_format = format_for_version(str(doc.get("version") or ""))
    if feed_format is None:
        return None, []
    entries = doc.get("entries") or []
    return feed_format, [entry for entry in entries if entry is not None]


def detect_items(doc: Any) -> List[Any]:
    """Raw items of a recognized feed; ``[]`` when the shape is unknown."""
    return detect(doc)[1]


def detect_format(doc: Any) -> Optional[FeedFormat]:
    return detect(doc)[0]
