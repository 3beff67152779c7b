"""Feed bytes → feedparser result.

feedparser copes with the non-conforming XML real feeds ship (undefined
entities, bare ``&``, inline HTML, legacy encodings such as EUC-KR) by
retrying with its loose parser. Entries come back as plain dicts:
``title``, ``link``, ``links[].href/rel``, ``summary``, ``content[].value``,
``published``, ``updated``.
"""

from __future__ import annotations

import feedparser

from ingestion.errors import FeedParseError


def parse_document(raw: bytes) -> feedparser.FeedParserDict:
    """Parse feed bytes.

    Raises FeedParseError only when the payload could not be read as a feed
    at all (bozo with no entries). A bozo feed that still yielded entries is
    kept.
    """
    parsed = feedparser.parse(raw)
    if parsed.get("bozo") and not parsed.get("entries"):
        reason = parsed.get("bozo_exception")
        raise FeedParseError(f"피드 파싱 실패: {reason}")
    return parsed
