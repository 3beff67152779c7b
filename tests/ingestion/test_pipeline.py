from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Sequence

import pytest

from ingestion.connectors.base import BadStatusError, MissingUrlError
from ingestion.errors import PersistenceError
from ingestion.models.domain import ArticleDraft, Source, SourceStatus
from ingestion.pipeline import NO_SOURCES_MESSAGE, IngestionOrchestrator

NOW = datetime(2025, 7, 1, 12, 0, tzinfo=timezone.utc)


class FakeFetcher:
    def __init__(self, feeds: Dict[str, object]) -> None:
        self._feeds = feeds
        self.calls: List[str] = []

    def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        if not url:
            raise MissingUrlError()
        payload = self._feeds[url]
        if isinstance(payload, Exception):
            raise payload
        return payload  # type: ignore[return-value]


class FakeGateway:
    """Dict keyed by url, like the real store."""

    def __init__(self, *, fail_bulk: bool = False, fail_urls: Sequence[str] = ()) -> None:
        self.rows: Dict[str, ArticleDraft] = {}
        self.fail_bulk = fail_bulk
        self.fail_urls = set(fail_urls)
        self.bulk_calls = 0
        self.single_calls: List[str] = []

    def upsert_many(self, drafts: Sequence[ArticleDraft]) -> int:
        self.bulk_calls += 1
        if self.fail_bulk:
            raise PersistenceError("bulk rejected")
        for d in drafts:
            self.rows[d.url] = d
        return len({d.url for d in drafts})

    def upsert(self, draft: ArticleDraft) -> None:
        self.single_calls.append(draft.url)
        if draft.url in self.fail_urls:
            raise PersistenceError(f"rejected {draft.url}")
        self.rows[draft.url] = draft


def _orchestrator(fetcher, gateway, **kwargs) -> IngestionOrchestrator:
    return IngestionOrchestrator(fetcher, gateway, clock=lambda: NOW, **kwargs)


def _src(source_id: str, url: str) -> Source:
    return Source(id=source_id, rss_url=url, name=source_id.upper())


def test_empty_source_list_is_success():
    gateway = FakeGateway()

    report = _orchestrator(FakeFetcher({}), gateway).run([])

    assert report.success is True
    assert report.results == []
    assert report.message == NO_SOURCES_MESSAGE
    assert gateway.bulk_calls == 0


@pytest.mark.parametrize("max_workers", [1, 3])
def test_failing_source_does_not_abort_batch(max_workers, rss2_feed, atom_feed):
    fetcher = FakeFetcher(
        {
            "https://a.example/rss": rss2_feed,
            "https://b.example/rss": BadStatusError(500, "https://b.example/rss"),
            "https://c.example/atom": atom_feed,
        }
    )
    gateway = FakeGateway()
    sources = [
        _src("a", "https://a.example/rss"),
        _src("b", "https://b.example/rss"),
        _src("c", "https://c.example/atom"),
    ]

    report = _orchestrator(fetcher, gateway, max_workers=max_workers).run(sources)

    assert report.success is True
    assert [r.source_id for r in report.results] == ["a", "b", "c"]
    assert [r.status for r in report.results] == [SourceStatus.SUCCESS, SourceStatus.ERROR, SourceStatus.SUCCESS]
    a, b, c = report.results
    assert (a.count, a.fetched, a.skipped) == (2, 3, 1)
    assert "500" in b.error
    assert c.count == 2
    assert report.total_articles == 4
    assert report.message == "Feeds updated successfully. Processed 4 articles."
    assert len(gateway.rows) == 4


def test_zero_items_is_success_with_zero_count():
    fetcher = FakeFetcher({"https://empty.example/rss": b"<rss><channel><title>quiet</title></channel></rss>"})
    gateway = FakeGateway()

    report = _orchestrator(fetcher, gateway).run([_src("e", "https://empty.example/rss")])

    (result,) = report.results
    assert result.status is SourceStatus.SUCCESS
    assert result.count == 0
    assert gateway.bulk_calls == 0


def test_parse_error_and_missing_url_are_source_errors():
    fetcher = FakeFetcher({"https://broken.example/rss": b"<rss><channel>"})

    report = _orchestrator(fetcher, FakeGateway()).run(
        [_src("broken", "https://broken.example/rss"), _src("nourl", "")]
    )

    assert [r.status for r in report.results] == [SourceStatus.ERROR, SourceStatus.ERROR]
    assert report.results[1].error == "rss_url이 비어 있습니다."


def test_unexpected_exception_is_isolated():
    class ExplodingFetcher:
        def fetch(self, url: str) -> bytes:
            raise RuntimeError("kaboom")

    report = _orchestrator(ExplodingFetcher(), FakeGateway()).run([_src("x", "https://x.example/rss")])

    (result,) = report.results
    assert result.status is SourceStatus.ERROR
    assert "kaboom" in result.error


def test_bulk_failure_falls_back_to_single_upserts(rss2_feed):
    fetcher = FakeFetcher({"https://a.example/rss": rss2_feed})
    gateway = FakeGateway(fail_bulk=True, fail_urls=["https://news.example.com/storm"])

    report = _orchestrator(fetcher, gateway).run([_src("a", "https://a.example/rss")])

    (result,) = report.results
    assert gateway.bulk_calls == 1
    assert gateway.single_calls == ["https://news.example.com/markets-rally", "https://news.example.com/storm"]
    assert result.status is SourceStatus.SUCCESS
    assert result.count == 1
    assert result.failed == 1
    assert list(gateway.rows) == ["https://news.example.com/markets-rally"]


def test_all_single_upserts_failing_marks_source_error(atom_feed):
    fetcher = FakeFetcher({"https://c.example/atom": atom_feed})
    gateway = FakeGateway(
        fail_bulk=True,
        fail_urls=["https://atom.example.com/entries/1", "https://atom.example.com/entries/2"],
    )

    (result,) = _orchestrator(fetcher, gateway).run([_src("c", "https://c.example/atom")]).results

    assert result.status is SourceStatus.ERROR
    assert result.count == 0
    assert result.failed == 2


def test_reingesting_same_feed_does_not_duplicate(rdf_feed):
    fetcher = FakeFetcher({"https://r.example/rdf": rdf_feed})
    gateway = FakeGateway()
    orchestrator = _orchestrator(fetcher, gateway)
    sources = [_src("r", "https://r.example/rdf")]

    orchestrator.run(sources)
    orchestrator.run(sources)

    assert sorted(gateway.rows) == ["https://rdf.example.com/a", "https://rdf.example.com/b"]


def test_unparsable_date_is_persisted_with_ingestion_time():
    feed = b"""<rss><channel><item>
        <title>Dateless</title><link>https://d.example/1</link><pubDate>32 Foo 20xx</pubDate>
    </item></channel></rss>"""
    gateway = FakeGateway()

    _orchestrator(FakeFetcher({"https://d.example/rss": feed}), gateway).run([_src("d", "https://d.example/rss")])

    assert gateway.rows["https://d.example/1"].published_at == NOW


def test_throttle_is_consulted_per_source(rss2_feed):
    class RecordingThrottle:
        def __init__(self) -> None:
            self.keys: List[str] = []

        def wait(self, key: str) -> float:
            self.keys.append(key)
            return 0.0

    throttle = RecordingThrottle()
    fetcher = FakeFetcher({"https://a.example/rss": rss2_feed})

    _orchestrator(fetcher, FakeGateway(), throttle=throttle).run([_src("a", "https://a.example/rss")])

    assert throttle.keys == ["a"]


def test_report_serializes_with_camel_case(rss2_feed):
    fetcher = FakeFetcher({"https://a.example/rss": rss2_feed})

    report = _orchestrator(fetcher, FakeGateway()).run([_src("a", "https://a.example/rss")])
    body = report.model_dump(mode="json", by_alias=True, exclude_none=True)

    assert body["success"] is True
    assert body["totalArticles"] == 2
    assert body["results"][0]["sourceId"] == "a"
    assert body["results"][0]["status"] == "success"
    assert "error" not in body["results"][0]


def test_non_conforming_xml_still_persists_every_item():
    feed = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>Loose</title>
  <item><title>Tom & Jerry</title><link>https://loose.example/1</link></item>
  <item><title>Caf&eacute; &nbsp; news</title><link>https://loose.example/2</link></item>
</channel></rss>"""
    gateway = FakeGateway()

    (result,) = _orchestrator(FakeFetcher({"https://loose.example/rss": feed}), gateway).run(
        [_src("loose", "https://loose.example/rss")]
    ).results

    assert result.status is SourceStatus.SUCCESS
    assert result.count == 2
    assert gateway.rows["https://loose.example/1"].title == "Tom & Jerry"
    assert gateway.rows["https://loose.example/2"].title.startswith("Café")


def test_legacy_encoded_feed_is_ingested():
    feed = (
        '<?xml version="1.0" encoding="EUC-KR"?>'
        '<rss version="2.0"><channel><title>뉴스</title>'
        "<item><title>한국 뉴스</title><link>https://kr.example/k</link></item>"
        "</channel></rss>"
    ).encode("euc-kr")
    gateway = FakeGateway()

    (result,) = _orchestrator(FakeFetcher({"https://kr.example/rss": feed}), gateway).run(
        [_src("kr", "https://kr.example/rss")]
    ).results

    assert result.status is SourceStatus.SUCCESS
    assert gateway.rows["https://kr.example/k"].title == "한국 뉴스"


def test_fallback_counts_duplicate_urls_once():
    feed = b"""<rss version="2.0"><channel>
  <item><title>First copy</title><link>https://dup.example/1</link></item>
  <item><title>Second copy</title><link>https://dup.example/1</link></item>
  <item><title>Other</title><link>https://dup.example/2</link></item>
</channel></rss>"""
    gateway = FakeGateway(fail_bulk=True)

    (result,) = _orchestrator(FakeFetcher({"https://dup.example/rss": feed}), gateway).run(
        [_src("dup", "https://dup.example/rss")]
    ).results

    assert result.count == 2
    assert gateway.single_calls == ["https://dup.example/1", "https://dup.example/2"]
    assert gateway.rows["https://dup.example/1"].title == "Second copy"
