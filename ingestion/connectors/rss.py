"""RSS/Atom feed fetcher over httpx."""

from __future__ import annotations

import time
from typing import Callable, ContextManager, Dict, List, Optional

import httpx

from ingestion.settings import Settings, get_settings

from .base import (
    BadStatusError,
    BaseConnector,
    EmptyFeedError,
    FetchError,
    FetchTimeoutError,
    NetworkError,
    RetryableStatusError,
)

ACCEPT_HEADER = (
    "application/rss+xml, application/atom+xml, application/rdf+xml;q=0.9, "
    "application/xml;q=0.9, text/xml;q=0.8, */*;q=0.5"
)


class FeedFetcher(BaseConnector):
    """Fetch raw feed bytes.

    - client 주입 시: 해당 httpx.Client 재사용 (테스트/커넥션 풀)
    - client 미주입 시: 요청마다 httpx.stream 호출
    - 본문은 스트리밍으로 읽고 전체 소요 시간을 timeout_seconds로 제한
    """

    source_type = "feed"

    def __init__(
        self,
        *,
        user_agent: str,
        timeout_seconds: float = 10.0,
        max_attempts: int = 1,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._user_agent = user_agent
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts
        self._client = client
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings | None = None, *, client: Optional[httpx.Client] = None) -> "FeedFetcher":
        cfg = settings or get_settings()
        return cls(
            user_agent=cfg.feed_user_agent,
            timeout_seconds=float(cfg.feed_fetch_timeout_seconds),
            max_attempts=int(cfg.feed_fetch_max_attempts),
            client=client,
        )

    def fetch(self, url: str, *, max_attempts: int | None = None) -> bytes:
        return super().fetch(url, max_attempts=max_attempts or self._max_attempts)

    def _fetch_once(self, url: str) -> bytes:
        headers = {"User-Agent": self._user_agent, "Accept": ACCEPT_HEADER}
        # httpx timeouts are per phase; the deadline bounds the whole request
        deadline = self._clock() + self._timeout
        try:
            with self._stream(url, headers) as resp:
                if resp.status_code == 429 or resp.status_code >= 500:
                    raise RetryableStatusError(resp.status_code, url)
                if not resp.is_success:
                    raise BadStatusError(resp.status_code, url)
                body = self._read_body(resp, url, deadline)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"피드 요청 타임아웃: {url}") from exc
        except httpx.InvalidURL as exc:
            raise FetchError(f"잘못된 피드 URL: {url}") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"피드 요청 오류: {url} ({exc})") from exc

        if not body:
            raise EmptyFeedError(f"피드 응답 본문이 비어 있습니다: {url}")
        return body

    def _stream(self, url: str, headers: Dict[str, str]) -> ContextManager[httpx.Response]:
        if self._client is not None:
            return self._client.stream("GET", url, headers=headers, timeout=self._timeout, follow_redirects=True)
        return httpx.stream("GET", url, headers=headers, timeout=self._timeout, follow_redirects=True)

    def _read_body(self, resp: httpx.Response, url: str, deadline: float) -> bytes:
        chunks: List[bytes] = []
        for chunk in resp.iter_bytes():
            chunks.append(chunk)
            if self._clock() > deadline:
                raise FetchTimeoutError(f"피드 요청이 {self._timeout:g}초를 넘었습니다: {url}")
        return b"".join(chunks)
