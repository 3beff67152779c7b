"""Connector abstraction and errors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ingestion.errors import IngestionError


class ConnectorError(IngestionError):
    """Base connector error."""


class TransientError(ConnectorError):
    """Retryable error (e.g., rate limit, network hiccup)."""


class PermanentError(ConnectorError):
    """Non-retryable error (e.g., 4xx semantics)."""


class FetchError(ConnectorError):
    """A feed could not be retrieved."""


class MissingUrlError(FetchError, PermanentError):
    """The source has no feed URL configured."""

    def __init__(self, message: str = "rss_url이 비어 있습니다.") -> None:
        super().__init__(message)


class EmptyFeedError(FetchError, PermanentError):
    """The origin answered with a zero-length body."""


class BadStatusError(FetchError):
    """The origin answered with a non-2xx status."""

    def __init__(self, status_code: int, url: str = "") -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"HTTP {status_code}" + (f" ({url})" if url else ""))


class RetryableStatusError(BadStatusError, TransientError):
    """429 or 5xx."""


class FetchTimeoutError(FetchError, TransientError):
    """The request exceeded its timeout."""


class NetworkError(FetchError, TransientError):
    """Transport-level failure (DNS, connection reset, TLS...)."""


class BaseConnector(ABC):
    """Abstract connector interface with immediate retry on transient errors."""

    source_type: str

    def fetch(self, url: str, *, max_attempts: int = 1) -> bytes:
        if not url or not url.strip():
            raise MissingUrlError()
        attempts = 0
        last_error: Optional[Exception] = None
        while attempts < max_attempts:
            attempts += 1
            try:
                return self._fetch_once(url.strip())
            except TransientError as exc:  # retry
                last_error = exc
                if attempts >= max_attempts:
                    raise
            except PermanentError:
                raise
        assert last_error is not None
        raise last_error

    @abstractmethod
    def _fetch_once(self, url: str) -> bytes:
        """Return the raw payload from the upstream."""
