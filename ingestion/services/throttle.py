"""Per-source fetch spacing with pluggable state (in-memory or Redis)."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Protocol


class FetchThrottle(Protocol):
    def wait(self, key: str) -> float: ...  # returns seconds slept


class NullThrottle:
    """Disabled throttle for tests/one-shot runs."""

    def wait(self, key: str) -> float:  # pragma: no cover - trivial
        return 0.0


class InMemoryThrottle:
    """Remembers the last fetch time per source within one process."""

    def __init__(
        self,
        min_interval_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._interval = max(0.0, float(min_interval_seconds))
        self._clock = clock
        self._sleep = sleep
        self._last: Dict[str, float] = {}
        self._lock = threading.Lock()

    def wait(self, key: str) -> float:
        with self._lock:
            now = self._clock()
            last = self._last.get(key)
            delay = 0.0 if last is None else max(0.0, last + self._interval - now)
            # reserve the slot before sleeping so concurrent callers queue up behind it
            self._last[key] = now + delay
        if delay > 0:
            self._sleep(delay)
        return delay


class _RedisLikeClient(Protocol):
    def set(self, name: str, value: str, *, px: int | None = None, nx: bool | None = None) -> bool | None: ...
    def pttl(self, name: str) -> int: ...  # -2 missing, -1 no expiry


class RedisThrottle:
    """Redis 기반 throttle 구현 (워커 간 공유).

    - 슬롯 획득: `SET key 1 NX PX <interval_ms>` → 성공 시 바로 진행
    - 실패 시: `PTTL key` 만큼 대기 후 재시도, max_wait_seconds를 넘기면 그대로 진행

    throttle은 권고 사항이므로 대기 한도를 넘으면 요청을 막지 않는다.
    """

    def __init__(
        self,
        client: _RedisLikeClient,
        min_interval_seconds: float,
        *,
        prefix: str = "throttle",
        max_wait_seconds: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._interval_ms = max(1, int(min_interval_seconds * 1000))
        self._prefix = prefix
        self._max_wait = max_wait_seconds
        self._sleep = sleep

    def _format(self, key: str) -> str:  # pragma: no cover - trivial
        return f"{self._prefix}:{key}"

    def wait(self, key: str) -> float:
        name = self._format(key)
        waited = 0.0
        while True:
            if self._client.set(name, "1", px=self._interval_ms, nx=True):
                return waited
            remaining_ms = self._client.pttl(name)
            if remaining_ms == -2:
                continue
            if remaining_ms < 0:
                return waited
            delay = remaining_ms / 1000.0
            if waited + delay > self._max_wait:
                return waited
            self._sleep(delay)
            waited += delay
