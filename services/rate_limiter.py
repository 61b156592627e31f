import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reset_time: int  # epoch ms when the current window closes


class RateLimiter(ABC):
    """Counts hits per client key. Swap the implementation for a shared store
    (e.g. a cache service) when running more than one instance."""

    @abstractmethod
    def hit(self, key: str) -> RateLimitDecision: ...


class InMemoryRateLimiter(RateLimiter):
    """Fixed window counter kept in process memory."""

    def __init__(self, max_requests: int = 100, window_seconds: int = 60,
                 clock: Optional[Callable[[], float]] = None):
        self.max_requests = max_requests
        self.window_ms = window_seconds * 1000
        self._clock = clock or time.time
        self._entries: Dict[str, list] = {}  # key -> [count, reset_time_ms]
        self._lock = threading.Lock()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _purge(self, now: int) -> None:
        expired = [k for k, (_, reset) in self._entries.items() if now > reset]
        for k in expired:
            del self._entries[k]

    def hit(self, key: str) -> RateLimitDecision:
        now = self._now_ms()
        with self._lock:
            self._purge(now)
            entry = self._entries.get(key)
            if entry is None:
                reset_time = now + self.window_ms
                self._entries[key] = [1, reset_time]
                return RateLimitDecision(True, reset_time)

            count, reset_time = entry
            if count >= self.max_requests:
                return RateLimitDecision(False, reset_time)
            entry[0] = count + 1
            return RateLimitDecision(True, reset_time)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
