"""Short-lived candle cache keyed by (instrument, timeframe).

Entries are interchangeable within the TTL, so concurrent writers for the
same key simply overwrite each other.
"""

import threading
import time
from typing import Callable, Optional

from pulse.market.models import Candle
from pulse.models.timeframe import Timeframe


class CandleCache:
    """Mutex-guarded TTL map.

    Args:
        ttl_seconds: How long an entry stays fresh.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[tuple[str, Timeframe], tuple[float, list[Candle]]] = {}
        self._lock = threading.Lock()

    def get(self, instrument: str, timeframe: Timeframe) -> Optional[list[Candle]]:
        """Return the cached window, or ``None`` when absent or stale."""
        with self._lock:
            entry = self._entries.get((instrument, timeframe))
            if entry is None:
                return None
            stored_at, candles = entry
            if self._clock() - stored_at >= self._ttl:
                del self._entries[(instrument, timeframe)]
                return None
            return list(candles)

    def put(self, instrument: str, timeframe: Timeframe, candles: list[Candle]) -> None:
        with self._lock:
            self._entries[(instrument, timeframe)] = (self._clock(), list(candles))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
