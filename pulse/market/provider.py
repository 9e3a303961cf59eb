"""Market data provider — cached candle windows with synthetic fallback.

``fetch`` never raises for recoverable conditions: upstream failures are
logged and replaced by a synthetic window of the requested length.
"""

import logging
import random
from typing import Optional, Protocol

from pulse.errors import UpstreamDataError
from pulse.market.cache import CandleCache
from pulse.market.instruments import instrument_type
from pulse.market.models import Candle
from pulse.market.synthetic import generate_synthetic_candles
from pulse.models.timeframe import Timeframe
from pulse.repos.market_data_repo import MarketDataRepo
from pulse.repos.writer import BackgroundWriter

logger = logging.getLogger("pulse.market")


class CandleSource(Protocol):
    """Anything that can fetch exchange candles (``BinanceClient`` or a mock)."""

    async def fetch_candles(
        self, symbol: str, timeframe: Timeframe, limit: int = 100
    ) -> list[Candle]:
        ...


class MarketDataProvider:
    """Fetches candle windows for the pipeline.

    Args:
        client: Exchange client used for crypto instruments.
        cache: TTL cache shared by every fetch.
        repo: Optional store for successful exchange windows.
        writer: Background writer used for the store. Required with *repo*.
        rng: Random source for synthetic windows; seed it in tests.
    """

    def __init__(
        self,
        client: CandleSource,
        cache: Optional[CandleCache] = None,
        repo: Optional[MarketDataRepo] = None,
        writer: Optional[BackgroundWriter] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._client = client
        self._cache = cache or CandleCache()
        self._repo = repo
        self._writer = writer or BackgroundWriter()
        self._rng = rng or random.Random()

    @property
    def cache(self) -> CandleCache:
        return self._cache

    async def fetch(
        self,
        instrument: str,
        timeframe: Timeframe,
        limit: int = 100,
    ) -> list[Candle]:
        """Return up to *limit* candles, oldest first."""
        cached = self._cache.get(instrument, timeframe)
        if cached is not None:
            return cached

        if instrument_type(instrument) != "crypto":
            # No exchange feed for forex/commodity pairs.
            candles = self.synthetic(instrument, timeframe, limit)
            self._cache.put(instrument, timeframe, candles)
            return candles

        try:
            candles = await self._client.fetch_candles(instrument, timeframe, limit=limit)
        except UpstreamDataError as exc:
            logger.warning(
                "Upstream data unavailable for %s %s, using synthetic window: %s",
                instrument, timeframe.value, exc,
            )
            # Cached for the normal TTL; never persisted.
            candles = self.synthetic(instrument, timeframe, limit)
            self._cache.put(instrument, timeframe, candles)
            return candles

        self._cache.put(instrument, timeframe, candles)
        if self._repo is not None:
            self._writer.submit(
                f"market data {instrument} {timeframe.value}",
                self._repo.upsert_window,
                instrument,
                timeframe,
                candles,
            )
        return candles

    def synthetic(self, instrument: str, timeframe: Timeframe, limit: int) -> list[Candle]:
        """Generate a synthetic window from the provider's random source."""
        return generate_synthetic_candles(instrument, timeframe, limit, rng=self._rng)
