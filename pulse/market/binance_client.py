"""Binance REST API async client.

Fetches historical klines for the market data provider. Every failure mode
(transport, non-success status, malformed payload) surfaces as
``UpstreamDataError`` so the caller can fall back in one place.
"""

import asyncio
import logging
from typing import Optional

import httpx

from pulse.config import Config
from pulse.errors import UpstreamDataError
from pulse.market.models import Candle, is_strictly_increasing
from pulse.models.timeframe import Timeframe

logger = logging.getLogger("pulse.market")

# Retry settings
_MAX_RETRIES = 2
_RETRY_BASE_DELAY = 0.5  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}
_MAX_LIMIT = 1000


class BinanceClient:
    """Async client wrapping the Binance spot klines endpoint."""

    def __init__(self, config: Config) -> None:
        self._base_url = config.binance_base_url.rstrip("/")
        self._timeout = config.request_timeout_seconds

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _request_with_retry(self, url: str, **kwargs) -> httpx.Response:
        """Execute a GET with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429). Anything else non-successful is raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(url, timeout=self._timeout, **kwargs)

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "Binance GET %s returned %d — retry %d/%d in %.1fs",
                        url, resp.status_code, attempt + 1, _MAX_RETRIES, delay,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    await asyncio.sleep(delay)
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "Binance GET %s transport error (%s) — retry %d/%d in %.1fs",
                    url, exc, attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        raise last_exc  # type: ignore[misc]

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        timeframe: Timeframe,
        limit: int = 100,
    ) -> list[Candle]:
        """Fetch klines for *symbol*.

        Args:
            symbol: e.g. ``"BTCUSDT"``
            timeframe: candle bucket, converted via ``binance_interval``
            limit: number of candles to request (capped at 1000)

        Returns:
            List of ``Candle`` objects ordered oldest-first.

        Raises:
            UpstreamDataError: on any transport, status, or payload problem.
        """
        url = f"{self._base_url}/api/v3/klines"
        params = {
            "symbol": symbol,
            "interval": timeframe.binance_interval,
            "limit": min(limit, _MAX_LIMIT),
        }

        try:
            resp = await self._request_with_retry(url, params=params)
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamDataError(
                f"Klines request for {symbol} {timeframe.value} failed: {exc}"
            ) from exc

        candles = parse_klines(data)
        if not candles:
            raise UpstreamDataError(f"Empty klines payload for {symbol} {timeframe.value}")
        return candles


def parse_klines(data) -> list[Candle]:
    """Convert raw kline rows into ``Candle`` objects.

    Rows are ``[open_time, open, high, low, close, volume, ...]`` with
    prices as strings. Raises ``UpstreamDataError`` for anything else.
    """
    if not isinstance(data, list):
        raise UpstreamDataError(f"Expected a list of klines, got {type(data).__name__}")

    candles: list[Candle] = []
    try:
        for row in data:
            candles.append(
                Candle(
                    timestamp=int(row[0]),
                    open=float(row[1]),
                    high=float(row[2]),
                    low=float(row[3]),
                    close=float(row[4]),
                    volume=float(row[5]),
                )
            )
    except (TypeError, ValueError, IndexError) as exc:
        raise UpstreamDataError(f"Malformed kline row: {exc}") from exc

    if not is_strictly_increasing(candles):
        raise UpstreamDataError("Kline timestamps are not strictly increasing")
    return candles
