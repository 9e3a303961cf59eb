"""Tests for pulse.market.binance_client — klines with mocked HTTP responses."""

import pytest
import httpx

from pulse.errors import UpstreamDataError
from pulse.market.binance_client import BinanceClient, parse_klines
from pulse.market.models import Candle
from pulse.models.timeframe import Timeframe


# ── Mock Binance responses ───────────────────────────────────────────────

MOCK_KLINES_RESPONSE = [
    [1700000000000, "43500.10", "43650.00", "43400.00", "43600.50", "12.345",
     1700000299999, "538000.1", 120, "6.1", "265000.0", "0"],
    [1700000300000, "43600.50", "43700.00", "43550.00", "43580.00", "10.000",
     1700000599999, "435800.0", 98, "4.9", "213000.0", "0"],
]


@pytest.mark.asyncio
async def test_parse_candles(monkeypatch, config):
    """Candle fields populated from string kline rows."""
    client = BinanceClient(config)
    captured = {}

    async def _mock_get(self, url, *, params=None, timeout=None):
        captured["url"] = url
        captured["params"] = params
        return httpx.Response(200, json=MOCK_KLINES_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    candles = await client.fetch_candles("BTCUSDT", Timeframe.M5, limit=2)
    assert len(candles) == 2
    c = candles[0]
    assert isinstance(c, Candle)
    assert c.timestamp == 1700000000000
    assert c.open == pytest.approx(43500.10)
    assert c.high == pytest.approx(43650.0)
    assert c.low == pytest.approx(43400.0)
    assert c.close == pytest.approx(43600.50)
    assert c.volume == pytest.approx(12.345)

    assert captured["url"] == "https://api.binance.test/api/v3/klines"
    assert captured["params"] == {"symbol": "BTCUSDT", "interval": "5m", "limit": 2}


@pytest.mark.asyncio
async def test_limit_is_capped(monkeypatch, config):
    client = BinanceClient(config)
    captured = {}

    async def _mock_get(self, url, *, params=None, timeout=None):
        captured["params"] = params
        return httpx.Response(200, json=MOCK_KLINES_RESPONSE, request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    await client.fetch_candles("BTCUSDT", Timeframe.H1, limit=5000)
    assert captured["params"]["limit"] == 1000


@pytest.mark.asyncio
async def test_http_error_raises_upstream(monkeypatch, config):
    client = BinanceClient(config)

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."},
                              request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(UpstreamDataError, match="BTCUSDT"):
        await client.fetch_candles("BTCUSDT", Timeframe.M5)


@pytest.mark.asyncio
async def test_retries_on_server_error(monkeypatch, config):
    """A 503 is retried; a following 200 succeeds."""
    client = BinanceClient(config)
    calls = {"count": 0}

    async def _mock_get(self, url, *, params=None, timeout=None):
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503, request=httpx.Request("GET", url))
        return httpx.Response(200, json=MOCK_KLINES_RESPONSE, request=httpx.Request("GET", url))

    async def _no_sleep(_delay):
        return None

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
    monkeypatch.setattr("pulse.market.binance_client.asyncio.sleep", _no_sleep)

    candles = await client.fetch_candles("BTCUSDT", Timeframe.M5)
    assert calls["count"] == 2
    assert len(candles) == 2


@pytest.mark.asyncio
async def test_transport_error_exhausts_retries(monkeypatch, config):
    client = BinanceClient(config)

    async def _mock_get(self, url, *, params=None, timeout=None):
        raise httpx.ConnectError("connection refused")

    async def _no_sleep(_delay):
        return None

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)
    monkeypatch.setattr("pulse.market.binance_client.asyncio.sleep", _no_sleep)

    with pytest.raises(UpstreamDataError, match="connection refused"):
        await client.fetch_candles("BTCUSDT", Timeframe.M5)


@pytest.mark.asyncio
async def test_empty_payload_raises(monkeypatch, config):
    client = BinanceClient(config)

    async def _mock_get(self, url, *, params=None, timeout=None):
        return httpx.Response(200, json=[], request=httpx.Request("GET", url))

    monkeypatch.setattr(httpx.AsyncClient, "get", _mock_get)

    with pytest.raises(UpstreamDataError, match="Empty"):
        await client.fetch_candles("BTCUSDT", Timeframe.M5)


class TestParseKlines:
    def test_non_list_payload(self):
        with pytest.raises(UpstreamDataError):
            parse_klines({"code": -1003})

    def test_malformed_row(self):
        with pytest.raises(UpstreamDataError, match="Malformed"):
            parse_klines([[1700000000000, "1.0", "2.0"]])

    def test_non_numeric_price(self):
        with pytest.raises(UpstreamDataError):
            parse_klines([[1700000000000, "abc", "2", "0.5", "1", "10"]])

    def test_out_of_order_timestamps(self):
        rows = list(reversed(MOCK_KLINES_RESPONSE))
        with pytest.raises(UpstreamDataError, match="increasing"):
            parse_klines(rows)
