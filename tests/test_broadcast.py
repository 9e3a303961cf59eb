"""Tests for pulse.broadcast — filters, alert fan-out and subscriber pruning."""

import asyncio
from dataclasses import replace

import pytest

from pulse.broadcast import Broadcaster
from pulse.models.signal import Alert
from pulse.models.timeframe import Timeframe
from pulse.pipeline.generator import build_signal
from pulse.strategy.models import Confidence


class _Recorder:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    async def send(self, message: dict) -> None:
        self.messages.append(message)


class _Broken:
    async def send(self, message: dict) -> None:
        raise ConnectionError("socket closed")


class _Stalled:
    async def send(self, message: dict) -> None:
        await asyncio.sleep(10)


@pytest.fixture
def signal(rising_window, fixed_now):
    return build_signal("BTCUSDT", Timeframe.M5, rising_window, fixed_now)


class TestSubscriptions:
    def test_subscribe_returns_unique_ids(self):
        b = Broadcaster()
        assert b.subscribe(_Recorder()) != b.subscribe(_Recorder())
        assert b.subscriber_count == 2

    def test_filter_normalised(self):
        b = Broadcaster()
        sub_id = b.subscribe(_Recorder(), "btcusdt", ["5m", Timeframe.H1])
        sub = b.get(sub_id)
        assert sub.instrument == "BTCUSDT"
        assert sub.timeframes == frozenset({Timeframe.M5, Timeframe.H1})

    def test_unknown_timeframe_rejected(self):
        with pytest.raises(ValueError):
            Broadcaster().subscribe(_Recorder(), "BTCUSDT", ["7m"])

    def test_resubscribe_unknown_id(self):
        with pytest.raises(KeyError):
            Broadcaster().resubscribe("sub-404", "BTCUSDT")

    def test_unsubscribe(self):
        b = Broadcaster()
        sub_id = b.subscribe(_Recorder())
        b.unsubscribe(sub_id)
        b.unsubscribe(sub_id)
        assert b.subscriber_count == 0


class TestPublish:
    @pytest.mark.asyncio
    async def test_filters_by_pair_and_timeframe(self, signal):
        b = Broadcaster()
        everyone = _Recorder()
        same_pair = _Recorder()
        other_pair = _Recorder()
        other_tf = _Recorder()
        b.subscribe(everyone)
        b.subscribe(same_pair, "BTCUSDT", ["5m", "15m"])
        b.subscribe(other_pair, "ETHUSDT")
        b.subscribe(other_tf, "BTCUSDT", ["1h"])

        delivered = await b.publish(signal)

        assert delivered == 2
        assert everyone.messages[0]["type"] == "newSignal"
        assert same_pair.messages[0]["data"]["pair"] == "BTCUSDT"
        assert other_pair.messages == []
        assert other_tf.messages == []

    @pytest.mark.asyncio
    async def test_alert_ignores_filters(self, signal):
        b = Broadcaster()
        filtered = _Recorder()
        b.subscribe(filtered, "ETHUSDT", ["1h"])

        high = replace(signal, confidence=Confidence.HIGH)
        delivered = await b.publish_alert(Alert.from_signal(high))

        assert delivered == 1
        message = filtered.messages[0]
        assert message["type"] == "alert"
        assert message["data"]["message"].startswith("High confidence BUY signal for BTCUSDT")

    @pytest.mark.asyncio
    async def test_failed_subscriber_pruned(self, signal):
        b = Broadcaster()
        good = _Recorder()
        b.subscribe(good)
        bad_id = b.subscribe(_Broken())

        assert await b.publish(signal) == 1
        assert b.get(bad_id) is None
        assert b.subscriber_count == 1
        assert len(good.messages) == 1

    @pytest.mark.asyncio
    async def test_slow_subscriber_times_out(self, signal):
        b = Broadcaster(send_timeout=0.05)
        good = _Recorder()
        b.subscribe(good)
        b.subscribe(_Stalled())

        assert await b.publish(signal) == 1
        assert b.subscriber_count == 1

    @pytest.mark.asyncio
    async def test_no_subscribers(self, signal):
        assert await Broadcaster().publish(signal) == 0


def test_alert_requires_high_confidence(signal):
    with pytest.raises(ValueError, match="High"):
        Alert.from_signal(replace(signal, confidence=Confidence.MEDIUM))
