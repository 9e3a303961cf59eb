"""Broadcaster — publish/subscribe fan-out of signals and alerts.

Each subscription carries an optional instrument and timeframe-set filter.
Signals go to matching subscribers; alerts go to everyone. A subscriber that
fails or times out is pruned, never retried.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from pulse.models.signal import Alert, Signal
from pulse.models.timeframe import Timeframe

logger = logging.getLogger("pulse.broadcast")


class Subscriber(Protocol):
    """A delivery target, e.g. a WebSocket connection."""

    async def send(self, message: dict) -> None:
        ...


@dataclass
class Subscription:
    id: str
    subscriber: Subscriber
    instrument: Optional[str] = None
    timeframes: Optional[frozenset[Timeframe]] = None

    def matches(self, signal: Signal) -> bool:
        if self.instrument is not None and self.instrument != signal.instrument:
            return False
        if self.timeframes is not None and signal.timeframe not in self.timeframes:
            return False
        return True


def _normalise_filter(
    instrument: Optional[str],
    timeframes: Optional[Iterable["Timeframe | str"]],
) -> tuple[Optional[str], Optional[frozenset[Timeframe]]]:
    inst = instrument.upper() if instrument else None
    tfs = None
    if timeframes is not None:
        tfs = frozenset(Timeframe.parse(tf) for tf in timeframes)
    return inst, tfs


class Broadcaster:
    """Registry of subscriptions with concurrent, timeout-bounded delivery.

    Args:
        send_timeout: Seconds a single subscriber may take to accept a message.
    """

    def __init__(self, send_timeout: float = 5.0) -> None:
        self._send_timeout = send_timeout
        self._subscriptions: dict[str, Subscription] = {}
        self._ids = itertools.count(1)

    # ── Registry ─────────────────────────────────────────────────────────

    def subscribe(
        self,
        subscriber: Subscriber,
        instrument: Optional[str] = None,
        timeframes: Optional[Iterable["Timeframe | str"]] = None,
    ) -> str:
        """Register *subscriber* and return its subscription id.

        Raises ``ValueError`` for an unknown timeframe in the filter.
        """
        inst, tfs = _normalise_filter(instrument, timeframes)
        sub_id = f"sub-{next(self._ids)}"
        self._subscriptions[sub_id] = Subscription(sub_id, subscriber, inst, tfs)
        logger.info("Subscriber %s registered (%d active)", sub_id, len(self._subscriptions))
        return sub_id

    def resubscribe(
        self,
        sub_id: str,
        instrument: Optional[str] = None,
        timeframes: Optional[Iterable["Timeframe | str"]] = None,
    ) -> None:
        """Replace the filter of an existing subscription.

        Raises ``KeyError`` if *sub_id* is not registered.
        """
        inst, tfs = _normalise_filter(instrument, timeframes)
        subscription = self._subscriptions[sub_id]
        subscription.instrument = inst
        subscription.timeframes = tfs

    def unsubscribe(self, sub_id: str) -> None:
        if self._subscriptions.pop(sub_id, None) is not None:
            logger.info("Subscriber %s removed (%d active)", sub_id, len(self._subscriptions))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def get(self, sub_id: str) -> Optional[Subscription]:
        return self._subscriptions.get(sub_id)

    # ── Delivery ─────────────────────────────────────────────────────────

    async def publish(self, signal: Signal) -> int:
        """Deliver *signal* to every subscriber whose filter matches.

        Returns the number of successful deliveries.
        """
        targets = [s for s in self._subscriptions.values() if s.matches(signal)]
        return await self._deliver(targets, {"type": "newSignal", "data": signal.to_dict()})

    async def publish_alert(self, alert: Alert) -> int:
        """Deliver *alert* to every subscriber regardless of filter."""
        targets = list(self._subscriptions.values())
        return await self._deliver(targets, {"type": "alert", "data": alert.to_dict()})

    async def _deliver(self, targets: list[Subscription], message: dict) -> int:
        if not targets:
            return 0

        results = await asyncio.gather(
            *(
                asyncio.wait_for(t.subscriber.send(message), timeout=self._send_timeout)
                for t in targets
            ),
            return_exceptions=True,
        )

        delivered = 0
        for target, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Dropping subscriber %s after failed delivery: %r", target.id, result
                )
                self._subscriptions.pop(target.id, None)
            else:
                delivered += 1
        return delivered
