"""Deduplication gate — per-(instrument, timeframe) cooldown memory.

A candidate is suppressed when it repeats the last admitted direction for
its key inside the cooldown, or when it is older than the last admission.
HOLD is never admitted and never touches the stored state.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pulse.models.signal import Signal
from pulse.models.timeframe import Timeframe
from pulse.strategy.models import Direction

logger = logging.getLogger("pulse.pipeline")


@dataclass(frozen=True)
class DedupEntry:
    direction: Direction
    timestamp: datetime


class DeduplicationGate:
    """Mutex-guarded map of the last admitted signal per key.

    Args:
        cooldown: Minimum gap before the same direction may fire again.
    """

    def __init__(self, cooldown: timedelta = timedelta(minutes=15)) -> None:
        self._cooldown = cooldown
        self._entries: dict[tuple[str, Timeframe], DedupEntry] = {}
        self._lock = threading.Lock()

    @property
    def cooldown(self) -> timedelta:
        return self._cooldown

    def admit(self, signal: Signal) -> bool:
        """Return ``True`` and record *signal* if it may be emitted."""
        if signal.direction is Direction.HOLD:
            return False

        with self._lock:
            last = self._entries.get(signal.key)
            if last is not None:
                if signal.timestamp < last.timestamp:
                    logger.debug(
                        "Suppressed out-of-order %s %s %s",
                        signal.direction.value, signal.instrument, signal.timeframe.value,
                    )
                    return False
                if (
                    signal.direction is last.direction
                    and signal.timestamp - last.timestamp < self._cooldown
                ):
                    logger.debug(
                        "Suppressed duplicate %s %s %s",
                        signal.direction.value, signal.instrument, signal.timeframe.value,
                    )
                    return False

            self._entries[signal.key] = DedupEntry(signal.direction, signal.timestamp)
            return True

    def entry(self, instrument: str, timeframe: Timeframe) -> Optional[DedupEntry]:
        with self._lock:
            return self._entries.get((instrument, timeframe))

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
