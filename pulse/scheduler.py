"""SignalScheduler — drives the pipeline over every instrument × timeframe.

One tick evaluates every configured key with bounded parallelism. A failure
inside one key is logged and counted; the rest of the tick carries on.
Ticks are aligned to the interval grid: a tick that overruns skips the
missed slots instead of queueing them.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from pulse.broadcast import Broadcaster
from pulse.models.signal import Alert, Signal
from pulse.models.timeframe import Timeframe
from pulse.pipeline.generator import SignalGenerator
from pulse.repos.signal_repo import SignalRepo
from pulse.repos.writer import BackgroundWriter
from pulse.strategy.models import Confidence

logger = logging.getLogger("pulse.scheduler")


class SignalScheduler:
    """Periodic driver for a ``SignalGenerator``.

    Args:
        generator: Pipeline entry point.
        broadcaster: Fan-out for admitted signals and alerts.
        instruments: Symbols to evaluate every tick.
        timeframes: Timeframes to evaluate for each symbol.
        interval_seconds: Seconds between tick starts.
        max_concurrency: Keys evaluated in parallel within a tick.
        signal_repo: Optional store for signals and alerts.
        writer: Background writer for the store.
    """

    def __init__(
        self,
        generator: SignalGenerator,
        broadcaster: Broadcaster,
        instruments: list[str],
        timeframes: list[Timeframe],
        interval_seconds: float = 30,
        max_concurrency: int = 4,
        signal_repo: Optional[SignalRepo] = None,
        writer: Optional[BackgroundWriter] = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self._generator = generator
        self._broadcaster = broadcaster
        self._keys = [(i, tf) for i in instruments for tf in timeframes]
        self._interval = interval_seconds
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._repo = signal_repo
        self._writer = writer or BackgroundWriter()
        self._stop_event = asyncio.Event()
        self._running = False
        self._tick_count = 0
        self._last_summary: Optional[dict] = None

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def keys(self) -> list[tuple[str, Timeframe]]:
        return list(self._keys)

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Signal the loop to stop after the current tick."""
        self._running = False
        self._stop_event.set()

    def get_status(self) -> dict:
        return {
            "running": self._running,
            "interval_seconds": self._interval,
            "keys": len(self._keys),
            "tick_count": self._tick_count,
            "subscribers": self._broadcaster.subscriber_count,
            "last_tick": self._last_summary,
        }

    # ── Loop ─────────────────────────────────────────────────────────────

    async def run(self, max_ticks: int = 0) -> list[dict]:
        """Run ticks until stopped.

        Args:
            max_ticks: Stop after this many ticks (0 = unlimited).

        Returns:
            List of per-tick summaries.
        """
        loop = asyncio.get_running_loop()
        self._running = True
        self._stop_event.clear()
        results: list[dict] = []
        next_fire = loop.time()

        logger.info(
            "Scheduler started: %d key(s) every %ss", len(self._keys), self._interval
        )
        while self._running:
            results.append(await self.run_tick())
            if max_ticks > 0 and len(results) >= max_ticks:
                break

            next_fire += self._interval
            now = loop.time()
            if now > next_fire:
                missed = int((now - next_fire) // self._interval) + 1
                logger.warning(
                    "Tick overran by %.1fs — skipping %d slot(s)", now - next_fire, missed
                )
                next_fire += missed * self._interval

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=next_fire - now)
            except asyncio.TimeoutError:
                pass

        self._running = False
        logger.info("Scheduler stopped after %d tick(s)", self._tick_count)
        return results

    async def run_tick(self) -> dict:
        """Evaluate every key once and return a summary."""
        self._tick_count += 1
        started = time.monotonic()
        started_at = datetime.now(timezone.utc).isoformat()

        outcomes = await asyncio.gather(
            *(self._process(instrument, tf) for instrument, tf in self._keys)
        )

        summary = {
            "tick": self._tick_count,
            "started_at": started_at,
            "evaluated": len(outcomes),
            "signals": sum(1 for o in outcomes if o in ("signal", "alert")),
            "alerts": outcomes.count("alert"),
            "failed": outcomes.count("failed"),
            "duration_seconds": round(time.monotonic() - started, 3),
        }
        self._last_summary = summary
        logger.info(
            "Tick %d: %d evaluated, %d signal(s), %d alert(s), %d failed",
            summary["tick"], summary["evaluated"], summary["signals"],
            summary["alerts"], summary["failed"],
        )
        return summary

    # ── Per-key pipeline ─────────────────────────────────────────────────

    async def _process(self, instrument: str, timeframe: Timeframe) -> str:
        """Run one key; returns ``"none"``, ``"signal"``, ``"alert"`` or ``"failed"``."""
        async with self._semaphore:
            try:
                signal = await self._generator.generate_signal(instrument, timeframe)
                if signal is None:
                    return "none"
                return await self._emit(signal)
            except Exception:
                logger.exception("Pipeline failed for %s %s", instrument, timeframe.value)
                return "failed"

    async def _emit(self, signal: Signal) -> str:
        if self._repo is not None:
            self._writer.submit(
                f"signal {signal.instrument} {signal.timeframe.value}",
                self._repo.insert_signal,
                signal,
            )
        await self._broadcaster.publish(signal)

        if signal.confidence is not Confidence.HIGH:
            return "signal"

        alert = Alert.from_signal(signal)
        if self._repo is not None:
            self._writer.submit(
                f"alert {signal.instrument} {signal.timeframe.value}",
                self._repo.insert_alert,
                alert,
            )
        await self._broadcaster.publish_alert(alert)
        logger.info(alert.message)
        return "alert"
