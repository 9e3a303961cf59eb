"""Construction of one self-contained pipeline instance.

Everything stateful (cache, dedup map, subscriber registry, pending writes)
lives on the returned ``Pipeline``; nothing is held at module level. The
scheduler and the HTTP layer both receive the same handle.
"""

import random
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from pulse.broadcast import Broadcaster
from pulse.config import Config
from pulse.market.binance_client import BinanceClient
from pulse.market.cache import CandleCache
from pulse.market.provider import CandleSource, MarketDataProvider
from pulse.pipeline.dedup import DeduplicationGate
from pulse.pipeline.generator import SignalGenerator
from pulse.repos.market_data_repo import MarketDataRepo
from pulse.repos.signal_repo import SignalRepo
from pulse.repos.writer import BackgroundWriter
from pulse.scheduler import SignalScheduler


@dataclass
class Pipeline:
    config: Config
    generator: SignalGenerator
    broadcaster: Broadcaster
    scheduler: SignalScheduler
    signal_repo: Optional[SignalRepo]
    market_repo: Optional[MarketDataRepo]
    writer: BackgroundWriter


def build_pipeline(
    config: Config,
    client: Optional[CandleSource] = None,
    rng: Optional[random.Random] = None,
    persist: bool = True,
) -> Pipeline:
    """Wire provider → generator → scheduler for *config*.

    Args:
        config: Loaded application configuration.
        client: Exchange client; defaults to ``BinanceClient(config)``.
        rng: Random source for synthetic windows.
        persist: When ``False`` no repositories are attached. The caller
            is responsible for ``init_db`` when it is ``True``.
    """
    writer = BackgroundWriter()
    market_repo = MarketDataRepo(config.db_path) if persist else None
    signal_repo = SignalRepo(config.db_path) if persist else None

    provider = MarketDataProvider(
        client or BinanceClient(config),
        cache=CandleCache(ttl_seconds=config.cache_ttl_seconds),
        repo=market_repo,
        writer=writer,
        rng=rng,
    )
    generator = SignalGenerator(
        provider,
        gate=DeduplicationGate(timedelta(minutes=config.dedup_cooldown_minutes)),
        candle_limit=config.candle_limit,
    )
    broadcaster = Broadcaster(send_timeout=config.subscriber_timeout_seconds)
    scheduler = SignalScheduler(
        generator,
        broadcaster,
        instruments=list(config.instruments),
        timeframes=list(config.timeframes),
        interval_seconds=config.poll_interval_seconds,
        max_concurrency=config.max_concurrency,
        signal_repo=signal_repo,
        writer=writer,
    )
    return Pipeline(
        config=config,
        generator=generator,
        broadcaster=broadcaster,
        scheduler=scheduler,
        signal_repo=signal_repo,
        market_repo=market_repo,
        writer=writer,
    )
