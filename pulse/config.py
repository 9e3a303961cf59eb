"""PulseSignals — application configuration.

Loads .env variables into a typed config object.
Validates instrument and timeframe lists on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from pulse.models.timeframe import DEFAULT_TIMEFRAMES, Timeframe


_DEFAULT_INSTRUMENTS = "BTCUSDT,ETHUSDT,ADAUSDT,DOTUSDT,LINKUSDT"


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    binance_base_url: str
    instruments: tuple[str, ...]
    timeframes: tuple[Timeframe, ...]
    poll_interval_seconds: int
    candle_limit: int
    cache_ttl_seconds: float
    request_timeout_seconds: float
    dedup_cooldown_minutes: float
    max_concurrency: int
    subscriber_timeout_seconds: float
    db_path: str
    log_level: str
    api_port: int


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _number(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(
            f"Environment variable {name} must be a number, got '{raw}'"
        ) from None
    if value <= 0:
        raise ValueError(f"Environment variable {name} must be positive, got {value}")
    return value


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` when the instrument list is empty, a timeframe
    is unknown, or a numeric variable cannot be parsed.
    """
    load_dotenv(dotenv_path=env_path)

    instruments = tuple(
        s.upper() for s in _split_list(os.environ.get("INSTRUMENTS", _DEFAULT_INSTRUMENTS))
    )
    if not instruments:
        raise ValueError("INSTRUMENTS must name at least one instrument")

    raw_timeframes = os.environ.get("TIMEFRAMES")
    if raw_timeframes is None:
        timeframes = DEFAULT_TIMEFRAMES
    else:
        timeframes = tuple(Timeframe.parse(tf) for tf in _split_list(raw_timeframes))
        if not timeframes:
            raise ValueError("TIMEFRAMES must name at least one timeframe")

    return Config(
        binance_base_url=os.environ.get("BINANCE_BASE_URL", "https://api.binance.com"),
        instruments=instruments,
        timeframes=timeframes,
        poll_interval_seconds=_number("POLL_INTERVAL_SECONDS", "30", int),
        candle_limit=_number("CANDLE_LIMIT", "250", int),
        cache_ttl_seconds=_number("CACHE_TTL_SECONDS", "60", float),
        request_timeout_seconds=_number("REQUEST_TIMEOUT_SECONDS", "10", float),
        dedup_cooldown_minutes=_number("DEDUP_COOLDOWN_MINUTES", "15", float),
        max_concurrency=_number("MAX_CONCURRENCY", "4", int),
        subscriber_timeout_seconds=_number("SUBSCRIBER_TIMEOUT_SECONDS", "5", float),
        db_path=os.environ.get("DB_PATH", "data/pulse.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_number("API_PORT", "8080", int),
    )
