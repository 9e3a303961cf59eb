"""Market data repository — latest fetched window per (instrument, timeframe)."""

import json
from datetime import datetime, timezone
from typing import Optional

from pulse.market.models import Candle
from pulse.models.timeframe import Timeframe
from pulse.repos.db import get_connection


class MarketDataRepo:
    """Data access layer for cached exchange windows.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def upsert_window(
        self,
        instrument: str,
        timeframe: Timeframe,
        candles: list[Candle],
    ) -> None:
        """Replace the stored window for the key with *candles*."""
        payload = json.dumps([c.to_dict() for c in candles])
        updated_at = datetime.now(timezone.utc).isoformat()
        conn = get_connection(self._db_path)
        try:
            conn.execute(
                """
                INSERT INTO market_data (instrument, timeframe, candles, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (instrument, timeframe)
                DO UPDATE SET candles = excluded.candles,
                              updated_at = excluded.updated_at
                """,
                (instrument, timeframe.value, payload, updated_at),
            )
            conn.commit()
        finally:
            conn.close()

    def get_window(self, instrument: str, timeframe: Timeframe) -> Optional[list[Candle]]:
        """Return the stored window, or ``None`` if the key was never saved."""
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT candles FROM market_data WHERE instrument = ? AND timeframe = ?",
                (instrument, timeframe.value),
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return [Candle.from_dict(item) for item in json.loads(row["candles"])]
