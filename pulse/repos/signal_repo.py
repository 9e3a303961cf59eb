"""Signal repository — SQLite append and range queries for signals and alerts."""

import json
from datetime import datetime, timedelta, timezone
from typing import Optional

from pulse.models.signal import Alert, Signal
from pulse.repos.db import get_connection


def _signal_row(row) -> dict:
    data = dict(row)
    data["reasoning"] = json.loads(data["reasoning"])
    data["indicators"] = json.loads(data["indicators"])
    return data


class SignalRepo:
    """Data access layer for emitted signals and alerts.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Write ────────────────────────────────────────────────────────────

    def insert_signal(self, signal: Signal) -> int:
        """Append *signal* and return its row ``id``."""
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO signals
                    (instrument, instrument_type, timeframe, direction,
                     confidence, price, target_price, stop_loss, score,
                     trend_strength, reasoning, indicators, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    signal.instrument,
                    signal.instrument_type,
                    signal.timeframe.value,
                    signal.direction.value,
                    signal.confidence.value if signal.confidence else None,
                    signal.price,
                    signal.target_price,
                    signal.stop_loss,
                    signal.score,
                    signal.trend_strength,
                    json.dumps(list(signal.reasoning)),
                    json.dumps(signal.snapshot.to_dict()),
                    signal.timestamp.isoformat(),
                ),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    def insert_alert(self, alert: Alert) -> int:
        """Append *alert* and return its row ``id``."""
        signal = alert.signal
        conn = get_connection(self._db_path)
        try:
            cur = conn.execute(
                """
                INSERT INTO alerts
                    (instrument, timeframe, direction, confidence, price,
                     message, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    signal.instrument,
                    signal.timeframe.value,
                    signal.direction.value,
                    signal.confidence.value,
                    signal.price,
                    alert.message,
                    signal.timestamp.isoformat(),
                ),
            )
            conn.commit()
            return cur.lastrowid
        finally:
            conn.close()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_signals(
        self,
        instrument: Optional[str] = None,
        instruments: Optional[list[str]] = None,
        timeframes: Optional[list[str]] = None,
        confidences: Optional[list[str]] = None,
        since: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict:
        """Return recent signals, newest first.

        Returns:
            ``{"signals": [...], "total": int}``
        """
        conditions: list[str] = []
        params: list = []

        if instrument:
            conditions.append("instrument = ?")
            params.append(instrument)
        if instruments:
            conditions.append(f"instrument IN ({', '.join('?' for _ in instruments)})")
            params.extend(instruments)
        if timeframes:
            conditions.append(f"timeframe IN ({', '.join('?' for _ in timeframes)})")
            params.extend(timeframes)
        if confidences:
            conditions.append(f"confidence IN ({', '.join('?' for _ in confidences)})")
            params.extend(confidences)
        if since is not None:
            conditions.append("created_at >= ?")
            params.append(since.isoformat())

        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)

        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                f"SELECT * FROM signals {where_clause} "
                f"ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            ).fetchall()
            total = conn.execute(
                f"SELECT COUNT(*) FROM signals {where_clause}",
                params,
            ).fetchone()[0]
        finally:
            conn.close()

        return {"signals": [_signal_row(r) for r in rows], "total": total}

    def get_latest_per_key(
        self,
        instruments: Optional[list[str]] = None,
        timeframes: Optional[list[str]] = None,
    ) -> list[dict]:
        """Return the newest signal for every (instrument, timeframe) pair."""
        recent = self.get_signals(
            instruments=instruments, timeframes=timeframes, limit=100
        )["signals"]
        latest: dict[tuple[str, str], dict] = {}
        for row in recent:
            latest.setdefault((row["instrument"], row["timeframe"]), row)
        return list(latest.values())

    def get_stats(
        self,
        days: int = 7,
        instrument: Optional[str] = None,
        timeframe: Optional[str] = None,
    ) -> dict:
        """Count signals by direction and confidence over the last *days*."""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        conditions = ["created_at >= ?"]
        params: list = [since.isoformat()]
        if instrument:
            conditions.append("instrument = ?")
            params.append(instrument)
        if timeframe:
            conditions.append("timeframe = ?")
            params.append(timeframe)

        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                f"""
                SELECT direction, confidence, COUNT(*) AS count
                FROM signals
                WHERE {' AND '.join(conditions)}
                GROUP BY direction, confidence
                ORDER BY direction, confidence
                """,
                params,
            ).fetchall()
        finally:
            conn.close()

        breakdown = [dict(r) for r in rows]
        return {
            "days": days,
            "total": sum(r["count"] for r in breakdown),
            "breakdown": breakdown,
        }

    def get_alerts(self, limit: int = 50) -> list[dict]:
        """Return the most recent alerts, newest first."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT * FROM alerts ORDER BY created_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        finally:
            conn.close()
        return [dict(r) for r in rows]
