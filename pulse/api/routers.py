"""HTTP and WebSocket routers — /signals, /alerts, /status, /pairs, /ws.

No business logic. Every handler reads the ``Pipeline`` stored on
``app.state`` and delegates to its generator, repository or broadcaster.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, WebSocketDisconnect

from pulse.market.instruments import supported_pairs
from pulse.models.timeframe import DEFAULT_TIMEFRAMES, Timeframe
from pulse.pipeline.wiring import Pipeline

logger = logging.getLogger("pulse.api")
router = APIRouter()

_WS_HISTORY_LIMIT = 20


def get_pipeline(request: Request) -> Pipeline:
    """Dependency returning the pipeline attached by ``create_app``."""
    return request.app.state.pipeline


def _parse_timeframes(values: Optional[list[str]]) -> Optional[list[str]]:
    if not values:
        return None
    try:
        return [Timeframe.parse(v).value for v in values]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None


# ── Reference data ───────────────────────────────────────────────────────


@router.get("/timeframes")
async def get_timeframes():
    """Return every supported timeframe with its duration."""
    return {
        "timeframes": [{"value": tf.value, "seconds": tf.seconds} for tf in Timeframe],
        "default": [tf.value for tf in DEFAULT_TIMEFRAMES],
    }


@router.get("/pairs")
async def get_pairs():
    return {"pairs": supported_pairs()}


# ── Signals ──────────────────────────────────────────────────────────────


@router.get("/signals")
async def get_signals(
    pair: Optional[str] = Query(default=None),
    timeframe: Optional[list[str]] = Query(default=None),
    confidence: Optional[list[str]] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    page: int = Query(default=1, ge=1),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Return stored signals, newest first, with pagination info."""
    timeframes = _parse_timeframes(timeframe)
    if pipeline.signal_repo is None:
        return {"signals": [], "pagination": {"page": page, "pages": 0, "count": 0, "total": 0}}

    result = pipeline.signal_repo.get_signals(
        instrument=pair.upper() if pair else None,
        timeframes=timeframes,
        confidences=confidence,
        limit=limit,
        offset=(page - 1) * limit,
    )
    total = result["total"]
    return {
        "signals": result["signals"],
        "pagination": {
            "page": page,
            "pages": -(-total // limit),
            "count": len(result["signals"]),
            "total": total,
        },
    }


@router.get("/signals/latest")
async def get_latest_signals(
    pairs: Optional[list[str]] = Query(default=None),
    timeframes: Optional[list[str]] = Query(default=None),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Return the newest stored signal per (pair, timeframe)."""
    parsed = _parse_timeframes(timeframes)
    if pipeline.signal_repo is None:
        return {"signals": []}
    instruments = [p.upper() for p in pairs] if pairs else None
    return {"signals": pipeline.signal_repo.get_latest_per_key(instruments, parsed)}


@router.get("/signals/stats")
async def get_signal_stats(
    days: int = Query(default=7, ge=1, le=365),
    pair: Optional[str] = Query(default=None),
    timeframe: Optional[str] = Query(default=None),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Return signal counts by direction and confidence."""
    parsed = _parse_timeframes([timeframe] if timeframe else None)
    if pipeline.signal_repo is None:
        return {"days": days, "total": 0, "breakdown": []}
    return pipeline.signal_repo.get_stats(
        days=days,
        instrument=pair.upper() if pair else None,
        timeframe=parsed[0] if parsed else None,
    )


@router.get("/signals/evaluations")
async def get_evaluations(pipeline: Pipeline = Depends(get_pipeline)):
    """Return the most recent evaluation per key, HOLD included."""
    evaluations = sorted(
        pipeline.generator.latest_evaluations(),
        key=lambda s: (s.instrument, s.timeframe.seconds),
    )
    return {"evaluations": [s.to_dict() for s in evaluations]}


@router.post("/signals/generate")
async def post_generate(body: dict, pipeline: Pipeline = Depends(get_pipeline)):
    """Run the pipeline once for ``{"pair", "timeframe"}``.

    The result passes through the same dedup gate as scheduled ticks.
    """
    pair = body.get("pair")
    timeframe = body.get("timeframe")
    if not pair or not timeframe:
        raise HTTPException(status_code=400, detail="pair and timeframe are required")

    try:
        signal = await pipeline.generator.generate_signal(pair, timeframe)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from None

    if signal is None:
        return {"signal": None, "message": "No signal generated for current market conditions"}

    if pipeline.signal_repo is not None:
        pipeline.writer.submit(
            f"signal {signal.instrument} {signal.timeframe.value}",
            pipeline.signal_repo.insert_signal,
            signal,
        )
    return {"signal": signal.to_dict()}


@router.get("/signals/market-data/{pair}/{timeframe}")
async def get_market_data(
    pair: str,
    timeframe: str,
    limit: int = Query(default=100, ge=1, le=1000),
    pipeline: Pipeline = Depends(get_pipeline),
):
    """Return the newest *limit* candles of the last stored exchange window."""
    parsed = _parse_timeframes([timeframe])[0]
    candles = None
    if pipeline.market_repo is not None:
        candles = pipeline.market_repo.get_window(pair.upper(), Timeframe(parsed))
    if not candles:
        raise HTTPException(status_code=404, detail="Market data not available")
    return {
        "pair": pair.upper(),
        "timeframe": parsed,
        "candles": [c.to_dict() for c in candles[-limit:]],
    }


# ── Alerts & status ──────────────────────────────────────────────────────


@router.get("/alerts")
async def get_alerts(
    limit: int = Query(default=50, ge=1, le=200),
    pipeline: Pipeline = Depends(get_pipeline),
):
    if pipeline.signal_repo is None:
        return {"alerts": []}
    return {"alerts": pipeline.signal_repo.get_alerts(limit=limit)}


@router.get("/status")
async def get_status(pipeline: Pipeline = Depends(get_pipeline)):
    """Return scheduler state plus dedup and persistence counters."""
    return {
        **pipeline.scheduler.get_status(),
        "instruments": list(pipeline.config.instruments),
        "timeframes": [tf.value for tf in pipeline.config.timeframes],
        "dedup_cooldown_minutes": pipeline.generator.gate.cooldown.total_seconds() / 60,
        "pending_writes": pipeline.writer.pending,
    }


# ── WebSocket feed ───────────────────────────────────────────────────────


class WebSocketSubscriber:
    """Adapts a FastAPI ``WebSocket`` to the broadcaster's subscriber protocol."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def send(self, message: dict) -> None:
        await self._websocket.send_json(message)


@router.websocket("/ws")
async def signal_feed(websocket: WebSocket):
    """Push new signals and alerts to the client.

    The client narrows the feed with
    ``{"type": "subscribe", "pair": ..., "timeframes": [...]}`` and receives
    the most recent stored signals for that filter in reply.
    """
    pipeline: Pipeline = websocket.app.state.pipeline
    broadcaster = pipeline.broadcaster

    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket)
    sub_id = broadcaster.subscribe(subscriber)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Ignoring malformed WebSocket message from %s", sub_id)
                continue
            if not isinstance(data, dict) or data.get("type") != "subscribe":
                continue

            pair = data.get("pair")
            timeframes = data.get("timeframes") or [tf.value for tf in DEFAULT_TIMEFRAMES]
            try:
                if broadcaster.get(sub_id) is None:
                    sub_id = broadcaster.subscribe(subscriber, pair, timeframes)
                else:
                    broadcaster.resubscribe(sub_id, pair, timeframes)
            except ValueError as exc:
                await websocket.send_json({"type": "error", "message": str(exc)})
                continue

            history: list[dict] = []
            if pipeline.signal_repo is not None:
                subscription = broadcaster.get(sub_id)
                result = await asyncio.to_thread(
                    pipeline.signal_repo.get_signals,
                    instrument=subscription.instrument,
                    timeframes=sorted(tf.value for tf in subscription.timeframes),
                    limit=_WS_HISTORY_LIMIT,
                )
                history = result["signals"]
            await websocket.send_json({"type": "signals", "data": history})
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.unsubscribe(sub_id)
