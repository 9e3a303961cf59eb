"""PulseSignals — application entry point.

Builds the FastAPI server around one pipeline instance and provides the CLI
that runs the scheduler alongside it.
"""

import logging
from typing import Optional

from fastapi import FastAPI

from pulse.api.routers import router
from pulse.pipeline.wiring import Pipeline

logger = logging.getLogger("pulse")


def create_app(pipeline: Optional[Pipeline] = None) -> FastAPI:
    """Return a FastAPI app serving *pipeline*.

    The pipeline may also be attached later via ``app.state.pipeline``.
    """
    app = FastAPI(title="PulseSignals API", version="0.1.0")
    app.state.pipeline = pipeline
    app.include_router(router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio
    import signal

    from pulse.config import load_config
    from pulse.pipeline.wiring import build_pipeline
    from pulse.repos.db import init_db

    parser = argparse.ArgumentParser(description="PulseSignals trading signal service")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single scheduler tick and exit",
    )
    parser.add_argument(
        "--engine-only",
        action="store_true",
        help="Run the scheduler without the API server",
    )
    parser.add_argument("--port", type=int, default=None, help="API port (default: API_PORT)")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    args = parser.parse_args()

    config = load_config(args.env_file)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    init_db(config.db_path)
    pipeline = build_pipeline(config)

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal received — stopping gracefully.")
        pipeline.scheduler.stop()

    signal.signal(signal.SIGINT, handle_shutdown)

    if args.once:
        asyncio.run(_run_once(pipeline))
    elif args.engine_only:
        asyncio.run(_run_scheduler_only(pipeline))
    else:
        asyncio.run(_run_server_and_scheduler(pipeline, args.port or config.api_port))


async def _run_once(pipeline: Pipeline) -> None:
    summary = await pipeline.scheduler.run_tick()
    await pipeline.writer.drain()
    logger.info("Single tick complete: %s", summary)


async def _run_scheduler_only(pipeline: Pipeline) -> None:
    logger.info(
        "Starting PulseSignals scheduler (no API) for %d instrument(s).",
        len(pipeline.config.instruments),
    )
    await pipeline.scheduler.run()
    await pipeline.writer.drain()
    logger.info("PulseSignals scheduler stopped.")


async def _run_server_and_scheduler(pipeline: Pipeline, port: int) -> None:
    """Start the API server and the scheduler concurrently."""
    import asyncio
    import uvicorn

    app = create_app(pipeline)
    server = uvicorn.Server(
        uvicorn.Config(app, host="0.0.0.0", port=port, log_level="info")
    )

    async def _run_scheduler():
        await pipeline.scheduler.run()
        server.should_exit = True

    async def _run_server():
        await server.serve()
        pipeline.scheduler.stop()

    logger.info("API available at http://localhost:%d", port)
    results = await asyncio.gather(_run_server(), _run_scheduler(), return_exceptions=True)
    await pipeline.writer.drain()
    logger.info("PulseSignals stopped. Results: %s", results)


if __name__ == "__main__":
    _run_cli()
