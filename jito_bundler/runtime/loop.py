from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from jito_bundler.common import guarded_call, log_event, wait_with_stop
from jito_bundler.engine import JitoEngine
from jito_bundler.strategies import StrategyLoop

from .settings import AppSettings


async def bootstrap_dependencies(
    *,
    logger: logging.Logger,
    stop_event: asyncio.Event,
    app_settings: AppSettings,
    engine: JitoEngine,
) -> None:
    while not stop_event.is_set():
        try:
            await engine.connect()
            return
        except Exception as error:
            log_event(
                logger,
                level="exception",
                event="bootstrap_error",
                message="Dependency bootstrap failed",
                error=str(error),
            )
            await guarded_call(
                engine.close,
                logger=logger,
                event="bootstrap_engine_close_failed",
                message="Failed to close engine during bootstrap retry",
            )

            await wait_with_stop(stop_event, app_settings.error_backoff_seconds)

    raise RuntimeError("Shutdown requested before dependencies were initialized.")


async def collect_relay_snapshot(*, engine: JitoEngine) -> dict[str, Any]:
    """Best-effort read of relay health, tip accounts and statistics."""
    snapshot: dict[str, Any] = {}

    health = await engine.health.check_health()
    snapshot["health"] = {"status": health.status, "version": health.version, "uptime": health.uptime}

    tip_accounts = await engine.get_tip_accounts()
    snapshot["tip_accounts"] = [
        {"pubkey": account.pubkey, "lamports_per_signature": account.lamports_per_signature}
        for account in tip_accounts
    ]

    snapshot["statistics"] = (await engine.get_statistics()).to_dict()
    return snapshot


async def log_relay_snapshot(*, logger: logging.Logger, engine: JitoEngine) -> dict[str, Any] | None:
    snapshot = await guarded_call(
        lambda: collect_relay_snapshot(engine=engine),
        logger=logger,
        event="relay_snapshot_failed",
        message="Failed to read relay snapshot",
    )
    if snapshot is not None:
        log_event(
            logger,
            level="info",
            event="relay_snapshot",
            message="Relay snapshot",
            **snapshot,
        )
    return snapshot


async def run_strategies(
    *,
    logger: logging.Logger,
    stop_event: asyncio.Event,
    strategies: Sequence[StrategyLoop],
) -> None:
    if not strategies:
        log_event(
            logger,
            level="warning",
            event="no_strategies_enabled",
            message="No strategy loops to run",
        )
        return

    tasks = [asyncio.create_task(strategy.run(stop_event), name=f"strategy:{strategy.name}") for strategy in strategies]
    try:
        results = await asyncio.gather(*tasks, return_exceptions=True)
    except asyncio.CancelledError:
        stop_event.set()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    for strategy, result in zip(strategies, results):
        if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
            log_event(
                logger,
                level="error",
                event="strategy_task_failed",
                message="Strategy loop exited with an error",
                strategy=strategy.name,
                error=str(result),
            )
