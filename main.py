from __future__ import annotations

import asyncio
import contextlib
import signal

from dotenv import load_dotenv

from jito_bundler.common import guarded_call, log_event
from jito_bundler.engine import JitoEngine
from jito_bundler.ledger import SolanaLedgerClient
from jito_bundler.runtime import (
    AppSettings,
    bootstrap_dependencies,
    build_strategies,
    load_strategy_plugin,
    log_relay_snapshot,
    parse_private_key,
    run_strategies,
    setup_logger,
)


async def main() -> None:
    load_dotenv()
    logger = setup_logger()

    app_settings = AppSettings.from_env()

    ledger = SolanaLedgerClient(
        logger=logger,
        rpc_url=app_settings.solana_rpc_url,
        timeout_seconds=app_settings.request_timeout_seconds,
    )
    engine = JitoEngine(
        logger=logger,
        ledger=ledger,
        endpoints=app_settings.endpoints,
        request_timeout_seconds=app_settings.request_timeout_seconds,
        confirm_max_retries=app_settings.confirm_max_retries,
        confirm_poll_interval_seconds=app_settings.confirm_poll_interval_seconds,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_shutdown(sig: signal.Signals) -> None:
        log_event(
            logger,
            level="info",
            event="shutdown_signal_received",
            message="Shutdown signal received",
            signal=sig.name,
        )
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, request_shutdown, sig)

    await bootstrap_dependencies(
        logger=logger,
        stop_event=stop_event,
        app_settings=app_settings,
        engine=engine,
    )

    log_event(
        logger,
        level="info",
        event="engine_started",
        message="Bundle engine started",
        dry_run=app_settings.dry_run,
        bundle_endpoint=app_settings.endpoints.bundle,
        strategy_plugin=app_settings.strategy_plugin or None,
    )

    try:
        if not app_settings.strategy_plugin:
            await log_relay_snapshot(logger=logger, engine=engine)
            return

        wallet = parse_private_key(app_settings.private_key)
        plugin = await load_strategy_plugin(
            app_settings.strategy_plugin,
            logger=logger,
            engine=engine,
            app_settings=app_settings,
        )
        strategies = build_strategies(
            logger=logger,
            engine=engine,
            wallet=wallet,
            app_settings=app_settings,
            plugin=plugin,
        )
        await run_strategies(logger=logger, stop_event=stop_event, strategies=strategies)
    finally:
        await guarded_call(
            engine.close,
            logger=logger,
            event="shutdown_engine_close_failed",
            message="Failed to close engine during shutdown",
        )
        log_event(logger, level="info", event="shutdown_completed", message="Shutdown completed")


if __name__ == "__main__":
    asyncio.run(main())
