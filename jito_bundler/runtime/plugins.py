from __future__ import annotations

import importlib
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from solders.keypair import Keypair

from jito_bundler.common import log_event
from jito_bundler.engine import JitoEngine
from jito_bundler.strategies import (
    ArbitrageConfig,
    ArbitrageStrategy,
    BackrunConfig,
    BackrunInstructionBuilder,
    BackrunStrategy,
    MempoolTargetScanner,
    OpportunityScanner,
    ProfitEstimator,
    StrategyLoop,
    SwapInstructionBuilder,
    TargetScanner,
    TokenPair,
)

from .settings import AppSettings


@dataclass(slots=True)
class StrategyPlugin:
    """Capabilities a deployment injects: opportunity discovery and instruction building.

    Arbitrage runs when both ``opportunity_scanner`` and ``swap_builder`` are
    set. Backrun runs when ``backrun_builder`` is set together with either a
    ``target_scanner`` or a ``profit_estimator`` for the mempool scanner.
    """

    opportunity_scanner: OpportunityScanner | None = None
    swap_builder: SwapInstructionBuilder | None = None
    pairs: list[TokenPair] = field(default_factory=list)
    target_scanner: TargetScanner | None = None
    profit_estimator: ProfitEstimator | None = None
    backrun_builder: BackrunInstructionBuilder | None = None


PluginFactory = Callable[..., Any]


def load_plugin_factory(plugin_path: str) -> PluginFactory:
    module_name, separator, attribute = plugin_path.strip().partition(":")
    if not separator or not module_name or not attribute:
        raise ValueError(f"STRATEGY_PLUGIN must look like 'package.module:factory', got {plugin_path!r}.")

    module = importlib.import_module(module_name)
    factory = getattr(module, attribute, None)
    if factory is None or not callable(factory):
        raise ValueError(f"STRATEGY_PLUGIN attribute {attribute!r} is not callable in {module_name}.")
    return factory


async def load_strategy_plugin(
    plugin_path: str,
    *,
    logger: logging.Logger,
    engine: JitoEngine,
    app_settings: AppSettings,
) -> StrategyPlugin:
    factory = load_plugin_factory(plugin_path)
    plugin = factory(logger=logger, engine=engine, app_settings=app_settings)
    if inspect.isawaitable(plugin):
        plugin = await plugin
    if not isinstance(plugin, StrategyPlugin):
        raise TypeError(f"STRATEGY_PLUGIN factory returned {type(plugin).__name__}, expected StrategyPlugin.")

    log_event(
        logger,
        level="info",
        event="strategy_plugin_loaded",
        message="Strategy plugin loaded",
        plugin=plugin_path,
        pairs=len(plugin.pairs),
    )
    return plugin


def build_strategies(
    *,
    logger: logging.Logger,
    engine: JitoEngine,
    wallet: Keypair,
    app_settings: AppSettings,
    plugin: StrategyPlugin,
) -> list[StrategyLoop]:
    strategies: list[StrategyLoop] = []

    if app_settings.arbitrage_enabled and plugin.opportunity_scanner and plugin.swap_builder:
        strategies.append(
            ArbitrageStrategy(
                logger=logger,
                engine=engine,
                wallet=wallet,
                scanner=plugin.opportunity_scanner,
                instruction_builder=plugin.swap_builder,
                pairs=plugin.pairs,
                config=ArbitrageConfig(
                    min_profit_lamports=app_settings.arbitrage_min_profit_lamports,
                    max_slippage_bps=app_settings.arbitrage_max_slippage_bps,
                    max_retries=app_settings.arbitrage_max_retries,
                    tip_percentage=app_settings.arbitrage_tip_percentage,
                    tip_cap_lamports=app_settings.tip_cap_lamports,
                    min_balance_lamports=app_settings.min_balance_lamports,
                    scan_amount=app_settings.arbitrage_scan_amount,
                ),
                dry_run=app_settings.dry_run,
                interval_seconds=app_settings.arbitrage_interval_seconds,
                error_backoff_seconds=app_settings.error_backoff_seconds,
            )
        )

    if app_settings.backrun_enabled and plugin.backrun_builder:
        backrun_config = BackrunConfig(
            min_priority_fee=app_settings.backrun_min_priority_fee,
            max_transactions=app_settings.backrun_max_transactions,
            profit_threshold=app_settings.backrun_profit_threshold,
        )
        target_scanner = plugin.target_scanner
        if target_scanner is None and plugin.profit_estimator is not None:
            target_scanner = MempoolTargetScanner(
                engine=engine,
                estimate_profit=plugin.profit_estimator,
                config=backrun_config,
            )
        if target_scanner is not None:
            strategies.append(
                BackrunStrategy(
                    logger=logger,
                    engine=engine,
                    wallet=wallet,
                    scanner=target_scanner,
                    instruction_builder=plugin.backrun_builder,
                    config=backrun_config,
                    dry_run=app_settings.dry_run,
                    interval_seconds=app_settings.backrun_interval_seconds,
                    error_backoff_seconds=app_settings.error_backoff_seconds,
                    confirm_max_retries=app_settings.confirm_max_retries,
                )
            )

    return strategies
