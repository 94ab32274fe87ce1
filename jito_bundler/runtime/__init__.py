from .logging import setup_logger
from .loop import bootstrap_dependencies, collect_relay_snapshot, log_relay_snapshot, run_strategies
from .plugins import StrategyPlugin, build_strategies, load_plugin_factory, load_strategy_plugin
from .settings import AppSettings, parse_private_key

__all__ = [
    "AppSettings",
    "StrategyPlugin",
    "bootstrap_dependencies",
    "build_strategies",
    "collect_relay_snapshot",
    "load_plugin_factory",
    "load_strategy_plugin",
    "log_relay_snapshot",
    "parse_private_key",
    "run_strategies",
    "setup_logger",
]
