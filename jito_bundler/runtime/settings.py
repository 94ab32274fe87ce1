from __future__ import annotations

import contextlib
import json
import os
from dataclasses import dataclass, field
from typing import Any

from solders.keypair import Keypair

from jito_bundler.relay.endpoints import RelayEndpoints


def to_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def to_int(value: Any, default: int) -> int:
    try:
        if value is None or str(value).strip() == "":
            return default
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float) -> float:
    try:
        if value is None or str(value).strip() == "":
            return default
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass(slots=True)
class AppSettings:
    solana_rpc_url: str
    private_key: str
    dry_run: bool
    endpoints: RelayEndpoints = field(default_factory=RelayEndpoints)
    request_timeout_seconds: float = 10.0
    confirm_max_retries: int = 30
    confirm_poll_interval_seconds: float = 1.0
    error_backoff_seconds: float = 2.0
    arbitrage_enabled: bool = True
    arbitrage_interval_seconds: float = 2.0
    arbitrage_min_profit_lamports: int = 10_000
    arbitrage_max_slippage_bps: int = 50
    arbitrage_max_retries: int = 3
    arbitrage_tip_percentage: float = 0.1
    arbitrage_scan_amount: int = 1_000_000
    tip_cap_lamports: int = 1_000_000
    min_balance_lamports: int = 0
    backrun_enabled: bool = True
    backrun_interval_seconds: float = 0.5
    backrun_min_priority_fee: int = 50_000
    backrun_max_transactions: int = 5
    backrun_profit_threshold: int = 5_000
    strategy_plugin: str = ""

    @classmethod
    def from_env(cls) -> "AppSettings":
        return cls(
            solana_rpc_url=os.getenv("SOLANA_RPC_URL", "").strip(),
            private_key=os.getenv("PRIVATE_KEY", ""),
            dry_run=to_bool(os.getenv("DRY_RUN"), True),
            endpoints=RelayEndpoints.from_env(),
            request_timeout_seconds=max(0.5, to_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 10.0)),
            confirm_max_retries=max(1, to_int(os.getenv("CONFIRM_MAX_RETRIES"), 30)),
            confirm_poll_interval_seconds=max(
                0.1,
                to_float(os.getenv("CONFIRM_POLL_INTERVAL_SECONDS"), 1.0),
            ),
            error_backoff_seconds=max(0.2, to_float(os.getenv("ERROR_BACKOFF_SECONDS"), 2.0)),
            arbitrage_enabled=to_bool(os.getenv("ARBITRAGE_ENABLED"), True),
            arbitrage_interval_seconds=max(0.05, to_float(os.getenv("ARBITRAGE_INTERVAL_SECONDS"), 2.0)),
            arbitrage_min_profit_lamports=max(
                0,
                to_int(os.getenv("ARBITRAGE_MIN_PROFIT_LAMPORTS"), 10_000),
            ),
            arbitrage_max_slippage_bps=max(0, to_int(os.getenv("ARBITRAGE_MAX_SLIPPAGE_BPS"), 50)),
            arbitrage_max_retries=max(1, to_int(os.getenv("ARBITRAGE_MAX_RETRIES"), 3)),
            arbitrage_tip_percentage=min(
                1.0,
                max(0.0, to_float(os.getenv("ARBITRAGE_TIP_PERCENTAGE"), 0.1)),
            ),
            arbitrage_scan_amount=max(1, to_int(os.getenv("ARBITRAGE_SCAN_AMOUNT"), 1_000_000)),
            tip_cap_lamports=max(0, to_int(os.getenv("TIP_CAP_LAMPORTS"), 1_000_000)),
            min_balance_lamports=max(0, to_int(os.getenv("MIN_BALANCE_LAMPORTS"), 0)),
            backrun_enabled=to_bool(os.getenv("BACKRUN_ENABLED"), True),
            backrun_interval_seconds=max(0.05, to_float(os.getenv("BACKRUN_INTERVAL_SECONDS"), 0.5)),
            backrun_min_priority_fee=max(0, to_int(os.getenv("BACKRUN_MIN_PRIORITY_FEE"), 50_000)),
            backrun_max_transactions=max(1, to_int(os.getenv("BACKRUN_MAX_TRANSACTIONS"), 5)),
            backrun_profit_threshold=max(0, to_int(os.getenv("BACKRUN_PROFIT_THRESHOLD"), 5_000)),
            strategy_plugin=os.getenv("STRATEGY_PLUGIN", "").strip(),
        )


def parse_private_key(raw: str) -> Keypair:
    value = raw.strip()
    if not value:
        raise ValueError("PRIVATE_KEY is required.")

    if value.startswith("["):
        arr = json.loads(value)
        if not isinstance(arr, list):
            raise ValueError("PRIVATE_KEY JSON must be an integer array.")
        return Keypair.from_bytes(bytes(arr))

    with contextlib.suppress(Exception):
        return Keypair.from_base58_string(value)

    raise ValueError("Unsupported PRIVATE_KEY format.")
