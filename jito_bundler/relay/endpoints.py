from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_RELAY_BASE_URL = "https://mainnet.block-engine.jito.wtf/api/v1"


def _env_url(name: str, default: str) -> str:
    value = (os.getenv(name) or "").strip()
    return value or default


@dataclass(slots=True, frozen=True)
class RelayEndpoints:
    bundle: str = f"{DEFAULT_RELAY_BASE_URL}/bundles"
    tip: str = f"{DEFAULT_RELAY_BASE_URL}/tip-accounts"
    block_engine: str = f"{DEFAULT_RELAY_BASE_URL}/block-engine"
    validators: str = f"{DEFAULT_RELAY_BASE_URL}/validators"
    mempool: str = f"{DEFAULT_RELAY_BASE_URL}/transactions"
    health: str = f"{DEFAULT_RELAY_BASE_URL}/health"
    stats: str = f"{DEFAULT_RELAY_BASE_URL}/stats"

    @classmethod
    def from_base_url(cls, base_url: str) -> "RelayEndpoints":
        base = base_url.strip().rstrip("/")
        return cls(
            bundle=f"{base}/bundles",
            tip=f"{base}/tip-accounts",
            block_engine=f"{base}/block-engine",
            validators=f"{base}/validators",
            mempool=f"{base}/transactions",
            health=f"{base}/health",
            stats=f"{base}/stats",
        )

    @classmethod
    def from_env(cls) -> "RelayEndpoints":
        base_url = (os.getenv("JITO_BASE_URL") or "").strip()
        defaults = cls.from_base_url(base_url) if base_url else cls()
        return cls(
            bundle=_env_url("JITO_BUNDLE_ENDPOINT", defaults.bundle),
            tip=_env_url("JITO_TIP_ENDPOINT", defaults.tip),
            block_engine=_env_url("JITO_BLOCK_ENGINE_ENDPOINT", defaults.block_engine),
            validators=_env_url("JITO_VALIDATORS_ENDPOINT", defaults.validators),
            mempool=_env_url("JITO_MEMPOOL_ENDPOINT", defaults.mempool),
            health=_env_url("JITO_HEALTH_ENDPOINT", defaults.health),
            stats=_env_url("JITO_STATS_ENDPOINT", defaults.stats),
        )
