from __future__ import annotations

import logging
from typing import Any

from jito_bundler.common import log_event

from .errors import (
    SOURCE_BLOCK_ENGINE,
    SOURCE_HEALTH,
    SOURCE_STATS,
    SOURCE_TIP_ACCOUNTS,
    SOURCE_TRANSACTIONS,
    SOURCE_VALIDATORS,
    ApiError,
)
from .transport import RelayTransport
from .types import (
    BlockEngineSnapshot,
    HealthReport,
    Leader,
    MempoolTransaction,
    RelayStatistics,
    TipAccount,
    Validator,
)


def _require_list(payload: Any, key: str, *, source: str) -> list[Any]:
    if not isinstance(payload, dict) or not isinstance(payload.get(key), list):
        raise ApiError(f"Missing {key} list in response: {payload!r}", source=source)
    return payload[key]


class _TelemetryClient:
    source = ""

    def __init__(self, *, logger: logging.Logger, transport: RelayTransport, endpoint: str) -> None:
        self._logger = logger
        self._transport = transport
        self._endpoint = endpoint.strip()

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def _get(self) -> Any:
        return await self._transport.get_json(self._endpoint, source=self.source)


class TipClient(_TelemetryClient):
    source = SOURCE_TIP_ACCOUNTS

    async def get_tip_accounts(self) -> list[TipAccount]:
        payload = await self._get()
        accounts = [
            TipAccount.from_payload(item, source=self.source)
            for item in _require_list(payload, "tip_accounts", source=self.source)
        ]
        log_event(
            self._logger,
            level="debug",
            event="jito_tip_accounts_loaded",
            message="Loaded Jito tip accounts",
            tip_account_count=len(accounts),
        )
        return accounts


class BlockEngineClient(_TelemetryClient):
    source = SOURCE_BLOCK_ENGINE

    async def get_block_engine_info(self) -> BlockEngineSnapshot:
        return BlockEngineSnapshot.from_payload(await self._get(), source=self.source)

    async def get_current_leaders(self) -> list[Leader]:
        return (await self.get_block_engine_info()).leaders

    async def get_network_congestion(self) -> float:
        return (await self.get_block_engine_info()).congestion


class ValidatorsClient(_TelemetryClient):
    source = SOURCE_VALIDATORS

    async def get_validators(self) -> list[Validator]:
        payload = await self._get()
        return [
            Validator.from_payload(item, source=self.source)
            for item in _require_list(payload, "validators", source=self.source)
        ]

    async def get_active_validators(self) -> list[Validator]:
        return [validator for validator in await self.get_validators() if validator.active]


class TransactionsPoolClient(_TelemetryClient):
    source = SOURCE_TRANSACTIONS

    async def get_mempool_transactions(self) -> list[MempoolTransaction]:
        payload = await self._get()
        return [
            MempoolTransaction.from_payload(item, source=self.source)
            for item in _require_list(payload, "transactions", source=self.source)
        ]

    async def get_high_priority_transactions(self, min_priority_fee: int) -> list[MempoolTransaction]:
        return [
            tx
            for tx in await self.get_mempool_transactions()
            if (tx.priority_fee or 0) >= min_priority_fee
        ]


class HealthClient(_TelemetryClient):
    source = SOURCE_HEALTH

    async def check_health(self) -> HealthReport:
        """Fetch the health report. An unhealthy status is returned, not raised."""
        return HealthReport.from_payload(await self._get(), source=self.source)

    async def is_healthy(self) -> bool:
        try:
            report = await self.check_health()
        except Exception as error:
            log_event(
                self._logger,
                level="warning",
                event="jito_health_check_failed",
                message="Relay health check failed",
                error=str(error),
            )
            return False
        return report.healthy


class StatisticsClient(_TelemetryClient):
    source = SOURCE_STATS

    async def get_statistics(self) -> RelayStatistics:
        return RelayStatistics.from_payload(await self._get(), source=self.source)

    async def get_success_rate(self) -> float:
        return (await self.get_statistics()).success_rate
