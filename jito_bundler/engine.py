from __future__ import annotations

import asyncio
import logging

import aiohttp

from jito_bundler.bundles import Bundle, BundleAssembler, select_tip_account
from jito_bundler.common import guarded_call, log_event
from jito_bundler.ledger import LedgerClient
from jito_bundler.relay import (
    BlockEngineClient,
    BundleClient,
    BundleConfirmationPoller,
    BundleStatus,
    ConfirmationOutcome,
    HealthClient,
    HealthReport,
    Leader,
    MempoolTransaction,
    RelayStatistics,
    RelayTransport,
    RelayUnhealthy,
    StatisticsClient,
    TipAccount,
    TipClient,
    TransactionsPoolClient,
    Validator,
    ValidatorsClient,
)
from jito_bundler.relay.endpoints import RelayEndpoints


class JitoEngine:
    """One shared relay client: transport, telemetry, assembler, submission and polling.

    Safe to share between concurrent strategy loops and one-off submissions;
    the aiohttp connection pool is the only shared mutable resource.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        ledger: LedgerClient,
        endpoints: RelayEndpoints | None = None,
        request_timeout_seconds: float = 10.0,
        confirm_max_retries: int = 30,
        confirm_poll_interval_seconds: float = 1.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._logger = logger
        self.endpoints = endpoints or RelayEndpoints()
        self.ledger = ledger
        self.transport = RelayTransport(
            logger=logger,
            timeout_seconds=request_timeout_seconds,
            session=session,
        )
        self.bundles = BundleClient(logger=logger, transport=self.transport, endpoint=self.endpoints.bundle)
        self.tips = TipClient(logger=logger, transport=self.transport, endpoint=self.endpoints.tip)
        self.block_engine = BlockEngineClient(
            logger=logger,
            transport=self.transport,
            endpoint=self.endpoints.block_engine,
        )
        self.validators = ValidatorsClient(
            logger=logger,
            transport=self.transport,
            endpoint=self.endpoints.validators,
        )
        self.transactions_pool = TransactionsPoolClient(
            logger=logger,
            transport=self.transport,
            endpoint=self.endpoints.mempool,
        )
        self.health = HealthClient(logger=logger, transport=self.transport, endpoint=self.endpoints.health)
        self.statistics = StatisticsClient(logger=logger, transport=self.transport, endpoint=self.endpoints.stats)
        self.assembler = BundleAssembler(logger=logger, reference_hash_source=ledger)
        self.poller = BundleConfirmationPoller(
            logger=logger,
            fetch_status=self.bundles.get_status,
            max_retries=confirm_max_retries,
            poll_interval_seconds=confirm_poll_interval_seconds,
        )

    async def connect(self) -> None:
        await self.transport.connect()
        connect = getattr(self.ledger, "connect", None)
        if connect is not None:
            await connect()

    async def close(self) -> None:
        await guarded_call(
            self.transport.close,
            logger=self._logger,
            event="engine_transport_close_failed",
            message="Failed to close relay transport",
        )
        close = getattr(self.ledger, "close", None)
        if close is not None:
            await guarded_call(
                close,
                logger=self._logger,
                event="engine_ledger_close_failed",
                message="Failed to close ledger client",
            )

    async def health_check(self) -> HealthReport:
        report = await self.health.check_health()
        if not report.healthy:
            raise RelayUnhealthy(report.status)
        return report

    async def get_statistics(self) -> RelayStatistics:
        return await self.statistics.get_statistics()

    async def get_tip_accounts(self) -> list[TipAccount]:
        return await self.tips.get_tip_accounts()

    async def get_optimal_tip_account(self) -> TipAccount:
        return select_tip_account(await self.tips.get_tip_accounts())

    async def get_recommended_tip(self) -> int:
        return (await self.get_optimal_tip_account()).lamports_per_signature

    async def get_network_congestion(self) -> float:
        return await self.block_engine.get_network_congestion()

    async def get_network_congestion_or_default(self, default: float = 0.0) -> float:
        """Congestion multiplier, or ``default`` when telemetry is unavailable."""
        try:
            return await self.block_engine.get_network_congestion()
        except asyncio.CancelledError:
            raise
        except Exception as error:
            log_event(
                self._logger,
                level="warning",
                event="jito_congestion_unavailable",
                message="Network congestion unavailable; using fallback multiplier",
                fallback=default,
                error=str(error),
            )
            return default

    async def get_current_leaders(self) -> list[Leader]:
        return await self.block_engine.get_current_leaders()

    async def get_active_validators(self) -> list[Validator]:
        return await self.validators.get_active_validators()

    async def get_mempool_transactions(self) -> list[MempoolTransaction]:
        return await self.transactions_pool.get_mempool_transactions()

    async def send_bundle(self, bundle: Bundle, *, timeout_seconds: float | None = None) -> str:
        return await self.bundles.submit(bundle, timeout_seconds=timeout_seconds)

    async def monitor_bundle_status(self, bundle_id: str) -> BundleStatus:
        return await self.bundles.get_status(bundle_id)

    async def wait_for_bundle_confirmation(
        self,
        bundle_id: str,
        *,
        max_retries: int | None = None,
    ) -> ConfirmationOutcome:
        return await self.poller.wait(bundle_id, max_retries=max_retries)
