from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from solders.keypair import Keypair

from jito_bundler.bundles import Bundle, decide_tip
from jito_bundler.common import log_event
from jito_bundler.relay.errors import InsufficientBalance, NoArbitrageOpportunity
from jito_bundler.relay.types import TipDecision

from .base import StrategyLoop
from .types import (
    ArbitrageConfig,
    ArbitrageOpportunity,
    CycleOutcome,
    OpportunityScanner,
    SwapInstructionBuilder,
    TokenPair,
)

if TYPE_CHECKING:
    from jito_bundler.engine import JitoEngine


class ArbitrageStrategy(StrategyLoop):
    """Scans monitored pairs and submits swap-then-tip bundles.

    ``execute`` is also usable one-shot; its errors reach the caller as-is.
    """

    name = "arbitrage"

    def __init__(
        self,
        *,
        logger: logging.Logger,
        engine: "JitoEngine",
        wallet: Keypair,
        scanner: OpportunityScanner,
        instruction_builder: SwapInstructionBuilder,
        pairs: Sequence[TokenPair],
        config: ArbitrageConfig | None = None,
        dry_run: bool = True,
        interval_seconds: float = 2.0,
        error_backoff_seconds: float = 0.0,
    ) -> None:
        self._config = config or ArbitrageConfig()
        super().__init__(
            logger=logger,
            engine=engine,
            interval_seconds=interval_seconds,
            dry_run=dry_run,
            error_backoff_seconds=error_backoff_seconds,
            confirm_max_retries=max(1, self._config.max_retries),
        )
        self._wallet = wallet
        self._scanner = scanner
        self._instruction_builder = instruction_builder
        self._pairs = list(pairs)

    @property
    def config(self) -> ArbitrageConfig:
        return self._config

    async def find_opportunity(self) -> ArbitrageOpportunity:
        opportunities = await self._scanner.scan(self._pairs, self._config.scan_amount)
        for opportunity in opportunities:
            if opportunity.expected_profit >= self._config.min_profit_lamports:
                return opportunity
        raise NoArbitrageOpportunity(
            f"No opportunity with profit >= {self._config.min_profit_lamports} lamports "
            f"among {len(opportunities)} candidates"
        )

    async def _decide_tip(self, opportunity: ArbitrageOpportunity) -> TipDecision:
        catalog = await self._engine.get_tip_accounts()
        congestion = await self._engine.get_network_congestion_or_default()
        tip = decide_tip(
            catalog,
            expected_profit=opportunity.expected_profit,
            tip_percentage=self._config.tip_percentage,
            network_congestion=congestion,
            tip_cap=self._config.tip_cap_lamports,
        )
        # Arbitrage bundles always carry a tip transaction.
        if tip.amount <= 0:
            raise NoArbitrageOpportunity(
                f"Tip for profit {opportunity.expected_profit} rounds to zero lamports"
            )
        return tip

    async def _ensure_balance(self, tip: TipDecision) -> None:
        if self._config.min_balance_lamports <= 0:
            return

        balance = await self._engine.ledger.get_balance(self._wallet.pubkey())
        required = self._config.min_balance_lamports + tip.amount
        if balance < required:
            raise InsufficientBalance(
                f"Wallet balance {balance} is below the required {required} lamports",
                balance_lamports=balance,
                required_lamports=required,
            )

    async def prepare(self, opportunity: ArbitrageOpportunity) -> Bundle:
        await self._engine.health_check()
        tip = await self._decide_tip(opportunity)
        await self._ensure_balance(tip)

        swap_instructions = await self._instruction_builder.build(
            opportunity,
            max_slippage_bps=self._config.max_slippage_bps,
        )
        bundle = await self._engine.assembler.arbitrage(
            wallet=self._wallet,
            swap_instructions=swap_instructions,
            tip=tip,
        )
        log_event(
            self._logger,
            level="debug",
            event="arbitrage_bundle_prepared",
            message="Arbitrage bundle prepared",
            expected_profit=opportunity.expected_profit,
            dexes=list(opportunity.dexes),
            tip_account=tip.account,
            tip_lamports=tip.amount,
        )
        return bundle

    async def execute(self, opportunity: ArbitrageOpportunity) -> str:
        bundle = await self.prepare(opportunity)
        return await self._engine.send_bundle(bundle)

    async def _cycle(self) -> CycleOutcome:
        opportunity = await self.find_opportunity()
        bundle = await self.prepare(opportunity)
        return await self.submit(
            bundle,
            expected_profit=opportunity.expected_profit,
            input_amount=opportunity.input_amount,
            output_amount=opportunity.output_amount,
        )
