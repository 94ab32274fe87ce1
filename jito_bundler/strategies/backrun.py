from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from solders.keypair import Keypair

from jito_bundler.bundles import Bundle, select_tip_account
from jito_bundler.relay.errors import NoOpportunity
from jito_bundler.relay.types import MempoolTransaction, TipDecision

from .base import StrategyLoop
from .types import BackrunConfig, BackrunInstructionBuilder, CycleOutcome, TargetScanner, TargetTransaction

if TYPE_CHECKING:
    from jito_bundler.engine import JitoEngine

ProfitEstimator = Callable[[MempoolTransaction], "Awaitable[int] | int"]


class MempoolTargetScanner:
    """High-priority mempool transactions, capped and priced by ``estimate_profit``."""

    def __init__(
        self,
        *,
        engine: "JitoEngine",
        estimate_profit: ProfitEstimator,
        config: BackrunConfig | None = None,
    ) -> None:
        self._engine = engine
        self._estimate_profit = estimate_profit
        self._config = config or BackrunConfig()

    async def scan(self) -> list[TargetTransaction]:
        candidates = await self._engine.transactions_pool.get_high_priority_transactions(
            self._config.min_priority_fee
        )
        targets: list[TargetTransaction] = []
        for candidate in candidates[: max(0, self._config.max_transactions)]:
            profit = self._estimate_profit(candidate)
            if inspect.isawaitable(profit):
                profit = await profit
            targets.append(
                TargetTransaction(
                    signature=candidate.signature,
                    slot=candidate.slot,
                    expected_profit=max(0, int(profit)),
                    priority_fee=candidate.priority_fee or 0,
                )
            )
        return targets


class BackrunStrategy(StrategyLoop):
    name = "backrun"

    def __init__(
        self,
        *,
        logger: logging.Logger,
        engine: "JitoEngine",
        wallet: Keypair,
        scanner: TargetScanner,
        instruction_builder: BackrunInstructionBuilder,
        config: BackrunConfig | None = None,
        dry_run: bool = True,
        interval_seconds: float = 0.5,
        error_backoff_seconds: float = 0.0,
        confirm_max_retries: int | None = None,
    ) -> None:
        super().__init__(
            logger=logger,
            engine=engine,
            interval_seconds=interval_seconds,
            dry_run=dry_run,
            error_backoff_seconds=error_backoff_seconds,
            confirm_max_retries=confirm_max_retries,
        )
        self._wallet = wallet
        self._scanner = scanner
        self._instruction_builder = instruction_builder
        self._config = config or BackrunConfig()

    @property
    def config(self) -> BackrunConfig:
        return self._config

    async def find_target(self) -> TargetTransaction:
        targets = await self._scanner.scan()
        for target in targets:
            if target.expected_profit >= self._config.profit_threshold:
                return target
        raise NoOpportunity(
            f"No backrun target with profit >= {self._config.profit_threshold} lamports "
            f"among {len(targets)} candidates"
        )

    async def prepare(self, target: TargetTransaction) -> Bundle:
        # The target itself stays out of the bundle: it was signed against a
        # blockhash we do not control.
        account = select_tip_account(await self._engine.get_tip_accounts())
        tip = TipDecision(account=account.pubkey, amount=self._config.min_priority_fee)
        instructions = await self._instruction_builder.build(target)
        return await self._engine.assembler.backrun(wallet=self._wallet, instructions=instructions, tip=tip)

    async def execute(self, target: TargetTransaction) -> str:
        bundle = await self.prepare(target)
        return await self._engine.send_bundle(bundle)

    async def _cycle(self) -> CycleOutcome:
        target = await self.find_target()
        bundle = await self.prepare(target)
        return await self.submit(
            bundle,
            target_signature=target.signature,
            target_slot=target.slot,
            expected_profit=target.expected_profit,
        )
