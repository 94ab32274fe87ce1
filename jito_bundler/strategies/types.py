from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Protocol, Sequence

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from jito_bundler.bundles.tips import TIP_CAP_LAMPORTS

CycleStatus = Literal["submitted", "no_opportunity", "dry_run", "error"]

TokenPair = tuple[Pubkey, Pubkey]


@dataclass(slots=True, frozen=True)
class ArbitrageOpportunity:
    route: tuple[Pubkey, ...]
    expected_profit: int
    input_amount: int
    output_amount: int
    dexes: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class TargetTransaction:
    signature: str
    slot: int
    expected_profit: int
    priority_fee: int = 0


@dataclass(slots=True, frozen=True)
class ArbitrageConfig:
    min_profit_lamports: int = 10_000
    max_slippage_bps: int = 50
    # Confirmation polls spent on each submitted arbitrage bundle.
    max_retries: int = 3
    tip_percentage: float = 0.1
    tip_cap_lamports: int = TIP_CAP_LAMPORTS
    min_balance_lamports: int = 0
    scan_amount: int = 1_000_000


@dataclass(slots=True, frozen=True)
class BackrunConfig:
    min_priority_fee: int = 50_000
    max_transactions: int = 5
    profit_threshold: int = 5_000


@dataclass(slots=True, frozen=True)
class CycleOutcome:
    strategy: str
    status: CycleStatus
    bundle_id: str | None = None
    reason: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class OpportunityScanner(Protocol):
    async def scan(self, pairs: Sequence[TokenPair], amount: int) -> list[ArbitrageOpportunity]:
        ...


class SwapInstructionBuilder(Protocol):
    async def build(self, opportunity: ArbitrageOpportunity, *, max_slippage_bps: int) -> list[Instruction]:
        ...


class TargetScanner(Protocol):
    async def scan(self) -> list[TargetTransaction]:
        ...


class BackrunInstructionBuilder(Protocol):
    async def build(self, target: TargetTransaction) -> list[Instruction]:
        ...
