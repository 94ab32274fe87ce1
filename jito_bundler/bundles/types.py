from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from solders.hash import Hash
from solders.pubkey import Pubkey

from jito_bundler.relay.errors import BundleError
from jito_bundler.relay.types import TipDecision

MAX_BUNDLE_TRANSACTIONS = 5


def reference_hash_of(tx: Any) -> Hash:
    return tx.message.recent_blockhash


@dataclass(slots=True, frozen=True)
class Bundle:
    """Ordered group of signed transactions relayed as one atomic unit.

    Construction validates that the bundle is non-empty, within the relay size
    limit, and that every transaction carries ``reference_hash``.
    """

    transactions: tuple[Any, ...]
    reference_hash: Hash
    tip: TipDecision | None = None
    label: str = "custom"
    max_transactions: int = field(default=MAX_BUNDLE_TRANSACTIONS, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "transactions", tuple(self.transactions))
        if not self.transactions:
            raise BundleError("A bundle needs at least one transaction.")
        if len(self.transactions) > self.max_transactions:
            raise BundleError(
                f"Bundle has {len(self.transactions)} transactions; "
                f"the relay accepts at most {self.max_transactions}."
            )
        for index, tx in enumerate(self.transactions):
            tx_hash = reference_hash_of(tx)
            if tx_hash != self.reference_hash:
                raise BundleError(
                    f"Transaction {index} references blockhash {tx_hash}, "
                    f"expected {self.reference_hash}."
                )
        if self.tip is not None and self.tip.amount < 0:
            raise BundleError("Tip amount must be non-negative.")

    def __len__(self) -> int:
        return len(self.transactions)

    def signatures(self) -> list[str]:
        return [str(tx.signatures[0]) for tx in self.transactions]

    def summary(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "tx_count": len(self.transactions),
            "reference_hash": str(self.reference_hash),
            "tip_account": self.tip.account if self.tip else None,
            "tip_lamports": self.tip.amount if self.tip else None,
            "signatures": self.signatures(),
        }


@dataclass(slots=True, frozen=True)
class TokenTransferRequest:
    source: Pubkey
    destination: Pubkey
    amount: int
