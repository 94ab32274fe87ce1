from __future__ import annotations

from typing import Sequence

from jito_bundler.relay.errors import NoTipAccounts
from jito_bundler.relay.types import TipAccount, TipDecision

TIP_CAP_LAMPORTS = 1_000_000


def select_tip_account(catalog: Sequence[TipAccount]) -> TipAccount:
    """Return the account with the highest ``lamports_per_signature``.

    Ties resolve to the earliest account in catalog order. The tie-break is
    arbitrary; it only has to be stable.
    """
    if not catalog:
        raise NoTipAccounts()

    best = catalog[0]
    for account in catalog[1:]:
        if account.lamports_per_signature > best.lamports_per_signature:
            best = account
    return best


def compute_tip_amount(
    expected_profit: int,
    tip_percentage: float,
    network_congestion: float = 0.0,
    *,
    tip_cap: int = TIP_CAP_LAMPORTS,
) -> int:
    profit = max(0, int(expected_profit))
    percentage = max(0.0, float(tip_percentage))
    congestion = max(0.0, float(network_congestion))
    cap = max(0, int(tip_cap))

    base_tip = int(min(profit * percentage, float(cap)))
    amount = int(base_tip * (1.0 + congestion))
    return max(0, min(amount, profit))


def decide_tip(
    catalog: Sequence[TipAccount],
    *,
    expected_profit: int,
    tip_percentage: float,
    network_congestion: float = 0.0,
    tip_cap: int = TIP_CAP_LAMPORTS,
) -> TipDecision:
    account = select_tip_account(catalog)
    return TipDecision(
        account=account.pubkey,
        amount=compute_tip_amount(
            expected_profit,
            tip_percentage,
            network_congestion,
            tip_cap=tip_cap,
        ),
    )
