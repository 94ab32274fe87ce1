from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from spl.token import instructions as spl_token
from spl.token.constants import TOKEN_PROGRAM_ID

LAMPORTS_PER_SOL = 1_000_000_000
MAX_U64 = 2**64 - 1
MAX_TOKEN_DECIMALS = 18


def ui_amount_to_raw(ui_amount: float, decimals: int) -> int:
    """Convert a UI token amount to raw base units, refusing lossy or invalid input."""
    if isinstance(ui_amount, bool) or not isinstance(ui_amount, (int, float, Decimal)):
        raise ValueError(f"Token amount must be numeric, got {ui_amount!r}.")
    if not 0 <= int(decimals) <= MAX_TOKEN_DECIMALS:
        raise ValueError(f"Token decimals out of range: {decimals}.")
    if isinstance(ui_amount, float) and not math.isfinite(ui_amount):
        raise ValueError(f"Token amount must be finite, got {ui_amount!r}.")
    if ui_amount < 0:
        raise ValueError(f"Token amount must be non-negative, got {ui_amount!r}.")

    try:
        scaled = Decimal(str(ui_amount)).scaleb(int(decimals))
    except InvalidOperation as error:
        raise ValueError(f"Token amount is not convertible: {ui_amount!r}.") from error

    raw = int(scaled)
    if raw != scaled:
        raise ValueError(f"Token amount {ui_amount!r} has more precision than {decimals} decimals.")
    if raw > MAX_U64:
        raise ValueError(f"Token amount {ui_amount!r} overflows u64 at {decimals} decimals.")
    return raw


def sol_to_lamports(sol: float) -> int:
    return ui_amount_to_raw(sol, 9)


def token_transfer_instruction(
    *,
    source: Pubkey,
    destination: Pubkey,
    owner: Pubkey,
    amount: int,
) -> Instruction:
    if not 0 <= int(amount) <= MAX_U64:
        raise ValueError(f"Token transfer amount out of range: {amount}.")
    return spl_token.transfer(
        spl_token.TransferParams(
            program_id=TOKEN_PROGRAM_ID,
            source=source,
            dest=destination,
            owner=owner,
            amount=int(amount),
        )
    )


def sol_transfer_instruction(*, payer: Pubkey, destination: Pubkey, lamports: int) -> Instruction:
    if not 0 <= int(lamports) <= MAX_U64:
        raise ValueError(f"Transfer lamports out of range: {lamports}.")
    return transfer(
        TransferParams(
            from_pubkey=payer,
            to_pubkey=destination,
            lamports=int(lamports),
        )
    )
