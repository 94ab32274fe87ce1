from .assembler import BundleAssembler
from .instructions import (
    TOKEN_PROGRAM_ID,
    sol_to_lamports,
    sol_transfer_instruction,
    token_transfer_instruction,
    ui_amount_to_raw,
)
from .tips import TIP_CAP_LAMPORTS, compute_tip_amount, decide_tip, select_tip_account
from .types import MAX_BUNDLE_TRANSACTIONS, Bundle, TokenTransferRequest, reference_hash_of

__all__ = [
    "Bundle",
    "BundleAssembler",
    "MAX_BUNDLE_TRANSACTIONS",
    "TIP_CAP_LAMPORTS",
    "TOKEN_PROGRAM_ID",
    "TokenTransferRequest",
    "compute_tip_amount",
    "decide_tip",
    "reference_hash_of",
    "select_tip_account",
    "sol_to_lamports",
    "sol_transfer_instruction",
    "token_transfer_instruction",
    "ui_amount_to_raw",
]
