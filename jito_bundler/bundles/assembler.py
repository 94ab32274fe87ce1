from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from jito_bundler.common import log_event
from jito_bundler.ledger import ReferenceHashSource
from jito_bundler.relay.errors import BundleError, JitoError
from jito_bundler.relay.types import TipDecision

from .instructions import sol_transfer_instruction, token_transfer_instruction, ui_amount_to_raw
from .types import MAX_BUNDLE_TRANSACTIONS, Bundle, TokenTransferRequest

InstructionGroup = list[Instruction]


class BundleAssembler:
    """Turns a transfer, swap or arbitrage request into a signed Bundle.

    Each call fetches the reference blockhash exactly once and signs every
    transaction of the bundle against it. Instructions are built and the size
    limit checked before that fetch, so invalid requests fail without any
    network call. An optional tip transaction always goes last.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        reference_hash_source: ReferenceHashSource,
        max_transactions: int = MAX_BUNDLE_TRANSACTIONS,
    ) -> None:
        self._logger = logger
        self._reference_hash_source = reference_hash_source
        self._max_transactions = max(1, int(max_transactions))

    async def _fetch_reference_hash(self) -> Hash:
        try:
            return await self._reference_hash_source.get_latest_blockhash()
        except asyncio.CancelledError:
            raise
        except Exception as error:
            raise BundleError(f"Failed to fetch reference blockhash: {error}") from error

    @staticmethod
    def _tip_instruction(wallet: Keypair, tip: TipDecision) -> Instruction:
        if tip.amount <= 0:
            raise BundleError("Tip amount must be greater than zero for a tip transaction.")
        try:
            tip_account = Pubkey.from_string(tip.account)
        except Exception as error:
            raise BundleError(f"Invalid tip account: {tip.account}") from error
        return sol_transfer_instruction(payer=wallet.pubkey(), destination=tip_account, lamports=tip.amount)

    @staticmethod
    def _sign(wallet: Keypair, instructions: InstructionGroup, reference_hash: Hash) -> VersionedTransaction:
        try:
            message = MessageV0.try_compile(wallet.pubkey(), instructions, [], reference_hash)
            return VersionedTransaction(message, [wallet])
        except Exception as error:
            raise BundleError(f"Failed to sign bundle transaction: {error}") from error

    async def _assemble(
        self,
        *,
        label: str,
        wallet: Keypair,
        groups: Sequence[InstructionGroup],
        tip: TipDecision | None,
    ) -> Bundle:
        groups = [list(group) for group in groups]
        if tip is not None:
            groups.append([self._tip_instruction(wallet, tip)])
        if not groups or any(not group for group in groups):
            raise BundleError(f"{label} bundle has a transaction without instructions.")
        if len(groups) > self._max_transactions:
            raise BundleError(
                f"{label} bundle needs {len(groups)} transactions; "
                f"the relay accepts at most {self._max_transactions}."
            )

        reference_hash = await self._fetch_reference_hash()
        transactions = [self._sign(wallet, group, reference_hash) for group in groups]
        bundle = Bundle(
            transactions=tuple(transactions),
            reference_hash=reference_hash,
            tip=tip,
            label=label,
            max_transactions=self._max_transactions,
        )
        log_event(
            self._logger,
            level="debug",
            event="bundle_assembled",
            message="Bundle assembled",
            **bundle.summary(),
        )
        return bundle

    async def sol_transfer(
        self,
        *,
        wallet: Keypair,
        destination: Pubkey,
        lamports: int,
        tip: TipDecision | None = None,
    ) -> Bundle:
        try:
            instruction = sol_transfer_instruction(payer=wallet.pubkey(), destination=destination, lamports=lamports)
        except ValueError as error:
            raise BundleError(str(error)) from error
        return await self._assemble(label="sol_transfer", wallet=wallet, groups=[[instruction]], tip=tip)

    async def token_transfer(
        self,
        *,
        wallet: Keypair,
        source: Pubkey,
        destination: Pubkey,
        ui_amount: float,
        decimals: int,
        tip: TipDecision | None = None,
    ) -> Bundle:
        try:
            raw_amount = ui_amount_to_raw(ui_amount, decimals)
            instruction = token_transfer_instruction(
                source=source,
                destination=destination,
                owner=wallet.pubkey(),
                amount=raw_amount,
            )
        except ValueError as error:
            raise BundleError(f"Invalid token transfer: {error}") from error
        return await self._assemble(label="token_transfer", wallet=wallet, groups=[[instruction]], tip=tip)

    async def swap(
        self,
        *,
        wallet: Keypair,
        instructions: Sequence[Instruction],
        tip: TipDecision | None = None,
    ) -> Bundle:
        return await self._assemble(label="swap", wallet=wallet, groups=[list(instructions)], tip=tip)

    async def transfer_with_tip(
        self,
        *,
        wallet: Keypair,
        source: Pubkey,
        destination: Pubkey,
        token_amount: int,
        tip: TipDecision,
    ) -> Bundle:
        """Token transfer followed by the tip payment, in that order."""
        try:
            instruction = token_transfer_instruction(
                source=source,
                destination=destination,
                owner=wallet.pubkey(),
                amount=token_amount,
            )
        except ValueError as error:
            raise BundleError(f"Invalid token transfer: {error}") from error
        return await self._assemble(label="transfer_with_tip", wallet=wallet, groups=[[instruction]], tip=tip)

    async def batch_token_transfers(
        self,
        *,
        wallet: Keypair,
        transfers: Sequence[TokenTransferRequest],
        tip: TipDecision | None = None,
    ) -> Bundle:
        if not transfers:
            raise BundleError("Batch transfer bundle needs at least one transfer.")
        groups: list[InstructionGroup] = []
        for index, request in enumerate(transfers):
            try:
                groups.append(
                    [
                        token_transfer_instruction(
                            source=request.source,
                            destination=request.destination,
                            owner=wallet.pubkey(),
                            amount=request.amount,
                        )
                    ]
                )
            except ValueError as error:
                raise BundleError(f"Invalid token transfer at index {index}: {error}") from error
        return await self._assemble(label="batch_token_transfers", wallet=wallet, groups=groups, tip=tip)

    async def arbitrage(
        self,
        *,
        wallet: Keypair,
        swap_instructions: Sequence[Instruction],
        tip: TipDecision,
    ) -> Bundle:
        return await self._assemble(label="arbitrage", wallet=wallet, groups=[list(swap_instructions)], tip=tip)

    async def backrun(
        self,
        *,
        wallet: Keypair,
        instructions: Sequence[Instruction],
        tip: TipDecision,
    ) -> Bundle:
        return await self._assemble(label="backrun", wallet=wallet, groups=[list(instructions)], tip=tip)

    def from_transactions(
        self,
        transactions: Sequence[Any],
        *,
        tip: TipDecision | None = None,
        label: str = "multi_transaction",
    ) -> Bundle:
        """Wrap caller-signed transactions; they must already share one blockhash."""
        if not transactions:
            raise BundleError("A bundle needs at least one transaction.")
        try:
            reference_hash = transactions[0].message.recent_blockhash
        except AttributeError as error:
            raise BundleError(f"Unsupported transaction object: {transactions[0]!r}") from error
        try:
            return Bundle(
                transactions=tuple(transactions),
                reference_hash=reference_hash,
                tip=tip,
                label=label,
                max_transactions=self._max_transactions,
            )
        except JitoError:
            raise
        except Exception as error:
            raise BundleError(f"Invalid bundle transactions: {error}") from error
