from __future__ import annotations

import logging
import unittest
from unittest.mock import AsyncMock

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from jito_bundler.bundles import (
    TOKEN_PROGRAM_ID,
    Bundle,
    BundleAssembler,
    TokenTransferRequest,
)
from jito_bundler.bundles.instructions import token_transfer_instruction
from jito_bundler.relay.errors import BundleError
from jito_bundler.relay.types import TipDecision


def _program_ids(tx: VersionedTransaction) -> list[Pubkey]:
    keys = tx.message.account_keys
    return [keys[ix.program_id_index] for ix in tx.message.instructions]


def _tip() -> TipDecision:
    return TipDecision(account=str(Pubkey.new_unique()), amount=10_000)


class _HashSource:
    def __init__(self, blockhash: Hash | None = None, error: Exception | None = None) -> None:
        self.blockhash = blockhash or Hash.new_unique()
        self.get_latest_blockhash = AsyncMock(
            return_value=self.blockhash,
            side_effect=error,
        )


class BundleAssemblerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.source = _HashSource()
        self.assembler = BundleAssembler(
            logger=logging.getLogger("test.assembler"),
            reference_hash_source=self.source,
        )
        self.wallet = Keypair()

    async def test_every_transaction_shares_the_single_fetched_hash(self) -> None:
        transfers = [
            TokenTransferRequest(source=Pubkey.new_unique(), destination=Pubkey.new_unique(), amount=index + 1)
            for index in range(3)
        ]

        bundle = await self.assembler.batch_token_transfers(wallet=self.wallet, transfers=transfers, tip=_tip())

        self.assertEqual(len(bundle), 4)
        self.source.get_latest_blockhash.assert_awaited_once()
        self.assertEqual(bundle.reference_hash, self.source.blockhash)
        for tx in bundle.transactions:
            self.assertEqual(tx.message.recent_blockhash, self.source.blockhash)

    async def test_transfer_with_tip_orders_transfer_before_tip(self) -> None:
        tip = _tip()

        bundle = await self.assembler.transfer_with_tip(
            wallet=self.wallet,
            source=Pubkey.new_unique(),
            destination=Pubkey.new_unique(),
            token_amount=42,
            tip=tip,
        )

        self.assertEqual(len(bundle), 2)
        self.assertEqual(_program_ids(bundle.transactions[0]), [TOKEN_PROGRAM_ID])
        self.assertEqual(_program_ids(bundle.transactions[1]), [SYSTEM_PROGRAM_ID])
        self.assertIn(Pubkey.from_string(tip.account), bundle.transactions[1].message.account_keys)
        self.assertEqual(bundle.tip, tip)

    async def test_arbitrage_puts_swap_first_and_tip_last(self) -> None:
        swap = transfer(
            TransferParams(from_pubkey=self.wallet.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=5)
        )

        bundle = await self.assembler.arbitrage(wallet=self.wallet, swap_instructions=[swap], tip=_tip())

        self.assertEqual(bundle.label, "arbitrage")
        self.assertEqual(len(bundle), 2)
        self.assertEqual(bundle.signatures()[0], str(bundle.transactions[0].signatures[0]))

    async def test_sol_transfer_without_tip_is_one_transaction(self) -> None:
        bundle = await self.assembler.sol_transfer(
            wallet=self.wallet,
            destination=Pubkey.new_unique(),
            lamports=1_000,
        )

        self.assertEqual(len(bundle), 1)
        self.assertIsNone(bundle.tip)

    async def test_reference_hash_failure_is_wrapped(self) -> None:
        source = _HashSource(error=RuntimeError("rpc down"))
        assembler = BundleAssembler(logger=logging.getLogger("test.assembler"), reference_hash_source=source)

        with self.assertRaises(BundleError) as context:
            await assembler.sol_transfer(wallet=self.wallet, destination=Pubkey.new_unique(), lamports=1)

        self.assertIsInstance(context.exception.__cause__, RuntimeError)

    async def test_invalid_ui_amount_fails_before_network_call(self) -> None:
        for ui_amount in (-1.0, 1.0000001, float("nan")):
            with self.subTest(ui_amount=ui_amount):
                with self.assertRaises(BundleError):
                    await self.assembler.token_transfer(
                        wallet=self.wallet,
                        source=Pubkey.new_unique(),
                        destination=Pubkey.new_unique(),
                        ui_amount=ui_amount,
                        decimals=6,
                    )

        self.source.get_latest_blockhash.assert_not_awaited()

    async def test_oversized_bundle_fails_before_network_call(self) -> None:
        transfers = [
            TokenTransferRequest(source=Pubkey.new_unique(), destination=Pubkey.new_unique(), amount=1)
            for _ in range(5)
        ]

        with self.assertRaises(BundleError):
            await self.assembler.batch_token_transfers(wallet=self.wallet, transfers=transfers, tip=_tip())

        self.source.get_latest_blockhash.assert_not_awaited()

    async def test_zero_tip_is_rejected(self) -> None:
        with self.assertRaises(BundleError):
            await self.assembler.sol_transfer(
                wallet=self.wallet,
                destination=Pubkey.new_unique(),
                lamports=1,
                tip=TipDecision(account=str(Pubkey.new_unique()), amount=0),
            )

    async def test_invalid_tip_account_is_rejected(self) -> None:
        with self.assertRaises(BundleError):
            await self.assembler.sol_transfer(
                wallet=self.wallet,
                destination=Pubkey.new_unique(),
                lamports=1,
                tip=TipDecision(account="not-a-pubkey", amount=10),
            )


class BundleInvariantTests(unittest.TestCase):
    def _signed(self, wallet: Keypair, blockhash: Hash) -> VersionedTransaction:
        ix = transfer(TransferParams(from_pubkey=wallet.pubkey(), to_pubkey=Pubkey.new_unique(), lamports=1))
        return VersionedTransaction(MessageV0.try_compile(wallet.pubkey(), [ix], [], blockhash), [wallet])

    def test_mismatched_reference_hash_is_rejected(self) -> None:
        wallet = Keypair()
        first = self._signed(wallet, Hash.new_unique())
        second = self._signed(wallet, Hash.new_unique())
        assembler = BundleAssembler(logger=logging.getLogger("test.assembler"), reference_hash_source=_HashSource())

        with self.assertRaises(BundleError):
            assembler.from_transactions([first, second])

    def test_from_transactions_keeps_order(self) -> None:
        wallet = Keypair()
        blockhash = Hash.new_unique()
        transactions = [self._signed(wallet, blockhash) for _ in range(3)]
        assembler = BundleAssembler(logger=logging.getLogger("test.assembler"), reference_hash_source=_HashSource())

        bundle = assembler.from_transactions(transactions)

        self.assertEqual(list(bundle.transactions), transactions)
        self.assertEqual(bundle.reference_hash, blockhash)

    def test_empty_bundle_is_rejected(self) -> None:
        with self.assertRaises(BundleError):
            Bundle(transactions=(), reference_hash=Hash.new_unique())


class TokenTransferInstructionTests(unittest.TestCase):
    def test_spl_transfer_layout(self) -> None:
        source, destination, owner = Pubkey.new_unique(), Pubkey.new_unique(), Pubkey.new_unique()

        ix = token_transfer_instruction(source=source, destination=destination, owner=owner, amount=42)

        self.assertEqual(ix.program_id, TOKEN_PROGRAM_ID)
        self.assertEqual(bytes(ix.data), bytes([3]) + (42).to_bytes(8, "little"))
        self.assertEqual([meta.pubkey for meta in ix.accounts], [source, destination, owner])
        self.assertTrue(ix.accounts[2].is_signer)
        self.assertFalse(ix.accounts[0].is_signer)

    def test_out_of_range_amount_is_rejected(self) -> None:
        for amount in (-1, 2**64):
            with self.subTest(amount=amount):
                with self.assertRaises(ValueError):
                    token_transfer_instruction(
                        source=Pubkey.new_unique(),
                        destination=Pubkey.new_unique(),
                        owner=Pubkey.new_unique(),
                        amount=amount,
                    )


if __name__ == "__main__":
    unittest.main()
