from __future__ import annotations

import asyncio
import logging
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from jito_bundler.ledger import SolanaLedgerClient
from jito_bundler.relay.errors import ApiError, RequestFailed, RequestTimeout


class _RawTransaction:
    def __init__(self, raw: bytes) -> None:
        self._raw = raw

    def __bytes__(self) -> bytes:
        return self._raw


def _ledger(client: Mock) -> SolanaLedgerClient:
    return SolanaLedgerClient(
        logger=logging.getLogger("test.ledger"),
        rpc_url="https://rpc.test",
        client=client,
    )


class SolanaLedgerClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_latest_blockhash(self) -> None:
        blockhash = Hash.new_unique()
        client = Mock()
        client.get_latest_blockhash = AsyncMock(
            return_value=SimpleNamespace(value=SimpleNamespace(blockhash=blockhash, last_valid_block_height=10))
        )

        self.assertEqual(await _ledger(client).get_latest_blockhash(), blockhash)

    async def test_balance(self) -> None:
        client = Mock()
        client.get_balance = AsyncMock(return_value=SimpleNamespace(value=123_456))
        pubkey = Pubkey.new_unique()

        self.assertEqual(await _ledger(client).get_balance(pubkey), 123_456)
        self.assertEqual(client.get_balance.call_args.args[0], pubkey)

    async def test_unexpected_response_is_api_error(self) -> None:
        client = Mock()
        client.get_balance = AsyncMock(return_value=SimpleNamespace(value=None))

        with self.assertRaises(ApiError):
            await _ledger(client).get_balance(Pubkey.new_unique())

    async def test_rpc_failures_are_mapped(self) -> None:
        client = Mock()
        client.get_latest_blockhash = AsyncMock(side_effect=ConnectionError("reset"))
        client.get_balance = AsyncMock(side_effect=asyncio.TimeoutError())
        ledger = _ledger(client)

        with self.assertRaises(RequestFailed) as failed:
            await ledger.get_latest_blockhash()
        with self.assertRaises(RequestTimeout):
            await ledger.get_balance(Pubkey.new_unique())

        self.assertEqual(failed.exception.source, "ledger")

    async def test_send_transaction_returns_signature(self) -> None:
        signature = Signature.default()
        client = Mock()
        client.send_raw_transaction = AsyncMock(return_value=SimpleNamespace(value=signature))
        tx = _RawTransaction(b"\x01\x02")

        result = await _ledger(client).send_transaction(tx, skip_preflight=True)

        self.assertEqual(result, str(signature))
        args, kwargs = client.send_raw_transaction.call_args
        self.assertEqual(args[0], b"\x01\x02")
        self.assertTrue(kwargs["opts"].skip_preflight)

    async def test_connect_requires_rpc_url(self) -> None:
        ledger = SolanaLedgerClient(logger=logging.getLogger("test.ledger"), rpc_url="  ")

        with self.assertRaises(ValueError):
            await ledger.connect()


if __name__ == "__main__":
    unittest.main()
