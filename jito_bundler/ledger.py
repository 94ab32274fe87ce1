from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Processed
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey

from jito_bundler.common import log_event
from jito_bundler.relay.errors import SOURCE_LEDGER, ApiError, RequestFailed, RequestTimeout


class ReferenceHashSource(Protocol):
    async def get_latest_blockhash(self) -> Hash:
        ...


class LedgerClient(ReferenceHashSource, Protocol):
    async def get_balance(self, pubkey: Pubkey) -> int:
        ...

    async def send_transaction(self, tx: Any, *, skip_preflight: bool = False) -> str:
        ...


class SolanaLedgerClient:
    """Solana JSON-RPC collaborator: blockhashes, balances and single transactions."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        rpc_url: str,
        commitment: Commitment = Processed,
        timeout_seconds: float = 10.0,
        client: AsyncClient | None = None,
    ) -> None:
        self._logger = logger
        self._rpc_url = rpc_url.strip()
        self._commitment = commitment
        self._timeout_seconds = timeout_seconds
        self._client = client

    async def connect(self) -> None:
        if not self._rpc_url and self._client is None:
            raise ValueError("SOLANA_RPC_URL is required for the ledger client.")
        if self._client is None:
            self._client = AsyncClient(self._rpc_url, commitment=self._commitment, timeout=self._timeout_seconds)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def healthcheck(self) -> None:
        await self.get_latest_blockhash()

    async def _call(self, method: str, action: Any) -> Any:
        if self._client is None:
            await self.connect()
        try:
            return await action(self._client)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as error:
            raise RequestTimeout(f"{method} timed out", source=SOURCE_LEDGER) from error
        except Exception as error:
            raise RequestFailed(f"{method} failed: {error}", source=SOURCE_LEDGER) from error

    async def get_latest_blockhash(self) -> Hash:
        response = await self._call(
            "getLatestBlockhash",
            lambda client: client.get_latest_blockhash(self._commitment),
        )
        value = getattr(response, "value", None)
        blockhash = getattr(value, "blockhash", None)
        if not isinstance(blockhash, Hash):
            raise ApiError(f"Unexpected getLatestBlockhash response: {response}", source=SOURCE_LEDGER)
        return blockhash

    async def get_balance(self, pubkey: Pubkey) -> int:
        response = await self._call(
            "getBalance",
            lambda client: client.get_balance(pubkey, self._commitment),
        )
        value = getattr(response, "value", None)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ApiError(f"Unexpected getBalance response: {response}", source=SOURCE_LEDGER)
        return value

    async def send_transaction(self, tx: Any, *, skip_preflight: bool = False) -> str:
        response = await self._call(
            "sendTransaction",
            lambda client: client.send_raw_transaction(
                bytes(tx),
                opts=TxOpts(skip_preflight=skip_preflight, preflight_commitment=self._commitment),
            ),
        )
        signature = getattr(response, "value", None)
        if signature is None:
            raise ApiError(f"Unexpected sendTransaction response: {response}", source=SOURCE_LEDGER)
        log_event(
            self._logger,
            level="info",
            event="ledger_transaction_sent",
            message="Transaction sent outside a bundle",
            tx_signature=str(signature),
        )
        return str(signature)
